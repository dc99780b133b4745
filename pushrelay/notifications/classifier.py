import re
from enum import Enum
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict

# Expo also issues bare UUID device ids alongside the bracketed form
EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")
EXPO_UUID_PATTERN = re.compile(
    r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE
)

# FCM registration tokens carry no prefix, only length sets them apart
FCM_MIN_TOKEN_LENGTH = 50


class PushProvider(str, Enum):
    EXPO = "expo"
    FCM = "fcm"
    UNKNOWN = "unknown"


class PushToken(BaseModel):
    """A raw device token tagged with the provider that issued it."""
    model_config = ConfigDict(frozen=True)

    value: str
    provider: PushProvider

    @property
    def masked(self) -> str:
        return mask_token(self.value)


def is_expo_push_token(token: str) -> bool:
    if token.startswith(EXPO_TOKEN_PREFIXES) and token.endswith("]"):
        return True
    return bool(EXPO_UUID_PATTERN.match(token))


def classify(token) -> PushProvider:
    """
    Determine which push provider a token belongs to from its format alone.

    The Expo check must run first: the FCM check is a length heuristic that
    would also accept long Expo tokens.
    """
    if not isinstance(token, str) or not token:
        return PushProvider.UNKNOWN
    if is_expo_push_token(token):
        return PushProvider.EXPO
    if len(token) > FCM_MIN_TOKEN_LENGTH:
        return PushProvider.FCM
    return PushProvider.UNKNOWN


def classify_tokens(tokens: Iterable[str]) -> List[PushToken]:
    return [
        PushToken(value=token if isinstance(token, str) else "", provider=classify(token))
        for token in tokens
    ]


def mask_token(token: str, visible: int = 10) -> str:
    """Log-safe form of a token."""
    if not token:
        return "<empty>"
    if len(token) <= visible:
        return token
    return f"{token[:visible]}..."
