from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Tuple

from .classifier import PushProvider, mask_token

# Error classifications carried on failed outcomes
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"
UNKNOWN_TOKEN_FORMAT = "UnknownTokenFormat"
PROVIDER_NOT_CONFIGURED = "ProviderNotConfigured"
TRANSPORT_ERROR = "TransportError"
MISSING_TICKET = "MissingTicket"


class DispatchOutcome(BaseModel):
    """Delivery result for a single token."""
    model_config = ConfigDict(frozen=True)

    token: str
    provider: PushProvider
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def prunable(self) -> bool:
        """True when the provider says the device is gone and the token can be dropped."""
        return self.error == DEVICE_NOT_REGISTERED

    @property
    def masked_token(self) -> str:
        return mask_token(self.token)

    @classmethod
    def delivered(cls, token: str, provider: PushProvider) -> "DispatchOutcome":
        return cls(token=token, provider=provider, success=True)

    @classmethod
    def failed(
        cls,
        token: str,
        provider: PushProvider,
        error: str,
        message: Optional[str] = None
    ) -> "DispatchOutcome":
        return cls(token=token, provider=provider, success=False, error=error, message=message)


class AggregateResult(BaseModel):
    """Combined result of one dispatch across every provider."""
    model_config = ConfigDict(frozen=True)

    success: int = 0
    failed: int = 0
    total: int = 0
    outcomes: Tuple[DispatchOutcome, ...] = ()

    @property
    def invalid_tokens(self) -> List[str]:
        return [outcome.token for outcome in self.outcomes if outcome.prunable]

    @classmethod
    def empty(cls) -> "AggregateResult":
        return cls()

    @classmethod
    def from_outcomes(cls, outcomes: List[DispatchOutcome]) -> "AggregateResult":
        succeeded = sum(1 for outcome in outcomes if outcome.success)
        return cls(
            success=succeeded,
            failed=len(outcomes) - succeeded,
            total=len(outcomes),
            outcomes=tuple(outcomes)
        )


class BatchResult(BaseModel):
    """
    Result of one gateway request: either the provider's per-token responses
    or the transport error that prevented the request from completing.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    responses: Optional[List[Any]] = None
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, responses: List[Any]) -> "BatchResult":
        return cls(responses=list(responses))

    @classmethod
    def failure(cls, error: str) -> "BatchResult":
        return cls(error=error)


# HTTP request/response schemas. Clients send and receive camelCase keys.
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BroadcastNotificationRequest(CamelModel):
    title: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    sound: bool = True


class UserNotificationRequest(CamelModel):
    user_id: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationSendResponse(CamelModel):
    success: bool = True
    sent_count: int
    failed_count: int
    total_tokens: Optional[int] = None
    message: Optional[str] = None


class HealthResponse(CamelModel):
    status: str
    timestamp: str
    database_configured: bool
    firebase_configured: bool
