import logging
from typing import Any, Dict, List, Optional

from .classifier import PushProvider, classify_tokens
from .exceptions import InvalidNotificationError
from .providers.expo import ExpoPushClient
from .providers.fcm import FcmPushClient
from .schemas import (
    AggregateResult,
    DispatchOutcome,
    PROVIDER_NOT_CONFIGURED,
    UNKNOWN_TOKEN_FORMAT,
)

logger = logging.getLogger(__name__)


class PushDispatcher:
    """
    Classifies device tokens, fans a notification out to the Expo and FCM
    gateways and merges their per-token outcomes into one result.

    Delivery problems never raise: a token that could not be delivered shows
    up as a failed outcome. Only a missing title or body raises.
    """

    def __init__(self, expo_client: ExpoPushClient, fcm_client: Optional[FcmPushClient] = None):
        self.expo_client = expo_client
        self.fcm_client = fcm_client

    @property
    def fcm_configured(self) -> bool:
        return self.fcm_client is not None

    async def dispatch(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        sound: bool = True
    ) -> AggregateResult:
        if not title:
            raise InvalidNotificationError("title")
        if not body:
            raise InvalidNotificationError("body")

        if not tokens:
            return AggregateResult.empty()

        logger.info(f"Sending push notifications to {len(tokens)} devices...")

        classified = classify_tokens(tokens)
        expo_tokens = [t for t in classified if t.provider == PushProvider.EXPO]
        fcm_tokens = [t for t in classified if t.provider == PushProvider.FCM]
        unknown_tokens = [t for t in classified if t.provider == PushProvider.UNKNOWN]

        logger.info(
            f"Token breakdown: {len(expo_tokens)} Expo, {len(fcm_tokens)} FCM, {len(unknown_tokens)} unknown"
        )

        outcomes: List[DispatchOutcome] = []

        if expo_tokens:
            outcomes.extend(await self.expo_client.send(expo_tokens, title, body, data, sound=sound))

        if fcm_tokens:
            if self.fcm_client is not None:
                outcomes.extend(await self.fcm_client.send(fcm_tokens, title, body, data, sound=sound))
            else:
                logger.debug(f"FCM not configured, failing {len(fcm_tokens)} FCM tokens")
                outcomes.extend(
                    DispatchOutcome.failed(t.value, PushProvider.FCM, PROVIDER_NOT_CONFIGURED)
                    for t in fcm_tokens
                )

        for token in unknown_tokens:
            logger.warning(f"Unknown token format: {token.masked}")
            outcomes.append(
                DispatchOutcome.failed(token.value, PushProvider.UNKNOWN, UNKNOWN_TOKEN_FORMAT)
            )

        result = AggregateResult.from_outcomes(outcomes)
        logger.info(f"Results: {result.success} success, {result.failed} failed of {result.total}")
        return result
