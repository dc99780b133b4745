import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from .crud import PushTokenDAO
from .dispatcher import PushDispatcher
from .exceptions import InvalidNotificationError, RecipientNotFound
from .providers.expo import ExpoPushClient
from .providers.fcm import FcmPushClient
from .schemas import AggregateResult

logger = logging.getLogger(__name__)

BROADCAST_DATA = {"type": "broadcast", "screen": "More"}


def build_dispatcher(settings: Settings) -> PushDispatcher:
    """
    Build the provider clients once at startup. FCM is only wired in when a
    service account is configured; a malformed one raises.
    """
    expo_client = ExpoPushClient(
        push_url=settings.expo_push_url,
        access_token=settings.expo_access_token,
        timeout=settings.push_request_timeout_seconds,
        sound=settings.notification_sound,
        channel_id=settings.android_channel_id
    )

    fcm_client = None
    if settings.firebase_service_account_json:
        fcm_client = FcmPushClient.from_service_account_json(
            settings.firebase_service_account_json,
            timeout=settings.push_request_timeout_seconds,
            sound=settings.notification_sound,
            channel_id=settings.android_channel_id
        )
        logger.info("FCM client initialized successfully.")
    else:
        logger.warning("FIREBASE_SERVICE_ACCOUNT_JSON not set. FCM tokens will not be delivered.")

    return PushDispatcher(expo_client=expo_client, fcm_client=fcm_client)


def get_dispatcher(request: Request) -> PushDispatcher:
    return request.app.state.dispatcher


class NotificationService:
    def __init__(self, dispatcher: PushDispatcher, prune_invalid_tokens: bool = False):
        self.dispatcher = dispatcher
        self.prune_invalid_tokens = prune_invalid_tokens

    async def send_broadcast(
        self,
        db: AsyncSession,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        sound: bool = True
    ) -> AggregateResult:
        """Send a notification to every user that has a push token."""
        if not title:
            raise InvalidNotificationError("title")
        if not message:
            raise InvalidNotificationError("message")

        tokens = await PushTokenDAO.get_all_push_tokens(db)
        if not tokens:
            logger.info("No users with push tokens found")
            raise RecipientNotFound("No users with push tokens found")

        logger.info(f"Sending broadcast notification to {len(tokens)} tokens")
        result = await self.dispatcher.dispatch(
            tokens, title, message, {**(data or {}), **BROADCAST_DATA}, sound=sound
        )
        await self._prune(db, result)
        return result

    async def get_user_push_token(self, db: AsyncSession, user_id: str) -> Optional[str]:
        """The user's push token, or None if they have not registered a device."""
        user = await PushTokenDAO.get_user_by_id(db, user_id)
        if user is None:
            raise RecipientNotFound("User not found")
        return user.push_token or None

    async def send_to_token(
        self,
        db: AsyncSession,
        token: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> AggregateResult:
        result = await self.dispatcher.dispatch([token], title, message, data or {})
        await self._prune(db, result)
        return result

    async def _prune(self, db: AsyncSession, result: AggregateResult) -> int:
        """Drop tokens the providers reported as unregistered. Failures are logged, not raised."""
        invalid_tokens = result.invalid_tokens
        if not invalid_tokens:
            return 0
        if not self.prune_invalid_tokens:
            logger.info(f"{len(invalid_tokens)} tokens are no longer registered; pruning disabled")
            return 0
        try:
            return await PushTokenDAO.clear_push_tokens(db, invalid_tokens)
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to prune invalid push tokens: {e}")
            return 0
