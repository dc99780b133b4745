import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging

from ..classifier import PushProvider, PushToken
from ..exceptions import ProviderConfigurationError
from ..schemas import (
    BatchResult,
    DispatchOutcome,
    DEVICE_NOT_REGISTERED,
    MISSING_TICKET,
    TRANSPORT_ERROR,
)

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "pushrelay"


def stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM only accepts string values in the data section."""
    result = {}
    for key, value in (data or {}).items():
        if value is None:
            result[str(key)] = ""
        elif isinstance(value, bool):
            result[str(key)] = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            result[str(key)] = json.dumps(value)
        else:
            result[str(key)] = str(value)
    return result


def _error_code(exc: Optional[Exception]) -> str:
    if isinstance(exc, messaging.UnregisteredError):
        return DEVICE_NOT_REGISTERED
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    return type(exc).__name__ if exc is not None else "error"


class FcmPushClient:
    """Sends notifications through Firebase Cloud Messaging."""

    def __init__(
        self,
        app: Optional[firebase_admin.App] = None,
        timeout: float = 10.0,
        sound: Optional[str] = "default",
        channel_id: Optional[str] = None
    ):
        self.app = app
        self.timeout = timeout
        self.sound = sound
        self.channel_id = channel_id

    @classmethod
    def from_service_account_json(cls, raw: str, **kwargs) -> "FcmPushClient":
        """Build a client from a service account JSON document."""
        try:
            info = json.loads(raw)
            cred = credentials.Certificate(info)
        except ValueError as e:
            raise ProviderConfigurationError("fcm", str(e)) from e

        try:
            app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)

        logger.info(f"Firebase app initialized for project {info.get('project_id')}")
        return cls(app=app, **kwargs)

    def build_message(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        sound: bool = True
    ) -> messaging.MulticastMessage:
        sound_name = self.sound if sound else None
        return messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=stringify_data(data),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound=sound_name,
                    channel_id=self.channel_id
                )
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound=sound_name))
            )
        )

    async def _send_multicast(self, build) -> BatchResult:
        """Build and send one multicast message; SDK-side validation errors count as failures."""
        try:
            message = build()
            response = await asyncio.wait_for(
                asyncio.to_thread(messaging.send_each_for_multicast, message, app=self.app),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"[fcm] Multicast timed out after {self.timeout}s")
            return BatchResult.failure("timeout")
        except Exception as e:
            logger.error(f"[fcm] Multicast failed: {e!r}")
            return BatchResult.failure(str(e) or repr(e))

        logger.info(
            f"[fcm] Multicast sent: {response.success_count} success, {response.failure_count} failed"
        )
        return BatchResult.ok(response.responses)

    async def send(
        self,
        tokens: List[PushToken],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        sound: bool = True
    ) -> List[DispatchOutcome]:
        """Send one multicast request; outcomes follow the order of tokens."""
        if not tokens:
            return []

        result = await self._send_multicast(
            lambda: self.build_message([t.value for t in tokens], title, body, data, sound)
        )

        if not result.is_ok:
            return [
                DispatchOutcome.failed(t.value, PushProvider.FCM, TRANSPORT_ERROR, result.error)
                for t in tokens
            ]

        responses = result.responses
        outcomes = []
        for position, token in enumerate(tokens):
            if position >= len(responses):
                outcomes.append(DispatchOutcome.failed(token.value, PushProvider.FCM, MISSING_TICKET))
                continue

            send_response = responses[position]
            if send_response.success:
                outcomes.append(DispatchOutcome.delivered(token.value, PushProvider.FCM))
            else:
                exc = send_response.exception
                logger.warning(f"[fcm] Failed to send notification to {token.masked}: {exc}")
                outcomes.append(
                    DispatchOutcome.failed(
                        token.value,
                        PushProvider.FCM,
                        error=_error_code(exc),
                        message=str(exc) if exc is not None else None
                    )
                )
        return outcomes
