"""Test doubles shared across test modules."""

import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from pushrelay.notifications.classifier import PushProvider, PushToken
from pushrelay.notifications.providers.expo import ExpoPushClient
from pushrelay.notifications.schemas import DispatchOutcome


EXPO_TOKEN = "ExponentPushToken[abc]"
FCM_TOKEN = "f" * 60


class FakeProviderClient:
    """Stand-in provider client that delivers every token unless told otherwise."""

    def __init__(self, provider: PushProvider, errors: Optional[Dict[str, str]] = None):
        self.provider = provider
        self.errors = errors or {}
        self.calls: List[Dict[str, Any]] = []

    async def send(self, tokens, title, body, data=None, sound=True):
        self.calls.append(
            {"tokens": [t.value for t in tokens], "title": title, "body": body, "data": data, "sound": sound}
        )
        return [
            DispatchOutcome.failed(t.value, self.provider, self.errors[t.value])
            if t.value in self.errors
            else DispatchOutcome.delivered(t.value, self.provider)
            for t in tokens
        ]

    async def aclose(self) -> None:
        pass


def expo_tokens(values: Iterable[str]) -> List[PushToken]:
    return [PushToken(value=v, provider=PushProvider.EXPO) for v in values]


def ok_tickets_handler(request: httpx.Request) -> httpx.Response:
    messages = json.loads(request.content)
    return httpx.Response(
        200, json={"data": [{"status": "ok", "id": f"ticket-{i}"} for i, _ in enumerate(messages)]}
    )


def make_expo_client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> ExpoPushClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ExpoPushClient(http_client=http_client, **kwargs)
