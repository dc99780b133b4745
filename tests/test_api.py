"""Tests for the notification HTTP routes and health check."""

from __future__ import annotations

import uuid
from collections.abc import Generator
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from pushrelay.config import settings
from pushrelay.database import get_async_db
from pushrelay.main import app
from pushrelay.notifications.classifier import PushProvider
from pushrelay.notifications.crud import PushTokenDAO
from pushrelay.notifications.dispatcher import PushDispatcher
from pushrelay.notifications.schemas import DEVICE_NOT_REGISTERED
from pushrelay.notifications.service import get_dispatcher

from fakes import EXPO_TOKEN, FCM_TOKEN, FakeProviderClient

USER_ID = str(uuid.uuid4())


@pytest.fixture
def fake_expo() -> FakeProviderClient:
    return FakeProviderClient(PushProvider.EXPO, errors={"ExponentPushToken[gone]": DEVICE_NOT_REGISTERED})


@pytest.fixture
def client(fake_expo: FakeProviderClient, fake_fcm: FakeProviderClient, mock_db: AsyncMock) -> Generator[TestClient, None, None]:
    """Test client with the token store and both gateways faked."""

    async def _db():
        yield mock_db

    app.dependency_overrides[get_dispatcher] = lambda: PushDispatcher(fake_expo, fake_fcm)
    app.dependency_overrides[get_async_db] = _db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _profile(push_token):
    return SimpleNamespace(id=USER_ID, username="player", email="player@example.test", push_token=push_token)


class TestHealth:
    def test_health_reports_configuration(self) -> None:
        with TestClient(app) as test_client:
            response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert "timestamp" in data
        assert data["databaseConfigured"] is False
        assert data["firebaseConfigured"] is False


class TestBroadcast:
    def test_broadcast_sends_to_every_token(self, client: TestClient, fake_expo: FakeProviderClient, fake_fcm: FakeProviderClient) -> None:
        tokens = [EXPO_TOKEN, FCM_TOKEN, "ExponentPushToken[gone]"]
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(return_value=tokens)):
            response = client.post(
                "/send-broadcast-notification",
                json={"title": "Match tonight", "message": "Pitch 3 at 8pm", "data": {"bookingId": 12}},
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "sentCount": 2, "failedCount": 1, "totalTokens": 3}
        assert fake_expo.calls[0]["data"] == {"bookingId": 12, "type": "broadcast", "screen": "More"}
        assert fake_expo.calls[0]["sound"] is True
        assert fake_fcm.calls[0]["tokens"] == [FCM_TOKEN]

    def test_broadcast_without_sound(self, client: TestClient, fake_expo: FakeProviderClient) -> None:
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(return_value=[EXPO_TOKEN])):
            response = client.post(
                "/send-broadcast-notification", json={"title": "Hi", "message": "Quiet", "sound": False}
            )

        assert response.status_code == 200
        assert fake_expo.calls[0]["sound"] is False

    @pytest.mark.parametrize("body", [{"title": "Hi"}, {"message": "Hi"}, {"title": "", "message": "Hi"}, {}])
    def test_missing_title_or_message(self, client: TestClient, body: dict) -> None:
        response = client.post("/send-broadcast-notification", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Title and message are required"

    def test_malformed_body_is_bad_request(self, client: TestClient) -> None:
        response = client.post(
            "/send-broadcast-notification", json={"title": "Hi", "message": "Hi", "data": "not-an-object"}
        )

        assert response.status_code == 400

    def test_no_recipients(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(return_value=[])):
            response = client.post("/send-broadcast-notification", json={"title": "Hi", "message": "Hi"})

        assert response.status_code == 404
        assert response.json()["detail"] == "No users with push tokens found"

    def test_token_store_error(self, client: TestClient) -> None:
        error = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(side_effect=error)):
            response = client.post("/send-broadcast-notification", json={"title": "Hi", "message": "Hi"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch users"

    def test_unconfigured_token_store(self, fake_expo: FakeProviderClient) -> None:
        app.dependency_overrides[get_dispatcher] = lambda: PushDispatcher(fake_expo)
        try:
            with TestClient(app) as test_client:
                response = test_client.post(
                    "/send-broadcast-notification", json={"title": "Hi", "message": "Hi"}
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["detail"] == "Push notifications not configured"
        assert fake_expo.calls == []


class TestGameInvitation:
    def test_invitation_sent(self, client: TestClient, fake_expo: FakeProviderClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile(EXPO_TOKEN))):
            response = client.post(
                "/send-game-invitation",
                json={"userId": USER_ID, "title": "Invite", "message": "Join our 5-a-side", "data": {"gameId": "g1"}},
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "sentCount": 1, "failedCount": 0, "totalTokens": 1}
        assert fake_expo.calls[0]["tokens"] == [EXPO_TOKEN]
        assert fake_expo.calls[0]["data"] == {"type": "game_invitation", "gameId": "g1"}

    def test_user_without_token_is_not_an_error(self, client: TestClient, fake_expo: FakeProviderClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile(None))):
            response = client.post(
                "/send-game-invitation", json={"userId": USER_ID, "title": "Invite", "message": "Join"}
            )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "sentCount": 0,
            "failedCount": 0,
            "message": "No push token available",
        }
        assert fake_expo.calls == []

    def test_unknown_user(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=None)):
            response = client.post(
                "/send-game-invitation", json={"userId": USER_ID, "title": "Invite", "message": "Join"}
            )

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/send-game-invitation", json={"title": "Invite", "message": "Join"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields"

    def test_snake_case_keys_are_accepted(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile(EXPO_TOKEN))):
            response = client.post(
                "/send-game-invitation", json={"user_id": USER_ID, "title": "Invite", "message": "Join"}
            )

        assert response.status_code == 200


class TestUserNotification:
    def test_notification_sent(self, client: TestClient, fake_fcm: FakeProviderClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile(FCM_TOKEN))):
            response = client.post(
                "/send-user-notification", json={"userId": USER_ID, "title": "Booking", "message": "Confirmed"}
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "sentCount": 1, "failedCount": 0}
        assert fake_fcm.calls[0]["data"] == {}

    def test_user_without_token(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile(""))):
            response = client.post(
                "/send-user-notification", json={"userId": USER_ID, "title": "Booking", "message": "Confirmed"}
            )

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found or no push token"

    def test_unknown_user(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=None)):
            response = client.post(
                "/send-user-notification", json={"userId": USER_ID, "title": "Booking", "message": "Confirmed"}
            )

        assert response.status_code == 404

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/send-user-notification", json={"userId": USER_ID, "title": "Booking"})

        assert response.status_code == 400

    def test_failed_delivery_is_still_ok(self, client: TestClient) -> None:
        with patch.object(PushTokenDAO, "get_user_by_id", AsyncMock(return_value=_profile("short"))):
            response = client.post(
                "/send-user-notification", json={"userId": USER_ID, "title": "Booking", "message": "Confirmed"}
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "sentCount": 0, "failedCount": 1}


class TestPruning:
    def test_unregistered_tokens_pruned_when_enabled(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "prune_invalid_tokens", True)
        clear = AsyncMock(return_value=1)
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(return_value=[EXPO_TOKEN, "ExponentPushToken[gone]"])), \
                patch.object(PushTokenDAO, "clear_push_tokens", clear):
            response = client.post("/send-broadcast-notification", json={"title": "Hi", "message": "Hi"})

        assert response.status_code == 200
        assert clear.await_args.args[1] == ["ExponentPushToken[gone]"]

    def test_tokens_kept_when_pruning_disabled(self, client: TestClient) -> None:
        clear = AsyncMock(return_value=1)
        with patch.object(PushTokenDAO, "get_all_push_tokens", AsyncMock(return_value=["ExponentPushToken[gone]"])), \
                patch.object(PushTokenDAO, "clear_push_tokens", clear):
            response = client.post("/send-broadcast-notification", json={"title": "Hi", "message": "Hi"})

        assert response.status_code == 200
        clear.assert_not_awaited()
