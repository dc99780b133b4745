"""Shared test fixtures for pytest.

Provider credentials and the database URL are blanked before the app is
imported so tests never talk to a real token store or push gateway.
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ["DATABASE_URL"] = ""
os.environ["FIREBASE_SERVICE_ACCOUNT_JSON"] = ""
os.environ["PRUNE_INVALID_TOKENS"] = "false"

from pushrelay.notifications.classifier import PushProvider

from fakes import FakeProviderClient


@pytest.fixture
def fake_expo() -> FakeProviderClient:
    return FakeProviderClient(PushProvider.EXPO)


@pytest.fixture
def fake_fcm() -> FakeProviderClient:
    return FakeProviderClient(PushProvider.FCM)


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async session double; DAO calls are patched in the tests that need data."""
    session = AsyncMock()
    session.add = MagicMock()
    return session
