"""Shared fixtures: settings, fakes and an app wired to them."""

import os

# Settings are read at import time; nothing here talks to Supabase.
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

import pytest
from fastapi.testclient import TestClient

from app.core.auth import CurrentUser, get_current_user, get_websocket_user
from app.services.fanout_service import FanoutService
from app.services.notifications_service import NotificationsService
from app.services.realtime_bridge import RealtimeBridge
from tests.fakes import FakeNotificationStore, FakeRealtimeClient


@pytest.fixture
def user():
    return CurrentUser(id="u1", email="u1@example.com", access_token="token-u1")


@pytest.fixture
def store():
    return FakeNotificationStore()


@pytest.fixture
def fanout(store):
    return FanoutService(store, recipient_timeout=1.0)


@pytest.fixture
def realtime_client():
    return FakeRealtimeClient()


@pytest.fixture
def bridge(realtime_client):
    async def provider():
        return realtime_client

    return RealtimeBridge(provider, buffer_size=10)


@pytest.fixture
def app(store, fanout, bridge, user):
    from app.main import create_app
    from app.routes.notifications import (
        get_fanout_service,
        get_notifications_service,
        get_realtime_bridge,
    )

    application = create_app()
    application.dependency_overrides[get_fanout_service] = lambda: fanout
    application.dependency_overrides[get_notifications_service] = lambda: NotificationsService(store)
    application.dependency_overrides[get_realtime_bridge] = lambda: bridge
    application.dependency_overrides[get_current_user] = lambda: user
    application.dependency_overrides[get_websocket_user] = lambda: user
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
