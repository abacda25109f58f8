# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from divine_panel.core.settings import Settings
from divine_panel.db.session import create_tables, make_engine, make_session_factory
from divine_panel.main import create_app
from divine_panel.services.access_store import AccessStore
from divine_panel.services.broadcast import BroadcastChannel
from divine_panel.services.persistence import DocumentStore
from divine_panel.services.site_state import SiteStateService

TEST_DB_URL = "sqlite://"
START_MS = 1_700_000_000_000

ADMIN_PIN = "admin-secret"
AUTH_PIN = "gate-secret"
UNBAN_PIN = "unban-secret"

DESKTOP_DEVICE = {
    "userAgent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0",
    "platform": "Win32",
    "language": "en-US",
    "timezone": "Europe/Berlin",
    "screen": "1920x1080",
}
MOBILE_DEVICE = {
    "userAgent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148",
    "platform": "iPhone",
    "language": "en-GB",
    "timezone": "Europe/London",
    "screen": "390x844",
}


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class RecordingSubscriber:
    """Realtime subscriber that keeps every payload it receives."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        self.messages.append(data)


class BrokenSubscriber:
    """Realtime subscriber whose connection is gone."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send_json(self, data: Any) -> None:
        self.attempts += 1
        raise RuntimeError("connection closed")


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "admin_pin": ADMIN_PIN,
        "auth_pin": AUTH_PIN,
        "unban_pin": UNBAN_PIN,
        "database_url": TEST_DB_URL,
        "trust_proxy": True,
        "heuristic_enabled": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = make_engine(TEST_DB_URL)
    create_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def documents(engine: Engine, clock: FakeClock) -> DocumentStore:
    return DocumentStore(make_session_factory(engine), clock=clock)


@pytest.fixture()
def access_store(documents: DocumentStore, clock: FakeClock) -> AccessStore:
    return AccessStore.load(documents, clock=clock)


@pytest.fixture()
def channel() -> BroadcastChannel:
    return BroadcastChannel()


@pytest.fixture()
def site_state(
    channel: BroadcastChannel, documents: DocumentStore, clock: FakeClock
) -> SiteStateService:
    return SiteStateService.load(channel, documents, clock=clock)


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with every secret configured and proxy headers trusted."""
    return make_settings()


@pytest.fixture()
def app(test_settings: Settings, engine: Engine, clock: FakeClock) -> FastAPI:
    return create_app(test_settings, engine, clock=clock)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Pin": ADMIN_PIN}


def from_address(address: str) -> dict[str, str]:
    """Headers making a request look like it came from `address` via the proxy."""
    return {"X-Forwarded-For": address}
