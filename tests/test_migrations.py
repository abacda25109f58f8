"""Tests for load-time normalization of stored access documents."""

import logging

from divine_panel.schemas.migrations import ACCESS_SCHEMA_VERSION, normalize_access_document
from divine_panel.services.access_store import AccessStore
from divine_panel.services.persistence import ACCESS_KEY
from tests.conftest import FakeClock

LEGACY_DOCUMENT = {
    "lockdown": True,
    "clients": {
        "abc": {"status": "unbanned", "banMessage": "old news", "firstSeenAt": 10},
        "def": {"status": "banned", "banMessage": "y" * 900},
        "ghi": {"status": "quarantined"},
        "   ": {"status": "verified"},
        "broken": "not a record",
    },
    "ipBans": {"1.2.3.4": {"message": "spam", "createdAt": 5}},
}


def test_legacy_unbanned_status_becomes_unverified() -> None:
    normalized = normalize_access_document(LEGACY_DOCUMENT)

    assert normalized["version"] == ACCESS_SCHEMA_VERSION
    assert normalized["clients"]["abc"]["status"] == "unverified"
    assert normalized["clients"]["abc"]["clientID"] == "abc"


def test_legacy_document_is_cleaned_up() -> None:
    normalized = normalize_access_document(LEGACY_DOCUMENT)

    assert len(normalized["clients"]["def"]["banMessage"]) == 500
    assert normalized["clients"]["ghi"]["status"] == "unverified"
    assert set(normalized["clients"]) == {"abc", "def", "ghi"}
    assert normalized["ipBans"]["1.2.3.4"]["ip"] == "1.2.3.4"
    assert normalized["lockdown"] is True


def test_current_document_is_left_alone() -> None:
    document = {"version": ACCESS_SCHEMA_VERSION, "lockdown": False, "clients": {}, "ipBans": {}}
    assert normalize_access_document(document) is document


def test_store_loads_legacy_document(documents, clock: FakeClock) -> None:
    documents.save(ACCESS_KEY, LEGACY_DOCUMENT)

    store = AccessStore.load(documents, clock=clock)

    assert store.lockdown is True
    assert store.get_client("abc").status == "unverified"
    assert store.get_client("abc").first_seen_at == 10
    assert store.get_ip_ban("1.2.3.4").message == "spam"


def test_malformed_document_falls_back_to_empty(documents, clock: FakeClock, caplog) -> None:
    documents.save(ACCESS_KEY, {"version": 2, "clients": {"abc": {"status": 42}}})

    with caplog.at_level(logging.WARNING):
        store = AccessStore.load(documents, clock=clock)

    assert store.list_clients() == []
    assert store.lockdown is False
    assert "malformed" in caplog.text
