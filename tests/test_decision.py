"""Tests for the access decision rules and their precedence."""

import pytest

from divine_panel.schemas.access import Telemetry
from divine_panel.services.access_store import AccessStore
from divine_panel.services.decision import DecisionEngine
from divine_panel.services.persistence import ACCESS_KEY
from tests.conftest import DESKTOP_DEVICE, MOBILE_DEVICE, FakeClock

DESKTOP = Telemetry(user_agent=DESKTOP_DEVICE["userAgent"], platform=DESKTOP_DEVICE["platform"])
MOBILE = Telemetry(user_agent=MOBILE_DEVICE["userAgent"], platform=MOBILE_DEVICE["platform"])


@pytest.fixture()
def engine_under_test(access_store: AccessStore) -> DecisionEngine:
    return DecisionEngine(access_store)


def test_unknown_client_is_allowed(engine_under_test: DecisionEngine) -> None:
    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is True
    assert decision.banned is False
    assert decision.status == "unverified"
    assert decision.reason == "unknown_allowed"


def test_ip_ban_beats_verified_client(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.verify("abc")
    access_store.ban_ip("1.2.3.4", "spam")

    decision = engine_under_test.evaluate_and_reclassify("abc", "1.2.3.4")

    assert decision.allowed is False
    assert decision.banned is True
    assert decision.reason == "ip_ban"
    assert decision.ban_message == "spam"


def test_ip_ban_applies_without_client_id(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.ban_ip("1.2.3.4", "spam")

    decision = engine_under_test.evaluate_and_reclassify(None, "1.2.3.4")

    assert decision.reason == "ip_ban"
    assert decision.banned is True


def test_missing_client_id(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    assert engine_under_test.evaluate_and_reclassify(None, "10.0.0.1").reason == "missing_client_id"
    assert engine_under_test.evaluate_and_reclassify(None, "10.0.0.1").allowed is True

    access_store.set_lockdown(True)
    decision = engine_under_test.evaluate_and_reclassify("", "10.0.0.1")

    assert decision.allowed is False
    assert decision.reason == "lockdown_missing_client_id"


def test_banned_client_gets_message(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.ban("abc", "read the rules")

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is False
    assert decision.banned is True
    assert decision.status == "banned"
    assert decision.ban_message == "read the rules"


def test_suspicious_is_allowed_and_short_circuits_lockdown(
    access_store: AccessStore, engine_under_test: DecisionEngine
) -> None:
    access_store.mark_suspicious("abc")
    access_store.set_lockdown(True)

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is True
    assert decision.status == "suspicious"
    assert decision.reason == "suspicious"


def test_desktop_telemetry_reclassifies_unverified_client(
    access_store: AccessStore, engine_under_test: DecisionEngine, documents, clock: FakeClock
) -> None:
    access_store.update_telemetry("abc", DESKTOP, "10.0.0.1")
    now = clock.advance(1_000)

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is True
    assert decision.status == "suspicious"
    assert decision.reason == "heuristic_suspicious"
    assert decision.reclassified is True
    stored = documents.load(ACCESS_KEY)["clients"]["abc"]
    assert stored["status"] == "suspicious"
    assert stored["suspiciousAt"] == now


def test_suspicious_status_is_sticky(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.update_telemetry("abc", DESKTOP, "10.0.0.1")
    engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    # Later traffic looks like a phone; the flag stays until an operator clears it.
    access_store.update_telemetry("abc", MOBILE, "10.0.0.1")
    for _ in range(5):
        decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")
        assert decision.status == "suspicious"
        assert decision.reclassified is False

    assert access_store.get_client("abc").status == "suspicious"


@pytest.mark.parametrize("status", ["verified", "banned"])
def test_heuristic_never_touches_vetted_clients(
    access_store: AccessStore, engine_under_test: DecisionEngine, status: str
) -> None:
    access_store.update_telemetry("abc", DESKTOP, "10.0.0.1")
    access_store.set_client_status("abc", status)

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.reclassified is False
    assert access_store.get_client("abc").status == status


def test_mobile_client_is_not_reclassified(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.update_telemetry("abc", MOBILE, "10.0.0.1")

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.status == "unverified"
    assert decision.reason == "allowed"


def test_custom_predicate_is_used(access_store: AccessStore) -> None:
    engine = DecisionEngine(access_store, predicate=lambda record: record.language == "xx")
    access_store.update_telemetry("abc", Telemetry(language="xx"), None)
    access_store.update_telemetry("def", DESKTOP, None)

    assert engine.evaluate_and_reclassify("abc", None).status == "suspicious"
    assert engine.evaluate_and_reclassify("def", None).status == "unverified"


@pytest.mark.parametrize(
    ("setup", "expected_allowed", "expected_reason"),
    [
        ("verified", True, "lockdown_verified"),
        ("unverified", False, "lockdown_not_verified"),
        ("banned", False, "banned"),
        ("unknown", False, "lockdown_unknown"),
        ("suspicious", True, "suspicious"),
        ("desktop", False, "lockdown_not_verified"),
    ],
)
def test_lockdown_only_admits_verified_clients(
    access_store: AccessStore,
    engine_under_test: DecisionEngine,
    setup: str,
    expected_allowed: bool,
    expected_reason: str,
) -> None:
    if setup == "desktop":
        access_store.update_telemetry("abc", DESKTOP, "10.0.0.1")
    elif setup != "unknown":
        access_store.ensure_client("abc")
        access_store.set_client_status("abc", setup)
    access_store.set_lockdown(True)

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is expected_allowed
    assert decision.reason == expected_reason


def test_lockdown_denial_reports_actual_status(
    access_store: AccessStore, engine_under_test: DecisionEngine
) -> None:
    access_store.ensure_client("abc")
    access_store.set_lockdown(True)

    assert engine_under_test.evaluate_and_reclassify("abc", None).status == "unverified"


def test_known_client_without_lockdown(access_store: AccessStore, engine_under_test: DecisionEngine) -> None:
    access_store.verify("abc")

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is True
    assert decision.status == "verified"
    assert decision.reason == "allowed"


def test_heuristic_flip_under_lockdown_is_denied_but_recorded(
    access_store: AccessStore, engine_under_test: DecisionEngine
) -> None:
    access_store.update_telemetry("abc", DESKTOP, "10.0.0.1")
    access_store.set_lockdown(True)

    decision = engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1")

    assert decision.allowed is False
    assert decision.status == "suspicious"
    assert decision.reclassified is True
    assert access_store.get_client("abc").status == "suspicious"
    # Once flagged, the client follows the suspicious rule.
    assert engine_under_test.evaluate_and_reclassify("abc", "10.0.0.1").allowed is True
