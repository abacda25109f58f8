"""Construction of the process-wide service objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine

from divine_panel.core.settings import Settings
from divine_panel.db.session import create_tables, make_session_factory
from divine_panel.db.time import Clock, now_ms
from divine_panel.services.access_store import AccessStore
from divine_panel.services.broadcast import BroadcastChannel
from divine_panel.services.decision import DecisionEngine
from divine_panel.services.heuristics import looks_like_desktop, never
from divine_panel.services.persistence import DocumentStore
from divine_panel.services.presence import PresenceTracker
from divine_panel.services.site_state import SiteStateService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler may touch, built once per application."""

    settings: Settings
    documents: DocumentStore
    access: AccessStore
    presence: PresenceTracker
    decisions: DecisionEngine
    channel: BroadcastChannel
    site_state: SiteStateService


def build_services(settings: Settings, engine: Engine, clock: Clock = now_ms) -> Services:
    """Create tables if needed, load both aggregates and wire the services together."""
    create_tables(engine)
    documents = DocumentStore(make_session_factory(engine), clock=clock)

    access = AccessStore.load(documents, clock=clock)
    channel = BroadcastChannel()
    site_state = SiteStateService.load(
        channel,
        documents,
        clock=clock,
        broadcast_ttl_ms=settings.broadcast_ttl_ms,
        broadcast_max_length=settings.broadcast_max_length,
    )
    predicate = looks_like_desktop if settings.heuristic_enabled else never
    if not settings.heuristic_enabled:
        logger.info("Desktop reclassification disabled")

    return Services(
        settings=settings,
        documents=documents,
        access=access,
        presence=PresenceTracker(access),
        decisions=DecisionEngine(access, predicate),
        channel=channel,
        site_state=site_state,
    )
