# src/divine_panel/services/__init__.py
"""Business logic services for the Divine Panel application."""

from .access_store import AccessStore, InvalidIdentifierError
from .broadcast import BroadcastChannel
from .container import Services, build_services
from .decision import DecisionEngine
from .persistence import DocumentStore
from .presence import PresenceTracker
from .site_state import InvalidBroadcastError, SiteStateService

__all__ = [
    "AccessStore",
    "BroadcastChannel",
    "DecisionEngine",
    "DocumentStore",
    "InvalidBroadcastError",
    "InvalidIdentifierError",
    "PresenceTracker",
    "Services",
    "SiteStateService",
    "build_services",
]
