"""Presence tracking: what a client looked like the last time it was seen."""

from __future__ import annotations

import logging

from divine_panel.schemas.access import ClientRecord
from divine_panel.schemas.requests import DeviceInfo
from divine_panel.services.access_store import AccessStore

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Records telemetry and source addresses on client records."""

    def __init__(self, store: AccessStore) -> None:
        self._store = store

    def record_hello(
        self,
        client_id: str,
        device: DeviceInfo | None,
        source_ip: str | None,
        user_agent_header: str | None = None,
    ) -> ClientRecord:
        """Create or refresh a client from a hello ping.

        Device fields reported by the client win; the request's `User-Agent`
        header only fills in a missing agent string.
        """
        telemetry = (device or DeviceInfo()).to_telemetry(user_agent_header)
        record, created = self._store.update_telemetry(client_id, telemetry, source_ip)
        if created:
            logger.debug("hello from new client %s at %s", client_id, source_ip)
        return record

    def observe(self, client_id: str | None, source_ip: str | None) -> ClientRecord | None:
        """Refresh last-seen data for a known client; unknown clients stay unknown."""
        return self._store.touch(client_id, source_ip)
