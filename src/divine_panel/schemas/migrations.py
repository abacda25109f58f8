"""Load-time normalization of persisted documents.

Older deployments wrote access documents without a version and used an
`"unbanned"` status for clients released from a ban. Documents are upgraded
step by step to `ACCESS_SCHEMA_VERSION` before they are validated, so the
rest of the code only ever sees the current shape.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final

from .access import (
    CLIENT_STATUSES,
    MAX_BAN_MESSAGE,
    MAX_LANGUAGE,
    MAX_PLATFORM,
    MAX_SCREEN,
    MAX_TIMEZONE,
    MAX_USER_AGENT,
    STATUS_UNVERIFIED,
    clip,
)

ACCESS_SCHEMA_VERSION: Final[int] = 2

_LEGACY_STATUS_ALIASES: Final[dict[str, str]] = {"unbanned": STATUS_UNVERIFIED}
_TEXT_LIMITS: Final[dict[str, int]] = {
    "userAgent": MAX_USER_AGENT,
    "platform": MAX_PLATFORM,
    "language": MAX_LANGUAGE,
    "timezone": MAX_TIMEZONE,
    "screen": MAX_SCREEN,
    "banMessage": MAX_BAN_MESSAGE,
}

logger = logging.getLogger(__name__)


def _upgrade_v1_client(client_id: str, raw: dict[str, Any]) -> dict[str, Any]:
    record = dict(raw)
    record["clientID"] = client_id
    status = str(record.get("status") or STATUS_UNVERIFIED)
    status = _LEGACY_STATUS_ALIASES.get(status, status)
    if status not in CLIENT_STATUSES:
        logger.warning("Client %s had unknown status %r; resetting to unverified", client_id, status)
        status = STATUS_UNVERIFIED
    record["status"] = status
    for field, limit in _TEXT_LIMITS.items():
        if field in record:
            record[field] = clip(record[field], limit)
    return record


def _upgrade_v1(document: dict[str, Any]) -> dict[str, Any]:
    """Version 1 -> 2: legacy statuses, clipped text, keys trimmed."""
    clients: dict[str, Any] = {}
    raw_clients = document.get("clients")
    if isinstance(raw_clients, dict):
        for key, raw in raw_clients.items():
            client_id = str(key).strip()
            if not client_id or not isinstance(raw, dict):
                continue
            clients[client_id] = _upgrade_v1_client(client_id, raw)

    ip_bans: dict[str, Any] = {}
    raw_bans = document.get("ipBans")
    if isinstance(raw_bans, dict):
        for key, raw in raw_bans.items():
            address = str(key).strip()
            if not address or not isinstance(raw, dict):
                continue
            ban = dict(raw)
            ban["ip"] = address
            ban["message"] = clip(ban.get("message"), MAX_BAN_MESSAGE)
            ip_bans[address] = ban

    return {
        "version": 2,
        "lockdown": document.get("lockdown") is True,
        "clients": clients,
        "ipBans": ip_bans,
    }


_UPGRADES: Final[dict[int, Callable[[dict[str, Any]], dict[str, Any]]]] = {
    1: _upgrade_v1,
}


def normalize_access_document(document: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a persisted access document to the current schema version.

    Args:
        document: Raw mapping as loaded from storage.

    Returns:
        A mapping ready for `AccessDocument.model_validate`.
    """
    version = document.get("version", 1)
    if not isinstance(version, int) or version < 1:
        version = 1
    if version > ACCESS_SCHEMA_VERSION:
        logger.warning(
            "Access document version %d is newer than supported version %d; loading as-is",
            version,
            ACCESS_SCHEMA_VERSION,
        )
        return document

    while version < ACCESS_SCHEMA_VERSION:
        document = _UPGRADES[version](document)
        version = document["version"]
    return document
