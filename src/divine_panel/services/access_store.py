"""In-memory repository of client records, IP bans and the access lockdown.

Every mutation holds the store lock across read, decide, mutate and persist,
and writes the whole aggregate through the document store before returning.
Callers always receive copies; records are only changed through the methods
below.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from threading import Lock

from pydantic import ValidationError

from divine_panel.db.time import Clock, now_ms
from divine_panel.schemas.access import (
    MAX_BAN_MESSAGE,
    STATUS_BANNED,
    STATUS_SUSPICIOUS,
    STATUS_UNVERIFIED,
    STATUS_VERIFIED,
    AccessDocument,
    ClientRecord,
    ClientStatus,
    IPBanRecord,
    Telemetry,
    clip,
)
from divine_panel.schemas.migrations import ACCESS_SCHEMA_VERSION, normalize_access_document
from divine_panel.services.persistence import ACCESS_KEY, DocumentStore

logger = logging.getLogger(__name__)

ReclassificationPredicate = Callable[[ClientRecord], bool]


class InvalidIdentifierError(ValueError):
    """Raised when a client id or address is blank."""


def _require(value: str | None, name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidIdentifierError(f"{name} required")
    return cleaned


def _new_record(client_id: str, now: int) -> ClientRecord:
    return ClientRecord(
        client_id=client_id,
        status=STATUS_UNVERIFIED,
        first_seen_at=now,
        last_seen_at=now,
    )


class AccessStore:
    """Client records, IP bans and the access-lockdown flag."""

    def __init__(
        self,
        documents: DocumentStore | None = None,
        document: AccessDocument | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._documents = documents
        self._document = document or AccessDocument(version=ACCESS_SCHEMA_VERSION)
        self._clock = clock
        self._lock = Lock()

    @classmethod
    def load(cls, documents: DocumentStore, clock: Clock = now_ms) -> AccessStore:
        """Build the store from durable storage, falling back to an empty one."""
        raw = documents.load(ACCESS_KEY)
        document = None
        if raw is not None:
            try:
                document = AccessDocument.model_validate(normalize_access_document(raw))
            except (ValidationError, TypeError, KeyError) as e:
                logger.warning("Stored access document is malformed; starting empty: %s", e)
        store = cls(documents, document, clock)
        logger.info(
            "Access store loaded: %d clients, %d ip bans, lockdown=%s",
            len(store._document.clients),
            len(store._document.ip_bans),
            store._document.lockdown,
        )
        return store

    def _persist_locked(self) -> None:
        if self._documents is None:
            return
        self._documents.save(ACCESS_KEY, self._document.model_dump(mode="json", by_alias=True))

    @staticmethod
    def _observe_address(record: ClientRecord, source_ip: str | None, now: int) -> bool:
        """Record `source_ip` on `record`; return True when the last address changed."""
        if not source_ip:
            return False
        changed = record.ip_last != source_ip
        if not record.ip_first:
            record.ip_first = source_ip
        record.ip_last = source_ip
        record.ip_last_seen_at = now
        return changed

    def _ensure_locked(self, client_id: str, now: int) -> tuple[ClientRecord, bool]:
        record = self._document.clients.get(client_id)
        if record is not None:
            record.last_seen_at = now
            return record, False
        record = _new_record(client_id, now)
        self._document.clients[client_id] = record
        return record, True

    # --- Client records -------------------------------------------------------------
    def ensure_client(self, client_id: str) -> tuple[ClientRecord, bool]:
        """Return the record for `client_id`, creating an unverified one on first sight.

        Only creation is persisted; refreshing `lastSeenAt` on a known client
        stays in memory until the next persisted mutation.

        Returns:
            A copy of the record and whether it was created by this call.
        """
        client_id = _require(client_id, "clientID")
        with self._lock:
            record, created = self._ensure_locked(client_id, self._clock())
            if created:
                logger.info("New client %s", client_id)
                self._persist_locked()
            return record.model_copy(), created

    def get_client(self, client_id: str | None) -> ClientRecord | None:
        """Return a copy of the record for `client_id`, or None if unknown."""
        if not client_id:
            return None
        with self._lock:
            record = self._document.clients.get(client_id.strip())
            return record.model_copy() if record is not None else None

    def set_client_status(
        self,
        client_id: str,
        status: ClientStatus,
        *,
        ban_message: str | None = None,
        only_from: Collection[str] | None = None,
    ) -> ClientRecord:
        """Move a client to `status`, creating the record if needed.

        Args:
            client_id: Client token.
            status: Target status.
            ban_message: Text shown to the client when `status` is banned.
            only_from: When given, the transition only happens if the current
                status is one of these; otherwise the record is left untouched.
                An unknown client counts as unverified, and is not stored when
                the transition is skipped.

        Returns:
            A copy of the record after the call.
        """
        client_id = _require(client_id, "clientID")
        with self._lock:
            now = self._clock()
            if only_from is not None:
                current = self._document.clients.get(client_id)
                if current is None and STATUS_UNVERIFIED not in only_from:
                    return _new_record(client_id, now)
                if current is not None and current.status not in only_from:
                    return current.model_copy()
            record, _ = self._ensure_locked(client_id, now)

            previous = record.status
            record.status = status
            if status == STATUS_VERIFIED:
                record.verified_at = now
            elif status == STATUS_SUSPICIOUS:
                record.suspicious_at = now
            record.ban_message = (
                clip(ban_message, MAX_BAN_MESSAGE) if status == STATUS_BANNED else ""
            )
            self._persist_locked()
            logger.info("Client %s status %s -> %s", client_id, previous, status)
            return record.model_copy()

    def verify(self, client_id: str) -> ClientRecord:
        return self.set_client_status(client_id, STATUS_VERIFIED)

    def mark_suspicious(self, client_id: str) -> ClientRecord:
        return self.set_client_status(client_id, STATUS_SUSPICIOUS)

    def clear_suspicious(self, client_id: str) -> ClientRecord:
        return self.set_client_status(
            client_id, STATUS_UNVERIFIED, only_from={STATUS_SUSPICIOUS}
        )

    def ban(self, client_id: str, message: str | None = None) -> ClientRecord:
        return self.set_client_status(client_id, STATUS_BANNED, ban_message=message)

    def unban(self, client_id: str) -> ClientRecord:
        """Release a banned client. Unbanning always lands on unverified."""
        return self.set_client_status(client_id, STATUS_UNVERIFIED, only_from={STATUS_BANNED})

    def update_telemetry(
        self,
        client_id: str,
        telemetry: Telemetry,
        source_ip: str | None = None,
    ) -> tuple[ClientRecord, bool]:
        """Apply reported telemetry and the observed address, creating the record if needed.

        Empty telemetry fields leave the stored value alone.
        """
        client_id = _require(client_id, "clientID")
        clipped = telemetry.clipped()
        with self._lock:
            now = self._clock()
            record, created = self._ensure_locked(client_id, now)
            for field in ("user_agent", "platform", "language", "timezone", "screen"):
                value = getattr(clipped, field)
                if value:
                    setattr(record, field, value)
            self._observe_address(record, source_ip, now)
            self._persist_locked()
            return record.model_copy(), created

    def touch(self, client_id: str | None, source_ip: str | None = None) -> ClientRecord | None:
        """Refresh a known client's last-seen data; unknown clients are not created.

        The store is persisted only when the observed address changed.
        """
        if not client_id:
            return None
        with self._lock:
            record = self._document.clients.get(client_id.strip())
            if record is None:
                return None
            now = self._clock()
            record.last_seen_at = now
            if self._observe_address(record, source_ip, now):
                self._persist_locked()
            return record.model_copy()

    def reclassify_if_unverified(
        self,
        client_id: str,
        predicate: ReclassificationPredicate,
    ) -> ClientRecord | None:
        """Flip an unverified client to suspicious when `predicate` matches.

        The check and the flip happen under one lock acquisition, so a
        concurrent operator action cannot be overwritten.

        Returns:
            A copy of the reclassified record, or None when nothing changed.
        """
        with self._lock:
            record = self._document.clients.get(client_id)
            if record is None or record.status != STATUS_UNVERIFIED:
                return None
            if not predicate(record.model_copy()):
                return None
            record.status = STATUS_SUSPICIOUS
            record.suspicious_at = self._clock()
            self._persist_locked()
            logger.info("Client %s reclassified as suspicious", client_id)
            return record.model_copy()

    def list_clients(self) -> list[ClientRecord]:
        """Return copies of all client records, most recently seen first."""
        with self._lock:
            records = [record.model_copy() for record in self._document.clients.values()]
        return sorted(records, key=lambda r: r.last_seen_at, reverse=True)

    # --- IP bans ---------------------------------------------------------------------
    def ban_ip(self, address: str, message: str | None = None) -> IPBanRecord:
        """Ban `address`. Re-banning overwrites the message and keeps `createdAt`."""
        address = _require(address, "ip")
        with self._lock:
            now = self._clock()
            existing = self._document.ip_bans.get(address)
            ban = IPBanRecord(
                ip=address,
                message=clip(message, MAX_BAN_MESSAGE),
                created_at=existing.created_at if existing is not None else now,
                updated_at=now,
            )
            self._document.ip_bans[address] = ban
            self._persist_locked()
            logger.info("Banned ip %s", address)
            return ban.model_copy()

    def unban_ip(self, address: str) -> bool:
        """Lift the ban on `address`. Returns True if a ban was removed."""
        address = _require(address, "ip")
        with self._lock:
            if self._document.ip_bans.pop(address, None) is None:
                return False
            self._persist_locked()
            logger.info("Unbanned ip %s", address)
            return True

    def get_ip_ban(self, address: str | None) -> IPBanRecord | None:
        if not address:
            return None
        with self._lock:
            ban = self._document.ip_bans.get(address)
            return ban.model_copy() if ban is not None else None

    def list_ip_bans(self) -> list[IPBanRecord]:
        """Return copies of all IP bans, newest first."""
        with self._lock:
            bans = [ban.model_copy() for ban in self._document.ip_bans.values()]
        return sorted(bans, key=lambda b: b.updated_at, reverse=True)

    # --- Access lockdown ----------------------------------------------------------------
    @property
    def lockdown(self) -> bool:
        with self._lock:
            return self._document.lockdown

    def set_lockdown(self, enabled: bool) -> bool:
        """Turn the access lockdown on or off and return the new value."""
        with self._lock:
            self._document.lockdown = bool(enabled)
            self._persist_locked()
            logger.info("Access lockdown %s", "enabled" if enabled else "disabled")
            return self._document.lockdown
