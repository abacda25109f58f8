"""Site-wide lockdown flag and the single active broadcast message.

Broadcasts expire lazily: there is no timer. Every read and every mutation
first drops a broadcast whose `expiresAt` has passed and persists that, so no
reader ever sees an expired message.
"""

from __future__ import annotations

import logging
import secrets
import string
from threading import Lock
from typing import Final

from pydantic import ValidationError

from divine_panel.db.time import Clock, now_ms
from divine_panel.schemas.state import (
    Broadcast,
    BroadcastEvent,
    Lockdown,
    LockdownEvent,
    SiteState,
    StateEvent,
)
from divine_panel.services.broadcast import BroadcastChannel
from divine_panel.services.persistence import SITE_STATE_KEY, DocumentStore

DEFAULT_BROADCAST_TTL_MS: Final[int] = 24 * 60 * 60 * 1000
DEFAULT_BROADCAST_MAX_LENGTH: Final[int] = 1000
_BASE36_DIGITS: Final = string.digits + string.ascii_lowercase

logger = logging.getLogger(__name__)


class InvalidBroadcastError(ValueError):
    """Raised when a broadcast message is empty or too long."""


def _base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def make_broadcast_id(now: int) -> str:
    """Return a unique broadcast id: base36 timestamp plus a random suffix."""
    return f"{_base36(now)}-{secrets.token_hex(4)}"


class SiteStateService:
    """Owns the site state, persists it and publishes its changes."""

    def __init__(
        self,
        channel: BroadcastChannel,
        documents: DocumentStore | None = None,
        state: SiteState | None = None,
        *,
        clock: Clock = now_ms,
        broadcast_ttl_ms: int = DEFAULT_BROADCAST_TTL_MS,
        broadcast_max_length: int = DEFAULT_BROADCAST_MAX_LENGTH,
    ) -> None:
        self._channel = channel
        self._documents = documents
        self._state = state or SiteState()
        self._clock = clock
        self._ttl_ms = broadcast_ttl_ms
        self._max_length = broadcast_max_length
        self._lock = Lock()

    @classmethod
    def load(
        cls,
        channel: BroadcastChannel,
        documents: DocumentStore,
        *,
        clock: Clock = now_ms,
        broadcast_ttl_ms: int = DEFAULT_BROADCAST_TTL_MS,
        broadcast_max_length: int = DEFAULT_BROADCAST_MAX_LENGTH,
    ) -> SiteStateService:
        """Build the service from durable storage, falling back to defaults."""
        raw = documents.load(SITE_STATE_KEY)
        state = None
        if raw is not None:
            try:
                state = SiteState.model_validate(raw)
            except ValidationError as e:
                logger.warning("Stored site state is malformed; using defaults: %s", e)
        service = cls(
            channel,
            documents,
            state,
            clock=clock,
            broadcast_ttl_ms=broadcast_ttl_ms,
            broadcast_max_length=broadcast_max_length,
        )
        service.prune_expired()
        return service

    @property
    def channel(self) -> BroadcastChannel:
        return self._channel

    def _persist_locked(self) -> None:
        if self._documents is None:
            return
        self._documents.save(SITE_STATE_KEY, self._state.model_dump(mode="json", by_alias=True))

    def _prune_locked(self) -> bool:
        broadcast = self._state.broadcast
        if broadcast is None or not broadcast.is_expired(self._clock()):
            return False
        self._state.broadcast = None
        self._persist_locked()
        logger.info("Broadcast %s expired", broadcast.id)
        return True

    def prune_expired(self) -> bool:
        """Drop an expired broadcast. Returns True if one was removed."""
        with self._lock:
            return self._prune_locked()

    def snapshot(self) -> StateEvent:
        """Return the current state, never including an expired broadcast."""
        with self._lock:
            self._prune_locked()
            return StateEvent(
                lockdown=self._state.lockdown.model_copy(),
                broadcast=self._state.broadcast.model_copy() if self._state.broadcast else None,
            )

    async def set_lockdown(self, enabled: bool) -> Lockdown:
        """Set the site lockdown flag and notify subscribers."""
        with self._lock:
            self._prune_locked()
            self._state.lockdown = Lockdown(enabled=enabled, updated_at=self._clock())
            self._persist_locked()
            lockdown = self._state.lockdown.model_copy()
        logger.info("Site lockdown %s", "enabled" if enabled else "cleared")
        await self._channel.publish(
            LockdownEvent(enabled=lockdown.enabled, updated_at=lockdown.updated_at)
        )
        return lockdown

    async def publish_broadcast(self, message: str) -> Broadcast:
        """Replace the active broadcast with `message` and notify subscribers.

        Raises:
            InvalidBroadcastError: If the trimmed message is empty or too long.
        """
        text = (message or "").strip()
        if not text:
            raise InvalidBroadcastError("message required")
        if len(text) > self._max_length:
            raise InvalidBroadcastError(f"message longer than {self._max_length} characters")

        with self._lock:
            self._prune_locked()
            created_at = self._clock()
            broadcast = Broadcast(
                id=make_broadcast_id(created_at),
                message=text,
                created_at=created_at,
                expires_at=created_at + self._ttl_ms,
            )
            self._state.broadcast = broadcast
            self._persist_locked()
        logger.info("Broadcast %s published, expires at %d", broadcast.id, broadcast.expires_at)
        await self._channel.publish(BroadcastEvent(broadcast=broadcast))
        return broadcast.model_copy()

    async def clear_broadcast(self) -> None:
        """Remove the active broadcast, if any, and notify subscribers."""
        with self._lock:
            self._prune_locked()
            self._state.broadcast = None
            self._persist_locked()
        logger.info("Broadcast cleared")
        await self._channel.publish(BroadcastEvent(broadcast=None))
