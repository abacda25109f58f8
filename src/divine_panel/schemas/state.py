"""Site-wide state and realtime event schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from .access import StoredModel


class Lockdown(StoredModel):
    """Site lockdown flag shown to every visitor."""

    enabled: bool = False
    updated_at: int = 0


class Broadcast(StoredModel):
    """A single time-limited, site-wide message."""

    id: str
    message: str
    created_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at


class SiteState(StoredModel):
    """Persisted shape of the site state."""

    lockdown: Lockdown = Field(default_factory=Lockdown)
    broadcast: Broadcast | None = None


class StateEvent(StoredModel):
    """Snapshot sent once to every new subscription."""

    type: Literal["state"] = "state"
    lockdown: Lockdown
    broadcast: Broadcast | None = None


class BroadcastEvent(StoredModel):
    """Pushed when a broadcast is created or cleared."""

    type: Literal["broadcast"] = "broadcast"
    broadcast: Broadcast | None = None


class LockdownEvent(StoredModel):
    """Pushed when the site lockdown flag changes."""

    type: Literal["lockdown"] = "lockdown"
    enabled: bool
    updated_at: int


Event = StateEvent | BroadcastEvent | LockdownEvent


def event_payload(event: Event) -> dict[str, Any]:
    """Serialize an event the way subscribers receive it."""
    return event.model_dump(mode="json", by_alias=True)
