"""Realtime fan-out of site-state changes to connected subscribers.

A subscriber is anything with an awaitable `send_json`, which covers
`fastapi.WebSocket`. Delivery is best-effort: a failing subscriber is skipped
and stays registered, and `publish` never raises. Sends run concurrently, so a
slow connection does not hold up the others.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from divine_panel.schemas.state import Event, StateEvent, event_payload

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Minimal interface of a realtime connection."""

    async def send_json(self, data: Any) -> None: ...


class BroadcastChannel:
    """Registry of open subscriptions plus a best-effort `publish`."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, subscriber: Subscriber, snapshot: StateEvent) -> None:
        """Register `subscriber` and send it the current state snapshot."""
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)
        await self._send(subscriber, event_payload(snapshot))
        logger.debug("Subscriber added (%d open)", len(self._subscribers))

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Forget `subscriber`. Unknown subscribers are ignored."""
        try:
            self._subscribers.remove(subscriber)
        except ValueError:
            return
        logger.debug("Subscriber removed (%d open)", len(self._subscribers))

    async def publish(self, event: Event) -> int:
        """Send `event` to every open subscription.

        Every open subscription gets its own send task. A subscriber that
        unsubscribes before its task starts is skipped.

        Returns:
            Number of subscribers the event was delivered to.
        """
        payload = event_payload(event)
        results = await asyncio.gather(
            *(self._deliver(subscriber, payload) for subscriber in list(self._subscribers))
        )
        delivered = sum(results)
        logger.debug("Published %s event to %d subscribers", payload["type"], delivered)
        return delivered

    async def _deliver(self, subscriber: Subscriber, payload: dict[str, Any]) -> bool:
        if subscriber not in self._subscribers:
            return False
        return await self._send(subscriber, payload)

    @staticmethod
    async def _send(subscriber: Subscriber, payload: dict[str, Any]) -> bool:
        try:
            await subscriber.send_json(payload)
        except Exception as e:  # noqa: BLE001
            logger.debug("Dropping %s event for one subscriber: %s", payload.get("type"), e)
            return False
        return True
