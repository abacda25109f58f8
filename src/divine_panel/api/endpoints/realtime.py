"""Realtime channel pushing site-state changes to the static site."""

from __future__ import annotations

from fastapi import APIRouter, WebSocket

from divine_panel.api.dependencies import ServicesDep

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime(websocket: WebSocket, services: ServicesDep) -> None:
    """Send a state snapshot on connect, then every lockdown and broadcast change.

    Anything the client sends is read and discarded until it disconnects.
    """
    await websocket.accept()
    channel = services.channel
    await channel.subscribe(websocket, services.site_state.snapshot())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        channel.unsubscribe(websocket)
