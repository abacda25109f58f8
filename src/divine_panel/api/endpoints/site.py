"""Site-wide broadcast and lockdown controls, pushed to realtime subscribers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from divine_panel.api.dependencies import ServicesDep, require_admin
from divine_panel.schemas.requests import BroadcastRequest

router = APIRouter(
    prefix="/api",
    tags=["site"],
    dependencies=[Depends(require_admin)],
)


@router.post("/broadcast")
async def create_broadcast(body: BroadcastRequest, services: ServicesDep) -> dict[str, Any]:
    """Replace the active broadcast; it expires after the configured TTL."""
    broadcast = await services.site_state.publish_broadcast(body.message)
    return {"ok": True, "broadcast": broadcast.model_dump(mode="json", by_alias=True)}


@router.post("/clear-broadcast")
async def clear_broadcast(services: ServicesDep) -> dict[str, Any]:
    await services.site_state.clear_broadcast()
    return {"ok": True, "broadcast": None}


@router.post("/lockdown")
async def enable_lockdown(services: ServicesDep) -> dict[str, Any]:
    lockdown = await services.site_state.set_lockdown(True)
    return {"ok": True, "lockdown": lockdown.model_dump(mode="json", by_alias=True)}


@router.post("/clear-lockdown")
async def clear_lockdown(services: ServicesDep) -> dict[str, Any]:
    lockdown = await services.site_state.set_lockdown(False)
    return {"ok": True, "lockdown": lockdown.model_dump(mode="json", by_alias=True)}
