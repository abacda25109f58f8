"""Operator endpoints for client records, IP bans and the access lockdown."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from divine_panel.api.dependencies import ServicesDep, require_admin
from divine_panel.schemas.requests import (
    AdminIPRequest,
    AdminLockdownRequest,
    BanClientRequest,
    BanIPRequest,
    ClientRequest,
)
from divine_panel.utils.net import is_ip_address, normalize_address

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def _checked_address(raw: str) -> str:
    address = normalize_address(raw)
    if not is_ip_address(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ip must be an IPv4 or IPv6 address",
        )
    return address


@router.get("/list")
async def list_records(services: ServicesDep) -> dict[str, Any]:
    """Return every client record and IP ban, most recent first."""
    return {
        "ok": True,
        "lockdown": services.access.lockdown,
        "clients": [
            record.model_dump(mode="json", by_alias=True)
            for record in services.access.list_clients()
        ],
        "ipBans": [
            ban.model_dump(mode="json", by_alias=True)
            for ban in services.access.list_ip_bans()
        ],
    }


@router.post("/verify")
async def verify_client(body: ClientRequest, services: ServicesDep) -> dict[str, Any]:
    record = services.access.verify(body.client_id)
    return {"ok": True, "status": record.status}


@router.post("/suspicious")
async def mark_suspicious(body: ClientRequest, services: ServicesDep) -> dict[str, Any]:
    record = services.access.mark_suspicious(body.client_id)
    return {"ok": True, "status": record.status}


@router.post("/clear-suspicious")
async def clear_suspicious(body: ClientRequest, services: ServicesDep) -> dict[str, Any]:
    """Return a suspicious client to unverified. Other statuses are left alone."""
    record = services.access.clear_suspicious(body.client_id)
    return {"ok": True, "status": record.status}


@router.post("/ban")
async def ban_client(body: BanClientRequest, services: ServicesDep) -> dict[str, Any]:
    """Ban a client. Banning again replaces the message shown to it."""
    record = services.access.ban(body.client_id, body.ban_message)
    return {"ok": True, "status": record.status}


@router.post("/unban")
async def unban_client(body: ClientRequest, services: ServicesDep) -> dict[str, Any]:
    """Release a banned client to unverified. Other statuses are left alone."""
    record = services.access.unban(body.client_id)
    return {"ok": True, "status": record.status}


@router.post("/ban-ip")
async def ban_ip(body: BanIPRequest, services: ServicesDep) -> dict[str, Any]:
    ban = services.access.ban_ip(_checked_address(body.ip), body.ban_message)
    return {"ok": True, "ip": ban.ip, "banned": True}


@router.post("/unban-ip")
async def unban_ip(body: AdminIPRequest, services: ServicesDep) -> dict[str, Any]:
    address = _checked_address(body.ip)
    services.access.unban_ip(address)
    return {"ok": True, "ip": address, "banned": False}


@router.post("/lockdown")
async def set_access_lockdown(body: AdminLockdownRequest, services: ServicesDep) -> dict[str, Any]:
    """Require verified status for every visitor while enabled."""
    return {"ok": True, "lockdown": services.access.set_lockdown(body.enabled)}
