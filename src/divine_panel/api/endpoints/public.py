"""Public endpoints used by the static site."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Header

from divine_panel.api.dependencies import ServicesDep, SourceAddressDep
from divine_panel.core.security import pin_matches
from divine_panel.schemas.access import STATUS_UNVERIFIED, STATUS_VERIFIED
from divine_panel.schemas.requests import CheckRequest, HelloRequest, PinRequest

router = APIRouter(tags=["public"])

logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(services: ServicesDep) -> dict[str, bool]:
    """Health check endpoint to verify the service is running."""
    services.site_state.prune_expired()
    return {"ok": True}


@router.get("/api/state")
async def get_state(services: ServicesDep) -> dict[str, Any]:
    """Return the site lockdown flag and the active broadcast, if any."""
    snapshot = services.site_state.snapshot()
    return {"ok": True, **snapshot.model_dump(mode="json", by_alias=True, exclude={"type"})}


@router.post("/api/hello")
async def hello(
    body: HelloRequest,
    services: ServicesDep,
    source_ip: SourceAddressDep,
    user_agent: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    """Register a visiting client and record its device telemetry."""
    record = services.presence.record_hello(body.client_id, body.device, source_ip, user_agent)
    return {"ok": True, "clientID": record.client_id, "status": record.status}


@router.post("/api/auth")
async def auth_gate(
    body: PinRequest,
    services: ServicesDep,
    source_ip: SourceAddressDep,
) -> dict[str, Any]:
    """Verify a client that knows the auth-gate PIN.

    Only unverified (or already verified) clients are promoted. Banned and
    suspicious clients, and requests from a banned address, are refused even
    with the right PIN.
    """
    if not pin_matches(services.settings.auth_pin, body.pin_attempt):
        logger.info("Auth gate refused client %s: wrong or unset PIN", body.client_id)
        return {"ok": True, "allowed": False}
    if services.access.get_ip_ban(source_ip) is not None:
        logger.info("Auth gate refused client %s: address %s is banned", body.client_id, source_ip)
        return {"ok": True, "allowed": False}

    record = services.access.set_client_status(
        body.client_id,
        STATUS_VERIFIED,
        only_from={STATUS_UNVERIFIED, STATUS_VERIFIED},
    )
    return {"ok": True, "allowed": record.status == STATUS_VERIFIED}


@router.post("/api/check")
async def check_access(
    services: ServicesDep,
    source_ip: SourceAddressDep,
    body: CheckRequest | None = None,
) -> dict[str, Any]:
    """Run the access decision for the calling client.

    May reclassify an unverified client as suspicious as a side effect.
    """
    client_id = body.client_id if body is not None else None
    services.presence.observe(client_id, source_ip)
    decision = services.decisions.evaluate_and_reclassify(client_id, source_ip)
    return {
        "ok": True,
        "banned": decision.banned,
        "allowed": decision.allowed,
        "lockdown": services.access.lockdown,
        "status": decision.status,
        "reason": decision.reason,
        "banMessage": decision.ban_message,
    }


@router.post("/api/unban")
async def self_unban(body: PinRequest, services: ServicesDep) -> dict[str, Any]:
    """Lift a client ban for anyone holding the self-service unban PIN."""
    if not pin_matches(services.settings.unban_pin, body.pin_attempt):
        logger.info("Self-service unban refused for client %s", body.client_id)
        return {"ok": True, "allowed": False}
    services.access.unban(body.client_id)
    return {"ok": True, "allowed": True}
