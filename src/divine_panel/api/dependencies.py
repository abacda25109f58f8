"""Shared API dependencies for admin authentication and service access."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from starlette.requests import HTTPConnection

from divine_panel.core.security import pin_matches
from divine_panel.services.container import Services
from divine_panel.utils.net import resolve_source_address


def get_services(connection: HTTPConnection) -> Services:
    """Return the service container attached to the running application."""
    return connection.app.state.services


# Type alias for service container dependency
ServicesDep = Annotated[Services, Depends(get_services)]


def get_source_address(connection: HTTPConnection, services: ServicesDep) -> str:
    """Return the normalized address treated as the request's source.

    With `TRUST_PROXY` enabled the first `X-Forwarded-For` entry wins;
    otherwise the directly connected peer is used.
    """
    peer = connection.client.host if connection.client else None
    return resolve_source_address(
        peer,
        connection.headers.get("x-forwarded-for"),
        trust_proxy=services.settings.trust_proxy,
    )


SourceAddressDep = Annotated[str, Depends(get_source_address)]


def require_admin(
    services: ServicesDep,
    x_admin_pin: Annotated[str | None, Header()] = None,
) -> None:
    """Reject the request unless it carries the configured admin PIN.

    A wrong PIN and an unconfigured PIN produce the same response.

    Raises:
        HTTPException: 401 with detail "Unauthorized".
    """
    if not pin_matches(services.settings.admin_pin, x_admin_pin):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
