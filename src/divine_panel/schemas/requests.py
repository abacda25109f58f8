"""Request bodies accepted by the HTTP API.

Bodies are strict: unknown keys are rejected and identifiers are trimmed
before use, so an all-whitespace client id is treated as missing.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel

from .access import Telemetry


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


def _required(value: str, name: str) -> str:
    if not value:
        raise ValueError(f"{name} required")
    return value


class DeviceInfo(RequestModel):
    """Telemetry block sent with `/api/hello`."""

    user_agent: str | None = None
    platform: str | None = None
    language: str | None = None
    timezone: str | None = None
    screen: str | None = None

    def to_telemetry(self, fallback_user_agent: str | None = None) -> Telemetry:
        """Return clipped telemetry, using the request header when no agent was reported."""
        return Telemetry(
            user_agent=self.user_agent or fallback_user_agent or "",
            platform=self.platform or "",
            language=self.language or "",
            timezone=self.timezone or "",
            screen=self.screen or "",
        ).clipped()


class ClientRequest(RequestModel):
    """Any body that must name a client."""

    client_id: str = Field(alias="clientID")

    @field_validator("client_id")
    @classmethod
    def _client_id_required(cls, value: str) -> str:
        return _required(value, "clientID")


class HelloRequest(ClientRequest):
    """Presence ping carrying optional device telemetry."""

    device: DeviceInfo | None = None


class PinRequest(ClientRequest):
    """Body for the auth gate and self-service unban."""

    pin_attempt: str = ""


class CheckRequest(RequestModel):
    """Decision request. A missing client id is a valid input."""

    client_id: str | None = Field(default=None, alias="clientID")

    @field_validator("client_id")
    @classmethod
    def _blank_is_missing(cls, value: str | None) -> str | None:
        return value or None


class BanClientRequest(ClientRequest):
    """Operator ban of one client record."""

    ban_message: str = ""


class AdminIPRequest(RequestModel):
    """Operator action on one source address."""

    ip: str

    @field_validator("ip")
    @classmethod
    def _ip_required(cls, value: str) -> str:
        return _required(value, "ip")


class BanIPRequest(AdminIPRequest):
    """Operator ban of one source address."""

    ban_message: str = ""


class AdminLockdownRequest(RequestModel):
    """Toggle for the access lockdown."""

    enabled: StrictBool


class BroadcastRequest(RequestModel):
    """New site-wide message."""

    message: str

    @field_validator("message")
    @classmethod
    def _message_required(cls, value: str) -> str:
        return _required(value, "message")
