"""Client, IP-ban and decision schemas for the access gate."""

from __future__ import annotations

from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ClientStatus = Literal["unverified", "verified", "suspicious", "banned"]

STATUS_UNVERIFIED: Final = "unverified"
STATUS_VERIFIED: Final = "verified"
STATUS_SUSPICIOUS: Final = "suspicious"
STATUS_BANNED: Final = "banned"
CLIENT_STATUSES: Final[frozenset[str]] = frozenset(
    {STATUS_UNVERIFIED, STATUS_VERIFIED, STATUS_SUSPICIOUS, STATUS_BANNED}
)

# Upper bounds for free-form text kept on records
MAX_USER_AGENT: Final = 300
MAX_PLATFORM: Final = 80
MAX_LANGUAGE: Final = 40
MAX_TIMEZONE: Final = 64
MAX_SCREEN: Final = 32
MAX_BAN_MESSAGE: Final = 500


def clip(value: object, limit: int) -> str:
    """Return `value` as a trimmed string no longer than `limit` characters."""
    if value is None:
        return ""
    return str(value).strip()[:limit]


class StoredModel(BaseModel):
    """Base for persisted records: camelCase on the wire, tolerant on load."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Telemetry(StoredModel):
    """Device details reported by a client. Every field is last-write-wins."""

    user_agent: str = ""
    platform: str = ""
    language: str = ""
    timezone: str = ""
    screen: str = ""

    def clipped(self) -> Telemetry:
        """Return a copy with every field trimmed to its storage limit."""
        return Telemetry(
            user_agent=clip(self.user_agent, MAX_USER_AGENT),
            platform=clip(self.platform, MAX_PLATFORM),
            language=clip(self.language, MAX_LANGUAGE),
            timezone=clip(self.timezone, MAX_TIMEZONE),
            screen=clip(self.screen, MAX_SCREEN),
        )


class ClientRecord(Telemetry):
    """Everything the gate knows about one client token."""

    client_id: str = Field(alias="clientID")
    status: ClientStatus = STATUS_UNVERIFIED
    first_seen_at: int = 0
    last_seen_at: int = 0
    verified_at: int = 0
    suspicious_at: int = 0
    ip_first: str = ""
    ip_last: str = ""
    ip_last_seen_at: int = 0
    ban_message: str = ""


class IPBanRecord(StoredModel):
    """An address-level veto. Its presence alone denies access."""

    ip: str
    message: str = ""
    created_at: int = 0
    updated_at: int = 0


class AccessDocument(StoredModel):
    """Persisted shape of the access store."""

    version: int
    lockdown: bool = False
    clients: dict[str, ClientRecord] = Field(default_factory=dict)
    ip_bans: dict[str, IPBanRecord] = Field(default_factory=dict)


class Decision(BaseModel):
    """Outcome of evaluating one visitor against the access rules."""

    allowed: bool
    banned: bool = False
    status: ClientStatus = STATUS_UNVERIFIED
    reason: str
    ban_message: str | None = None
    reclassified: bool = Field(
        default=False,
        description="True when this evaluation moved the client to suspicious",
    )
