"""
Pydantic schemas for stored records, API requests and realtime events.

These schemas define the structure of API data for serialization and validation.
"""

from .access import AccessDocument, ClientRecord, Decision, IPBanRecord, Telemetry
from .requests import (
    AdminIPRequest,
    AdminLockdownRequest,
    BanClientRequest,
    BanIPRequest,
    BroadcastRequest,
    CheckRequest,
    DeviceInfo,
    HelloRequest,
    PinRequest,
)
from .state import Broadcast, BroadcastEvent, Lockdown, LockdownEvent, SiteState, StateEvent

__all__ = [
    "AccessDocument", "ClientRecord", "Decision", "IPBanRecord", "Telemetry",
    "AdminIPRequest", "AdminLockdownRequest", "BanClientRequest", "BanIPRequest",
    "BroadcastRequest", "CheckRequest", "DeviceInfo", "HelloRequest", "PinRequest",
    "Broadcast", "BroadcastEvent", "Lockdown", "LockdownEvent", "SiteState", "StateEvent",
]
