# src/divine_panel/api/endpoints/__init__.py
"""API endpoint modules."""

from .admin import router as admin_router
from .public import router as public_router
from .realtime import router as realtime_router
from .site import router as site_router

__all__ = [
    "admin_router",
    "public_router",
    "realtime_router",
    "site_router",
]
