# src/divine_panel/api/__init__.py
"""HTTP and realtime API."""

from .endpoints import admin_router, public_router, realtime_router, site_router

__all__ = [
    "admin_router",
    "public_router",
    "realtime_router",
    "site_router",
]
