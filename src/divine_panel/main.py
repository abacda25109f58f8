# src/divine_panel/main.py
"""Main entry point for the Divine Panel service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from divine_panel.api import admin_router, public_router, realtime_router, site_router
from divine_panel.api.errors import register_exception_handlers
from divine_panel.core.settings import Settings, settings as default_settings
from divine_panel.db.session import make_engine
from divine_panel.db.time import Clock, now_ms
from divine_panel.services.container import build_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    clock: Clock = now_ms,
) -> FastAPI:
    """Build the application and load both aggregates from storage.

    Args:
        settings: Configuration; defaults to the environment-derived settings.
        engine: Storage engine; defaults to one built from `DATABASE_URL`.
        clock: Millisecond clock shared by every service.
    """
    settings = settings or default_settings
    engine = engine or make_engine(settings.database_url, echo=settings.sql_debug)

    app = FastAPI(
        title=settings.app_name,
        description="Access gate and realtime site-state service",
        version=settings.app_version,
        debug=settings.debug,
    )
    app.state.services = build_services(settings, engine, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    register_exception_handlers(app)

    app.include_router(public_router)
    app.include_router(site_router)
    app.include_router(admin_router)
    app.include_router(realtime_router)

    @app.on_event("startup")
    async def on_startup() -> None:
        for name in settings.unset_secrets:
            logger.warning("%s is not set. Endpoints guarded by it will refuse every attempt.", name)
        logger.info("%s %s ready, storage: %s", settings.app_name, settings.app_version, engine.url)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the service."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "realtime": "/ws",
        }

    return app


def run() -> None:
    """Run the service with uvicorn using the environment configuration."""
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Listening on :%d", default_settings.port)
    uvicorn.run(
        create_app(),
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
