from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from heartbeat_gate import __version__

from .core.logging_setup import configure_logging
from .core.settings import Settings, get_settings
from .middleware import HeartbeatGate
from .services.monitors import HttpDependencyMonitor, check_http_dependency
from .services.service_registry import ServiceRegistry

# ──────────────────────────────────────────────────────────────────────────────
# FastAPI app (demo wiring)
# ──────────────────────────────────────────────────────────────────────────────


def build_registry(settings: Settings) -> ServiceRegistry:
    services = ServiceRegistry()
    if settings.upstream_url:
        services.add_instance(
            HttpDependencyMonitor, HttpDependencyMonitor(settings.upstream_url)
        )
    return services


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    services = build_registry(settings)
    logger = logging.getLogger("heartbeat_gate.heartbeat")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        logger.info(
            "Heartbeat on %s (open=%s, upstream=%s) Version=%s",
            settings.path,
            settings.options.is_open,
            settings.upstream_url or "-",
            __version__,
        )
        try:
            yield
        finally:
            monitor = services.resolve(HttpDependencyMonitor)
            if monitor is not None:
                await monitor.aclose()

    app = FastAPI(
        title="Heartbeat Gate",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        HeartbeatGate,
        path=settings.path,
        logger=logger,
        options=settings.options,
        health_check=check_http_dependency,
        monitor_type=HttpDependencyMonitor,
        resolver=services,
    )

    @app.get("/")
    def _index():
        return {"service": "heartbeat-gate", "version": __version__, "heartbeat": settings.path}

    return app
