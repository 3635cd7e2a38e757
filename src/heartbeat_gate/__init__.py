"""Authenticated heartbeat (liveness probe) middleware for ASGI services."""

__version__ = "0.1.0"

from .core.errors import DependencyUnavailableError, InvalidArgumentError
from .core.settings import HeartbeatOptions, Settings, get_settings
from .middleware import HeartbeatGate, HeartbeatMiddleware, ProbeResult
from .services.service_registry import ServiceRegistry, ServiceResolver

__all__ = [
    "DependencyUnavailableError",
    "HeartbeatGate",
    "HeartbeatMiddleware",
    "HeartbeatOptions",
    "InvalidArgumentError",
    "ProbeResult",
    "ServiceRegistry",
    "ServiceResolver",
    "Settings",
    "get_settings",
    "__version__",
]
