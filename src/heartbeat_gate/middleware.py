from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Type, TypeVar, Union

from starlette import status
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from .core.errors import InvalidArgumentError
from .core.log_context import HEARTBEAT_PROPERTY, push_property
from .core.settings import HeartbeatOptions
from .services.service_registry import ServiceRegistry, ServiceResolver

T = TypeVar("T")

HealthCheck = Callable[[T], Awaitable[None]]
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one health check run."""

    healthy: bool
    elapsed_ms: int
    error: Optional[Exception] = None

    @property
    def status_code(self) -> int:
        if self.healthy:
            return status.HTTP_200_OK
        return status.HTTP_500_INTERNAL_SERVER_ERROR


def is_http_get(scope: Scope) -> bool:
    return str(scope.get("method", "")).upper() == "GET"


def is_authorized_request(api_key: str, actual_key: Optional[str]) -> bool:
    """A blank ``api_key`` opens the heartbeat; otherwise the keys must match exactly."""
    if not api_key or not api_key.strip():
        return True
    return api_key == actual_key


async def _send_status(send: Send, status_code: int) -> None:
    await send({
        "type": "http.response.start",
        "status": status_code,
        "headers": [(b"content-length", b"0")],
    })
    await send({"type": "http.response.body", "body": b"", "more_body": False})


class HeartbeatMiddleware(Generic[T]):
    """
    ASGI middleware answering every GET request as a heartbeat.

    Non-GET requests go to ``app`` untouched. A GET is authorized against
    ``options`` (401 otherwise), the monitor registered for ``monitor_type`` is
    resolved and handed to ``health_check``. The probe answers 200 when the
    check passes or no monitor is registered, 500 when the check raises.
    The response carries no body.
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: LoggerLike,
        options: HeartbeatOptions,
        health_check: HealthCheck[T],
        *,
        monitor_type: Type[T],
        resolver: Optional[ServiceResolver] = None,
    ) -> None:
        if app is None:
            raise InvalidArgumentError("app")
        if logger is None:
            raise InvalidArgumentError("logger")
        if options is None:
            raise InvalidArgumentError("options")
        if health_check is None:
            raise InvalidArgumentError("health_check")
        if monitor_type is None:
            raise InvalidArgumentError("monitor_type")
        self.app = app
        self.logger = logger
        self.options = options
        self.health_check = health_check
        self.monitor_type = monitor_type
        self.resolver: ServiceResolver = resolver if resolver is not None else ServiceRegistry()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope is None:
            raise InvalidArgumentError("scope")
        if scope.get("type") != "http" or not is_http_get(scope):
            return await self.app(scope, receive, send)
        await self._invoke_heartbeat(scope, send)

    def _actual_key(self, scope: Scope) -> str:
        # Repeated headers count as one comma separated value
        return ",".join(Headers(scope=scope).getlist(self.options.api_key_header_key))

    async def _invoke_heartbeat(self, scope: Scope, send: Send) -> None:
        if not is_authorized_request(self.options.api_key, self._actual_key(scope)):
            await _send_status(send, status.HTTP_401_UNAUTHORIZED)
            return

        monitor = self.resolver.resolve(self.monitor_type)
        with push_property(HEARTBEAT_PROPERTY, True):
            result = await self._run_health_check(monitor)
            await _send_status(send, result.status_code)

    async def _run_health_check(self, monitor: Optional[T]) -> ProbeResult:
        started = time.perf_counter()
        try:
            if monitor is not None:
                outcome = self.health_check(monitor)
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception as error:
            self.logger.warning(
                "Heartbeat API call returned failure. Exception message was %s",
                str(error),
            )
            return ProbeResult(healthy=False, elapsed_ms=_elapsed_ms(started), error=error)

        elapsed_ms = _elapsed_ms(started)
        self.logger.info(
            "Heartbeat API call returned success. Test took %s ms.", elapsed_ms
        )
        return ProbeResult(healthy=True, elapsed_ms=elapsed_ms)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class HeartbeatGate:
    """
    Map a :class:`HeartbeatMiddleware` onto a single path.

    HTTP requests to ``path`` go through the heartbeat (with ``app`` as its
    next stage), everything else goes straight to ``app``. Works with
    ``FastAPI.add_middleware(HeartbeatGate, path=..., logger=..., ...)``.
    """

    def __init__(self, app: ASGIApp, *, path: str = "/heartbeat", **heartbeat_kwargs: Any) -> None:
        if app is None:
            raise InvalidArgumentError("app")
        if not path:
            raise InvalidArgumentError("path")
        self.app = app
        self.path = _normalize_path(path)
        self.heartbeat: HeartbeatMiddleware[Any] = HeartbeatMiddleware(app, **heartbeat_kwargs)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)
        if _normalize_path(scope.get("path", "")) != self.path:
            return await self.app(scope, receive, send)
        await self.heartbeat(scope, receive, send)


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


__all__ = [
    "HealthCheck",
    "HeartbeatGate",
    "HeartbeatMiddleware",
    "ProbeResult",
    "is_authorized_request",
    "is_http_get",
]
