# tests/conftest.py
import logging
import os
from typing import Any, Dict, Optional

import httpx
import pytest

from heartbeat_gate.core import logging_setup
from heartbeat_gate.core.settings import HeartbeatOptions
from heartbeat_gate.services.service_registry import ServiceRegistry

# ──────────────────────────────────────────────────────────────────────────────
# GLOBAL / COMMON
# ──────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    # Keep a developer's HEARTBEAT_* environment out of the tests
    for key in list(os.environ):
        if key.startswith("HEARTBEAT_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def fresh_root(monkeypatch):
    """Let configure_logging run again and drop the handlers it adds."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def logger():
    return logging.getLogger("tests.heartbeat")


@pytest.fixture
def secret_options():
    return HeartbeatOptions(api_key_header_key="X-Api-Key", api_key="secret")


@pytest.fixture
def open_options():
    return HeartbeatOptions(api_key_header_key="X-Api-Key", api_key="")


# ──────────────────────────────────────────────────────────────────────────────
# MONITOR FAKES
# ──────────────────────────────────────────────────────────────────────────────


class DummyMonitor:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = 0


async def dummy_check(monitor: DummyMonitor) -> None:
    monitor.calls += 1
    if monitor.error is not None:
        raise monitor.error


@pytest.fixture
def monitor():
    return DummyMonitor()


@pytest.fixture
def registry(monitor):
    return ServiceRegistry().add_instance(DummyMonitor, monitor)


# ──────────────────────────────────────────────────────────────────────────────
# ASGI PLUMBING
# ──────────────────────────────────────────────────────────────────────────────


class InnerApp:
    """Next stage that records calls and answers 204."""

    def __init__(self):
        self.called = False

    async def __call__(self, scope, receive, send):
        self.called = True
        if scope["type"] != "http":
            return
        await send({"type": "http.response.start", "status": 204, "headers": []})
        await send({"type": "http.response.body", "body": b"", "more_body": False})


@pytest.fixture
def inner_app():
    return InnerApp()


def http_scope(method: str = "GET", path: str = "/anything", headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in (headers or {}).items()
        ],
    }


async def receive():
    return {"type": "http.request", "body": b"", "more_body": False}


class Sent(list):
    async def __call__(self, message):
        self.append(message)

    @property
    def status(self) -> Optional[int]:
        for m in self:
            if m["type"] == "http.response.start":
                return m["status"]
        return None


@pytest.fixture
def sent():
    return Sent()


def make_async_client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
