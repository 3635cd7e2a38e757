"""
Scoped log properties.

A property pushed with :func:`push_property` is visible to every log record
emitted from the same task until the ``with`` block exits, however it exits.
Handlers pick the properties up through :class:`ContextFilter`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, Iterator, Mapping

HEARTBEAT_PROPERTY = "heartbeat"

_EMPTY: Mapping[str, Any] = MappingProxyType({})
_properties: ContextVar[Mapping[str, Any]] = ContextVar(
    "log_properties", default=_EMPTY
)


@contextmanager
def push_property(name: str, value: Any) -> Iterator[None]:
    merged = dict(_properties.get())
    merged[name] = value
    token = _properties.set(MappingProxyType(merged))
    try:
        yield
    finally:
        _properties.reset(token)


def current_properties() -> Mapping[str, Any]:
    return _properties.get()


def in_heartbeat() -> bool:
    return bool(_properties.get().get(HEARTBEAT_PROPERTY, False))


class ContextFilter(logging.Filter):
    """Copies the pushed properties onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        props = _properties.get()
        for name, value in props.items():
            setattr(record, name, value)
        if HEARTBEAT_PROPERTY not in props:
            record.heartbeat = getattr(record, HEARTBEAT_PROPERTY, False)
        return True


class SuppressHeartbeatFilter(ContextFilter):
    """Only let records through that were not emitted during a heartbeat."""

    def filter(self, record: logging.LogRecord) -> bool:
        super().filter(record)
        return not record.heartbeat
