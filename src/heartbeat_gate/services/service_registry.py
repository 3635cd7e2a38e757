from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol, Type, TypeVar

from heartbeat_gate.core.errors import InvalidArgumentError

T = TypeVar("T")


class ServiceResolver(Protocol):
    """Anything that can look up a service by its type."""

    def resolve(self, service_type: Type[T]) -> Optional[T]: ...


class ServiceRegistry:
    """
    Minimal type-keyed service container.

    - ``add_instance`` registers a singleton
    - ``add_factory`` registers a callable invoked on every ``resolve``
    - ``resolve`` returns ``None`` for types nobody registered
    """

    def __init__(self) -> None:
        self._factories: Dict[type, Callable[[], Any]] = {}

    def add_instance(self, service_type: Type[T], instance: T) -> "ServiceRegistry":
        if service_type is None:
            raise InvalidArgumentError("service_type")
        if instance is None:
            raise InvalidArgumentError("instance")
        self._factories[service_type] = lambda: instance
        return self

    def add_factory(
        self, service_type: Type[T], factory: Callable[[], T]
    ) -> "ServiceRegistry":
        if service_type is None:
            raise InvalidArgumentError("service_type")
        if factory is None:
            raise InvalidArgumentError("factory")
        self._factories[service_type] = factory
        return self

    def resolve(self, service_type: Type[T]) -> Optional[T]:
        factory = self._factories.get(service_type)
        if factory is None:
            return None
        return factory()

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._factories
