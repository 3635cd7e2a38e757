from __future__ import annotations

import logging
from typing import Optional

import httpx

from heartbeat_gate.core.errors import DependencyUnavailableError

log = logging.getLogger(__name__)


class HttpDependencyMonitor:
    """Pings an upstream HTTP service the application depends on."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def ping(self) -> httpx.Response:
        return await self._get_client().get(self.url)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


async def check_http_dependency(monitor: HttpDependencyMonitor) -> None:
    """Health check for :class:`HttpDependencyMonitor`: the upstream must answer 2xx."""
    try:
        resp = await monitor.ping()
    except httpx.HTTPError as e:
        log.debug("Ping of %s failed: %s", monitor.url, e)
        raise DependencyUnavailableError(
            f"Could not reach {monitor.url}: {e}"
        ) from e

    if not (200 <= resp.status_code < 300):
        raise DependencyUnavailableError(
            f"{monitor.url} answered with status {resp.status_code}"
        )
