"""Async client for the forwarder routes, used by the explorer controller."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx

from .config import Settings
from .forwarder_defs import CUBE_METADATA, OBSERVATIONS, SERIES_INFO
from .schemas import CubeMetadataRequest, SeriesInfoRequest, VectorPeriodsRequest

logger = logging.getLogger(__name__)


class ProxyError(Exception):
    """Transport failure or non-2xx answer from a forwarder route."""

    def __init__(self, message: str, *, status: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


class ProxyClient:
    """Posts WDS request batches to the forwarder, one call per method."""

    def __init__(self, settings: Settings | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings or Settings()
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.proxy_base_url,
                timeout=self.settings.proxy_timeout_s,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProxyClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def _post(self, route: str, payload: list[dict[str, Any]]) -> Any:
        try:
            resp = await self.client.post(route, json=payload, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise ProxyError(f"{route} request failed: {e}") from e

        if not resp.is_success:
            text = resp.text
            logger.error("%s failed: %s %s", route, resp.status_code, text)
            raise ProxyError(f"{route} returned {resp.status_code}: {text}", status=resp.status_code, detail=text)

        try:
            return resp.json()
        except ValueError as e:
            raise ProxyError(f"{route} returned invalid JSON", status=resp.status_code) from e

    async def get_data_from_vectors(self, batch: Iterable[VectorPeriodsRequest]) -> Any:
        return await self._post(OBSERVATIONS.route, [r.model_dump(by_alias=True) for r in batch])

    async def get_series_info(self, batch: Iterable[SeriesInfoRequest]) -> Any:
        return await self._post(SERIES_INFO.route, [r.model_dump(by_alias=True) for r in batch])

    async def get_cube_metadata(self, batch: Iterable[CubeMetadataRequest]) -> Any:
        return await self._post(CUBE_METADATA.route, [r.model_dump(by_alias=True) for r in batch])
