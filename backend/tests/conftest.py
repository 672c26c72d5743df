"""
Shared fixtures: WDS-shaped payloads, a recording view, and a proxy client
backed by httpx.MockTransport so controller tests never touch the network.
"""
from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from statcan_explorer.client import ProxyClient
from statcan_explorer.config import Settings

CATALOG_PATH = Path(__file__).resolve().parent.parent / "statcan_explorer" / "data" / "catalog.json"


def vector_entry(vector_id: int, points: list[tuple[str, Any]], product_id: int = 18100004) -> dict:
    return {
        "status": "SUCCESS",
        "object": {
            "responseStatusCode": 0,
            "productId": product_id,
            "vectorId": vector_id,
            "vectorDataPoint": [{"refPer": d, "value": v} for d, v in points],
        },
    }


def series_info_entry(vector_id: int, name: str | None) -> dict:
    obj: dict[str, Any] = {"vectorId": vector_id, "productId": 18100004}
    if name is not None:
        obj["SeriesNameEn"] = name
    return {"status": "SUCCESS", "object": obj}


def cube_entry(title: str) -> dict:
    return {"status": "SUCCESS", "object": {"productId": "18100004", "cubeTitleEn": title}}


class RecordingView:
    """ExplorerView that remembers every call."""

    def __init__(self) -> None:
        self.selections: list[dict] = []
        self.loading_states: list[bool] = []
        self.charts: list[tuple[dict, list]] = []
        self.titles: list[str] = []
        self.failures: list[str] = []
        self.toasts: list[tuple[str, str]] = []

    def selection_changed(self, selection):
        self.selections.append(dict(selection))

    def loading(self, active):
        self.loading_states.append(active)

    def chart_changed(self, spec, rows):
        self.charts.append((spec, list(rows)))

    def chart_title_changed(self, title):
        self.titles.append(title)

    def fetch_failed(self, reason):
        self.failures.append(reason)

    def notify(self, message, level="info"):
        self.toasts.append((level, message))

    def levels(self) -> list[str]:
        return [lvl for lvl, _ in self.toasts]


class FakeProxy:
    """Routes forwarder paths to canned responses and records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.routes: dict[str, Callable[[Any], httpx.Response]] = {}

    def on(self, path: str, status: int = 200, payload: Any = None) -> None:
        self.routes[path] = lambda _body: httpx.Response(status, json=payload)

    def on_error(self, path: str, exc: Exception) -> None:
        def _raise(_body):
            raise exc

        self.routes[path] = _raise

    def paths(self) -> list[str]:
        return [p for p, _ in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.url.path, body))
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(body)

    def client(self) -> ProxyClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url="http://proxy.test")
        return ProxyClient(Settings(), client=http)


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture()
def proxy() -> FakeProxy:
    return FakeProxy()


@pytest.fixture()
def catalog_path() -> Path:
    return CATALOG_PATH
