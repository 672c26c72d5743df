"""
Tests for the forwarder routes in statcan_explorer/main.py.

The upstream WDS call (post_wds) is patched; no network access.
"""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from statcan_explorer.forwarder_defs import CUBE_METADATA, FORWARDERS, OBSERVATIONS, SERIES_INFO
from statcan_explorer.main import app

ROUTES = [fd.route for fd in FORWARDERS]


def _upstream(status: int = 200, payload=None, reason: str = "OK") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.reason = reason
    resp.json.return_value = payload
    return resp


@pytest.fixture()
def client():
    return TestClient(app)


class TestMethods:
    @pytest.mark.parametrize("route", ROUTES)
    def test_get_is_not_allowed(self, client, route):
        with patch("statcan_explorer.main.post_wds") as upstream:
            resp = client.get(route)
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed"}
        upstream.assert_not_called()

    def test_put_is_not_allowed(self, client):
        resp = client.put(OBSERVATIONS.route, json=[])
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed"}

    @pytest.mark.parametrize("route", ROUTES)
    def test_preflight_returns_empty_body_with_cors(self, client, route):
        with patch("statcan_explorer.main.post_wds") as upstream:
            resp = client.options(route)
        assert resp.status_code == 200
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]
        upstream.assert_not_called()


class TestForwarding:
    def test_success_relays_body_and_status(self, client):
        payload = [{"status": "SUCCESS", "object": {"vectorId": 41690973, "vectorDataPoint": []}}]
        with patch("statcan_explorer.main.post_wds", return_value=_upstream(200, payload)) as upstream:
            resp = client.post(OBSERVATIONS.route, json=[{"vectorId": 41690973, "latestN": 3}])

        assert resp.status_code == 200
        assert resp.json() == payload
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["content-type"].startswith("application/json")
        upstream.assert_called_once()
        url, body = upstream.call_args.args
        assert url.endswith("/getDataFromVectorsAndLatestNPeriods")
        assert body == [{"vectorId": 41690973, "latestN": 3}]

    @pytest.mark.parametrize(
        "fd,method",
        [
            (SERIES_INFO, "getSeriesInfoFromVector"),
            (CUBE_METADATA, "getCubeMetadata"),
        ],
    )
    def test_each_route_has_its_own_upstream(self, client, fd, method):
        with patch("statcan_explorer.main.post_wds", return_value=_upstream(200, [])) as upstream:
            client.post(fd.route, json=[{"vectorId": "1"}])
        assert upstream.call_args.args[0].endswith("/" + method)

    def test_upstream_503_is_relayed(self, client):
        with patch("statcan_explorer.main.post_wds", return_value=_upstream(503, None, "Service Unavailable")):
            resp = client.post(OBSERVATIONS.route, json=[{"vectorId": 1, "latestN": 1}])

        assert resp.status_code == 503
        body = resp.json()
        assert "503" in body["error"]
        assert body["error"] == "Statistics Canada API returned 503: Service Unavailable"
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_malformed_body_is_internal_error(self, client):
        with patch("statcan_explorer.main.post_wds") as upstream:
            resp = client.post(
                SERIES_INFO.route,
                content=b"{not json",
                headers={"Content-Type": "application/json"},
            )
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "Internal server error"
        assert body["details"]
        upstream.assert_not_called()

    def test_network_exception_is_internal_error(self, client):
        with patch("statcan_explorer.main.post_wds", side_effect=requests.ConnectionError("boom")):
            resp = client.post(CUBE_METADATA.route, json=[{"productId": 18100004}])
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "details": "boom"}

    def test_one_upstream_call_per_request(self, client):
        with patch("statcan_explorer.main.post_wds", return_value=_upstream(200, [])) as upstream:
            client.post(OBSERVATIONS.route, json=[])
            client.post(OBSERVATIONS.route, json=[])
        assert upstream.call_count == 2


class TestSupportRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_catalog_search(self, client):
        resp = client.get("/api/catalog", params={"q": "unemployment"})
        assert resp.status_code == 200
        products = resp.json()
        assert [p["productId"] for p in products] == ["14100287"]
        assert products[0]["vectors"][0]["vectorId"] == "v2062815"

    def test_catalog_all(self, client):
        assert len(client.get("/api/catalog").json()) == 3
