from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from .catalog import Catalog
from .config import configure_logging, settings
from .forwarder_defs import CORS_HEADERS, FORWARDERS, ForwarderDef
from .schemas import CatalogProduct, ErrorEnvelope
from .sources.statcan import post_wds

logger = logging.getLogger(__name__)

# Registered on every forwarder route so that unsupported methods reach the
# handler and get the JSON 405 envelope instead of the framework default.
_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return Catalog.from_path(settings.catalog_path)


def _json_response(status_code: int, payload: Any = None) -> Response:
    body = "" if payload is None else json.dumps(payload, ensure_ascii=False)
    return Response(content=body, status_code=status_code, headers=dict(CORS_HEADERS))


def _error_response(status_code: int, error: str, details: str | None = None) -> Response:
    envelope = ErrorEnvelope(error=error, details=details)
    return _json_response(status_code, envelope.model_dump(exclude_none=True))


def forward(fd: ForwarderDef, method: str, raw_body: bytes) -> Response:
    """Relays one request to the forwarder's upstream WDS method.

    Never raises: every failure becomes a JSON error envelope.
    """
    if method == "OPTIONS":
        return _json_response(200)
    if method != "POST":
        return _error_response(405, "Method not allowed")

    try:
        payload = json.loads(raw_body or b"")
        logger.info("%s: request %s", fd.route, payload)

        resp = post_wds(settings.upstream_url(fd.upstream_method), payload, timeout=settings.upstream_timeout_s)
        if not 200 <= resp.status_code < 300:
            logger.error("%s: upstream error %s %s", fd.route, resp.status_code, resp.reason)
            return _error_response(resp.status_code, f"{fd.label} returned {resp.status_code}: {resp.reason}")

        data = resp.json()
        logger.info("%s: upstream response received status=%s", fd.route, resp.status_code)
        return _json_response(resp.status_code, data)
    except Exception as e:  # noqa: BLE001
        logger.exception("%s: internal error", fd.route)
        return _error_response(500, "Internal server error", str(e))


def _forwarder_endpoint(fd: ForwarderDef):
    async def _endpoint(request: Request) -> Response:
        raw = await request.body()
        return await run_in_threadpool(forward, fd, request.method.upper(), raw)

    _endpoint.__name__ = "forward_" + fd.upstream_method
    return _endpoint


app = FastAPI(title="StatCan Explorer Proxy")


@app.on_event("startup")
def _startup():
    configure_logging()


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/catalog", response_model=list[CatalogProduct])
def catalog_products(q: str | None = None, catalog: Catalog = Depends(get_catalog)):
    return catalog.search(q)


for _fd in FORWARDERS:
    app.add_api_route(_fd.route, _forwarder_endpoint(_fd), methods=_ALL_METHODS, include_in_schema=True)


# If a built frontend exists, serve it at '/'.
_frontend_dist = Path(__file__).resolve().parent / "static"
if _frontend_dist.exists():
    app.mount("/", StaticFiles(directory=str(_frontend_dist), html=True), name="frontend")
