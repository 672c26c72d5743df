from __future__ import annotations

import json
import math
from typing import Any

import requests

from ..schemas import Observation, SeriesInfo

_JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def post_wds(url: str, payload: Any, *, timeout: float = 30) -> requests.Response:
    """POSTs a JSON payload to one Statistics Canada WDS method.

    The payload is re-serialized as-is; status handling is left to the caller
    so that upstream errors can be relayed verbatim.
    """
    return requests.post(url, data=json.dumps(payload), headers=_JSON_HEADERS, timeout=timeout)


def _succeeded(item: Any) -> bool:
    return isinstance(item, dict) and item.get("status") == "SUCCESS" and isinstance(item.get("object"), dict)


def _to_float(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        out = float(v)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(out) else out


def flatten_vector_data(payload: Any) -> list[Observation]:
    """One Observation per vectorDataPoint of every SUCCESS entry, in payload order."""
    if not isinstance(payload, list):
        return []

    out: list[Observation] = []
    for item in payload:
        if not _succeeded(item):
            continue
        obj = item["object"]
        points = obj.get("vectorDataPoint")
        if obj.get("vectorId") is None or not isinstance(points, list):
            continue
        vid = int(obj["vectorId"])
        for p in points:
            if not isinstance(p, dict):
                continue
            out.append(Observation(vector_id=vid, date=str(p.get("refPer", "")), value=_to_float(p.get("value"))))
    return out


def vector_ids_in(payload: Any) -> list[int]:
    if not isinstance(payload, list):
        return []
    seen: dict[int, None] = {}
    for item in payload:
        if _succeeded(item) and item["object"].get("vectorId") is not None:
            seen[int(item["object"]["vectorId"])] = None
    return list(seen)


def parse_series_info(payload: Any) -> dict[int, SeriesInfo]:
    if not isinstance(payload, list):
        return {}

    out: dict[int, SeriesInfo] = {}
    for item in payload:
        if not _succeeded(item) or item["object"].get("vectorId") is None:
            continue
        vid = int(item["object"]["vectorId"])
        name = item["object"].get("SeriesNameEn")
        out[vid] = SeriesInfo(
            title=name or f"Vector {vid}",
            description=name or "No description available",
        )
    return out


def parse_cube_metadata(payload: Any) -> dict[str, Any] | None:
    if isinstance(payload, list) and payload and _succeeded(payload[0]):
        return dict(payload[0]["object"])
    return None
