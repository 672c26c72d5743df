from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

from .schemas import VISUALIZATION_MODES, ChartRow, Observation, SeriesInfo, TableRow

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"
DEFAULT_CHART_TITLE = "Statistics Canada Data Visualization"


def series_label(vector_id: int, series_info: Mapping[int, SeriesInfo]) -> str:
    info = series_info.get(vector_id)
    return info.title if info is not None else f"Vector {vector_id}"


def chart_rows(observations: Iterable[Observation], series_info: Mapping[int, SeriesInfo]) -> list[ChartRow]:
    return [
        ChartRow(date=o.date, value=o.value, series=series_label(o.vector_id, series_info), vector_id=o.vector_id)
        for o in observations
    ]


def table_rows(observations: Iterable[Observation], series_info: Mapping[int, SeriesInfo]) -> list[TableRow]:
    return [
        TableRow(vector_id=o.vector_id, series=series_label(o.vector_id, series_info), date=o.date, value=o.value)
        for o in observations
    ]


def latest_per_series(rows: list[ChartRow]) -> list[ChartRow]:
    """Collapse to one row per series label: the row with the latest date.

    Ties on the latest date keep the row that came first in payload order.
    Unparseable dates sort before every real date.
    """
    if not rows:
        return []

    df = pd.DataFrame({"series": [r.series for r in rows], "date": [r.date for r in rows]})
    ts = pd.to_datetime(df["date"], errors="coerce", format="mixed")
    df["_ts"] = ts.fillna(pd.Timestamp.min)

    # idxmax returns the first label holding the max, which gives the stable tie-break.
    winners = df.groupby("series", sort=False)["_ts"].idxmax()
    return [rows[int(i)] for i in winners.tolist()]


def chart_title(cube_metadata: Mapping[str, Any] | None) -> str:
    if cube_metadata and cube_metadata.get("cubeTitleEn"):
        return str(cube_metadata["cubeTitleEn"])
    return DEFAULT_CHART_TITLE


def _values(rows: list[ChartRow]) -> list[dict[str, Any]]:
    return [r.model_dump(by_alias=True) for r in rows]


def _time_encoding() -> dict[str, Any]:
    return {
        "x": {"field": "date", "type": "temporal", "title": "Date", "axis": {"labelAngle": -45}},
        "y": {"field": "value", "type": "quantitative", "title": "Value"},
        "color": {"field": "series", "type": "nominal", "title": "Series", "scale": {"scheme": "category10"}},
        "tooltip": [
            {"field": "date", "type": "temporal", "title": "Date"},
            {"field": "value", "type": "quantitative", "title": "Value"},
            {"field": "series", "type": "nominal", "title": "Series"},
        ],
    }


def chart_spec(mode: str, rows: list[ChartRow], *, title: str | None = None) -> dict[str, Any]:
    """Vega-Lite v5 spec for the given visualization mode."""
    if mode not in VISUALIZATION_MODES:
        raise ValueError(f"unknown visualization mode: {mode!r}")

    spec: dict[str, Any] = {
        "$schema": VEGA_LITE_SCHEMA,
        "title": title or DEFAULT_CHART_TITLE,
        "width": 800,
        "height": 400,
    }

    if mode == "line":
        spec["description"] = "Statistics Canada Data Visualization"
        spec["data"] = {"values": _values(rows)}
        spec["mark"] = {"type": "line", "point": True, "strokeWidth": 2}
        spec["encoding"] = _time_encoding()
    elif mode == "scatter":
        spec["description"] = "Statistics Canada Data Scatter Plot"
        spec["data"] = {"values": _values(rows)}
        spec["mark"] = {"type": "circle", "size": 100, "opacity": 0.7}
        spec["encoding"] = _time_encoding()
    else:
        spec["description"] = "Statistics Canada Data Bar Chart"
        spec["data"] = {"values": _values(latest_per_series(rows))}
        spec["mark"] = {"type": "bar"}
        spec["encoding"] = {
            "x": {"field": "series", "type": "nominal", "title": "Series", "axis": {"labelAngle": -45}},
            "y": {"field": "value", "type": "quantitative", "title": "Value"},
            "color": {"field": "series", "type": "nominal", "scale": {"scheme": "category10"}},
            "tooltip": [
                {"field": "series", "type": "nominal", "title": "Series"},
                {"field": "value", "type": "quantitative", "title": "Value"},
                {"field": "date", "type": "temporal", "title": "Date"},
            ],
        }
    return spec
