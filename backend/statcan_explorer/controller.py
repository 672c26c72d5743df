from __future__ import annotations

import asyncio
import datetime as dt
import json
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .charts import chart_rows, chart_spec, chart_title, table_rows
from .client import ProxyClient, ProxyError
from .config import Settings, settings as default_settings
from .schemas import (
    VISUALIZATION_MODES,
    CubeMetadataRequest,
    ExportBundle,
    ExportMetadata,
    Observation,
    SeriesInfo,
    SeriesInfoRequest,
    SeriesRef,
    TableRow,
    VectorPeriodsRequest,
    vector_number,
)
from .sources.statcan import flatten_vector_data, parse_cube_metadata, parse_series_info, vector_ids_in
from .view import ExplorerView

logger = logging.getLogger(__name__)


@dataclass
class ExplorerState:
    """Everything the explorer holds for one session."""

    selection: dict[int, SeriesRef] = field(default_factory=dict)
    # Raw fetch payload; observations is always flatten_vector_data(payload).
    payload: list[Any] = field(default_factory=list)
    observations: list[Observation] = field(default_factory=list)
    series_info: dict[int, SeriesInfo] = field(default_factory=dict)
    cube_metadata: dict[str, Any] = field(default_factory=dict)
    mode: str = "line"
    # Bumped on every successful fetch; enrichment results from older fetches are dropped.
    generation: int = 0


class ExplorerController:
    def __init__(
        self,
        state: ExplorerState,
        client: ProxyClient,
        view: ExplorerView,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.state = state
        self.client = client
        self.view = view
        self.settings = settings or default_settings
        self._in_flight = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def fetch_in_flight(self) -> bool:
        return self._in_flight

    # -- selection -------------------------------------------------------

    def is_selected(self, vector_id: str | int) -> bool:
        return vector_number(vector_id) in self.state.selection

    def toggle_selection(self, vector_id: str | int, product_id: str | int, label: str) -> bool:
        """Adds the series if absent, removes it if present. Returns True when now selected."""
        ref = SeriesRef(vector_id=vector_id, product_id=product_id, label=label)
        sel = self.state.selection
        if ref.vector_id in sel:
            del sel[ref.vector_id]
            self.view.notify(f"Removed vector v{ref.vector_id}", "info")
            selected = False
        else:
            sel[ref.vector_id] = ref
            self.view.notify(f"Added vector v{ref.vector_id}", "success")
            selected = True
        self.view.selection_changed(sel)
        return selected

    def remove_selection(self, vector_id: str | int) -> None:
        vid = vector_number(vector_id)
        if self.state.selection.pop(vid, None) is None:
            return
        self.view.selection_changed(self.state.selection)
        self.view.notify(f"Removed vector v{vid}", "info")

    def clear_selection(self) -> None:
        self.state.selection.clear()
        self.view.selection_changed(self.state.selection)
        self.view.notify("Selection cleared", "info")

    # -- fetch -----------------------------------------------------------

    async def fetch_observations(self, period_count: int | None = None) -> bool:
        n = self.settings.default_periods if period_count is None else period_count
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValueError(f"period_count must be a positive integer, got {period_count!r}")

        if not self.state.selection:
            self.view.notify("Please select at least one vector", "warning")
            return False
        if self._in_flight:
            self.view.notify("A fetch is already in progress", "warning")
            return False

        selected = list(self.state.selection.values())
        batch = [VectorPeriodsRequest(vector_id=r.vector_id, latest_n=n) for r in selected]

        self._in_flight = True
        self.view.loading(True)
        logger.info("fetching vectors=%s latestN=%d", [r.vector_id for r in selected], n)
        try:
            payload = await self.client.get_data_from_vectors(batch)
            if not isinstance(payload, list):
                raise ProxyError(f"unexpected response shape: {type(payload).__name__}")
        except ProxyError as e:
            logger.error("fetch failed: %s", e)
            self.view.fetch_failed(str(e))
            return False
        finally:
            self._in_flight = False
            self.view.loading(False)

        st = self.state
        st.generation += 1
        st.payload = payload
        st.observations = flatten_vector_data(payload)
        st.series_info = {r.vector_id: SeriesInfo(title=r.label, description=r.label) for r in selected}
        st.cube_metadata = {}
        logger.info("fetched observations=%d generation=%d", len(st.observations), st.generation)

        self.view.chart_title_changed(chart_title(st.cube_metadata))
        self._render()
        self.view.notify("Data fetched successfully!", "success")

        self._spawn(self._enrich_series_info(st.generation, vector_ids_in(payload)))
        self._spawn(self._enrich_cube_metadata(st.generation, selected[0].product_id))
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("enrichment task crashed", exc_info=task.exception())

    async def wait_for_enrichment(self) -> None:
        while self._tasks:
            tasks = list(self._tasks)
            await asyncio.wait(tasks)
            self._tasks.difference_update(tasks)

    async def _enrich_series_info(self, generation: int, vector_ids: list[int]) -> None:
        if not vector_ids:
            logger.info("no vector ids in fetched data; keeping catalog labels")
            return
        try:
            data = await self.client.get_series_info([SeriesInfoRequest(vector_id=str(v)) for v in vector_ids])
        except ProxyError as e:
            logger.warning("series info unavailable, keeping catalog labels: %s", e)
            return

        if generation != self.state.generation:
            logger.debug("dropping series info for stale generation %d", generation)
            return

        info = parse_series_info(data)
        if not info:
            logger.info("series info response had no usable entries; keeping catalog labels")
            return

        self.state.series_info = {**self.state.series_info, **info}
        self._render()

    async def _enrich_cube_metadata(self, generation: int, product_id: str) -> None:
        pid: int | str = int(product_id) if product_id.isdigit() else product_id
        try:
            data = await self.client.get_cube_metadata([CubeMetadataRequest(product_id=pid)])
        except ProxyError as e:
            logger.warning("cube metadata unavailable for %s: %s", product_id, e)
            return

        if generation != self.state.generation:
            logger.debug("dropping cube metadata for stale generation %d", generation)
            return

        meta = parse_cube_metadata(data)
        if meta is None:
            logger.info("cube metadata response format unexpected for %s", product_id)
            return

        self.state.cube_metadata = meta
        self.view.chart_title_changed(chart_title(meta))
        self._render()

    # -- outputs ---------------------------------------------------------

    def set_visualization_mode(self, mode: str) -> None:
        if mode not in VISUALIZATION_MODES:
            raise ValueError(f"unknown visualization mode: {mode!r}")
        self.state.mode = mode
        if not self.state.observations:
            return
        self._render()

    def chart_spec(self) -> dict[str, Any] | None:
        st = self.state
        if not st.observations:
            return None
        rows = chart_rows(st.observations, st.series_info)
        return chart_spec(st.mode, rows, title=chart_title(st.cube_metadata))

    def table_rows(self) -> list[TableRow]:
        return table_rows(self.state.observations, self.state.series_info)

    def _render(self) -> None:
        st = self.state
        rows = chart_rows(st.observations, st.series_info)
        spec = chart_spec(st.mode, rows, title=chart_title(st.cube_metadata))
        self.view.chart_changed(spec, self.table_rows())

    # -- export ----------------------------------------------------------

    def build_snapshot(self, now: dt.datetime | None = None) -> dict[str, Any] | None:
        st = self.state
        if not st.observations:
            return None
        ts = now or dt.datetime.now(dt.timezone.utc)
        bundle = ExportBundle(
            metadata=ExportMetadata(
                export_date=ts.isoformat(),
                selected_vectors=[r.model_dump(by_alias=True) for r in st.selection.values()],
                cube_metadata=dict(st.cube_metadata),
                series_info={str(k): v for k, v in st.series_info.items()},
            ),
            data=list(st.payload),
        )
        return bundle.model_dump(by_alias=True)

    def export_snapshot(self, directory: str | Path) -> Path | None:
        ts = dt.datetime.now(dt.timezone.utc)
        bundle = self.build_snapshot(ts)
        if bundle is None:
            self.view.notify("No data to export", "warning")
            return None

        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"statcan-data-{ts.date().isoformat()}.json"
        path.write_text(json.dumps(bundle, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("exported snapshot to %s", path)
        self.view.notify("Data exported successfully", "success")
        return path
