from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Literal, Protocol

from .schemas import SeriesRef, TableRow

ToastLevel = Literal["info", "success", "warning", "error"]

logger = logging.getLogger(__name__)

_TOAST_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ExplorerView(Protocol):
    """Receives state changes from the controller, keyed by vector number."""

    def selection_changed(self, selection: Mapping[int, SeriesRef]) -> None: ...

    def loading(self, active: bool) -> None: ...

    def chart_changed(self, spec: dict[str, Any], rows: list[TableRow]) -> None: ...

    def chart_title_changed(self, title: str) -> None: ...

    def fetch_failed(self, reason: str) -> None: ...

    def notify(self, message: str, level: ToastLevel = "info") -> None: ...


class LoggingView:
    """Headless view: writes notifications to the log and keeps the latest outputs."""

    def __init__(self) -> None:
        self.selection: dict[int, SeriesRef] = {}
        self.spec: dict[str, Any] | None = None
        self.rows: list[TableRow] = []
        self.title: str | None = None
        self.failure: str | None = None

    def selection_changed(self, selection: Mapping[int, SeriesRef]) -> None:
        self.selection = dict(selection)

    def loading(self, active: bool) -> None:
        logger.debug("loading=%s", active)

    def chart_changed(self, spec: dict[str, Any], rows: list[TableRow]) -> None:
        self.spec = spec
        self.rows = list(rows)
        self.failure = None

    def chart_title_changed(self, title: str) -> None:
        self.title = title

    def fetch_failed(self, reason: str) -> None:
        self.failure = reason
        logger.error(
            "Unable to reach the Statistics Canada API through the proxy (%s). "
            "Check that the forwarder is running (statcan-explorer serve) and PROXY_BASE_URL points to it.",
            reason,
        )

    def notify(self, message: str, level: ToastLevel = "info") -> None:
        logger.log(_TOAST_LEVELS.get(level, logging.INFO), message)
