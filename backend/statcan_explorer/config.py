from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CATALOG = Path(__file__).resolve().parent / "data" / "catalog.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "backend/.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Statistics Canada Web Data Service (WDS) REST root; method names are appended.
    statcan_wds_base_url: str = Field(
        default="https://www150.statcan.gc.ca/t1/wds/rest",
        validation_alias="STATCAN_WDS_BASE_URL",
    )
    upstream_timeout_s: float = Field(default=30.0, validation_alias="UPSTREAM_TIMEOUT_S")

    # Where the controller finds the forwarder routes.
    proxy_base_url: str = Field(default="http://localhost:8000", validation_alias="PROXY_BASE_URL")
    proxy_timeout_s: float = Field(default=60.0, validation_alias="PROXY_TIMEOUT_S")

    catalog_path: Path = Field(default=_DEFAULT_CATALOG, validation_alias="CATALOG_PATH")
    default_periods: int = Field(default=12, validation_alias="DEFAULT_PERIODS")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("default_periods")
    @classmethod
    def _positive_periods(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DEFAULT_PERIODS must be a positive integer")
        return v

    def upstream_url(self, method: str) -> str:
        return self.statcan_wds_base_url.rstrip("/") + "/" + method


def configure_logging(level: str | int | None = None) -> None:
    """Install one stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    lvl = level if level is not None else settings.log_level
    if isinstance(lvl, str):
        lvl = logging.getLevelName(lvl.upper())
        if not isinstance(lvl, int):
            lvl = logging.INFO
    root.setLevel(lvl)
    if any(getattr(h, "_statcan_explorer", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    handler._statcan_explorer = True  # type: ignore[attr-defined]
    root.addHandler(handler)


settings = Settings()
