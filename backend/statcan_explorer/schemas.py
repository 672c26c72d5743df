from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

VISUALIZATION_MODES: tuple[str, ...] = ("line", "scatter", "bar")


def vector_number(value: str | int) -> int:
    """Canonical integer id for a vector given as 41690973, "41690973" or "v41690973"."""
    if isinstance(value, bool):
        raise ValueError(f"invalid vector id: {value!r}")
    if isinstance(value, int):
        return value
    raw = str(value).strip()
    if raw[:1] in ("v", "V"):
        raw = raw[1:]
    if not raw.isdigit():
        raise ValueError(f"invalid vector id: {value!r}")
    return int(raw)


class _WireModel(BaseModel):
    # WDS and the catalog use camelCase on the wire.
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CatalogVector(_WireModel):
    vector_id: str = Field(alias="vectorId")
    text: str

    @field_validator("vector_id", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return str(v)


class CatalogProduct(_WireModel):
    product_id: str = Field(alias="productId")
    description: str = ""
    vectors: list[CatalogVector] = Field(default_factory=list)

    @field_validator("product_id", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return str(v)


class SeriesRef(_WireModel):
    vector_id: int = Field(alias="vectorId")
    product_id: str = Field(alias="productId")
    label: str

    @field_validator("vector_id", mode="before")
    @classmethod
    def _canonical(cls, v: Any) -> int:
        return vector_number(v)

    @field_validator("product_id", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return str(v)


class Observation(_WireModel):
    vector_id: int = Field(alias="vectorId")
    date: str
    value: float | None


class SeriesInfo(BaseModel):
    title: str
    description: str


class ChartRow(_WireModel):
    date: str
    value: float | None
    series: str
    vector_id: int = Field(alias="vectorId")


class TableRow(_WireModel):
    vector_id: int = Field(alias="vectorId")
    series: str
    date: str
    value: float | None


class VectorPeriodsRequest(_WireModel):
    vector_id: int = Field(alias="vectorId")
    latest_n: int = Field(alias="latestN", ge=1)


class SeriesInfoRequest(_WireModel):
    vector_id: str = Field(alias="vectorId")


class CubeMetadataRequest(_WireModel):
    product_id: int | str = Field(alias="productId")


class ErrorEnvelope(BaseModel):
    error: str
    details: str | None = None


class ExportMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    export_date: str = Field(alias="exportDate")
    selected_vectors: list[dict[str, Any]] = Field(alias="selectedVectors")
    cube_metadata: dict[str, Any] = Field(alias="cubeMetadata")
    series_info: dict[str, SeriesInfo] = Field(alias="seriesInfo")


class ExportBundle(BaseModel):
    metadata: ExportMetadata
    data: list[Any]
