from __future__ import annotations

from dataclasses import dataclass

# Forwarder routes and the WDS method each one relays to.
# Each forwarder makes exactly one upstream POST per request.


@dataclass(frozen=True)
class ForwarderDef:
    route: str
    upstream_method: str
    label: str  # used in error envelopes and logs


OBSERVATIONS = ForwarderDef(
    route="/api/getDataFromVectors",
    upstream_method="getDataFromVectorsAndLatestNPeriods",
    label="Statistics Canada API",
)
SERIES_INFO = ForwarderDef(
    route="/api/getSeriesInfo",
    upstream_method="getSeriesInfoFromVector",
    label="Statistics Canada Series Info API",
)
CUBE_METADATA = ForwarderDef(
    route="/api/getCubeMetadata",
    upstream_method="getCubeMetadata",
    label="Statistics Canada Cube Metadata API",
)

FORWARDERS: tuple[ForwarderDef, ...] = (OBSERVATIONS, SERIES_INFO, CUBE_METADATA)

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Content-Type": "application/json",
}
