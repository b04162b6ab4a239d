"""
Response models for chuk-mcp-ocean tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..constants import ErrorType


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")
    error_type: str = Field(
        ErrorType.INTERNAL,
        description="validation for client input errors, internal for server failures",
    )

    def to_text(self) -> str:
        if self.error_type == ErrorType.VALIDATION:
            return f"Invalid request: {self.error}"
        return f"Error: {self.error}"


# ---------------------------------------------------------------------------
# Discovery responses
# ---------------------------------------------------------------------------


class ParameterInfo(BaseModel):
    """Summary information about a supported parameter."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Parameter identifier (e.g., temp_c)")
    name: str = Field(..., description="Human-readable parameter name")
    unit: str = Field(..., description="Measurement unit")
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance")

    def to_text(self) -> str:
        return f"{self.id}: {self.name} ({self.unit})"


class ParametersResponse(BaseModel):
    """Response model for listing supported parameters."""

    model_config = ConfigDict(extra="forbid")

    parameters: list[ParameterInfo] = Field(..., description="Supported parameters")
    horizons: list[str] = Field(..., description="Supported depth horizons")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, f"Horizons: {', '.join(self.horizons)}", ""]
        for p in self.parameters:
            lines.append(f"  {p.to_text()}")
        return "\n".join(lines)


class CombinationInfo(BaseModel):
    """An observed (year, horizon) pair with usable point counts."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    point_counts: dict[str, int] = Field(..., description="Usable points per parameter")


class CombinationsResponse(BaseModel):
    """Response model for listing observed (year, horizon) combinations."""

    model_config = ConfigDict(extra="forbid")

    combinations: list[CombinationInfo] = Field(..., description="Observed combinations")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message]
        for c in self.combinations:
            counts = ", ".join(f"{k}={v}" for k, v in c.point_counts.items())
            lines.append(f"  {c.year} {c.horizon}: {counts}")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    state: str = Field(..., description="Readiness state")
    samples_loaded: int = Field(..., description="Number of samples loaded", ge=0)
    rows_dropped: int = Field(..., description="Rows dropped as unparsable", ge=0)
    combinations: int = Field(..., description="Observed (year, horizon) combinations", ge=0)
    planned_entries: int = Field(..., description="Cache entries to compute", ge=0)
    cache_entries: int = Field(..., description="Cache entries computed", ge=0)
    failed_combinations: int = Field(..., description="Combinations that failed", ge=0)
    clip_fallbacks: int = Field(..., description="Land clips that kept the unclipped line", ge=0)
    coastline_mode: str = Field(..., description="Coastline mode (clipped, global, none)")
    region_bbox: list[float] | None = Field(
        None, description="Region [west, south, east, north] in degrees"
    )
    storage_provider: str = Field(..., description="Artifact storage provider")
    artifact_store_available: bool = Field(..., description="Whether the artifact store is ready")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"State: {self.state}",
            f"Samples: {self.samples_loaded} ({self.rows_dropped} rows dropped)",
            f"Cache: {self.cache_entries}/{self.planned_entries} entries "
            f"({self.failed_combinations} failed)",
            f"Coastline: {self.coastline_mode} ({self.clip_fallbacks} clip fallbacks)",
            f"Storage: {self.storage_provider} "
            f"({'available' if self.artifact_store_available else 'not available'})",
        ]
        if self.region_bbox:
            lines.append("Region: [" + ", ".join(f"{b:.4f}" for b in self.region_bbox) + "]")
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for full server capabilities."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    parameters: list[ParameterInfo] = Field(..., description="Supported parameters")
    horizons: list[str] = Field(..., description="Supported depth horizons")
    distance_units: list[str] = Field(..., description="IDW distance units")
    cell_size_deg: float = Field(..., description="Grid cell size in degrees")
    idw_power: float = Field(..., description="IDW distance exponent")
    break_count: int = Field(..., description="Equal subdivisions used for derived breaks")
    tool_count: int = Field(..., description="Number of registered tools")
    llm_guidance: str = Field(..., description="How to use the tools")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Parameters: {', '.join(p.id for p in self.parameters)}",
            f"Horizons: {', '.join(self.horizons)}",
            f"Grid: {self.cell_size_deg} deg cells, IDW power {self.idw_power}",
            f"Derived breaks: {self.break_count} subdivisions",
            f"Tools: {self.tool_count}",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Contour responses
# ---------------------------------------------------------------------------


class LineGeometry(BaseModel):
    """GeoJSON LineString geometry in lon/lat."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]] = Field(..., description="[[lon, lat], ...]")


class ContourProperties(BaseModel):
    """Properties carried by each contour feature."""

    model_config = ConfigDict(extra="forbid")

    threshold: float = Field(..., description="Threshold value this line traces")
    parameter: str = Field(..., description="Parameter identifier")


class ContourFeature(BaseModel):
    """GeoJSON Feature for one contour line."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["Feature"] = "Feature"
    geometry: LineGeometry
    properties: ContourProperties


class ContoursResponse(BaseModel):
    """Response model for a computed contour set (possibly empty)."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["FeatureCollection"] = "FeatureCollection"
    status: str = Field(..., description="Lookup status (ready)")
    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    parameter: str = Field(..., description="Parameter identifier")
    unit: str = Field(..., description="Parameter unit")
    breaks: list[float] = Field(..., description="Thresholds traced")
    point_count: int = Field(..., description="Usable sample points", ge=0)
    value_range: list[float] | None = Field(None, description="[min, max] of sample values")
    feature_count: int = Field(..., description="Number of contour lines", ge=0)
    clip_fallbacks: int = Field(0, description="Lines kept unclipped after a failed clip", ge=0)
    features: list[ContourFeature] = Field(..., description="Contour line features")
    error: str | None = Field(None, description="Why the set is empty, if computation failed")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"Contours: {self.year} {self.horizon} {self.parameter} ({self.unit})",
            f"Status: {self.status}",
            f"Points: {self.point_count}",
        ]
        if self.value_range:
            lines.append(f"Value range: {self.value_range[0]:.3f} to {self.value_range[1]:.3f}")
        if self.breaks:
            lines.append("Breaks: " + ", ".join(f"{b:.3f}" for b in self.breaks))
        counts: dict[float, int] = {}
        for f in self.features:
            counts[f.properties.threshold] = counts.get(f.properties.threshold, 0) + 1
        lines.append(f"Lines: {self.feature_count}")
        for t, n in sorted(counts.items()):
            lines.append(f"  {t:.3f}: {n} lines")
        if self.clip_fallbacks:
            lines.append(f"WARNING: {self.clip_fallbacks} lines kept unclipped")
        if self.error:
            lines.append(f"WARNING: {self.error}")
        return "\n".join(lines)


class LookupStatusResponse(BaseModel):
    """Response model for a key that is not yet computed or has no data."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(..., description="Lookup status (not_ready or not_found)")
    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    parameter: str = Field(..., description="Parameter identifier")
    state: str = Field(..., description="Server readiness state")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        return f"{self.message} (status: {self.status}, server: {self.state})"


class ContourExportResponse(BaseModel):
    """Response model for exporting contours to the artifact store."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    parameter: str = Field(..., description="Parameter identifier")
    artifact_ref: str = Field(..., description="Artifact store reference for the GeoJSON")
    feature_count: int = Field(..., description="Number of exported lines", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        return "\n".join(
            [
                f"Export: {self.year} {self.horizon} {self.parameter}",
                f"Artifact: {self.artifact_ref}",
                f"Features: {self.feature_count}",
            ]
        )


# ---------------------------------------------------------------------------
# Field responses
# ---------------------------------------------------------------------------


class FieldResponse(BaseModel):
    """Response model for an interpolated field exported as GeoTIFF."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    parameter: str = Field(..., description="Parameter identifier")
    unit: str = Field(..., description="Parameter unit")
    artifact_ref: str = Field(..., description="Artifact store reference for the GeoTIFF")
    crs: str = Field("EPSG:4326", description="Coordinate reference system")
    bbox: list[float] = Field(..., description="Grid extent [west, south, east, north]")
    shape: list[int] = Field(..., description="Array shape [height, width]")
    cell_size_deg: float = Field(..., description="Cell size in degrees")
    point_count: int = Field(..., description="Sample points used", ge=0)
    value_range: list[float] = Field(..., description="[min, max] interpolated value")
    idw_power: float = Field(..., description="IDW distance exponent")
    distance_units: str = Field(..., description="IDW distance units")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        shape_str = f"{self.shape[0]}x{self.shape[1]}"
        return "\n".join(
            [
                f"Field: {self.year} {self.horizon} {self.parameter} ({self.unit})",
                f"Artifact: {self.artifact_ref}",
                f"Shape: {shape_str} ({self.crs}, {self.cell_size_deg} deg)",
                f"Points: {self.point_count}, IDW power {self.idw_power} ({self.distance_units})",
                f"Value range: {self.value_range[0]:.3f} to {self.value_range[1]:.3f}",
            ]
        )


class PointValueResponse(BaseModel):
    """Response model for an interpolated value at one location."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., description="Sampling year")
    horizon: str = Field(..., description="Depth horizon")
    parameter: str = Field(..., description="Parameter identifier")
    unit: str = Field(..., description="Parameter unit")
    lon: float = Field(..., description="Longitude")
    lat: float = Field(..., description="Latitude")
    value: float | None = Field(None, description="Interpolated value (null if undefined)")
    point_count: int = Field(..., description="Sample points used", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        return self.message
