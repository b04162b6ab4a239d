"""
Ocean Manager — central orchestrator for field reconstruction and contours.

Owns the startup pipeline (samples -> region -> coastline), the background
warm pass that fills the result cache for every (year, horizon, parameter)
key, lookups against that cache, and artifact export. Heavy computation is
synchronous and wrapped via asyncio.to_thread().
"""

import asyncio
import logging
import math
import threading
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import geojson
from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry

from ..constants import (
    ALL_HORIZONS,
    ALL_PARAMETERS,
    DEFAULT_BREAK_COUNT,
    DEFAULT_CELL_SIZE_DEG,
    DEFAULT_DISTANCE_UNITS,
    DEFAULT_IDW_POWER,
    DEFAULT_REGION_MARGIN_KM,
    DEFAULT_WARM_CONCURRENCY,
    MAX_BREAK_COUNT,
    MIN_INTERPOLATION_POINTS,
    PARAMETERS,
    THRESHOLD_PROPERTY,
    CoastlineMode,
    ErrorMessages,
    LookupStatus,
    ReadinessState,
)
from . import samples as sample_store
from .clipping import clip_lines
from .contours import (
    ContourLine,
    InvalidBreaksError,
    derive_breaks,
    extract,
    normalize_breaks,
)
from .interpolation import grid_to_geotiff, interpolate, sample_field, validate_settings
from .region import (
    EmptyInputError,
    LocalCoastline,
    Region,
    build_region,
    load_coastline,
    prepare_local_coastline,
)
from .result_cache import CacheEntry, CacheKey, ResultCache

logger = logging.getLogger(__name__)


class RequestError(ValueError):
    """A request that cannot be served as asked."""


class InvalidKeyError(RequestError):
    """A lookup named an unsupported parameter or horizon, or a bad year."""


class KeyNotFoundError(RequestError):
    """The (year, horizon) of a well-formed key was never observed."""


# Exceptions caused by the caller's input rather than by the server
CLIENT_ERRORS = (RequestError, InvalidBreaksError)


@dataclass
class LookupResult:
    """Outcome of a cache lookup."""

    status: str
    key: CacheKey
    entry: CacheEntry | None = None


@dataclass
class ExportResult:
    """Result of exporting a cached contour set to the artifact store."""

    artifact_ref: str
    key: CacheKey
    feature_count: int


@dataclass
class FieldResult:
    """Result of interpolating and exporting a scalar field."""

    artifact_ref: str
    key: CacheKey
    bbox: list[float]
    shape: list[int]
    cell_size_deg: float
    point_count: int
    value_range: list[float]
    power: float
    units: str


@dataclass
class PointValueResult:
    """IDW estimate at a single location."""

    key: CacheKey
    lon: float
    lat: float
    value: float
    point_count: int


def format_key(key: CacheKey) -> str:
    year, horizon, parameter = key
    return f"{year}/{horizon}/{parameter}"


def to_feature_collection(entry: CacheEntry) -> geojson.FeatureCollection:
    """GeoJSON FeatureCollection with one LineString feature per contour line."""
    year, horizon, parameter = entry.key
    features = [
        geojson.Feature(
            geometry=geojson.LineString([list(c) for c in line.coordinates]),
            properties={
                THRESHOLD_PROPERTY: line.threshold,
                "parameter": parameter,
                "year": year,
                "horizon": horizon,
            },
        )
        for line in entry.lines
    ]
    return geojson.FeatureCollection(features)


class OceanManager:
    """Central manager for ocean field reconstruction and contour lookups."""

    def __init__(
        self,
        cell_size_deg: float = DEFAULT_CELL_SIZE_DEG,
        power: float = DEFAULT_IDW_POWER,
        units: str = DEFAULT_DISTANCE_UNITS,
        margin_km: float = DEFAULT_REGION_MARGIN_KM,
        break_count: int = DEFAULT_BREAK_COUNT,
        warm_concurrency: int = DEFAULT_WARM_CONCURRENCY,
    ) -> None:
        validate_settings(cell_size_deg, power, units)
        if margin_km < 0:
            raise ValueError(ErrorMessages.INVALID_MARGIN.format(margin_km))
        if break_count < 2 or break_count > MAX_BREAK_COUNT:
            raise ValueError(ErrorMessages.INVALID_BREAK_COUNT.format(MAX_BREAK_COUNT, break_count))

        self.cell_size_deg = cell_size_deg
        self.power = power
        self.units = units
        self.margin_km = margin_km
        self.break_count = break_count
        self.warm_concurrency = max(1, warm_concurrency)

        self.state = ReadinessState.UNINITIALIZED
        self.samples: sample_store.SampleSet | None = None
        self.region: Region | None = None
        self.coastline = LocalCoastline(geometry=None, mode=CoastlineMode.NONE)
        self.cache = ResultCache()

        self._planned: frozenset[CacheKey] = frozenset()
        self._clip_fallbacks = 0
        self._failed_combinations = 0
        self._stats_lock = threading.Lock()
        self._warm_thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Startup pipeline (sync)
    # ------------------------------------------------------------------

    def load_samples(self, source: str | Path) -> sample_store.SampleSet:
        """Read the sample source. Any failure to read it propagates (fatal)."""
        self.state = ReadinessState.LOADING
        self.samples = sample_store.read_samples(source)
        return self.samples

    def load_rows(self, rows: Iterable[Mapping[str, object]]) -> sample_store.SampleSet:
        """Load samples from already-read rows."""
        self.state = ReadinessState.LOADING
        self.samples = sample_store.load(rows)
        return self.samples

    def prepare_region(self, global_land: BaseGeometry | None = None) -> None:
        """Build the region from loaded samples and clip the coastline to it."""
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)

        try:
            self.region = build_region(self.samples.coordinates(), self.margin_km)
        except EmptyInputError as e:
            logger.warning(f"No region could be built, all contour sets will be empty: {e}")
            self.region = None

        self.coastline = prepare_local_coastline(global_land, self.region)
        self.state = ReadinessState.REGION_READY

    def startup(
        self,
        data_path: str | Path,
        coastline_path: str | Path | None = None,
    ) -> None:
        """Run the sequential startup pipeline: samples, region, coastline."""
        self.load_samples(data_path)

        global_land = None
        if coastline_path:
            try:
                global_land = load_coastline(coastline_path)
            except (OSError, ValueError) as e:
                logger.warning(f"Coastline unavailable ({coastline_path}), clipping disabled: {e}")

        self.prepare_region(global_land)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def normalize_key(self, year: Any, horizon: Any, parameter: Any) -> CacheKey:
        """Coerce and validate a lookup key exactly as keys are written."""
        if year is None:
            raise InvalidKeyError(ErrorMessages.MISSING_FIELD.format("year"))
        if horizon is None:
            raise InvalidKeyError(ErrorMessages.MISSING_FIELD.format("horizon"))
        if parameter is None:
            raise InvalidKeyError(ErrorMessages.MISSING_FIELD.format("parameter"))

        p = sample_store.normalize_parameter(parameter)
        if p not in PARAMETERS:
            raise InvalidKeyError(
                ErrorMessages.UNKNOWN_PARAMETER.format(parameter, ", ".join(ALL_PARAMETERS))
            )
        h = sample_store.normalize_horizon(horizon)
        if h not in ALL_HORIZONS:
            raise InvalidKeyError(
                ErrorMessages.UNKNOWN_HORIZON.format(horizon, ", ".join(ALL_HORIZONS))
            )
        try:
            y = sample_store.parse_year(year)
        except ValueError as e:
            raise InvalidKeyError(str(e)) from e
        return (y, h, p)

    def planned_keys(self) -> list[CacheKey]:
        """Every observed (year, horizon) crossed with every parameter."""
        if self.samples is None:
            return []
        return [(y, h, p) for y, h in self.samples.combinations() for p in ALL_PARAMETERS]

    # ------------------------------------------------------------------
    # Computation (sync)
    # ------------------------------------------------------------------

    def compute_entry(
        self,
        key: CacheKey,
        breaks: Sequence[float] | None = None,
    ) -> CacheEntry:
        """
        Interpolate, contour and clip one key.

        Args:
            key: Normalized (year, horizon, parameter)
            breaks: Explicit thresholds; derived from the value range when None

        Returns:
            CacheEntry, empty when fewer than 3 usable points exist

        Raises:
            ValueError: If explicit breaks are invalid
        """
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)

        year, horizon, parameter = key
        points = list(self.samples.filter(year, horizon, parameter))
        values = [v for _, _, v in points]
        value_range = (min(values), max(values)) if values else None

        if len(points) < MIN_INTERPOLATION_POINTS or self.region is None or value_range is None:
            logger.info(
                f"{format_key(key)}: {len(points)} usable points, caching empty contour set"
            )
            return CacheEntry(
                key=key,
                lines=(),
                breaks=(),
                point_count=len(points),
                value_range=value_range,
            )

        vmin, vmax = value_range
        if breaks is None:
            thresholds = derive_breaks(vmin, vmax, self.break_count)
        else:
            thresholds = normalize_breaks(breaks, vmin, vmax)

        stage = "interpolate"
        try:
            grid = interpolate(points, self.region, self.cell_size_deg, self.power, self.units)
            stage = "extract"
            traced = extract(grid, thresholds)
            stage = "clip"
            lines: list[ContourLine] = []
            fallbacks = 0
            for t in thresholds:
                clipped = clip_lines(
                    (LineString(c.coordinates) for c in traced[t]),
                    self.coastline.geometry,
                )
                fallbacks += clipped.fallbacks
                lines.extend(
                    ContourLine(threshold=t, coordinates=tuple((x, y) for x, y, *_ in ln.coords))
                    for ln in clipped.lines
                )
        except Exception as e:
            logger.error(f"{format_key(key)} failed during {stage} ({len(points)} points): {e}")
            raise

        logger.info(
            f"{format_key(key)}: {len(lines)} lines at {len(thresholds)} breaks "
            f"({len(points)} points, {fallbacks} clip fallbacks)"
        )
        return CacheEntry(
            key=key,
            lines=tuple(lines),
            breaks=tuple(thresholds),
            point_count=len(points),
            value_range=value_range,
            clip_fallbacks=fallbacks,
        )

    # ------------------------------------------------------------------
    # Warming (async)
    # ------------------------------------------------------------------

    async def warm(self) -> int:
        """Compute and cache every planned key. Returns the number of cached entries."""
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)

        keys = self.planned_keys()
        self._planned = frozenset(keys)
        self.state = ReadinessState.WARMING
        logger.info(f"Warming {len(keys)} contour sets (concurrency {self.warm_concurrency})")

        semaphore = asyncio.Semaphore(self.warm_concurrency)

        async def run(key: CacheKey) -> None:
            async with semaphore:
                if key in self.cache:
                    return
                try:
                    entry = await asyncio.to_thread(self.compute_entry, key)
                except Exception as e:
                    with self._stats_lock:
                        self._failed_combinations += 1
                    entry = CacheEntry(
                        key=key,
                        lines=(),
                        breaks=(),
                        point_count=0,
                        value_range=None,
                        error=str(e),
                    )
                if self.cache.put_if_absent(entry):
                    with self._stats_lock:
                        self._clip_fallbacks += entry.clip_fallbacks

        await asyncio.gather(*(run(k) for k in keys))

        self.state = ReadinessState.READY
        logger.info(
            f"Warming complete: {len(self.cache)} entries, "
            f"{self._failed_combinations} failed, {self._clip_fallbacks} clip fallbacks"
        )
        return len(self.cache)

    def _run_warm(self) -> None:
        try:
            asyncio.run(self.warm())
        except Exception as e:
            logger.error(f"Background warming aborted: {e}")

    def start_background_warming(self) -> threading.Thread:
        """Run the warm pass in a daemon thread while the server keeps serving."""
        if self._warm_thread is not None and self._warm_thread.is_alive():
            return self._warm_thread
        thread = threading.Thread(target=self._run_warm, name="ocean-warm", daemon=True)
        self._warm_thread = thread
        thread.start()
        return thread

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, year: Any, horizon: Any, parameter: Any) -> LookupResult:
        """
        Read a cached contour set.

        Raises InvalidKeyError before touching the cache when the key is
        unsupported. Status is "ready" with the entry (possibly empty),
        "not_ready" while the key may still be computed, or "not_found".
        """
        key = self.normalize_key(year, horizon, parameter)

        # State is read before the cache: every entry is written before READY is set.
        state = self.state
        planned = self._planned
        entry = self.cache.get(key)

        if entry is not None:
            return LookupResult(status=LookupStatus.READY, key=key, entry=entry)
        if state == ReadinessState.READY:
            return LookupResult(status=LookupStatus.NOT_FOUND, key=key)
        if state == ReadinessState.WARMING:
            status = LookupStatus.NOT_READY if key in planned else LookupStatus.NOT_FOUND
            return LookupResult(status=status, key=key)
        if self.samples is not None and key[:2] not in self.samples.combinations():
            return LookupResult(status=LookupStatus.NOT_FOUND, key=key)
        return LookupResult(status=LookupStatus.NOT_READY, key=key)

    async def compute_custom(
        self,
        year: Any,
        horizon: Any,
        parameter: Any,
        breaks: Sequence[float],
    ) -> CacheEntry:
        """Contours at explicit break values, computed on demand and not cached.

        Raises:
            InvalidKeyError: If the key is unsupported
            KeyNotFoundError: If the (year, horizon) was never observed
            InvalidBreaksError: If the breaks are not finite and strictly increasing
        """
        key = self.normalize_key(year, horizon, parameter)
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)
        if key[:2] not in self.samples.combinations():
            raise KeyNotFoundError(ErrorMessages.ENTRY_NOT_FOUND.format(format_key(key)))
        return await asyncio.to_thread(self.compute_entry, key, list(breaks))

    async def point_value(
        self,
        year: Any,
        horizon: Any,
        parameter: Any,
        lon: float,
        lat: float,
    ) -> PointValueResult:
        """IDW estimate of a parameter at one location."""
        key = self.normalize_key(year, horizon, parameter)
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)

        points = list(self.samples.filter(*key))
        if len(points) < MIN_INTERPOLATION_POINTS:
            raise RequestError(
                ErrorMessages.INSUFFICIENT_POINTS.format(MIN_INTERPOLATION_POINTS, len(points))
            )
        value = await asyncio.to_thread(sample_field, points, lon, lat, self.power, self.units)
        return PointValueResult(key=key, lon=lon, lat=lat, value=value, point_count=len(points))

    # ------------------------------------------------------------------
    # Export (async)
    # ------------------------------------------------------------------

    async def export_contours(self, year: Any, horizon: Any, parameter: Any) -> ExportResult:
        """Store a cached contour set as a GeoJSON FeatureCollection artifact."""
        result = self.lookup(year, horizon, parameter)
        if result.status == LookupStatus.NOT_READY:
            raise RequestError(ErrorMessages.ENTRY_NOT_READY.format(format_key(result.key)))
        if result.entry is None:
            raise RequestError(ErrorMessages.ENTRY_NOT_FOUND.format(format_key(result.key)))

        entry = result.entry
        collection = to_feature_collection(entry)
        data = geojson.dumps(collection, separators=(",", ":")).encode("utf-8")

        y, h, p = entry.key
        artifact_ref = await self._store_artifact(
            data,
            {
                "schema_version": "1.0",
                "type": "ocean_contours",
                "year": y,
                "horizon": h,
                "parameter": p,
                "breaks": list(entry.breaks),
                "feature_count": len(entry.lines),
                "point_count": entry.point_count,
            },
            suffix=".geojson",
            mime_type="application/geo+json",
        )
        return ExportResult(artifact_ref=artifact_ref, key=entry.key, feature_count=len(entry.lines))

    async def export_field(self, year: Any, horizon: Any, parameter: Any) -> FieldResult:
        """Interpolate a field and store it as a GeoTIFF artifact."""
        key = self.normalize_key(year, horizon, parameter)
        if self.samples is None:
            raise RuntimeError(ErrorMessages.NO_SAMPLES_LOADED)
        if self.region is None:
            raise RuntimeError(ErrorMessages.NO_FINITE_COORDINATES)

        points = list(self.samples.filter(*key))
        grid = await asyncio.to_thread(
            interpolate, points, self.region, self.cell_size_deg, self.power, self.units
        )
        if grid.is_empty:
            raise RequestError(
                ErrorMessages.INSUFFICIENT_POINTS.format(MIN_INTERPOLATION_POINTS, len(points))
            )

        tiff_bytes = await asyncio.to_thread(grid_to_geotiff, grid)
        value_range = grid.value_range or (math.nan, math.nan)
        y, h, p = key

        artifact_ref = await self._store_artifact(
            tiff_bytes,
            {
                "schema_version": "1.0",
                "type": "ocean_field",
                "year": y,
                "horizon": h,
                "parameter": p,
                "unit": PARAMETERS[p]["unit"],
                "bbox": self.region.bbox,
                "crs": "EPSG:4326",
                "cell_size_deg": self.cell_size_deg,
                "shape": list(grid.shape),
                "value_range": list(value_range),
                "idw_power": self.power,
                "distance_units": self.units,
                "point_count": grid.point_count,
            },
            suffix=".tif",
            mime_type="image/tiff",
        )

        return FieldResult(
            artifact_ref=artifact_ref,
            key=key,
            bbox=self.region.bbox,
            shape=list(grid.shape),
            cell_size_deg=self.cell_size_deg,
            point_count=grid.point_count,
            value_range=list(value_range),
            power=self.power,
            units=self.units,
        )

    # ------------------------------------------------------------------
    # Discovery (sync, no I/O)
    # ------------------------------------------------------------------

    def list_parameters(self) -> list[dict]:
        """List all supported parameters."""
        return [
            {
                "id": p["id"],
                "name": p["name"],
                "unit": p["unit"],
                "llm_guidance": p["llm_guidance"],
            }
            for p in PARAMETERS.values()
        ]

    def list_combinations(self) -> list[dict]:
        """Observed (year, horizon) pairs with usable point counts per parameter."""
        if self.samples is None:
            return []
        return [
            {
                "year": year,
                "horizon": horizon,
                "point_counts": {
                    p: len(self.samples.filter(year, horizon, p)) for p in ALL_PARAMETERS
                },
            }
            for year, horizon in self.samples.combinations()
        ]

    def status(self) -> dict:
        """Readiness and cache statistics."""
        return {
            "state": self.state,
            "samples_loaded": len(self.samples) if self.samples is not None else 0,
            "rows_dropped": self.samples.rows_dropped if self.samples is not None else 0,
            "combinations": len(self.samples.combinations()) if self.samples is not None else 0,
            "planned_entries": len(self._planned) or len(self.planned_keys()),
            "cache_entries": len(self.cache),
            "failed_combinations": self._failed_combinations,
            "clip_fallbacks": self._clip_fallbacks,
            "coastline_mode": self.coastline.mode,
            "region_bbox": self.region.bbox if self.region is not None else None,
            "cell_size_deg": self.cell_size_deg,
            "idw_power": self.power,
            "distance_units": self.units,
            "break_count": self.break_count,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_store(self) -> Any:
        """Get the artifact store instance."""
        from chuk_mcp_server import get_artifact_store

        store = get_artifact_store()
        if store is None:
            raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
        return store

    async def _store_artifact(
        self,
        data: bytes,
        metadata: dict,
        suffix: str,
        mime_type: str,
    ) -> str:
        """Store exported data in the artifact store."""
        try:
            store = self._get_store()
            ref = f"ocean/{uuid.uuid4().hex[:12]}{suffix}"

            await store.store(
                ref,
                data,
                mime_type=mime_type,
                metadata=metadata,
                summary=f"Ocean data ({metadata.get('type', 'unknown')})",
            )
            return ref
        except Exception as e:
            logger.error(f"Failed to store artifact: {e}")
            raise
