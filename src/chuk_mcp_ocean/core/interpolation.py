"""
Interpolation grid builder: inverse distance weighting onto a regular grid.

All functions are synchronous — callers wrap them in asyncio.to_thread().
Grids use the raster convention (row 0 is the northern edge) so they can be
written out as GeoTIFF with a north-up affine transform.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..constants import (
    COINCIDENT_EPSILON,
    DEFAULT_CELL_SIZE_DEG,
    DEFAULT_DISTANCE_UNITS,
    DEFAULT_IDW_POWER,
    DISTANCE_UNITS,
    EARTH_RADIUS_KM,
    IDW_CHUNK_CELLS,
    MAX_GRID_CELLS,
    MIN_CELL_SIZE_DEG,
    MIN_INTERPOLATION_POINTS,
    WEIGHT_SUM_EPSILON,
    ErrorMessages,
)
from .region import Region

logger = logging.getLogger(__name__)

# Type aliases
FloatArray = NDArray[np.floating[Any]]
BoolArray = NDArray[np.bool_]
Transform = Any  # rasterio.Affine


@dataclass(frozen=True)
class Grid:
    """Regular scalar grid over a region with an explicit validity mask."""

    values: FloatArray
    valid: BoolArray
    lons: FloatArray
    lats: FloatArray
    cell_size: float
    transform: Transform
    point_count: int

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.values.shape[0]), int(self.values.shape[1]))

    @property
    def is_empty(self) -> bool:
        return self.values.size == 0

    @property
    def value_range(self) -> tuple[float, float] | None:
        if self.is_empty or not np.any(self.valid):
            return None
        v = self.values[self.valid]
        return (float(np.min(v)), float(np.max(v)))


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def empty_grid(cell_size: float, point_count: int = 0) -> Grid:
    """Explicitly empty result for selections with too few points."""
    return Grid(
        values=_freeze(np.empty((0, 0), dtype=np.float64)),
        valid=_freeze(np.empty((0, 0), dtype=bool)),
        lons=_freeze(np.empty(0, dtype=np.float64)),
        lats=_freeze(np.empty(0, dtype=np.float64)),
        cell_size=cell_size,
        transform=None,
        point_count=point_count,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_settings(cell_size: float, power: float, units: str) -> None:
    """Reject settings that would produce runaway or meaningless grids."""
    if not math.isfinite(cell_size) or cell_size < MIN_CELL_SIZE_DEG:
        raise ValueError(ErrorMessages.INVALID_CELL_SIZE.format(MIN_CELL_SIZE_DEG, cell_size))
    if not math.isfinite(power) or power <= 0:
        raise ValueError(ErrorMessages.INVALID_POWER.format(power))
    if units not in DISTANCE_UNITS:
        raise ValueError(ErrorMessages.INVALID_UNITS.format(units, ", ".join(DISTANCE_UNITS)))


def grid_dimensions(region: Region, cell_size: float) -> tuple[int, int]:
    """Number of (rows, cols) needed to cover the region at a cell size."""
    n_cols = max(1, math.ceil(region.width / cell_size - 1e-9))
    n_rows = max(1, math.ceil(region.height / cell_size - 1e-9))
    if n_rows * n_cols > MAX_GRID_CELLS:
        raise ValueError(ErrorMessages.GRID_TOO_LARGE.format(n_rows, n_cols, MAX_GRID_CELLS))
    return n_rows, n_cols


# ---------------------------------------------------------------------------
# IDW core
# ---------------------------------------------------------------------------


def _canonical_points(points: Iterable[tuple[float, float, float]]) -> FloatArray:
    """Finite points as an (n, 3) array in a fixed order.

    Sorting makes the weighted sums independent of input order.
    """
    arr = np.array(
        [p for p in points if all(math.isfinite(c) for c in p)],
        dtype=np.float64,
    ).reshape(-1, 3)
    if len(arr) == 0:
        return arr
    order = np.lexsort((arr[:, 2], arr[:, 1], arr[:, 0]))
    return arr[order]


def _distances(
    lon: FloatArray,
    lat: FloatArray,
    px: FloatArray,
    py: FloatArray,
    units: str,
) -> FloatArray:
    """Pairwise distances between targets (column vectors) and points (row vectors)."""
    if units == "degrees":
        return np.hypot(lon - px, lat - py)

    lat1 = np.radians(lat)
    lat2 = np.radians(py)
    dlat = lat2 - lat1
    dlon = np.radians(px - lon)
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def _idw(
    target_lon: FloatArray,
    target_lat: FloatArray,
    pts: FloatArray,
    power: float,
    units: str,
) -> tuple[FloatArray, BoolArray]:
    """IDW values and validity for flat target arrays, processed in chunks."""
    n = target_lon.shape[0]
    values = np.full(n, np.nan, dtype=np.float64)
    valid = np.zeros(n, dtype=bool)

    px = pts[:, 0][np.newaxis, :]
    py = pts[:, 1][np.newaxis, :]
    pv = pts[:, 2][np.newaxis, :]

    for start in range(0, n, IDW_CHUNK_CELLS):
        stop = min(start + IDW_CHUNK_CELLS, n)
        lon = target_lon[start:stop, np.newaxis]
        lat = target_lat[start:stop, np.newaxis]

        d = _distances(lon, lat, px, py, units)
        coincident = d < COINCIDENT_EPSILON

        with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
            w = np.where(coincident, 0.0, 1.0 / d**power)
            wsum = w.sum(axis=1)
            chunk = (w * pv).sum(axis=1) / wsum
            chunk_valid = (wsum > WEIGHT_SUM_EPSILON) & np.isfinite(chunk)

        hits = coincident.any(axis=1)
        if np.any(hits):
            c = coincident[hits]
            chunk[hits] = np.where(c, pv, 0.0).sum(axis=1) / c.sum(axis=1)
            chunk_valid[hits] = True

        values[start:stop] = np.where(chunk_valid, chunk, np.nan)
        valid[start:stop] = chunk_valid

    return values, valid


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def interpolate(
    points: Iterable[tuple[float, float, float]],
    region: Region,
    cell_size: float = DEFAULT_CELL_SIZE_DEG,
    power: float = DEFAULT_IDW_POWER,
    units: str = DEFAULT_DISTANCE_UNITS,
) -> Grid:
    """
    Interpolate scattered (lon, lat, value) points onto a regular grid.

    Each cell centre gets sum(w_i * v_i) / sum(w_i) with w_i = 1 / d_i ** power.
    A centre within COINCIDENT_EPSILON of a sample takes that sample's value
    exactly.

    Args:
        points: Iterable of (lon, lat, value); non-finite entries are skipped
        region: Region the grid covers
        cell_size: Cell size in degrees
        power: IDW distance exponent
        units: Distance units for weighting ("kilometers" or "degrees")

    Returns:
        Grid, or an empty grid when fewer than 3 usable points remain

    Raises:
        ValueError: If settings are invalid or the grid would be too large
    """
    from rasterio.transform import from_origin

    validate_settings(cell_size, power, units)
    pts = _canonical_points(points)

    if len(pts) < MIN_INTERPOLATION_POINTS:
        logger.debug(
            ErrorMessages.INSUFFICIENT_POINTS.format(MIN_INTERPOLATION_POINTS, len(pts))
        )
        return empty_grid(cell_size, point_count=len(pts))

    n_rows, n_cols = grid_dimensions(region, cell_size)
    lons = region.west + (np.arange(n_cols) + 0.5) * cell_size
    lats = region.north - (np.arange(n_rows) + 0.5) * cell_size

    lon_mesh, lat_mesh = np.meshgrid(lons, lats)
    flat_values, flat_valid = _idw(lon_mesh.ravel(), lat_mesh.ravel(), pts, power, units)

    invalid_count = int(np.sum(~flat_valid))
    if invalid_count:
        logger.warning(f"{invalid_count} grid cells left undefined (weight sum ~0)")

    return Grid(
        values=_freeze(flat_values.reshape(n_rows, n_cols)),
        valid=_freeze(flat_valid.reshape(n_rows, n_cols)),
        lons=_freeze(lons),
        lats=_freeze(lats),
        cell_size=cell_size,
        transform=from_origin(region.west, region.north, cell_size, cell_size),
        point_count=len(pts),
    )


def sample_field(
    points: Iterable[tuple[float, float, float]],
    lon: float,
    lat: float,
    power: float = DEFAULT_IDW_POWER,
    units: str = DEFAULT_DISTANCE_UNITS,
) -> float:
    """IDW estimate at a single location (NaN with too few points)."""
    if not math.isfinite(power) or power <= 0:
        raise ValueError(ErrorMessages.INVALID_POWER.format(power))
    if units not in DISTANCE_UNITS:
        raise ValueError(ErrorMessages.INVALID_UNITS.format(units, ", ".join(DISTANCE_UNITS)))

    pts = _canonical_points(points)
    if len(pts) < MIN_INTERPOLATION_POINTS:
        return float("nan")

    values, valid = _idw(
        np.array([lon], dtype=np.float64),
        np.array([lat], dtype=np.float64),
        pts,
        power,
        units,
    )
    return float(values[0]) if valid[0] else float("nan")


def grid_to_geotiff(grid: Grid) -> bytes:
    """
    Convert a grid to single-band float32 GeoTIFF bytes (EPSG:4326).

    Invalid cells are written as NaN nodata.
    """
    from rasterio.crs import CRS
    from rasterio.io import MemoryFile

    if grid.is_empty:
        raise ValueError(
            ErrorMessages.INSUFFICIENT_POINTS.format(MIN_INTERPOLATION_POINTS, grid.point_count)
        )

    height, width = grid.shape
    data = np.where(grid.valid, grid.values, np.nan).astype("float32")

    memfile = MemoryFile()
    with memfile.open(
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype="float32",
        crs=CRS.from_epsg(4326),
        transform=grid.transform,
        nodata=float("nan"),
    ) as dst:
        dst.write(data[np.newaxis, :])

    return memfile.read()
