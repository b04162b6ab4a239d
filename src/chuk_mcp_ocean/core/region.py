"""
Region builder: sample bounding region and the local coastline.

Buffering uses a flat approximation: the km margin is converted to degrees
at the region's mid latitude (1 deg lat = 111.32 km, 1 deg lon = 111.32 *
cos(lat) km). The error is well under a grid cell for regional,
mid-latitude extents; it degrades towards the poles and is not meant for
global or polar datasets.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import geojson
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon, box, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from ..constants import (
    DEFAULT_REGION_MARGIN_KM,
    KM_PER_DEGREE_LAT,
    CoastlineMode,
    ErrorMessages,
)

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """No input point has finite coordinates."""


@dataclass(frozen=True)
class Region:
    """Axis-aligned region in degrees, already expanded by its margin."""

    west: float
    south: float
    east: float
    north: float
    margin_km: float

    @property
    def bbox(self) -> list[float]:
        return [self.west, self.south, self.east, self.north]

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def contains(self, lon: float, lat: float) -> bool:
        return self.west <= lon <= self.east and self.south <= lat <= self.north

    def to_polygon(self) -> Polygon:
        return box(self.west, self.south, self.east, self.north)


@dataclass(frozen=True)
class LocalCoastline:
    """Land polygon prepared for one region, with the mode that produced it."""

    geometry: BaseGeometry | None
    mode: str

    @property
    def available(self) -> bool:
        return self.geometry is not None and not self.geometry.is_empty


def km_to_degrees(km: float, latitude: float) -> tuple[float, float]:
    """Convert a distance to (dlon, dlat) degrees at a latitude."""
    dlat = km / KM_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
    dlon = km / (KM_PER_DEGREE_LAT * cos_lat)
    return dlon, dlat


def build_region(
    points: Iterable[tuple[float, ...]],
    margin_km: float = DEFAULT_REGION_MARGIN_KM,
) -> Region:
    """
    Derive the bounding region of the points, expanded by a margin.

    Args:
        points: Iterable of (lon, lat, ...) tuples; non-finite coordinates are ignored
        margin_km: Margin added on every side, in kilometres

    Returns:
        Region containing every finite input coordinate

    Raises:
        EmptyInputError: If no point has finite coordinates
    """
    if margin_km < 0:
        raise ValueError(ErrorMessages.INVALID_MARGIN.format(margin_km))

    west = south = math.inf
    east = north = -math.inf
    for p in points:
        lon, lat = p[0], p[1]
        if not (math.isfinite(lon) and math.isfinite(lat)):
            continue
        west = min(west, lon)
        east = max(east, lon)
        south = min(south, lat)
        north = max(north, lat)

    if not math.isfinite(west):
        raise EmptyInputError(ErrorMessages.NO_FINITE_COORDINATES)

    mid_lat = (south + north) / 2.0
    dlon, dlat = km_to_degrees(margin_km, mid_lat)

    region = Region(
        west=west - dlon,
        south=max(south - dlat, -90.0),
        east=east + dlon,
        north=min(north + dlat, 90.0),
        margin_km=margin_km,
    )
    logger.info(
        f"Region [{region.west:.4f}, {region.south:.4f}, {region.east:.4f}, "
        f"{region.north:.4f}] (margin {margin_km} km)"
    )
    return region


# ---------------------------------------------------------------------------
# Coastline
# ---------------------------------------------------------------------------


def load_coastline(path: str | Path) -> BaseGeometry:
    """
    Read a land polygon from a GeoJSON file.

    Accepts a bare geometry, a Feature, or a FeatureCollection. All polygonal
    parts are merged into a single (multi)polygon.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = geojson.load(f)

    if data.get("type") == "FeatureCollection":
        geometries = [feat["geometry"] for feat in data["features"] if feat.get("geometry")]
    elif data.get("type") == "Feature":
        geometries = [data["geometry"]] if data.get("geometry") else []
    else:
        geometries = [data]

    polygons = [
        g for g in (shape(geom) for geom in geometries) if isinstance(g, (Polygon, MultiPolygon))
    ]
    if not polygons:
        raise ValueError(ErrorMessages.INVALID_COASTLINE.format(path))

    land = unary_union(polygons)
    logger.info(f"Loaded coastline from {path} ({len(polygons)} polygon features)")
    return land


def prepare_local_coastline(
    global_land: BaseGeometry | None,
    region: Region | None,
) -> LocalCoastline:
    """
    Clip the global land polygon to the region once.

    Falls back to the unclipped global polygon when the intersection is empty
    or fails; with no global polygon, clipping is disabled.
    """
    if global_land is None or global_land.is_empty:
        logger.info("No coastline available, contour clipping disabled")
        return LocalCoastline(geometry=None, mode=CoastlineMode.NONE)

    if region is None:
        return LocalCoastline(geometry=global_land, mode=CoastlineMode.GLOBAL)

    try:
        local = global_land.intersection(region.to_polygon())
    except (GEOSException, ValueError) as e:
        logger.warning(f"Coastline clip to region failed, using global polygon: {e}")
        return LocalCoastline(geometry=global_land, mode=CoastlineMode.GLOBAL)

    if local.is_empty:
        logger.warning("Coastline does not intersect the region, using global polygon")
        return LocalCoastline(geometry=global_land, mode=CoastlineMode.GLOBAL)

    logger.info(f"Coastline clipped to region ({local.geom_type})")
    return LocalCoastline(geometry=local, mode=CoastlineMode.CLIPPED)
