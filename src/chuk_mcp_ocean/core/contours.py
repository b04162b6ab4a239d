"""
Contour extractor: marching squares over an interpolated grid.

Each 2x2 window of grid nodes is classified against the threshold
(a node is "above" when value >= threshold). Crossing points are linearly
interpolated along window edges; every edge is evaluated once per threshold
so the two windows sharing it get the identical point.

Saddle windows (diagonal corners above) are resolved by the mean of the four
corners: if the mean is >= threshold the above corners are joined through the
centre and the two below corners are cut off; otherwise the two above corners
are cut off. The same rule applies to every window.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import DEFAULT_BREAK_COUNT, MAX_BREAK_COUNT, STITCH_TOLERANCE_DEG, ErrorMessages
from .interpolation import Grid

logger = logging.getLogger(__name__)

Point = tuple[float, float]


class InvalidBreaksError(ValueError):
    """Explicit break values are not finite or not strictly increasing."""


# Window edges: top, right, bottom, left
_TOP, _RIGHT, _BOTTOM, _LEFT = 0, 1, 2, 3

# Saddle segment pairs
_CUT_TR_BL = ((_TOP, _RIGHT), (_BOTTOM, _LEFT))
_CUT_TL_BR = ((_LEFT, _TOP), (_RIGHT, _BOTTOM))


@dataclass(frozen=True)
class ContourLine:
    """A connected polyline tagged with the threshold it traces."""

    threshold: float
    coordinates: tuple[Point, ...]

    @property
    def is_closed(self) -> bool:
        return len(self.coordinates) > 2 and self.coordinates[0] == self.coordinates[-1]

    @property
    def length(self) -> float:
        return sum(
            math.hypot(b[0] - a[0], b[1] - a[1])
            for a, b in zip(self.coordinates, self.coordinates[1:])
        )


# ---------------------------------------------------------------------------
# Break values
# ---------------------------------------------------------------------------


def derive_breaks(
    data_min: float,
    data_max: float,
    count: int = DEFAULT_BREAK_COUNT,
) -> list[float]:
    """
    Split [data_min, data_max] into `count` equal intervals.

    Only the interior boundaries are returned: a contour at either extremum
    is degenerate.
    """
    if count < 2 or count > MAX_BREAK_COUNT:
        raise ValueError(ErrorMessages.INVALID_BREAK_COUNT.format(MAX_BREAK_COUNT, count))
    if not (math.isfinite(data_min) and math.isfinite(data_max)) or data_max <= data_min:
        return []

    step = (data_max - data_min) / count
    breaks = [data_min + k * step for k in range(1, count)]
    return [b for b in breaks if data_min < b < data_max]


def normalize_breaks(
    breaks: Sequence[float],
    data_min: float,
    data_max: float,
) -> list[float]:
    """Validate explicit breaks and drop those outside (data_min, data_max)."""
    try:
        values = [float(b) for b in breaks]
    except (TypeError, ValueError) as e:
        raise InvalidBreaksError(ErrorMessages.BREAKS_NOT_FINITE.format(list(breaks))) from e
    if not all(math.isfinite(b) for b in values):
        raise InvalidBreaksError(ErrorMessages.BREAKS_NOT_FINITE.format(values))
    if any(b >= c for b, c in zip(values, values[1:])):
        raise InvalidBreaksError(ErrorMessages.BREAKS_NOT_INCREASING.format(values))

    kept = [b for b in values if data_min < b < data_max]
    if len(kept) < len(values):
        logger.debug(f"Dropped {len(values) - len(kept)} breaks outside ({data_min}, {data_max})")
    return kept


# ---------------------------------------------------------------------------
# Marching squares
# ---------------------------------------------------------------------------


def _edge_point(grid: Grid, threshold: float, edge: tuple[str, int, int]) -> Point:
    """Crossing point on a grid edge, always interpolated from its lower-index node."""
    kind, i, j = edge
    i2, j2 = (i, j + 1) if kind == "h" else (i + 1, j)

    va = float(grid.values[i, j])
    vb = float(grid.values[i2, j2])
    f = (threshold - va) / (vb - va)

    lon_a, lat_a = float(grid.lons[j]), float(grid.lats[i])
    lon_b, lat_b = float(grid.lons[j2]), float(grid.lats[i2])
    return (lon_a + f * (lon_b - lon_a), lat_a + f * (lat_b - lat_a))


def trace_segments(grid: Grid, threshold: float) -> list[tuple[Point, Point]]:
    """All contour segments of one threshold, in row-major window order."""
    if grid.is_empty or grid.shape[0] < 2 or grid.shape[1] < 2:
        return []

    v = grid.values
    ok = grid.valid
    with np.errstate(invalid="ignore"):
        above = np.where(ok, v >= threshold, False)

    tl = above[:-1, :-1]
    tr = above[:-1, 1:]
    br = above[1:, 1:]
    bl = above[1:, :-1]
    case = tl * 8 + tr * 4 + br * 2 + bl * 1
    window_valid = ok[:-1, :-1] & ok[:-1, 1:] & ok[1:, 1:] & ok[1:, :-1]
    active = window_valid & (case != 0) & (case != 15)

    cache: dict[tuple[str, int, int], Point] = {}

    def point(edge: tuple[str, int, int]) -> Point:
        if edge not in cache:
            cache[edge] = _edge_point(grid, threshold, edge)
        return cache[edge]

    segments: list[tuple[Point, Point]] = []
    for i, j in zip(*np.nonzero(active)):
        i, j = int(i), int(j)
        edges = {
            _TOP: ("h", i, j),
            _RIGHT: ("v", i, j + 1),
            _BOTTOM: ("h", i + 1, j),
            _LEFT: ("v", i, j),
        }
        c = int(case[i, j])

        if c in (5, 10):
            mean = (v[i, j] + v[i, j + 1] + v[i + 1, j + 1] + v[i + 1, j]) / 4.0
            centre_above = mean >= threshold
            if c == 10:
                pairs = _CUT_TR_BL if centre_above else _CUT_TL_BR
            else:
                pairs = _CUT_TL_BR if centre_above else _CUT_TR_BL
        else:
            crossed = []
            if tl[i, j] != tr[i, j]:
                crossed.append(_TOP)
            if tr[i, j] != br[i, j]:
                crossed.append(_RIGHT)
            if bl[i, j] != br[i, j]:
                crossed.append(_BOTTOM)
            if tl[i, j] != bl[i, j]:
                crossed.append(_LEFT)
            pairs = ((crossed[0], crossed[1]),)

        for a, b in pairs:
            segments.append((point(edges[a]), point(edges[b])))

    return segments


def stitch(
    segments: Sequence[tuple[Point, Point]],
    tolerance: float = STITCH_TOLERANCE_DEG,
) -> list[list[Point]]:
    """
    Join segments sharing endpoints into continuous polylines.

    Endpoints match when they agree within `tolerance`. Zero-length segments
    are discarded. Closed rings repeat their first point at the end.
    """

    def key(p: Point) -> tuple[int, int]:
        return (round(p[0] / tolerance), round(p[1] / tolerance))

    segs = [(a, b) for a, b in segments if key(a) != key(b)]
    adjacency: dict[tuple[int, int], list[int]] = defaultdict(list)
    for idx, (a, b) in enumerate(segs):
        adjacency[key(a)].append(idx)
        adjacency[key(b)].append(idx)

    used = [False] * len(segs)

    def follow(p: Point) -> Point | None:
        k = key(p)
        for idx in adjacency[k]:
            if not used[idx]:
                used[idx] = True
                a, b = segs[idx]
                return b if key(a) == k else a
        return None

    lines = []
    for idx, (a, b) in enumerate(segs):
        if used[idx]:
            continue
        used[idx] = True

        forward = [a, b]
        while True:
            nxt = follow(forward[-1])
            if nxt is None:
                break
            forward.append(nxt)

        backward: list[Point] = []
        head = a
        while True:
            nxt = follow(head)
            if nxt is None:
                break
            backward.append(nxt)
            head = nxt

        lines.append(backward[::-1] + forward)

    return lines


def extract(grid: Grid, break_values: Sequence[float]) -> dict[float, list[ContourLine]]:
    """
    Trace contour lines for every break value.

    Args:
        grid: Interpolated grid
        break_values: Thresholds to trace

    Returns:
        Mapping threshold -> list of ContourLine. Thresholds not strictly
        inside the grid's value range map to an empty list.
    """
    result: dict[float, list[ContourLine]] = {float(t): [] for t in break_values}
    value_range = grid.value_range
    if value_range is None:
        return result

    grid_min, grid_max = value_range
    for t in result:
        if not grid_min < t < grid_max:
            continue
        polylines = stitch(trace_segments(grid, t))
        result[t] = [
            ContourLine(threshold=t, coordinates=tuple(line))
            for line in polylines
            if len(line) >= 2
        ]

    total = sum(len(lines) for lines in result.values())
    logger.debug(f"Extracted {total} contour lines over {len(result)} thresholds")
    return result
