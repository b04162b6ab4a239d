"""
Land clipper: removes the parts of contour lines that fall on land.

A failed set-difference keeps the original line. Every fallback is logged
and counted.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from shapely.errors import GEOSException
from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

logger = logging.getLogger(__name__)


@dataclass
class ClipResult:
    """Lines left after clipping, plus how many clips fell back."""

    lines: list[LineString] = field(default_factory=list)
    fallbacks: int = 0


def _line_parts(geom: BaseGeometry) -> list[LineString]:
    """Non-empty LineStrings contained in a difference result."""
    if geom.is_empty:
        return []
    if isinstance(geom, LineString):
        return [geom]
    if hasattr(geom, "geoms"):
        parts = []
        for g in geom.geoms:
            parts.extend(_line_parts(g))
        return parts
    return []


def _clip(line: LineString, land: BaseGeometry) -> tuple[list[LineString], bool]:
    """Difference of line and land, and whether it fell back to the original line."""
    try:
        return [p for p in _line_parts(line.difference(land)) if p.length > 0], False
    except (GEOSException, ValueError) as e:
        logger.warning(f"Land clip failed, keeping unclipped line ({len(line.coords)} pts): {e}")
        return [line], True


def clip_line(line: LineString, land: BaseGeometry | None) -> list[LineString]:
    """
    Keep only the portion of a line outside the land polygon.

    Args:
        line: Contour line in lon/lat
        land: Land (multi)polygon, or None to pass the line through

    Returns:
        Zero or more line pieces; the original line if clipping fails
    """
    if land is None or land.is_empty:
        return [line]
    parts, _ = _clip(line, land)
    return parts


def clip_lines(lines: Iterable[LineString], land: BaseGeometry | None) -> ClipResult:
    """Clip many lines against the same land polygon."""
    result = ClipResult()
    if land is None or land.is_empty:
        result.lines = list(lines)
        return result

    prepared = prep(land)
    for line in lines:
        if prepared.disjoint(line):
            result.lines.append(line)
            continue
        parts, fell_back = _clip(line, land)
        result.lines.extend(parts)
        if fell_back:
            result.fallbacks += 1

    if result.fallbacks:
        logger.warning(f"{result.fallbacks} land clips fell back to unclipped lines")
    return result
