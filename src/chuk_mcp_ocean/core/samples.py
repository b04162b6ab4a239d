"""
Sample store: typed oceanographic point samples grouped by (year, horizon).

Rows arrive as string mappings (csv.DictReader). Required fields
(longitude, latitude, year, horizon) that fail to parse drop the row;
parameter fields that fail to parse become NaN so only that
(sample, parameter) pair is excluded.
"""

import csv
import logging
import math
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    ALL_HORIZONS,
    ALL_PARAMETERS,
    COLUMN_DEPTH,
    COLUMN_HORIZON,
    COLUMN_LATITUDE,
    COLUMN_LONGITUDE,
    COLUMN_STATION,
    COLUMN_YEAR,
    PARAMETERS,
    RETRY_ATTEMPTS,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
    ErrorMessages,
    Parameter,
)

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """A required field of a sample row could not be parsed."""


@dataclass(frozen=True)
class Sample:
    """A single geo-tagged sample at one depth horizon."""

    longitude: float
    latitude: float
    year: int
    horizon: str
    temp_c: float = math.nan
    salinity_psu: float = math.nan
    oxygen_mgl: float = math.nan
    ph: float = math.nan
    depth_m: float = math.nan
    station: str | None = None

    @property
    def has_valid_coordinates(self) -> bool:
        return math.isfinite(self.longitude) and math.isfinite(self.latitude)

    def value(self, parameter: str) -> float:
        return PARAMETER_ACCESSORS[parameter](self)

    @property
    def values(self) -> dict[str, float]:
        return {p: accessor(self) for p, accessor in PARAMETER_ACCESSORS.items()}


PARAMETER_ACCESSORS: dict[str, Callable[[Sample], float]] = {
    Parameter.TEMP_C: lambda s: s.temp_c,
    Parameter.SALINITY_PSU: lambda s: s.salinity_psu,
    Parameter.OXYGEN_MGL: lambda s: s.oxygen_mgl,
    Parameter.PH: lambda s: s.ph,
}


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


def parse_float(raw: object) -> float:
    """Parse a numeric field, returning NaN for anything unparsable."""
    if raw is None:
        return math.nan
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip()
    if not text:
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def parse_year(raw: object) -> int:
    """Coerce 2020, 2020.0, "2020" and " 2020.0 " to 2020."""
    if isinstance(raw, bool):
        raise ValueError(ErrorMessages.INVALID_YEAR.format(raw))
    if isinstance(raw, int):
        return raw
    value = parse_float(raw)
    if not math.isfinite(value) or value != int(value):
        raise ValueError(ErrorMessages.INVALID_YEAR.format(raw))
    return int(value)


def normalize_horizon(raw: object) -> str:
    return str(raw).strip().lower()


def normalize_parameter(raw: object) -> str:
    return str(raw).strip().lower()


def _required(row: Mapping[str, object], column: str) -> object:
    raw = row.get(column)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ParseError(ErrorMessages.MISSING_FIELD.format(column))
    return raw


def parse_row(row: Mapping[str, object]) -> Sample:
    """Convert one raw row into a Sample, raising ParseError on bad required fields."""
    lon_raw = _required(row, COLUMN_LONGITUDE)
    lat_raw = _required(row, COLUMN_LATITUDE)
    lon = parse_float(lon_raw)
    lat = parse_float(lat_raw)
    if math.isnan(lon) and str(lon_raw).strip().lower() != "nan":
        raise ParseError(ErrorMessages.UNPARSABLE_FIELD.format(COLUMN_LONGITUDE, lon_raw))
    if math.isnan(lat) and str(lat_raw).strip().lower() != "nan":
        raise ParseError(ErrorMessages.UNPARSABLE_FIELD.format(COLUMN_LATITUDE, lat_raw))

    year_raw = _required(row, COLUMN_YEAR)
    try:
        year = parse_year(year_raw)
    except ValueError as e:
        raise ParseError(str(e)) from e

    horizon = normalize_horizon(_required(row, COLUMN_HORIZON))
    if horizon not in ALL_HORIZONS:
        raise ParseError(ErrorMessages.UNKNOWN_HORIZON.format(horizon, ", ".join(ALL_HORIZONS)))

    values = {p: parse_float(row.get(PARAMETERS[p]["column"])) for p in ALL_PARAMETERS}
    station = row.get(COLUMN_STATION)
    if station is not None:
        station = str(station).strip() or None

    return Sample(
        longitude=lon,
        latitude=lat,
        year=year,
        horizon=horizon,
        depth_m=parse_float(row.get(COLUMN_DEPTH)),
        station=station,
        **values,
    )


# ---------------------------------------------------------------------------
# Sample set
# ---------------------------------------------------------------------------


class SampleView:
    """Lazy, restartable view of (lon, lat, value) for one selection."""

    def __init__(self, samples: tuple[Sample, ...], parameter: str) -> None:
        self._samples = samples
        self._parameter = parameter

    def __iter__(self) -> Iterator[tuple[float, float, float]]:
        accessor = PARAMETER_ACCESSORS[self._parameter]
        for s in self._samples:
            if not s.has_valid_coordinates:
                continue
            v = accessor(s)
            if math.isfinite(v):
                yield (s.longitude, s.latitude, v)

    def __len__(self) -> int:
        return sum(1 for _ in self)


class SampleSet:
    """Immutable collection of samples grouped by (year, horizon)."""

    def __init__(self, samples: Iterable[Sample], rows_dropped: int = 0) -> None:
        groups: dict[tuple[int, str], list[Sample]] = {}
        for s in samples:
            groups.setdefault((s.year, s.horizon), []).append(s)
        self._groups: dict[tuple[int, str], tuple[Sample, ...]] = {
            k: tuple(v) for k, v in groups.items()
        }
        self.rows_dropped = rows_dropped

    def __len__(self) -> int:
        return sum(len(g) for g in self._groups.values())

    def __iter__(self) -> Iterator[Sample]:
        for key in sorted(self._groups):
            yield from self._groups[key]

    def combinations(self) -> list[tuple[int, str]]:
        """Observed (year, horizon) pairs, sorted."""
        return sorted(self._groups)

    def filter(self, year: int, horizon: str, parameter: str) -> SampleView:
        if parameter not in PARAMETER_ACCESSORS:
            raise ValueError(
                ErrorMessages.UNKNOWN_PARAMETER.format(parameter, ", ".join(ALL_PARAMETERS))
            )
        return SampleView(self._groups.get((year, horizon), ()), parameter)

    def coordinates(self) -> Iterator[tuple[float, float]]:
        """All finite sample coordinates, across every group."""
        for s in self:
            if s.has_valid_coordinates:
                yield (s.longitude, s.latitude)

    def value_range(self, year: int, horizon: str, parameter: str) -> tuple[float, float] | None:
        values = [v for _, _, v in self.filter(year, horizon, parameter)]
        if not values:
            return None
        return (min(values), max(values))


def load(rows: Iterable[Mapping[str, object]]) -> SampleSet:
    """Build a SampleSet, dropping rows whose required fields fail to parse."""
    samples = []
    dropped = 0
    for line_no, row in enumerate(rows, start=1):
        try:
            samples.append(parse_row(row))
        except ParseError as e:
            dropped += 1
            logger.debug(f"Dropping row {line_no}: {e}")

    if dropped:
        logger.warning(f"Dropped {dropped} unparsable rows ({len(samples)} kept)")
    logger.info(f"Loaded {len(samples)} samples")
    return SampleSet(samples, rows_dropped=dropped)


# ---------------------------------------------------------------------------
# Source reading
# ---------------------------------------------------------------------------


def _is_transient_io_error(exc: BaseException) -> bool:
    if isinstance(exc, (FileNotFoundError, IsADirectoryError, PermissionError)):
        return False
    return isinstance(exc, (ConnectionError, TimeoutError, OSError))


_retry_io = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
    retry=retry_if_exception(_is_transient_io_error),
    reraise=True,
)


@_retry_io
def _read_rows(path: Path) -> list[dict[str, str]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return list(csv.DictReader(f))


def read_samples(path: str | Path) -> SampleSet:
    """
    Read samples from a delimited file.

    Args:
        path: CSV file with a header row

    Returns:
        SampleSet with unparsable rows dropped

    Raises:
        FileNotFoundError: If the source does not exist
        OSError: If the source cannot be read after retries
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sample source not found: {path}")

    rows = _read_rows(path)
    logger.info(f"Read {len(rows)} rows from {path}")
    return load(rows)
