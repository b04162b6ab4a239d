"""
Write-once result cache for clipped contour sets.

Entries are immutable and each key is written at most once; the insertion
path is the only place that takes a lock. Reads are lock-free dict lookups.
"""

import threading
from dataclasses import dataclass

from .contours import ContourLine

CacheKey = tuple[int, str, str]


@dataclass(frozen=True)
class CacheEntry:
    """Clipped contour lines for one (year, horizon, parameter) key."""

    key: CacheKey
    lines: tuple[ContourLine, ...]
    breaks: tuple[float, ...]
    point_count: int
    value_range: tuple[float, float] | None
    clip_fallbacks: int = 0
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines


class ResultCache:
    """Thread-safe insert-if-absent map."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def put_if_absent(self, entry: CacheEntry) -> bool:
        """Store an entry unless its key is already present. Returns True if stored."""
        with self._lock:
            if entry.key in self._entries:
                return False
            self._entries[entry.key] = entry
            return True

    def get(self, key: CacheKey) -> CacheEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[CacheKey]:
        with self._lock:
            return sorted(self._entries)
