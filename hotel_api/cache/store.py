"""In-memory cache of dataset payloads with fetch timestamps."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/store")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """Dataset payload with the time it was stored."""
    key: str
    data: Any
    timestamp: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.timestamp).total_seconds()


class CacheStore:
    """
    Keyed map of CacheEntry objects, one per dataset key.

    Entries are replaced wholesale on every refresh and only removed by an
    explicit delete/clear. No I/O and no locking: callers run on a single
    event loop and every method completes without suspending.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for `key`, fresh or stale, or None."""
        return self._entries.get(key)

    def set(self, key: str, data: Any, timestamp: datetime | None = None) -> CacheEntry:
        """Store `data` under `key`, stamped now unless a timestamp is given."""
        entry = CacheEntry(key=key, data=data, timestamp=timestamp or self._clock())
        self._entries[key] = entry
        return entry

    def is_fresh(self, entry: CacheEntry, max_age_seconds: float) -> bool:
        """True when the entry is younger than `max_age_seconds`."""
        return entry.age_seconds(self._clock()) < max_age_seconds

    def delete(self, key: str) -> bool:
        """Remove `key`; returns whether it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._entries)} cache entries")
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))
