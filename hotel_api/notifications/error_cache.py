"""Short-lived memory of recently reported errors, keyed by fingerprint."""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from hotel_api.cache.store import utcnow
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notifications/error_cache")

# sha256 over "message|context|stack", truncated to 16 hex chars (64 bits).
FINGERPRINT_LENGTH = 16
DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 100


def error_fingerprint(message: str, context: str, stack: Optional[str] = None) -> str:
    """Deterministic dedup key for an error occurrence."""
    raw = f"{message}|{context}|{stack or ''}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass
class ErrorEntry:
    hash: str
    timestamp: datetime
    count: int = 1


class ErrorDeduplicationCache:
    """
    TTL map of fingerprints used to suppress repeat notifications.

    Expiry is lazy: `is_duplicate` treats and evicts entries older than the
    TTL as absent. `record` compacts the map once it grows past
    `max_entries`; correctness never depends on that compaction.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, ErrorEntry] = {}
        self.last_cleanup: Optional[datetime] = None

    def _expired(self, entry: ErrorEntry, now: datetime) -> bool:
        return (now - entry.timestamp).total_seconds() > self.ttl_seconds

    def is_duplicate(self, fingerprint: str) -> bool:
        entry = self._entries.get(fingerprint)
        if entry is None:
            return False
        if self._expired(entry, self._clock()):
            del self._entries[fingerprint]
            return False
        return True

    def record(self, fingerprint: str) -> ErrorEntry:
        now = self._clock()
        entry = self._entries.get(fingerprint)
        if entry is not None and not self._expired(entry, now):
            entry.count += 1
            entry.timestamp = now
        else:
            entry = ErrorEntry(hash=fingerprint, timestamp=now)
            self._entries[fingerprint] = entry

        if len(self._entries) > self.max_entries:
            self.cleanup()
        return entry

    def note_repeat(self, fingerprint: str) -> Optional[ErrorEntry]:
        """Count a suppressed occurrence without extending the entry's TTL."""
        entry = self._entries.get(fingerprint)
        if entry is not None:
            entry.count += 1
        return entry

    def get(self, fingerprint: str) -> Optional[ErrorEntry]:
        return self._entries.get(fingerprint)

    def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        expired = [h for h, e in self._entries.items() if self._expired(e, now)]
        for fingerprint in expired:
            del self._entries[fingerprint]
        self.last_cleanup = now
        if expired:
            logger.debug(f"Error cache cleanup removed {len(expired)} entries")
        return len(expired)

    def stats(self) -> dict[str, Any]:
        return {
            "total_errors": len(self._entries),
            "last_cleanup": self.last_cleanup.isoformat() if self.last_cleanup else None,
        }

    def __len__(self) -> int:
        return len(self._entries)
