"""Tiered dataset loading: fresh cache, upstream, stale cache, local snapshot.

`DataLoader.load(key)` answers "give me dataset X" with the best data
available and never raises. The tiers are tried strictly in order:

1. fresh cache entry (younger than the freshness window), unless an admin
   bypass rule is active for the key or for ALL
2. upstream API, bounded by a timeout; success refreshes the cache and, when
   the payload changed, the local snapshot
3. stale cache entry
4. local snapshot, which then seeds the cache
5. unavailable (None)

Concurrent loads of the same key share one in-flight run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from hotel_api.cache.control import CacheController
from hotel_api.cache.store import CacheStore
from hotel_api.data_sources.base import DatasetFetcher, FetchOk, FetchTimeout, SnapshotStore
from hotel_api.datasets import DATASETS
from hotel_api.notifications.reporter import ErrorReporter
from hotel_api.request_dedup import RequestDeduplicator
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_loader")

FRESHNESS_WINDOW_SECONDS = 24 * 60 * 60
FETCH_TIMEOUT_SECONDS = 5.0


class LoadSource(str, Enum):
    """Which tier answered a load."""
    FRESH_CACHE = "fresh_cache"
    UPSTREAM = "upstream"
    STALE_CACHE = "stale_cache"
    SNAPSHOT = "snapshot"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class LoadResult:
    key: str
    source: LoadSource
    data: Any = None

    @property
    def available(self) -> bool:
        return self.source is not LoadSource.UNAVAILABLE


class DataLoader:
    """Orchestrates cache, upstream fetcher and snapshots into the fallback chain."""

    def __init__(
        self,
        store: CacheStore,
        controller: CacheController,
        fetcher: DatasetFetcher,
        snapshots: SnapshotStore,
        upstream_url: Callable[[str], Optional[str]],
        *,
        freshness_seconds: float = FRESHNESS_WINDOW_SECONDS,
        fetch_timeout: float = FETCH_TIMEOUT_SECONDS,
        reporter: Optional[ErrorReporter] = None,
        dedup: Optional[RequestDeduplicator] = None,
    ) -> None:
        self.store = store
        self.controller = controller
        self.fetcher = fetcher
        self.snapshots = snapshots
        self.upstream_url = upstream_url
        self.freshness_seconds = freshness_seconds
        self.fetch_timeout = fetch_timeout
        self.reporter = reporter
        self.dedup = dedup or RequestDeduplicator()

    async def load(self, key: str) -> Optional[Any]:
        """Return the dataset for `key`, or None when every tier is empty."""
        result = await self.load_result(key)
        return result.data

    async def load_result(self, key: str) -> LoadResult:
        """Like load(), but tagged with the tier that answered."""
        try:
            return await self.dedup.run(key, lambda: self._load_guarded(key))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception(f"[{key}] Critical error in load")
            self._report(exc, key)
            return LoadResult(key=key, source=LoadSource.UNAVAILABLE)

    async def load_many(self, keys: Iterable[str]) -> dict[str, Optional[Any]]:
        """Load several datasets concurrently; each key resolves independently."""
        unique = list(dict.fromkeys(keys))
        results = await asyncio.gather(*(self.load_result(key) for key in unique))
        return {result.key: result.data for result in results}

    async def _load_guarded(self, key: str) -> LoadResult:
        try:
            return await self._load(key)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception(f"[{key}] Critical error in load")
            self._report(exc, key)
            return LoadResult(key=key, source=LoadSource.UNAVAILABLE)

    def _report(self, exc: Exception, key: str) -> None:
        if self.reporter is not None:
            self.reporter.report_in_background(exc, f"data_loader/{key}", critical=True)

    async def _load(self, key: str) -> LoadResult:
        bypass = self.controller.should_bypass(key)

        if not bypass:
            cached = self.store.get(key)
            if cached is not None and self.store.is_fresh(cached, self.freshness_seconds):
                logger.debug(f"[{key}] Data source: cache (fresh)")
                return LoadResult(key=key, source=LoadSource.FRESH_CACHE, data=cached.data)
        else:
            logger.info(f"[{key}] Cache bypassed by admin rule")

        fetched = await self._fetch_upstream(key)
        if fetched is not None:
            await self._refresh_snapshot(key, fetched.data)
            self.store.set(key, fetched.data)
            logger.debug(f"[{key}] Data source: upstream")
            return LoadResult(key=key, source=LoadSource.UPSTREAM, data=fetched.data)

        # re-read after the await; a concurrent flush or refresh may have run
        stale = self.store.get(key)
        if stale is not None:
            logger.info(f"[{key}] Data source: cache (stale)")
            return LoadResult(key=key, source=LoadSource.STALE_CACHE, data=stale.data)

        local = await self.snapshots.read(key)
        if local is not None:
            logger.info(f"[{key}] Data source: local snapshot")
            self.store.set(key, local)
            return LoadResult(key=key, source=LoadSource.SNAPSHOT, data=local)

        logger.warning(f"[{key}] No data source found")
        return LoadResult(key=key, source=LoadSource.UNAVAILABLE)

    async def _fetch_upstream(self, key: str) -> Optional[FetchOk]:
        if key not in DATASETS:
            logger.warning(f"[{key}] Unknown dataset key; skipping upstream")
            return None
        url = self.upstream_url(key)
        if not url:
            logger.debug(f"[{key}] No upstream URL configured")
            return None

        result = await self.fetcher.fetch(key, url, timeout=self.fetch_timeout)
        if isinstance(result, FetchOk):
            return result
        if isinstance(result, FetchTimeout):
            logger.info(f"[{key}] Upstream timed out; falling back")
        else:
            logger.info(f"[{key}] Upstream failed ({type(result).__name__}); falling back")
        return None

    async def _refresh_snapshot(self, key: str, data: Any) -> None:
        if self.snapshots.read_only:
            return
        try:
            current = await self.snapshots.read(key)
            if current == data:
                return
            await self.snapshots.write(key, data)
        except Exception as exc:
            logger.warning(f"[{key}] Snapshot refresh failed: {exc}")
