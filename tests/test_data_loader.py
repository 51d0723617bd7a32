import asyncio
import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from hotel_api.cache.control import CacheController
from hotel_api.cache.store import CacheStore
from hotel_api.data_loader import DataLoader, LoadSource
from hotel_api.data_sources.base import FetchHttpError, FetchOk, FetchTimeout
from hotel_api.data_sources.snapshot_store import JsonSnapshotStore

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeFetcher:
    """Scripted upstream: a dict of key -> FetchResult, or an exception to raise."""

    def __init__(self, results=None, delay=0.0, exc=None):
        self.results = results or {}
        self.delay = delay
        self.exc = exc
        self.calls = []

    async def fetch(self, key, url, *, timeout):
        self.calls.append((key, url, timeout))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.results.get(key, FetchHttpError(url=url, status=404))


class FakeSnapshots:
    def __init__(self, files=None, read_only=False):
        self.files = dict(files or {})
        self.read_only = read_only
        self.writes = []

    async def read(self, key):
        return self.files.get(key)

    async def write(self, key, data):
        if self.read_only:
            return False
        self.writes.append((key, data))
        self.files[key] = data
        return True


class FakeReporter:
    def __init__(self):
        self.reports = []

    def report_in_background(self, exc, context, *, critical=False):
        self.reports.append((exc, context, critical))


ROOMS = [{"id": "r1", "name": "Suite"}]
TOURS = [{"id": "t1"}]


class TestDataLoader(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = CacheStore(clock=self.clock)
        self.controller = CacheController(self.store, clock=self.clock)
        self.fetcher = FakeFetcher()
        self.snapshots = FakeSnapshots()
        self.reporter = FakeReporter()

    def make_loader(self, upstream_url=None):
        return DataLoader(
            self.store,
            self.controller,
            self.fetcher,
            self.snapshots,
            upstream_url or (lambda key: f"https://upstream.example/{key}"),
            freshness_seconds=DAY,
            fetch_timeout=5.0,
            reporter=self.reporter,
        )

    async def test_upstream_success_fills_cache_and_snapshot(self):
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        loader = self.make_loader()

        result = await loader.load_result("rooms")

        self.assertIs(result.source, LoadSource.UPSTREAM)
        self.assertEqual(result.data, ROOMS)
        self.assertEqual(self.store.get("rooms").data, ROOMS)
        self.assertEqual(self.snapshots.writes, [("rooms", ROOMS)])
        self.assertEqual(self.fetcher.calls, [("rooms", "https://upstream.example/rooms", 5.0)])

    async def test_fresh_cache_skips_upstream(self):
        self.store.set("rooms", ROOMS)
        self.clock.advance(hours=23)
        loader = self.make_loader()

        result = await loader.load_result("rooms")

        self.assertIs(result.source, LoadSource.FRESH_CACHE)
        self.assertEqual(self.fetcher.calls, [])

    async def test_expired_cache_refetches(self):
        self.store.set("rooms", [{"id": "old"}])
        self.clock.advance(hours=25)
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        loader = self.make_loader()

        self.assertEqual(await loader.load("rooms"), ROOMS)
        self.assertEqual(len(self.fetcher.calls), 1)

    async def test_upstream_error_serves_stale_cache(self):
        self.store.set("rooms", ROOMS)
        self.clock.advance(days=3)
        self.fetcher.results["rooms"] = FetchHttpError(url="u", status=500)
        loader = self.make_loader()

        result = await loader.load_result("rooms")

        self.assertIs(result.source, LoadSource.STALE_CACHE)
        self.assertEqual(result.data, ROOMS)
        self.assertEqual(self.snapshots.writes, [])

    async def test_timeout_falls_back_to_snapshot_and_seeds_cache(self):
        self.fetcher.results["tours"] = FetchTimeout(url="u", timeout=5.0)
        self.snapshots.files["tours"] = TOURS
        loader = self.make_loader()

        result = await loader.load_result("tours")

        self.assertIs(result.source, LoadSource.SNAPSHOT)
        self.assertEqual(result.data, TOURS)
        self.assertEqual(self.store.get("tours").data, TOURS)

    async def test_nothing_anywhere_is_unavailable(self):
        loader = self.make_loader()
        result = await loader.load_result("gastronomy")
        self.assertIs(result.source, LoadSource.UNAVAILABLE)
        self.assertFalse(result.available)
        self.assertIsNone(await loader.load("gastronomy"))

    async def test_unknown_key_skips_upstream(self):
        self.snapshots.files["spa"] = [{"id": "s1"}]
        loader = self.make_loader()
        self.assertEqual(await loader.load("spa"), [{"id": "s1"}])
        self.assertEqual(self.fetcher.calls, [])

    async def test_unknown_key_with_file_on_disk_is_unavailable_not_an_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "spa.json").write_text(json.dumps([{"id": "s1"}]), encoding="utf-8")
            self.snapshots = JsonSnapshotStore(tmp)
            loader = self.make_loader()

            result = await loader.load_result("spa")

        self.assertIs(result.source, LoadSource.UNAVAILABLE)
        self.assertEqual(self.reporter.reports, [])

    async def test_missing_upstream_url_skips_fetch(self):
        self.snapshots.files["config"] = {"siteName": "Hotel"}
        loader = self.make_loader(upstream_url=lambda key: None)
        result = await loader.load_result("config")
        self.assertIs(result.source, LoadSource.SNAPSHOT)
        self.assertEqual(self.fetcher.calls, [])

    async def test_concurrent_loads_share_one_fetch(self):
        self.fetcher = FakeFetcher({"rooms": FetchOk(data=ROOMS)}, delay=0.05)
        loader = self.make_loader()

        results = await asyncio.gather(*(loader.load("rooms") for _ in range(10)))

        self.assertEqual(results, [ROOMS] * 10)
        self.assertEqual(len(self.fetcher.calls), 1)

    async def test_unchanged_payload_does_not_rewrite_snapshot(self):
        self.snapshots.files["rooms"] = [{"id": "r1", "name": "Suite"}]
        self.fetcher.results["rooms"] = FetchOk(data=[{"name": "Suite", "id": "r1"}])
        loader = self.make_loader()

        await loader.load("rooms")

        self.assertEqual(self.snapshots.writes, [])

    async def test_read_only_snapshots_are_never_written(self):
        self.snapshots.read_only = True
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        loader = self.make_loader()

        self.assertEqual(await loader.load("rooms"), ROOMS)
        self.assertEqual(self.snapshots.writes, [])

    async def test_flush_then_load_refetches(self):
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        loader = self.make_loader()
        await loader.load("rooms")

        self.assertTrue(self.controller.configure("flush", ["rooms"]).success)
        self.assertIsNone(self.store.get("rooms"))
        await loader.load("rooms")

        self.assertEqual(len(self.fetcher.calls), 2)

    async def test_disable_all_once_bypasses_a_single_load(self):
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        loader = self.make_loader()
        await loader.load("rooms")

        self.assertTrue(self.controller.configure("disable", ["ALL"], count=1).success)
        self.assertIs((await loader.load_result("rooms")).source, LoadSource.UPSTREAM)
        self.assertIs((await loader.load_result("rooms")).source, LoadSource.FRESH_CACHE)
        self.assertEqual(len(self.fetcher.calls), 2)

    async def test_bypass_with_failing_upstream_still_serves_cache(self):
        self.store.set("rooms", ROOMS)
        self.fetcher.results["rooms"] = FetchHttpError(url="u", status=503)
        self.controller.configure("disable", ["rooms"], count=1)
        loader = self.make_loader()

        result = await loader.load_result("rooms")

        self.assertIs(result.source, LoadSource.STALE_CACHE)
        self.assertEqual(result.data, ROOMS)

    async def test_unexpected_error_is_reported_and_returns_none(self):
        self.fetcher = FakeFetcher(exc=RuntimeError("fetcher bug"))
        loader = self.make_loader()

        self.assertIsNone(await loader.load("rooms"))

        self.assertEqual(len(self.reporter.reports), 1)
        exc, context, critical = self.reporter.reports[0]
        self.assertIsInstance(exc, RuntimeError)
        self.assertEqual(context, "data_loader/rooms")
        self.assertTrue(critical)

    async def test_load_many_resolves_each_key(self):
        self.fetcher.results["rooms"] = FetchOk(data=ROOMS)
        self.snapshots.files["tours"] = TOURS
        loader = self.make_loader()

        loaded = await loader.load_many(["rooms", "tours", "gastronomy", "rooms"])

        self.assertEqual(loaded, {"rooms": ROOMS, "tours": TOURS, "gastronomy": None})
        self.assertEqual([call[0] for call in self.fetcher.calls].count("rooms"), 1)


if __name__ == "__main__":
    unittest.main()
