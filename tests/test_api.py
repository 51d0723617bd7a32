import json
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from hotel_api import services as services_module
from hotel_api.config import Settings
from hotel_api.data_sources.base import FetchNetworkError
from hotel_api.main import app

AUTH = {"Authorization": "Bearer s3cret"}
ROOMS = [{"id": "r1", "name": {"es": "Suite"}}]


class OfflineFetcher:
    def __init__(self):
        self.calls = 0

    async def fetch(self, key, url, *, timeout):
        self.calls += 1
        return FetchNetworkError(url=url, detail="offline")


class StubUpstreamStatus:
    async def check(self):
        return {"ok": False, "reachable": False, "status_code": None, "url": None, "error": "stubbed"}


class BrokenController:
    def configure(self, **kwargs):
        raise RuntimeError("controller bug")


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        data_dir = Path(self._tmp.name)
        (data_dir / "rooms.json").write_text(json.dumps(ROOMS), encoding="utf-8")
        settings = Settings(
            api_base_url="https://upstream.invalid",
            data_dir=data_dir,
            snapshot_read_only=True,
            cache_private_key="s3cret",
            mailgun_enabled=False,
            telegram_enabled=False,
        )
        self._previous = services_module._services
        self.services = services_module.use_services_for_tests(settings=settings)
        app.dependency_overrides[services_module.get_services] = lambda: self.services
        self.fetcher = OfflineFetcher()
        self.services.data_loader.fetcher = self.fetcher
        self.services.upstream_status = StubUpstreamStatus()
        self.client = TestClient(app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        app.dependency_overrides.clear()
        services_module._services = self._previous
        self._tmp.cleanup()


class TestDatasetRoutes(ApiTestCase):
    def test_dataset_from_snapshot(self):
        resp = self.client.get("/api/rooms")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"data": ROOMS})
        self.assertTrue(resp.headers["content-type"].startswith("application/json"))
        self.assertEqual(self.fetcher.calls, 1)

    def test_second_request_served_from_cache(self):
        self.client.get("/api/rooms")
        self.client.get("/api/rooms")
        self.assertEqual(self.fetcher.calls, 1)

    def test_unavailable_dataset_is_404(self):
        resp = self.client.get("/api/tours")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Tours not found"})
        self.assertEqual(resp.headers["cache-control"], "no-store")

    def test_every_dataset_has_a_route(self):
        paths = {route.path for route in app.routes}
        for key in ("config", "rooms", "tours", "gastronomy", "destinations"):
            self.assertIn(f"/api/{key}", paths)


class TestAdminCacheRoutes(ApiTestCase):
    def test_requires_bearer_key(self):
        resp = self.client.post("/api/admin/cache", json={"action": "flush", "targets": ["ALL"]})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Unauthorized"})
        resp = self.client.post(
            "/api/admin/cache",
            json={"action": "flush", "targets": ["ALL"]},
            headers={"Authorization": "Bearer wrong"},
        )
        self.assertEqual(resp.status_code, 401)

    def test_rejects_everything_without_configured_key(self):
        self.services.settings.cache_private_key = None
        resp = self.client.post("/api/admin/cache", json={"action": "flush", "targets": ["ALL"]}, headers=AUTH)
        self.assertEqual(resp.status_code, 401)

    def test_invalid_body(self):
        resp = self.client.post(
            "/api/admin/cache", content="not json", headers={**AUTH, "Content-Type": "application/json"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid request body"})

    def test_invalid_action(self):
        resp = self.client.post("/api/admin/cache", json={"action": "purge", "targets": ["ALL"]}, headers=AUTH)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid action"})

    def test_missing_keys(self):
        resp = self.client.post(
            "/api/admin/cache", json={"action": "flush", "targets": ["rooms", "spa"]}, headers=AUTH
        )
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertEqual(body["missingKeys"], ["spa"])
        self.assertEqual(body["error"], "Cache not configured for keys: spa")

    def test_disable_uncached_key_is_missing(self):
        resp = self.client.post(
            "/api/admin/cache", json={"action": "disable", "targets": ["rooms"], "count": 1}, headers=AUTH
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["missingKeys"], ["rooms"])

    def test_flush_twice_in_a_row(self):
        self.client.get("/api/rooms")
        for _ in range(2):
            resp = self.client.post(
                "/api/admin/cache", json={"action": "flush", "targets": ["rooms"]}, headers=AUTH
            )
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.json(), {"success": True})
        self.assertNotIn("rooms", self.services.cache_store)

    def test_flush_loaded_key(self):
        self.client.get("/api/rooms")
        resp = self.client.post("/api/admin/cache", json={"action": "flush", "targets": ["rooms"]}, headers=AUTH)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})
        self.assertNotIn("rooms", self.services.cache_store)

    def test_disable_then_status(self):
        self.client.get("/api/rooms")
        resp = self.client.post(
            "/api/admin/cache", json={"action": "disable", "targets": ["ALL"], "count": 2}, headers=AUTH
        )
        self.assertEqual(resp.status_code, 200)

        status = self.client.get("/api/admin/cache", headers=AUTH).json()
        self.assertIn("rooms", status["entries"])
        self.assertEqual(status["rules"]["ALL"]["disabled_count"], 2)
        self.assertEqual(status["errors"]["total_errors"], 0)
        self.assertFalse(status["upstream"]["ok"])

    def test_disable_without_rule_is_rejected(self):
        self.client.get("/api/rooms")
        resp = self.client.post("/api/admin/cache", json={"action": "disable", "targets": ["rooms"]}, headers=AUTH)
        self.assertEqual(resp.status_code, 400)

    def test_status_requires_auth(self):
        self.assertEqual(self.client.get("/api/admin/cache").status_code, 401)

    def test_unexpected_error_is_500(self):
        self.services.cache_controller = BrokenController()
        resp = self.client.post("/api/admin/cache", json={"action": "flush", "targets": ["ALL"]}, headers=AUTH)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Internal Server Error"})


if __name__ == "__main__":
    unittest.main()
