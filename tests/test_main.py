import unittest

from hotel_api.main import app


class TestMainApp(unittest.TestCase):
    def test_app_title(self):
        self.assertEqual(app.title, "Hotel Data API")

    def test_admin_routes_mounted_under_api(self):
        routes = {(route.path, tuple(sorted(route.methods))) for route in app.routes if hasattr(route, "methods")}
        self.assertIn(("/api/admin/cache", ("POST",)), routes)
        self.assertIn(("/api/admin/cache", ("GET",)), routes)


if __name__ == "__main__":
    unittest.main()
