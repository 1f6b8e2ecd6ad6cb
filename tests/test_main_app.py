import unittest

from fastapi.testclient import TestClient

from school_app.main import app
from school_app.route_logging import EndpointNameRoute


class MainAppTests(unittest.TestCase):
    def test_health_endpoint(self):
        client = TestClient(app)
        try:
            resp = client.get('/')
        finally:
            client.close()

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['status'], 'ok')

    def test_api_routes_are_registered_with_endpoint_tagging(self):
        api_routes = [route for route in app.routes if getattr(route, 'path', '').startswith('/api')]
        paths = {route.path for route in api_routes}

        for expected in (
            '/api/login',
            '/api/auth/user',
            '/api/dashboard/stats',
            '/api/attendance/class/{class_id}/{attendance_date}',
            '/api/fees/payments/{student_id}',
            '/api/timetable/class/{class_id}',
            '/api/submissions/{submission_id}',
        ):
            self.assertIn(expected, paths)
        self.assertTrue(all(isinstance(route, EndpointNameRoute) for route in api_routes))


if __name__ == '__main__':
    unittest.main()
