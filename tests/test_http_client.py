import unittest
from unittest import mock

import requests

from storefront.errors import (
    NotFoundError,
    ProviderAuthError,
    ProviderFetchError,
    ProviderHTTPError,
)
from storefront.http_client import HttpClient


def make_response(status_code=200, body=None, text=""):
    response = mock.Mock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestHttpClient(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("storefront.http_client.time.sleep")
        self.sleep = patcher.start()
        self.addCleanup(patcher.stop)

        self.client = HttpClient(token="secret", max_retries=3)
        self.client.session = mock.Mock()

    def test_bearer_token_header(self):
        client = HttpClient(token="secret")
        self.assertEqual(client.session.headers["Authorization"], "Bearer secret")
        self.assertNotIn("Authorization", HttpClient().session.headers)

    def test_get_json_returns_body(self):
        self.client.session.request.return_value = make_response(200, {"ok": True})

        self.assertEqual(self.client.get_json("https://api/x"), {"ok": True})
        self.client.session.request.assert_called_once_with(
            "GET", "https://api/x", json=None, timeout=30
        )

    def test_cache_avoids_second_request(self):
        self.client.session.request.return_value = make_response(200, [{"id": 1}])

        self.client.get_json("https://api/shops", use_cache=True)
        self.client.get_json("https://api/shops", use_cache=True)
        self.assertEqual(self.client.session.request.call_count, 1)

        self.client.clear_cache()
        self.client.get_json("https://api/shops", use_cache=True)
        self.assertEqual(self.client.session.request.call_count, 2)

    def test_status_errors_are_typed(self):
        cases = [
            (401, ProviderAuthError),
            (403, ProviderAuthError),
            (404, NotFoundError),
            (422, ProviderHTTPError),
        ]
        for status, error_class in cases:
            with self.subTest(status=status):
                self.client.session.request.return_value = make_response(
                    status, {"message": "nope"}
                )
                with self.assertRaises(error_class) as ctx:
                    self.client.get_json("https://api/x")
                self.assertEqual(ctx.exception.status_code, status)
                self.assertIn(f"Status: {status}", str(ctx.exception))

    def test_server_error_is_retried_for_get(self):
        self.client.session.request.side_effect = [
            make_response(503),
            make_response(200, {"ok": True}),
        ]

        self.assertEqual(self.client.get_json("https://api/x"), {"ok": True})
        self.assertEqual(self.client.session.request.call_count, 2)
        self.sleep.assert_called_once_with(1)

    def test_server_error_is_not_retried_for_post(self):
        self.client.session.request.return_value = make_response(500, {"error": "boom"})

        with self.assertRaises(ProviderHTTPError):
            self.client.post_json("https://api/products", {"name": "x"})
        self.assertEqual(self.client.session.request.call_count, 1)

    def test_rate_limit_exhausts_retries(self):
        self.client.session.request.return_value = make_response(429)

        with self.assertRaises(ProviderFetchError):
            self.client.get_json("https://api/x")
        self.assertEqual(self.client.session.request.call_count, 3)

    def test_connection_errors_are_retried(self):
        self.client.session.request.side_effect = [
            requests.ConnectionError("down"),
            requests.Timeout("slow"),
            make_response(200, {"ok": True}),
        ]

        self.assertEqual(self.client.get_json("https://api/x"), {"ok": True})

    def test_non_json_body_raises_fetch_error(self):
        self.client.session.request.return_value = make_response(200, ValueError("no json"))

        with self.assertRaises(ProviderFetchError):
            self.client.get_json("https://api/x")
        self.assertEqual(self.client.session.request.call_count, 1)


if __name__ == "__main__":
    unittest.main()
