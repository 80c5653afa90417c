import os
import unittest
from unittest import mock

from services.time_source import get_clock, zoneinfo_now
from services.webex_client import build_client_from_settings
from shared.config import get_http_timeout, get_time_source, get_webex_api_base, get_world_time_api_base


class ConfigTests(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(get_webex_api_base(), "https://webexapis.com/v1/telephony/config")
            self.assertEqual(get_time_source(), "worldtimeapi")
            self.assertEqual(get_http_timeout(), 20.0)

    def test_overrides(self):
        env = {
            "WORLD_TIME_API_BASE_URL": "http://time.test/api/timezone/",
            "HTTP_TIMEOUT_SECONDS": "5.5",
            "ROUTING_TIME_SOURCE": " LOCAL ",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(get_world_time_api_base(), "http://time.test/api/timezone")
            self.assertEqual(get_http_timeout(), 5.5)
            self.assertEqual(get_time_source(), "local")

    def test_invalid_timeout(self):
        with mock.patch.dict(os.environ, {"HTTP_TIMEOUT_SECONDS": "soon"}, clear=True):
            with self.assertRaises(ValueError):
                get_http_timeout()

    def test_local_clock_selected(self):
        with mock.patch.dict(os.environ, {"ROUTING_TIME_SOURCE": "Local"}, clear=True):
            self.assertIs(get_clock(), zoneinfo_now)

    def test_unknown_clock_rejected(self):
        with mock.patch.dict(os.environ, {"ROUTING_TIME_SOURCE": "sundial"}, clear=True):
            with self.assertRaises(ValueError):
                get_clock()

    def test_client_requires_token(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                build_client_from_settings()
        with mock.patch.dict(
            os.environ, {"WEBEX_ACCESS_TOKEN": "abc", "WEBEX_API_BASE_URL": "https://webex.test/v1/"}, clear=True
        ):
            client = build_client_from_settings()
            self.assertEqual(client.base_url, "https://webex.test/v1")
            self.assertEqual(client.access_token, "abc")


if __name__ == "__main__":
    unittest.main()
