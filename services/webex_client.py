from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from services.exceptions import WebexApiError
from shared.config import get_http_timeout, get_required_setting, get_webex_api_base

logger = logging.getLogger(__name__)


class WebexTelephonyClient:
    """Thin wrapper over the Webex telephony config endpoints the queue mode flow needs."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        timeout: float = 20,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        logger.info("Webex %s %s", method, path)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.error("Webex %s %s transport error: %s", method, path, exc)
            raise WebexApiError(method, path, None, str(exc)) from exc

        if response.status_code >= 300:
            logger.error("Webex %s %s failed: %s - %s", method, path, response.status_code, response.text)
            raise WebexApiError(method, path, response.status_code, response.text)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise WebexApiError(method, path, response.status_code, "response was not JSON") from exc
        if not isinstance(data, dict):
            raise WebexApiError(method, path, response.status_code, "response was not a JSON object")
        return data

    def _list(self, path: str, key: str) -> List[dict]:
        data = self._request("GET", path)
        items = data.get(key)
        if not isinstance(items, list):
            raise WebexApiError("GET", path, 200, f"response missing '{key}' list")
        return items

    def list_queues(self) -> List[dict]:
        return self._list("queues", "queues")

    def get_queue(self, location_id: str, queue_id: str) -> dict:
        return self._request("GET", f"locations/{location_id}/queues/{queue_id}")

    def get_call_forwarding(self, location_id: str, queue_id: str) -> dict:
        path = f"locations/{location_id}/queues/{queue_id}/callForwarding"
        data = self._request("GET", path)
        forwarding = data.get("callForwarding")
        if not isinstance(forwarding, dict):
            raise WebexApiError("GET", path, 200, "response missing 'callForwarding'")
        return forwarding

    def get_selective_rule(self, location_id: str, queue_id: str, rule_id: str) -> dict:
        return self._request(
            "GET",
            f"locations/{location_id}/queues/{queue_id}/callForwarding/selectiveRules/{rule_id}",
        )

    def update_selective_rule(self, location_id: str, queue_id: str, rule_id: str, name: str, enabled: bool) -> None:
        self._request(
            "PUT",
            f"locations/{location_id}/queues/{queue_id}/callForwarding/selectiveRules/{rule_id}",
            payload={"name": name, "enabled": enabled},
        )

    def list_schedules(self, location_id: str) -> List[dict]:
        return self._list(f"locations/{location_id}/schedules", "schedules")

    def get_schedule(self, location_id: str, schedule_type: str, schedule_id: str) -> dict:
        return self._request("GET", f"locations/{location_id}/schedules/{schedule_type}/{schedule_id}")

    def get_schedule_event(self, location_id: str, schedule_type: str, schedule_id: str, event_id: str) -> dict:
        return self._request(
            "GET",
            f"locations/{location_id}/schedules/{schedule_type}/{schedule_id}/events/{event_id}",
        )


def build_client_from_settings() -> WebexTelephonyClient:
    return WebexTelephonyClient(
        access_token=get_required_setting("WEBEX_ACCESS_TOKEN"),
        base_url=get_webex_api_base(),
        timeout=get_http_timeout(),
    )
