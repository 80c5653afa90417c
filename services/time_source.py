from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from services.exceptions import TimeSourceError
from shared.config import get_http_timeout, get_time_source, get_world_time_api_base

logger = logging.getLogger(__name__)

Clock = Callable[[str], Tuple[date, time]]


def parse_world_time(payload: dict) -> Tuple[date, time]:
    """Split a worldtimeapi `datetime` value into local date and HH:MM time."""
    raw = str((payload or {}).get("datetime") or "")
    if "T" not in raw:
        raise TimeSourceError(f"Time service returned no usable datetime: {payload!r}")
    date_part, time_part = raw.split("T", 1)
    try:
        today = date.fromisoformat(date_part)
        hh, mm = time_part[:5].split(":")
        now = time(hour=int(hh), minute=int(mm))
    except ValueError as exc:
        raise TimeSourceError(f"Time service returned malformed datetime: {raw!r}") from exc
    return today, now


def world_time_now(
    timezone_name: str,
    base_url: str,
    timeout: float = 20,
    transport: Optional[httpx.BaseTransport] = None,
) -> Tuple[date, time]:
    url = f"{base_url.rstrip('/')}/{timezone_name}"
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        logger.error("Time service request for %s failed: %s", timezone_name, exc)
        raise TimeSourceError(f"Time service request failed: {exc}") from exc

    if response.status_code >= 300:
        logger.error("Time service lookup failed: %s - %s", response.status_code, response.text)
        raise TimeSourceError(f"Time service lookup failed ({response.status_code}): {response.text}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise TimeSourceError("Time service response was not JSON") from exc
    return parse_world_time(payload)


def zoneinfo_now(timezone_name: str, now: Optional[datetime] = None) -> Tuple[date, time]:
    try:
        tz = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise TimeSourceError(f"Unknown timezone: {timezone_name!r}") from exc
    local_dt = (now or datetime.now(tz)).astimezone(tz)
    return local_dt.date(), time(hour=local_dt.hour, minute=local_dt.minute)


def get_clock() -> Clock:
    source = get_time_source()
    if source == "local":
        return zoneinfo_now
    if source != "worldtimeapi":
        raise ValueError(f"Unsupported ROUTING_TIME_SOURCE: {source}")
    base_url = get_world_time_api_base()
    timeout = get_http_timeout()

    def _clock(timezone_name: str) -> Tuple[date, time]:
        return world_time_now(timezone_name, base_url, timeout=timeout)

    return _clock
