import os
from typing import Optional

DEFAULT_WEBEX_API_BASE_URL = "https://webexapis.com/v1/telephony/config"
DEFAULT_WORLD_TIME_API_BASE_URL = "http://worldtimeapi.org/api/timezone"


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return an environment setting with an optional default."""
    return os.getenv(name, default)


def get_required_setting(name: str) -> str:
    """Return a required environment setting or raise a ValueError."""
    value = os.getenv(name)
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def get_webex_api_base() -> str:
    """Base URL of the Webex telephony config API (no trailing slash)."""
    return (get_setting("WEBEX_API_BASE_URL") or DEFAULT_WEBEX_API_BASE_URL).rstrip("/")


def get_world_time_api_base() -> str:
    return (get_setting("WORLD_TIME_API_BASE_URL") or DEFAULT_WORLD_TIME_API_BASE_URL).rstrip("/")


def get_time_source() -> str:
    """
    Which clock to use for schedule evaluation.
    "worldtimeapi" asks the external time service, "local" uses zoneinfo on this host.
    """
    return (get_setting("ROUTING_TIME_SOURCE") or "worldtimeapi").strip().lower()


def get_http_timeout() -> float:
    raw = get_setting("HTTP_TIMEOUT_SECONDS")
    if not raw:
        return 20.0
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"HTTP_TIMEOUT_SECONDS must be a number, got {raw!r}") from exc
