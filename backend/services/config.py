"""Environment-driven configuration for the Veo client and the polling loop."""

import logging
import os

from models import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_MAX_POLLS = 60  # 10 minutes max (60 polls * 10 seconds)
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 120.0

_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")
_TRUTHY = {"1", "true", "yes", "on"}


def get_api_key() -> str:
    """First non-empty of GEMINI_API_KEY / GOOGLE_API_KEY / API_KEY, else ""."""
    for name in _API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def get_model() -> str:
    return os.environ.get("VEO_MODEL", "").strip() or DEFAULT_MODEL


def _get_number(name: str, default: float, cast: type) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("[config] %s=%r is not a valid %s; using %s", name, raw, cast.__name__, default)
        return default
    if value <= 0:
        logger.warning("[config] %s must be positive (got %r); using %s", name, raw, default)
        return default
    return value


def get_poll_interval() -> float:
    return float(_get_number("VEO_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS, float))


def get_max_polls() -> int:
    return int(_get_number("VEO_MAX_POLLS", DEFAULT_MAX_POLLS, int))


def get_download_timeout() -> float:
    return float(_get_number("VEO_DOWNLOAD_TIMEOUT_SECONDS", DEFAULT_DOWNLOAD_TIMEOUT_SECONDS, float))


def parallel_downloads_enabled() -> bool:
    return os.environ.get("VEO_PARALLEL_DOWNLOADS", "").strip().lower() in _TRUTHY
