from __future__ import annotations

from flask import current_app, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__all__ = ["limiter", "write_rate_limit"]


def _default_rate_limits() -> str:
    """Resolve default rate limits from config or fall back to safe defaults."""
    config_value = current_app.config.get("RATELIMIT_DEFAULT")
    if isinstance(config_value, str) and config_value.strip():
        normalized = config_value.replace(",", ";").replace("|", ";").split(";")
        limits = [entry.strip() for entry in normalized if entry.strip()]
        if limits:
            return ";".join(limits)
    return "5000 per hour;1000 per minute"


def _limiter_key_func():
    """Key per facility when the caller names one; otherwise by remote address."""
    facility_id = request.headers.get("X-Facility-Id")
    if facility_id and facility_id.strip():
        return f"facility:{facility_id.strip()}"
    return get_remote_address()


def write_rate_limit() -> str:
    return current_app.config.get("FEATURE_WRITE_RATE_LIMIT") or "120 per minute"


limiter = Limiter(
    key_func=_limiter_key_func,
    default_limits=[_default_rate_limits],
)
