from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import Settings, get_settings

API_RATE_LIMIT_MESSAGE = "Too many requests from this IP. Please try again later."
AUTH_RATE_LIMIT_MESSAGE = "Too many authentication attempts. Please try again after 15 minutes."
AUTH_RATE_LIMIT_SCOPE = "auth"


def api_rate_limit(settings: Settings) -> str:
    return f"{settings.rate_limit_max_requests}/{settings.rate_limit_window_minutes} minutes"


def auth_rate_limit(settings: Settings) -> str:
    return f"{settings.auth_rate_limit_max_requests}/{settings.auth_rate_limit_window_minutes} minutes"


def build_limiter(settings: Settings) -> Limiter:
    """Per-IP limiter: one budget across the whole API, plus a stricter one for /auth."""
    return Limiter(
        key_func=get_remote_address,
        application_limits=[api_rate_limit(settings)],
        enabled=settings.rate_limit_enabled,
        storage_uri=settings.rate_limit_storage_uri,
    )


_settings = get_settings()
limiter = build_limiter(_settings)

# Applied per route; every decorated auth endpoint draws from one bucket.
limit_auth_attempts = limiter.shared_limit(
    auth_rate_limit(_settings),
    scope=AUTH_RATE_LIMIT_SCOPE,
    error_message=AUTH_RATE_LIMIT_MESSAGE,
)
