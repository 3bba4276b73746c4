"""Per-client rate limiting for the payment-intent endpoint.

Uses slowapi's in-memory storage, so limits apply per warm Lambda container
or per uvicorn worker. Development origins get their own key and a looser
limit.
"""

from fastapi import Request
from slowapi import Limiter

from checkout_api.config import get_api_settings

DEV_ORIGIN_MARKERS = ("localhost", "127.0.0.1")
DEV_KEY_PREFIX = "dev:"


def is_dev_origin(origin: str | None) -> bool:
    """Whether a request comes from a local development page."""
    return bool(origin) and any(marker in origin for marker in DEV_ORIGIN_MARKERS)


def client_ip(request: Request) -> str:
    """Client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit_key(request: Request) -> str:
    """Limiter key: client address, prefixed for development origins."""
    ip = client_ip(request)
    if is_dev_origin(request.headers.get("origin")):
        return f"{DEV_KEY_PREFIX}{ip}"
    return ip


def payment_intent_limit(key: str) -> str:
    """Limit string for a key produced by ``rate_limit_key``."""
    settings = get_api_settings()
    if key.startswith(DEV_KEY_PREFIX):
        return settings.dev_rate_limit
    return settings.rate_limit


limiter = Limiter(key_func=rate_limit_key, headers_enabled=True)
