"""Shared helpers for the engine's HTTP clients."""

import httpx

from checkout.utils.logging import CORRELATION_ID_HEADER, get_correlation_id


def default_headers() -> dict[str, str]:
    """Headers sent on every engine request."""
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    correlation_id = get_correlation_id()
    if correlation_id:
        headers[CORRELATION_ID_HEADER] = correlation_id
    return headers


def extract_error_message(response: httpx.Response, default: str) -> tuple[str, str | None]:
    """Pull a message and machine code out of an error response.

    Understands ``{"error": ..., "details": [...], "code": ...}`` bodies;
    anything else yields ``default``.

    Returns:
        Tuple of (message, code).
    """
    try:
        data = response.json()
    except ValueError:
        return default, None

    if not isinstance(data, dict):
        return default, None

    code = data.get("code") if isinstance(data.get("code"), str) else None
    details = data.get("details")
    if isinstance(details, list) and details:
        return ", ".join(str(item) for item in details), code
    error = data.get("error")
    if isinstance(error, str) and error:
        return error, code
    return default, code
