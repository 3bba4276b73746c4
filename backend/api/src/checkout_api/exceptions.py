"""FastAPI exception handlers for the payment-intent API.

Converts ``PaymentIntentError`` and request validation failures to JSON
responses of the shape ``{"error": ..., "code": ..., "details": [...]}``,
which is what the engine's HTTP client parses.

Status mapping:
- 400 Bad Request: validation failures, idempotency key problems, card errors
- 409 Conflict: idempotency key reused with different parameters
- 429 Too Many Requests: rate limiting (slowapi) or Stripe rate limits
- 502 Bad Gateway: Stripe API or connection errors
- 504 Gateway Timeout: Stripe timeouts
- 500 Internal Server Error: anything else
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_504_GATEWAY_TIMEOUT,
)

from checkout.services.stripe_service import StripeServiceError
from checkout_api.rate_limit import client_ip

logger = logging.getLogger(__name__)


class PaymentIntentErrorCode(str, Enum):
    """Machine-readable error codes returned by the API."""

    VALIDATION_FAILED = "validation_failed"
    MISSING_IDEMPOTENCY_KEY = "missing_idempotency_key"
    IDEMPOTENCY_KEY_MISMATCH = "idempotency_key_mismatch"
    IDEMPOTENCY_CONFLICT = "idempotency_conflict"
    RATE_LIMITED = "rate_limited"
    CARD_ERROR = "card_error"
    INVALID_REQUEST = "invalid_request"
    GATEWAY_ERROR = "gateway_error"
    GATEWAY_TIMEOUT = "gateway_timeout"
    INTERNAL_ERROR = "internal_error"


ERROR_CODE_TO_HTTP_STATUS: dict[PaymentIntentErrorCode, int] = {
    PaymentIntentErrorCode.VALIDATION_FAILED: HTTP_400_BAD_REQUEST,
    PaymentIntentErrorCode.MISSING_IDEMPOTENCY_KEY: HTTP_400_BAD_REQUEST,
    PaymentIntentErrorCode.IDEMPOTENCY_KEY_MISMATCH: HTTP_400_BAD_REQUEST,
    PaymentIntentErrorCode.IDEMPOTENCY_CONFLICT: HTTP_409_CONFLICT,
    PaymentIntentErrorCode.RATE_LIMITED: HTTP_429_TOO_MANY_REQUESTS,
    PaymentIntentErrorCode.CARD_ERROR: HTTP_400_BAD_REQUEST,
    PaymentIntentErrorCode.INVALID_REQUEST: HTTP_400_BAD_REQUEST,
    PaymentIntentErrorCode.GATEWAY_ERROR: HTTP_502_BAD_GATEWAY,
    PaymentIntentErrorCode.GATEWAY_TIMEOUT: HTTP_504_GATEWAY_TIMEOUT,
    PaymentIntentErrorCode.INTERNAL_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
}

# StripeServiceError.error_kind -> API error code
STRIPE_ERROR_KINDS: dict[str, PaymentIntentErrorCode] = {
    "card": PaymentIntentErrorCode.CARD_ERROR,
    "rate_limit": PaymentIntentErrorCode.RATE_LIMITED,
    "idempotency": PaymentIntentErrorCode.IDEMPOTENCY_CONFLICT,
    "invalid_request": PaymentIntentErrorCode.INVALID_REQUEST,
    "api": PaymentIntentErrorCode.GATEWAY_ERROR,
    "connection": PaymentIntentErrorCode.GATEWAY_ERROR,
    "timeout": PaymentIntentErrorCode.GATEWAY_TIMEOUT,
}


class PaymentIntentError(Exception):
    """Domain error raised by the payment-intent routes."""

    def __init__(
        self,
        code: PaymentIntentErrorCode,
        message: str,
        details: list[str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.headers = headers

    @classmethod
    def from_stripe_error(cls, error: StripeServiceError) -> "PaymentIntentError":
        """Map a StripeServiceError to the API error it should surface as."""
        code = STRIPE_ERROR_KINDS.get(error.error_kind, PaymentIntentErrorCode.INTERNAL_ERROR)
        if code == PaymentIntentErrorCode.CARD_ERROR:
            message = str(error)
        elif code == PaymentIntentErrorCode.IDEMPOTENCY_CONFLICT:
            message = "Idempotency key was already used with different parameters"
        elif code == PaymentIntentErrorCode.RATE_LIMITED:
            message = "Payment provider rate limit exceeded. Please try again later."
        else:
            message = "Failed to create payment intent"
        return cls(code, message)


def get_http_status_for_error(code: PaymentIntentErrorCode) -> int:
    """Get HTTP status code for an error code, 500 if not mapped."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_500_INTERNAL_SERVER_ERROR)


def _validation_message(error: dict) -> str:
    message = str(error.get("msg", "Invalid value"))
    # Messages raised from field validators already name the field
    if message.startswith("Value error, "):
        return message[len("Value error, ") :]
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


async def payment_intent_error_handler(request: Request, exc: PaymentIntentError) -> JSONResponse:
    """Handle PaymentIntentError and convert it to a JSON response."""
    content: dict[str, object] = {"error": exc.message, "code": exc.code.value}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(
        status_code=get_http_status_for_error(exc.code),
        content=content,
        headers=exc.headers,
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle slowapi rejections with the API error body plus rate-limit headers."""
    logger.warning("Rate limit exceeded for %s: %s", client_ip(request), exc.detail)
    response = JSONResponse(
        status_code=HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Too many requests. Please try again later.",
            "code": PaymentIntentErrorCode.RATE_LIMITED.value,
        },
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation failures with a 400 and one message per field."""
    details = [_validation_message(error) for error in exc.errors()]
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "code": PaymentIntentErrorCode.VALIDATION_FAILED.value,
            "details": details,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for uncaught exceptions; internal details are not exposed."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An unexpected error occurred",
            "code": PaymentIntentErrorCode.INTERNAL_ERROR.value,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(PaymentIntentError, payment_intent_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
