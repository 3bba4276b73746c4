"""FastAPI application for the checkout payment-intent API.

This package provides REST endpoints for:
- Health checks
- Payment-intent creation for the checkout modal
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from checkout.services.identifiers import IDEMPOTENCY_HEADER
from checkout.utils.logging import CORRELATION_ID_HEADER, configure_logging
from checkout_api.config import get_api_settings
from checkout_api.exceptions import register_exception_handlers
from checkout_api.middleware import CorrelationIdMiddleware
from checkout_api.rate_limit import limiter
from checkout_api.routes.health import router as health_router
from checkout_api.routes.payment_intents import router as payment_intents_router

configure_logging()


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_api_settings()

    application = FastAPI(
        title="Checkout API",
        description="Payment-intent creation for the checkout modal",
        version="0.1.0",
    )

    application.state.limiter = limiter

    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", IDEMPOTENCY_HEADER, CORRELATION_ID_HEADER],
        expose_headers=[
            CORRELATION_ID_HEADER,
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    register_exception_handlers(application)

    # Routers live under /api, matching the CDN path pattern /api/* -> API Gateway
    application.include_router(health_router, prefix="/api")
    application.include_router(payment_intents_router, prefix="/api")

    @application.get("/api/ping")
    async def ping() -> dict[str, Any]:
        """Root health check endpoint at /api/ping."""
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "service": "checkout-api",
        }

    return application


app = create_app()

# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        uvicorn.run(
            "checkout_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["backend/api/src", "backend/checkout/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
