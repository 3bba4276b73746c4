"""Payment-intent creation endpoint.

Creates (or replays) the Stripe PaymentIntent for a checkout session. The
caller sends a fresh idempotency key per attempt; Stripe replays a request
repeated under the same key and rejects a key reused with different
parameters.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request, Response
from starlette.status import HTTP_200_OK

from checkout.services.identifiers import IDEMPOTENCY_HEADER
from checkout.services.stripe_service import StripeService, StripeServiceError
from checkout.utils.logging import log_checkout_operation
from checkout_api.config import ApiSettings
from checkout_api.dependencies import get_settings, get_stripe
from checkout_api.exceptions import PaymentIntentError, PaymentIntentErrorCode
from checkout_api.models.payment_intents import (
    IDEMPOTENCY_KEY_PATTERN,
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
)
from checkout_api.rate_limit import limiter, payment_intent_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payment-intents"])


def resolve_idempotency_key(header_key: str | None, body_key: str | None) -> str:
    """Pick the attempt's idempotency key from the header and body.

    Raises:
        PaymentIntentError: If neither is sent, both are sent and differ,
            or the header key is malformed.
    """
    if header_key and body_key and header_key != body_key:
        raise PaymentIntentError(
            PaymentIntentErrorCode.IDEMPOTENCY_KEY_MISMATCH,
            "Idempotency key mismatch between header and body",
        )
    key = header_key or body_key
    if not key:
        raise PaymentIntentError(
            PaymentIntentErrorCode.MISSING_IDEMPOTENCY_KEY,
            "Idempotency key is required",
        )
    if not IDEMPOTENCY_KEY_PATTERN.match(key):
        raise PaymentIntentError(
            PaymentIntentErrorCode.VALIDATION_FAILED,
            "Validation failed",
            details=["Invalid idempotency_key format"],
        )
    return key


@router.post(
    "/payment-intents",
    summary="Create payment intent",
    description="""
Create the Stripe PaymentIntent for a checkout session.

**Idempotency:** send a fresh key per attempt in `X-Idempotency-Key` and/or
`idempotency_key`. Both must match when both are sent.

**Notes:**
- The customer is found by email or created
- Phone is optional; a predictive request may not have it yet
- Amounts are in cents
""",
    response_description="Client secret and identifiers of the PaymentIntent",
    response_model=PaymentIntentResponse,
    response_model_by_alias=True,
    status_code=HTTP_200_OK,
    responses={
        400: {"description": "Validation failed or idempotency key missing/mismatched"},
        409: {"description": "Idempotency key reused with different parameters"},
        429: {"description": "Rate limit exceeded"},
        502: {"description": "Payment provider error"},
        504: {"description": "Payment provider timeout"},
    },
)
@limiter.limit(payment_intent_limit)
async def create_payment_intent(
    request: Request,
    response: Response,
    body: CreatePaymentIntentRequest,
    idempotency_header: str | None = Header(default=None, alias=IDEMPOTENCY_HEADER),
    stripe_service: StripeService = Depends(get_stripe),
    settings: ApiSettings = Depends(get_settings),
) -> PaymentIntentResponse:
    """Create or replay the PaymentIntent for ``body.lead_id``."""
    idempotency_key = resolve_idempotency_key(idempotency_header, body.idempotency_key)

    try:
        intent = stripe_service.create_payment_intent(
            lead_id=body.lead_id,
            full_name=body.full_name,
            email=body.email,
            phone=body.phone,
            amount_cents=body.amount,
            currency=body.currency,
            idempotency_key=idempotency_key,
            description=settings.product_description,
            metadata=body.utm_metadata(),
        )
    except StripeServiceError as e:
        log_checkout_operation(
            logger,
            "create_payment_intent",
            lead_id=body.lead_id,
            idempotency_key=idempotency_key,
            error=f"{e.error_kind}: {e}",
        )
        raise PaymentIntentError.from_stripe_error(e) from e

    log_checkout_operation(
        logger,
        "create_payment_intent",
        lead_id=body.lead_id,
        idempotency_key=idempotency_key,
        payment_intent_id=intent["payment_intent_id"],
        amount_cents=intent["amount"],
        status="created",
    )
    return PaymentIntentResponse(
        client_secret=intent["client_secret"],
        payment_intent_id=intent["payment_intent_id"],
        customer_id=intent["customer_id"],
        amount=intent["amount"],
        currency=intent["currency"],
        idempotency_key=idempotency_key,
    )
