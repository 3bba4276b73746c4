"""Stripe service for server-side payment-intent creation.

Uses the v8+ StripeClient pattern. The secret key comes from the
``STRIPE_SECRET_KEY`` environment variable or SSM Parameter Store.
"""

import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from .ssm_service import SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)

STRIPE_TIMEOUT_SECONDS = 30
STRIPE_MAX_NETWORK_RETRIES = 2


class StripeServiceError(Exception):
    """Raised when a Stripe operation fails."""

    def __init__(
        self,
        message: str,
        stripe_error_code: str | None = None,
        error_kind: str = "unknown",
    ) -> None:
        """Initialize with message, Stripe error code and error kind.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
            error_kind: One of card, rate_limit, idempotency, invalid_request,
                api, connection, timeout, configuration, unknown.
        """
        super().__init__(message)
        self.stripe_error_code = stripe_error_code
        self.error_kind = error_kind


def classify_stripe_error(error: stripe.StripeError) -> str:
    """Map a Stripe exception to the error kind used by the API layer."""
    if isinstance(error, stripe.CardError):
        return "card"
    if isinstance(error, stripe.RateLimitError):
        return "rate_limit"
    if isinstance(error, stripe.IdempotencyError):
        return "idempotency"
    if isinstance(error, stripe.InvalidRequestError):
        if "idempotency" in str(error).lower():
            return "idempotency"
        return "invalid_request"
    if isinstance(error, stripe.APIConnectionError):
        if "timed out" in str(error).lower() or "timeout" in str(error).lower():
            return "timeout"
        return "connection"
    if isinstance(error, stripe.AuthenticationError):
        return "configuration"
    if isinstance(error, stripe.APIError):
        return "api"
    return "unknown"


class StripeService:
    """Service for Stripe customer and PaymentIntent operations.

    Usage:
        stripe_svc = get_stripe_service()
        intent = stripe_svc.create_payment_intent(
            lead_id="2f0c...",
            full_name="Ana Silva",
            email="ana@example.com",
            phone="+351 912345678",
            amount_cents=18000,
            currency="eur",
            idempotency_key="idm_...",
            description="Event ticket",
        )
    """

    def __init__(self, environment: str | None = None) -> None:
        """Initialize Stripe service.

        Args:
            environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
        """
        self._environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._ssm = get_ssm_service()
        self._client: StripeClient | None = None

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization).

        Raises:
            StripeServiceError: If credentials cannot be retrieved.
        """
        if self._client is None:
            try:
                secret_key = self._ssm.get_secret(
                    f"/checkout/{self._environment}/stripe/secret_key",
                    env_var="STRIPE_SECRET_KEY",
                )
            except SSMServiceError as e:
                raise StripeServiceError(
                    f"Failed to initialize Stripe client: {e}",
                    error_kind="configuration",
                ) from e
            self._client = StripeClient(
                secret_key,
                max_network_retries=STRIPE_MAX_NETWORK_RETRIES,
                http_client=stripe.RequestsClient(timeout=STRIPE_TIMEOUT_SECONDS),
            )
            logger.info("Stripe client initialized for environment: %s", self._environment)
        return self._client

    def find_or_create_customer(
        self,
        *,
        email: str,
        full_name: str,
        phone: str | None,
        lead_id: str,
        idempotency_key: str,
    ) -> str:
        """Return the ID of the customer with ``email``, creating it if needed.

        An existing customer gets its name and phone refreshed.

        Raises:
            StripeServiceError: If a Stripe call fails.
        """
        client = self._get_client()
        now = datetime.now(timezone.utc).isoformat()
        metadata = {"lead_id": lead_id, "source": "checkout_modal"}

        try:
            existing = client.customers.list(params={"email": email, "limit": 1})
            if existing.data:
                customer_id = existing.data[0].id
                update: dict[str, Any] = {
                    "name": full_name,
                    "metadata": {**metadata, "updated_at": now},
                }
                if phone:
                    update["phone"] = phone
                client.customers.update(customer_id, params=update)
                logger.info("Reusing Stripe customer %s for lead %s", customer_id, lead_id)
                return customer_id

            create: dict[str, Any] = {
                "email": email,
                "name": full_name,
                "metadata": {**metadata, "created_at": now},
            }
            if phone:
                create["phone"] = phone
            customer = client.customers.create(
                params=create,
                options={"idempotency_key": f"{idempotency_key}_customer"},
            )
            logger.info("Created Stripe customer %s for lead %s", customer.id, lead_id)
            return customer.id

        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error("Stripe customer lookup failed: %s (code: %s)", str(e), error_code)
            raise StripeServiceError(
                f"Failed to manage customer: {e}",
                stripe_error_code=error_code,
                error_kind=classify_stripe_error(e),
            ) from e

    def create_payment_intent(
        self,
        *,
        lead_id: str,
        full_name: str,
        email: str,
        phone: str | None,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        description: str,
        metadata: dict[str, str] | None = None,
    ) -> dict:
        """Create a PaymentIntent for the checkout.

        The idempotency key is forwarded to Stripe: a replay with identical
        parameters returns the original intent, a reuse with different
        parameters fails with an idempotency error.

        Returns:
            Dict with client_secret, payment_intent_id, customer_id, amount, currency.

        Raises:
            StripeServiceError: If creation fails.
        """
        customer_id = self.find_or_create_customer(
            email=email,
            full_name=full_name,
            phone=phone,
            lead_id=lead_id,
            idempotency_key=idempotency_key,
        )
        client = self._get_client()

        intent_metadata = {
            "lead_id": lead_id,
            "customer_name": full_name,
            "customer_email": email,
            "customer_phone": phone or "",
            "source": "checkout_modal",
            "idempotency_key": idempotency_key,
        }
        if metadata:
            intent_metadata.update(metadata)

        try:
            logger.info(
                "Creating PaymentIntent for lead %s, amount %d %s",
                lead_id,
                amount_cents,
                currency,
            )
            intent = client.payment_intents.create(
                params={
                    "amount": amount_cents,
                    "currency": currency,
                    "customer": customer_id,
                    "automatic_payment_methods": {"enabled": True, "allow_redirects": "always"},
                    "description": f"{description}: {full_name}",
                    "receipt_email": email,
                    "metadata": intent_metadata,
                },
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create payment intent: {e}",
                stripe_error_code=error_code,
                error_kind=classify_stripe_error(e),
            ) from e

        logger.info("PaymentIntent created: %s for lead %s", intent.id, lead_id)

        return {
            "client_secret": intent.client_secret,
            "payment_intent_id": intent.id,
            "customer_id": customer_id,
            "amount": intent.amount,
            "currency": intent.currency,
        }


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance (singleton pattern)."""
    return StripeService()
