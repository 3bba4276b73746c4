"""Stripe implementation of the payment gateway collaborator.

Confirms PaymentIntents with the publishable key and the intent's client
secret, which is what Stripe.js does in the browser. Payment details are
supplied to the surface as ``payment_method_data`` (e.g. a card token or
wallet payload) by whatever renders the form.

Usage:
    gateway = StripeGateway(publishable_key="pk_test_...")
    surface = gateway.create_surface(client_secret, SurfaceOptions(locale="pt"))
    await surface.mount()
    surface.set_payment_method_data({"type": "card", "card": {"token": "tok_visa"}})
    result = await gateway.confirm(surface, billing_details={...}, return_url=url)
"""

import asyncio
import re
import uuid
from typing import Any

import stripe
from stripe import StripeClient

from checkout.models.results import (
    ConfirmationResult,
    PaymentFailed,
    PaymentRequiresAction,
    PaymentSucceeded,
    SurfaceChange,
    VoucherDetails,
)
from checkout.utils.logging import get_logger, log_checkout_operation

from .gateway import ChangeHandler, GatewayConfigurationError, GatewayError, SurfaceOptions

logger = get_logger(__name__)

CLIENT_SECRET_PATTERN = re.compile(r"^(pi_[A-Za-z0-9]+)_secret_[A-Za-z0-9]+$")

# Intent statuses completed out of band (redirect, 3-D Secure, async methods)
PENDING_STATUSES = {"requires_action", "processing", "requires_confirmation"}


def _payment_method(intent: Any) -> str | None:
    types = getattr(intent, "payment_method_types", None) or []
    return types[0] if types else None


def _voucher_details(intent: Any) -> VoucherDetails | None:
    """Multibanco voucher from the intent's next action, if any."""
    next_action = getattr(intent, "next_action", None)
    details = getattr(next_action, "multibanco_display_details", None) if next_action else None
    if details is None or not getattr(details, "entity", None):
        return None
    return VoucherDetails(
        entity=str(details.entity),
        reference=str(details.reference),
        amount=getattr(intent, "amount", None),
        currency=getattr(intent, "currency", None),
        expires_at=getattr(details, "expires_at", None),
        hosted_voucher_url=getattr(details, "hosted_voucher_url", None),
    )


class StripePaymentSurface:
    """Payment surface bound to one Stripe PaymentIntent."""

    def __init__(self, client_secret: str, options: SurfaceOptions) -> None:
        match = CLIENT_SECRET_PATTERN.match(client_secret)
        if not match:
            raise GatewayError("Client secret does not belong to a PaymentIntent")
        self.surface_id = f"pe_{uuid.uuid4().hex[:16]}"
        self.client_secret = client_secret
        self.payment_intent_id = match.group(1)
        self.options = options
        self.element_options = options.to_element_options()
        self.payment_method_data: dict[str, Any] | None = None
        self.mounted = False
        self.destroyed = False
        self._handlers: list[ChangeHandler] = []

    async def mount(self) -> None:
        if self.destroyed:
            raise GatewayError(f"Surface {self.surface_id} was destroyed")
        self.mounted = True
        logger.info("Payment surface %s mounted for %s", self.surface_id, self.payment_intent_id)

    def destroy(self) -> None:
        self.destroyed = True
        self.mounted = False
        self._handlers.clear()
        self.payment_method_data = None

    def on_change(self, handler: ChangeHandler) -> None:
        self._handlers.append(handler)

    def set_payment_method_data(self, data: dict[str, Any] | None) -> None:
        """Record the visitor's payment details; ``None`` marks the form incomplete."""
        self.payment_method_data = data
        self._emit(SurfaceChange(complete=data is not None))

    def report_error(self, code: str, message: str) -> None:
        """Report a live validation error from the form."""
        self.payment_method_data = None
        self._emit(SurfaceChange(complete=False, error_code=code, error_message=message))

    def _emit(self, change: SurfaceChange) -> None:
        for handler in list(self._handlers):
            handler(change)


class StripeGateway:
    """Gateway client over the Stripe API using the publishable key."""

    def __init__(self, publishable_key: str | None) -> None:
        self._publishable_key = publishable_key
        self._client: StripeClient | None = None

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization).

        Raises:
            GatewayConfigurationError: If no publishable key is configured.
        """
        if self._client is None:
            if not self._publishable_key:
                raise GatewayConfigurationError("Stripe publishable key not configured")
            if not self._publishable_key.startswith("pk_"):
                raise GatewayConfigurationError("Stripe key is not a publishable key")
            self._client = StripeClient(self._publishable_key)
            logger.info("Stripe gateway client initialized")
        return self._client

    def create_surface(self, client_secret: str, options: SurfaceOptions) -> StripePaymentSurface:
        self._get_client()
        return StripePaymentSurface(client_secret, options)

    async def confirm(
        self,
        surface: StripePaymentSurface,
        *,
        billing_details: dict[str, str],
        return_url: str,
    ) -> ConfirmationResult:
        client = self._get_client()

        if surface.payment_method_data is None:
            return PaymentFailed(code="incomplete", message="Payment details are incomplete.")

        params: dict[str, Any] = {
            "client_secret": surface.client_secret,
            "payment_method_data": {
                **surface.payment_method_data,
                "billing_details": billing_details,
            },
            "return_url": return_url,
        }

        try:
            intent = await asyncio.to_thread(
                client.payment_intents.confirm,
                surface.payment_intent_id,
                params=params,
            )
        except stripe.CardError as e:
            error = getattr(e, "error", None)
            decline_code = getattr(error, "decline_code", None) if error else None
            log_checkout_operation(
                logger,
                "confirm_payment",
                payment_intent_id=surface.payment_intent_id,
                status="declined",
                error=f"{e.code}/{decline_code}",
            )
            return PaymentFailed(
                code=e.code,
                decline_code=decline_code,
                message=e.user_message or str(e),
            )
        except stripe.StripeError as e:
            log_checkout_operation(
                logger,
                "confirm_payment",
                payment_intent_id=surface.payment_intent_id,
                error=str(e),
            )
            return PaymentFailed(
                code=getattr(e, "code", None) or "processing_error",
                message=e.user_message or str(e),
            )

        return self._to_result(intent)

    @staticmethod
    def _to_result(intent: Any) -> ConfirmationResult:
        """Map a confirmed PaymentIntent to a confirmation result."""
        if intent.status == "succeeded":
            log_checkout_operation(
                logger,
                "confirm_payment",
                payment_intent_id=intent.id,
                amount_cents=intent.amount,
                status="succeeded",
            )
            return PaymentSucceeded(
                payment_intent_id=intent.id,
                amount=intent.amount,
                currency=intent.currency,
            )

        if intent.status in PENDING_STATUSES:
            redirect_url = None
            next_action = getattr(intent, "next_action", None)
            redirect = getattr(next_action, "redirect_to_url", None) if next_action else None
            if redirect is not None:
                redirect_url = getattr(redirect, "url", None)
            log_checkout_operation(
                logger,
                "confirm_payment",
                payment_intent_id=intent.id,
                status=intent.status,
            )
            return PaymentRequiresAction(
                payment_intent_id=intent.id,
                status=intent.status,
                redirect_url=redirect_url,
                payment_method=_payment_method(intent),
                voucher=_voucher_details(intent),
            )

        last_error = getattr(intent, "last_payment_error", None)
        return PaymentFailed(
            code=getattr(last_error, "code", None) or "processing_error",
            decline_code=getattr(last_error, "decline_code", None),
            message=getattr(last_error, "message", None) or "Processing error",
        )
