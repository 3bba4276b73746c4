"""Request and response models for the checkout API."""

from checkout_api.models.payment_intents import (
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
)

__all__ = ["CreatePaymentIntentRequest", "PaymentIntentResponse"]
