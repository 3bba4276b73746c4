"""Engine configuration loaded from environment variables.

All values have development defaults so the engine can be constructed in
tests without any environment set up. Production deployments set the
``CHECKOUT_*`` variables.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSettings(BaseModel):
    """Settings for one checkout engine instance."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment name")
    locale: str = Field(default="pt", description="Locale for user-facing messages")
    publishable_key: str | None = Field(
        default=None, description="Gateway publishable key (pk_xxx)"
    )
    lead_capture_url: str = Field(
        default="http://localhost:8080/api/leads",
        description="Lead capture endpoint",
    )
    payment_intent_url: str = Field(
        default="http://localhost:8080/api/payment-intents",
        description="Payment-intent creation endpoint",
    )
    thank_you_url: str = Field(default="/thank-you", description="Post-success destination")
    amount_cents: int = Field(default=18000, gt=0, description="Ticket price in cents")
    currency: str = Field(default="eur", description="ISO currency code (lowercase)")
    prewarm_debounce_seconds: float = Field(
        default=1.0, ge=0, description="Quiet period before a predictive intent is created"
    )
    prepare_indicator_seconds: float = Field(
        default=3.0, ge=0, description="How long the 'payment is being prepared' hint stays up"
    )
    redirect_delay_seconds: float = Field(
        default=2.0, ge=0, description="Delay before redirecting after immediate success"
    )
    processing_redirect_delay_seconds: float = Field(
        default=5.0, ge=0, description="Delay before redirecting while an async payment processes"
    )
    voucher_redirect_delay_seconds: float = Field(
        default=12.0, ge=0, description="Delay that leaves a payment voucher on screen"
    )
    request_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Timeout for lead, intent and gateway calls"
    )

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        """Build settings from ``CHECKOUT_*`` environment variables.

        Returns:
            CheckoutSettings with environment overrides applied.
        """
        env = os.environ
        overrides: dict[str, str] = {}

        mapping = {
            "environment": "ENVIRONMENT",
            "locale": "CHECKOUT_LOCALE",
            "publishable_key": "STRIPE_PUBLISHABLE_KEY",
            "lead_capture_url": "CHECKOUT_LEAD_CAPTURE_URL",
            "payment_intent_url": "CHECKOUT_PAYMENT_INTENT_URL",
            "thank_you_url": "CHECKOUT_THANK_YOU_URL",
            "amount_cents": "CHECKOUT_AMOUNT_CENTS",
            "currency": "CHECKOUT_CURRENCY",
            "prewarm_debounce_seconds": "CHECKOUT_PREWARM_DEBOUNCE_SECONDS",
            "prepare_indicator_seconds": "CHECKOUT_PREPARE_INDICATOR_SECONDS",
            "redirect_delay_seconds": "CHECKOUT_REDIRECT_DELAY_SECONDS",
            "processing_redirect_delay_seconds": "CHECKOUT_PROCESSING_REDIRECT_DELAY_SECONDS",
            "voucher_redirect_delay_seconds": "CHECKOUT_VOUCHER_REDIRECT_DELAY_SECONDS",
            "request_timeout_seconds": "CHECKOUT_REQUEST_TIMEOUT_SECONDS",
        }
        for field_name, var in mapping.items():
            value = env.get(var)
            if value:
                overrides[field_name] = value

        return cls.model_validate(overrides)


@lru_cache(maxsize=1)
def get_settings() -> CheckoutSettings:
    """Get the shared CheckoutSettings instance.

    Returns:
        CheckoutSettings: Cached settings built from the environment.
    """
    return CheckoutSettings.from_env()
