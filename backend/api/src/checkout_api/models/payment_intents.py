"""API models for the payment-intent endpoint."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

LEAD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,}$")
NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÿ\s'.-]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?\d{7,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-().]")
IDEMPOTENCY_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,255}$")
SUPPORTED_CURRENCIES = {"eur", "usd", "gbp"}

SUSPICIOUS_PATTERNS = [
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"\b(union\s+select|drop\s+table|insert\s+into|delete\s+from)\b", re.IGNORECASE),
    re.compile(r"(;|--)\s*(select|drop|insert|update|delete)\b", re.IGNORECASE),
]


def _reject_suspicious(value: str, field: str) -> str:
    if any(pattern.search(value) for pattern in SUSPICIOUS_PATTERNS):
        raise ValueError(f"Suspicious content in {field}")
    return value


class CreatePaymentIntentRequest(BaseModel):
    """Request to create a PaymentIntent for a captured lead."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {
                    "lead_id": "2f0c6a8e-2b1f-4c55-9a51-6d1d2f7c9b10",
                    "full_name": "Ana Silva",
                    "email": "ana@example.com",
                    "phone": "+351 912345678",
                    "amount": 18000,
                    "currency": "eur",
                    "idempotency_key": "idm_1760781234567891234_3f9a0c1d2e3f4a5b6c7d8e9f_a1b2c3d4",
                }
            ]
        },
    )

    lead_id: str = Field(..., description="Lead ID of the checkout session")
    full_name: str = Field(..., description="Customer full name")
    email: str = Field(..., description="Customer email")
    phone: str | None = Field(default=None, description="Phone with country code (optional)")
    amount: int = Field(default=18000, description="Amount in cents")
    currency: str = Field(default="eur", description="ISO currency code")
    idempotency_key: str | None = Field(
        default=None, description="Must equal the X-Idempotency-Key header when both are sent"
    )
    utm_source: str | None = Field(default=None, max_length=255)
    utm_medium: str | None = Field(default=None, max_length=255)
    utm_campaign: str | None = Field(default=None, max_length=255)
    utm_term: str | None = Field(default=None, max_length=255)
    utm_content: str | None = Field(default=None, max_length=255)

    @field_validator("lead_id")
    @classmethod
    def validate_lead_id(cls, value: str) -> str:
        if not LEAD_ID_PATTERN.match(value):
            raise ValueError("Invalid lead_id format")
        return value

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        if not 2 <= len(value) <= 100:
            raise ValueError("Name must be between 2 and 100 characters")
        if not NAME_PATTERN.match(value):
            raise ValueError("Name contains invalid characters")
        return _reject_suspicious(value, "name")

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.lower()
        if len(value) > 254 or not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return _reject_suspicious(value, "email")

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if not value:
            return None
        if not PHONE_PATTERN.match(PHONE_SEPARATORS.sub("", value)):
            raise ValueError("Invalid phone number format")
        return value

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: int) -> int:
        if not 50 <= value <= 1_000_000:
            raise ValueError("Amount must be between 50 and 1000000 cents")
        return value

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, value: str) -> str:
        value = value.lower()
        if value not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {value}")
        return value

    @field_validator("idempotency_key")
    @classmethod
    def validate_idempotency_key(cls, value: str | None) -> str | None:
        if value is not None and not IDEMPOTENCY_KEY_PATTERN.match(value):
            raise ValueError("Invalid idempotency_key format")
        return value

    @field_validator("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")
    @classmethod
    def validate_utm(cls, value: str | None) -> str | None:
        if value:
            return _reject_suspicious(value, "utm parameter")
        return value or None

    def utm_metadata(self) -> dict[str, str]:
        """UTM fields that were sent, for PaymentIntent metadata."""
        return {
            name: value
            for name in ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")
            if (value := getattr(self, name))
        }


class PaymentIntentResponse(BaseModel):
    """Created PaymentIntent as returned to the engine."""

    model_config = ConfigDict(populate_by_name=True)

    client_secret: str = Field(..., alias="clientSecret")
    payment_intent_id: str = Field(..., alias="paymentIntentId")
    customer_id: str = Field(..., alias="customerId")
    amount: int
    currency: str
    idempotency_key: str = Field(..., alias="idempotencyKey")
