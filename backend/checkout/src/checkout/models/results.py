"""Typed result variants for the engine's network collaborators.

Each endpoint returns one of a small closed set of results instead of a
loosely shaped payload. Callers dispatch with ``isinstance``.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TransportFailure(BaseModel):
    """The call never produced a usable response (network error, timeout, bad body)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["transport_failure"] = "transport_failure"
    message: str
    timed_out: bool = False


# === Lead capture ===


class LeadAccepted(BaseModel):
    """Lead capture endpoint accepted the lead."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["lead_accepted"] = "lead_accepted"
    lead_id: str


class LeadRejected(BaseModel):
    """Lead capture endpoint rejected the payload."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["lead_rejected"] = "lead_rejected"
    status_code: int
    message: str


LeadCaptureResult = LeadAccepted | LeadRejected | TransportFailure


# === Payment-intent creation ===


class IntentCreated(BaseModel):
    """Payment intent created (or replayed) by the creation endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["intent_created"] = "intent_created"
    client_secret: str = Field(..., alias="clientSecret", min_length=1)
    payment_intent_id: str | None = Field(default=None, alias="paymentIntentId")
    customer_id: str | None = Field(default=None, alias="customerId")
    amount: int | None = None
    currency: str | None = None
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")


class IntentRejected(BaseModel):
    """Creation endpoint answered with an error status."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["intent_rejected"] = "intent_rejected"
    status_code: int
    message: str
    code: str | None = None


IntentCreationResult = IntentCreated | IntentRejected | TransportFailure


# === Gateway confirmation ===


class PaymentSucceeded(BaseModel):
    """Gateway confirmed the payment without further action."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["succeeded"] = "succeeded"
    payment_intent_id: str
    amount: int
    currency: str


class VoucherDetails(BaseModel):
    """Payment instructions for a voucher method such as Multibanco."""

    model_config = ConfigDict(frozen=True)

    entity: str = Field(..., description="Multibanco entity number")
    reference: str = Field(..., description="Payment reference")
    amount: int | None = Field(default=None, description="Amount due in cents")
    currency: str | None = None
    expires_at: int | None = Field(default=None, description="Unix timestamp of expiry")
    hosted_voucher_url: str | None = None


class PaymentRequiresAction(BaseModel):
    """Gateway needs an extra step (3-D Secure, redirect, async method).

    ``status`` is ``processing`` for asynchronous methods, which settle
    later; those may carry voucher details for the visitor.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["requires_action"] = "requires_action"
    payment_intent_id: str | None = None
    status: str = "requires_action"
    redirect_url: str | None = None
    payment_method: str | None = None
    voucher: VoucherDetails | None = None

    @property
    def processing(self) -> bool:
        return self.status == "processing"


class PaymentFailed(BaseModel):
    """Gateway refused or could not process the payment."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    code: str | None = None
    decline_code: str | None = None
    message: str


ConfirmationResult = PaymentSucceeded | PaymentRequiresAction | PaymentFailed


class SurfaceChange(BaseModel):
    """Change event emitted by the payment surface."""

    model_config = ConfigDict(frozen=True)

    complete: bool = False
    error_code: str | None = None
    error_message: str | None = None
