"""Checkout session state.

One ``CheckoutSession`` exists per modal opening. It is the only shared
mutable object in the engine; the modal controller owns it and the stages
mutate it through the methods below.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .enums import Step
from .lead import Attribution, LeadRecord
from .results import VoucherDetails

if TYPE_CHECKING:
    from checkout.services.gateway import PaymentSurface

# Allowed step transitions; PAYMENT -> PAYMENT is the failure/retry loop
_TRANSITIONS: dict[Step, set[Step]] = {
    Step.LEAD: {Step.PAYMENT},
    Step.PAYMENT: {Step.PAYMENT, Step.SUCCESS},
    Step.SUCCESS: set(),
}


class IntentAlreadyBoundError(RuntimeError):
    """Raised when a second payment intent would be attached to a session."""


class PaymentIntentRef(BaseModel):
    """Reference to the live payment intent of a session."""

    model_config = ConfigDict(frozen=True)

    client_secret: str = Field(..., description="Client-usable secret of the intent")
    payment_intent_id: str | None = Field(default=None, description="Gateway intent ID (pi_xxx)")
    idempotency_key: str = Field(..., description="Key the intent was created under")
    predictive: bool = Field(default=False, description="Created by the prewarmer")
    surface_id: str | None = Field(default=None, description="Identity of the bound surface")


@dataclass(frozen=True)
class SessionToken:
    """Identity of a session captured before an async call, for staleness checks."""

    lead_id: str
    idempotency_key: str


@dataclass
class CheckoutSession:
    """Ephemeral state of one modal-open-to-close lifecycle."""

    lead_id: str
    idempotency_key: str
    step: Step = Step.LEAD
    is_open: bool = False
    attribution: Attribution = field(default_factory=Attribution)
    lead: LeadRecord | None = None
    lead_is_provisional: bool = False
    intent: PaymentIntentRef | None = None
    surface: "PaymentSurface | None" = None
    surface_complete: bool = False
    error: str | None = None
    error_code: str | None = None
    submitting_lead: bool = False
    confirming: bool = False
    awaiting_action: bool = False
    processing_method: str | None = None
    voucher: VoucherDetails | None = None
    setup_failed: bool = False
    preparing_indicator: bool = False

    def token(self) -> SessionToken:
        """Capture the session identity before an async boundary."""
        return SessionToken(lead_id=self.lead_id, idempotency_key=self.idempotency_key)

    def is_current(self, token: SessionToken) -> bool:
        """Whether a result started under ``token`` still belongs to this session."""
        return self.is_open and token.lead_id == self.lead_id

    @property
    def pay_enabled(self) -> bool:
        """Whether the pay action can be triggered."""
        return (
            self.step == Step.PAYMENT
            and self.surface is not None
            and self.surface_complete
            and not self.confirming
            and not self.awaiting_action
        )

    def advance(self, step: Step) -> None:
        """Move to ``step``.

        Raises:
            ValueError: If the transition would move the flow backwards.
        """
        if step not in _TRANSITIONS[self.step]:
            raise ValueError(f"Invalid step transition: {self.step.value} -> {step.value}")
        self.step = step

    def set_error(self, message: str, code: str | None = None) -> None:
        """Show ``message`` as the step's single inline error."""
        self.error = message
        self.error_code = code

    def clear_error(self) -> None:
        """Remove the inline error."""
        self.error = None
        self.error_code = None

    def attach_intent(self, intent: PaymentIntentRef) -> None:
        """Store the session's payment intent.

        Raises:
            IntentAlreadyBoundError: If an intent is already live.
        """
        if self.intent is not None:
            raise IntentAlreadyBoundError(
                f"Session {self.lead_id} already holds intent {self.intent.payment_intent_id}"
            )
        self.intent = intent

    def release_intent(self) -> "PaymentSurface | None":
        """Drop the intent and surface references, returning the surface for teardown."""
        surface = self.surface
        self.intent = None
        self.surface = None
        self.surface_complete = False
        return surface

    def reset(self, lead_id: str, idempotency_key: str) -> None:
        """Null every field and install fresh identifiers for the next opening."""
        self.lead_id = lead_id
        self.idempotency_key = idempotency_key
        self.step = Step.LEAD
        self.is_open = False
        self.attribution = Attribution()
        self.lead = None
        self.lead_is_provisional = False
        self.intent = None
        self.surface = None
        self.surface_complete = False
        self.clear_error()
        self.submitting_lead = False
        self.confirming = False
        self.awaiting_action = False
        self.processing_method = None
        self.voucher = None
        self.setup_failed = False
        self.preparing_indicator = False
