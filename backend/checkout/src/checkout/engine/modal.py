"""Modal Lifecycle Controller.

Owns the checkout session from open to close and wires the stages to it.
Closing always tears everything down and installs fresh identifiers, so
results of work started before a close are recognised as stale.
"""

from typing import Any

from checkout.config import CheckoutSettings, get_settings
from checkout.models.enums import Step, TrackingEvent
from checkout.models.errors import CheckoutErrorCode, get_error_message
from checkout.models.lead import Attribution, LeadForm
from checkout.models.results import ConfirmationResult
from checkout.models.session import CheckoutSession
from checkout.services.gateway import PaymentGateway
from checkout.services.identifiers import IdempotencyGuard, generate_lead_id
from checkout.services.lead_capture import LeadCaptureClient
from checkout.services.payment_intents import PaymentIntentClient
from checkout.services.stripe_gateway import StripeGateway
from checkout.services.tracking import LoggingTracker, Tracker, safe_track
from checkout.utils.logging import (
    clear_correlation_id,
    get_logger,
    log_checkout_operation,
    set_correlation_id,
)

from .host import HeadlessPageHost, PageHost
from .lead_stage import LeadCaptureStage, clean_phone, is_valid_phone
from .payment_stage import PaymentStageController, teardown_surface
from .prewarmer import PredictiveIntentPrewarmer

logger = get_logger(__name__)


class CheckoutModal:
    """Checkout modal driven by page events.

    Usage:
        modal = CheckoutModal.from_settings()
        modal.open(Attribution(source_section="hero"))
        modal.on_input(LeadForm(full_name="Ana Silva", email="ana@example.com"))
        await modal.submit_lead(form)
        ...  # visitor completes the payment surface
        await modal.pay()
    """

    def __init__(
        self,
        settings: CheckoutSettings,
        *,
        lead_client: LeadCaptureClient,
        intent_client: PaymentIntentClient,
        gateway: PaymentGateway,
        tracker: Tracker | None = None,
        host: PageHost | None = None,
        guard: IdempotencyGuard | None = None,
    ) -> None:
        self.settings = settings
        self.guard = guard or IdempotencyGuard(settings.environment)
        self.tracker = tracker or LoggingTracker()
        self.host = host or HeadlessPageHost()
        self.session = CheckoutSession(
            lead_id=generate_lead_id(),
            idempotency_key=self.guard.mint_key(),
        )
        self._lead_client = lead_client
        self._intent_client = intent_client

        self.prewarmer = PredictiveIntentPrewarmer(self.session, intent_client, self.guard, settings)
        self.lead_stage = LeadCaptureStage(self.session, lead_client, self.tracker, settings)
        self.payment_stage = PaymentStageController(
            self.session,
            intent_client,
            gateway,
            self.guard,
            self.tracker,
            self.host,
            self.prewarmer,
            settings,
        )

    @classmethod
    def from_settings(
        cls, settings: CheckoutSettings | None = None, **kwargs: Any
    ) -> "CheckoutModal":
        """Build a modal with HTTP clients and the Stripe gateway from settings."""
        settings = settings or get_settings()
        timeout = settings.request_timeout_seconds
        return cls(
            settings,
            lead_client=LeadCaptureClient(settings.lead_capture_url, timeout),
            intent_client=PaymentIntentClient(settings.payment_intent_url, timeout),
            gateway=StripeGateway(settings.publishable_key),
            **kwargs,
        )

    @property
    def is_open(self) -> bool:
        return self.session.is_open

    @property
    def step(self) -> Step:
        return self.session.step

    def open(self, attribution: Attribution | None = None) -> None:
        """Show the modal and start a session. Opening an open modal is a no-op."""
        session = self.session
        if session.is_open:
            return

        session.is_open = True
        session.attribution = attribution or Attribution()
        set_correlation_id(session.lead_id)
        self.host.lock_scroll()
        self.prewarmer.start()

        safe_track(
            self.tracker,
            TrackingEvent.CHECKOUT_OPENED,
            {
                "lead_id": session.lead_id,
                "source_section": session.attribution.source_section,
                "page": session.attribution.page,
            },
        )
        log_checkout_operation(logger, "open_modal", lead_id=session.lead_id, status="opened")

    def close(self, reason: str = "dismissed") -> None:
        """Hide the modal, tear down the surface and reset the session."""
        session = self.session
        if not session.is_open:
            return

        lead_id = session.lead_id
        step = session.step
        lead_captured = session.lead is not None and not session.lead_is_provisional

        self.prewarmer.stop()
        teardown_surface(session.release_intent())
        session.reset(generate_lead_id(), self.guard.mint_key())
        self.host.unlock_scroll()

        safe_track(
            self.tracker,
            TrackingEvent.CHECKOUT_CLOSED,
            {
                "lead_id": lead_id,
                "step": step.value,
                "lead_captured": lead_captured,
                "reason": reason,
            },
        )
        log_checkout_operation(logger, "close_modal", lead_id=lead_id, status="closed", reason=reason)
        clear_correlation_id()

    def on_input(self, form: LeadForm) -> None:
        """Feed the latest lead form values to the prewarmer."""
        if self.session.is_open:
            self.prewarmer.observe(form)

    async def submit_lead(self, form: LeadForm) -> bool:
        """Submit the lead form and, on success, prepare the payment step.

        Returns:
            True if the session moved to the payment step.
        """
        if not self.session.is_open:
            return False
        advanced = await self.lead_stage.submit(form)
        if advanced:
            await self.payment_stage.enter()
        return advanced

    async def pay(self) -> ConfirmationResult | None:
        """Trigger the pay action."""
        if not self.session.is_open:
            return None
        return await self.payment_stage.confirm()

    async def retry_payment_setup(self) -> bool:
        """Retry preparing the payment surface after a failure."""
        if not self.session.is_open:
            return False
        return await self.payment_stage.retry_setup()

    def correct_phone(self, phone: str, country_code: str | None = None) -> bool:
        """Correct the phone number of a submitted lead on the payment step.

        The lead ID and the bound intent are kept; the corrected number is
        used as billing detail on confirmation.
        """
        session = self.session
        if session.step != Step.PAYMENT or session.lead is None:
            return False
        if not is_valid_phone(phone):
            session.set_error(
                get_error_message(CheckoutErrorCode.INVALID_PHONE, self.settings.locale),
                CheckoutErrorCode.INVALID_PHONE.value,
            )
            return False
        session.lead = session.lead.with_phone(clean_phone(phone), country_code)
        session.clear_error()
        return True

    async def aclose(self) -> None:
        """Close the modal and release the HTTP clients."""
        self.close(reason="shutdown")
        await self._lead_client.aclose()
        await self._intent_client.aclose()
