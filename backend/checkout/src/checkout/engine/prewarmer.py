"""Predictive Intent Prewarmer.

While the visitor is still typing the lead form, creates the payment
intent in the background so the payment step can open instantly. This is
an optimization only: every failure is swallowed and the payment stage's
cold path remains the source of truth.
"""

import asyncio

from checkout.config import CheckoutSettings
from checkout.models.enums import Step
from checkout.models.lead import LeadForm, LeadRecord, build_intent_payload
from checkout.models.results import IntentCreated
from checkout.models.session import CheckoutSession, PaymentIntentRef
from checkout.services.identifiers import IdempotencyGuard
from checkout.services.payment_intents import PaymentIntentClient
from checkout.utils.logging import get_logger, log_checkout_operation

from .lead_stage import clean_phone, is_valid_phone
from .timers import Debouncer, call_later

logger = get_logger(__name__)

MIN_NAME_LENGTH = 3


def qualifies(form: LeadForm) -> bool:
    """Minimal validity threshold for a speculative intent."""
    return len(form.full_name) >= MIN_NAME_LENGTH and "@" in form.email


class PredictiveIntentPrewarmer:
    """Debounced, at-most-once speculative intent creation per session."""

    def __init__(
        self,
        session: CheckoutSession,
        client: PaymentIntentClient,
        guard: IdempotencyGuard,
        settings: CheckoutSettings,
    ) -> None:
        self._session = session
        self._client = client
        self._guard = guard
        self._settings = settings
        self._debouncer = Debouncer(settings.prewarm_debounce_seconds, self._fire)
        self._form = LeadForm()
        self._active = False
        self._attempted_for: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._indicator: asyncio.TimerHandle | None = None

    @property
    def attempted(self) -> bool:
        """Whether this session already used its speculative attempt."""
        return self._attempted_for == self._session.lead_id

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def scheduled(self) -> bool:
        return self._debouncer.pending

    def start(self) -> None:
        """Arm the prewarmer for a freshly opened session."""
        self._active = True
        self._form = LeadForm()

    def stop(self) -> None:
        """Disarm on close. An in-flight attempt is left to finish and be discarded."""
        self._active = False
        self._debouncer.cancel()
        if self._indicator is not None:
            self._indicator.cancel()
            self._indicator = None
        self._task = None
        self._form = LeadForm()

    def observe(self, form: LeadForm) -> None:
        """Record the latest form values and (re)start the quiet-period timer."""
        self._form = form
        if self._can_attempt():
            self._debouncer.trigger()
        else:
            self._debouncer.cancel()

    async def wait_for_inflight(self) -> None:
        """Wait for a running speculative attempt to settle."""
        if self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    def _can_attempt(self) -> bool:
        session = self._session
        return (
            self._active
            and session.is_open
            and session.step == Step.LEAD
            and session.intent is None
            and not self.attempted
            and qualifies(self._form)
        )

    def _fire(self) -> None:
        if not self._can_attempt():
            return
        self._attempted_for = self._session.lead_id
        self._task = asyncio.get_running_loop().create_task(self._attempt(self._form))

    async def _attempt(self, form: LeadForm) -> None:
        session = self._session
        token = session.token()
        provisional = LeadRecord(
            full_name=form.full_name,
            email=form.email.lower(),
            country_code=form.country_code,
            phone=clean_phone(form.phone) if is_valid_phone(form.phone) else "",
        )
        key = self._guard.mint_key()
        session.idempotency_key = key
        payload = build_intent_payload(
            token.lead_id,
            provisional,
            session.attribution,
            amount_cents=self._settings.amount_cents,
            currency=self._settings.currency,
        )

        try:
            result = await asyncio.wait_for(
                self._client.create(payload, idempotency_key=key),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            log_checkout_operation(
                logger,
                "prewarm_payment_intent",
                lead_id=token.lead_id,
                idempotency_key=key,
                status="abandoned",
                reason="timeout",
            )
            return
        except Exception as e:
            # Speculative work must never surface an error
            log_checkout_operation(
                logger,
                "prewarm_payment_intent",
                lead_id=token.lead_id,
                idempotency_key=key,
                status="abandoned",
                reason=repr(e),
            )
            return

        if not session.is_current(token):
            log_checkout_operation(
                logger, "prewarm_payment_intent", lead_id=token.lead_id, status="stale"
            )
            return

        if not isinstance(result, IntentCreated):
            log_checkout_operation(
                logger,
                "prewarm_payment_intent",
                lead_id=token.lead_id,
                idempotency_key=key,
                status="abandoned",
                reason=result.kind,
            )
            return

        if session.intent is not None:
            log_checkout_operation(
                logger, "prewarm_payment_intent", lead_id=token.lead_id, status="skipped"
            )
            return

        session.attach_intent(
            PaymentIntentRef(
                client_secret=result.client_secret,
                payment_intent_id=result.payment_intent_id,
                idempotency_key=key,
                predictive=True,
            )
        )
        if session.lead is None:
            session.lead = provisional
            session.lead_is_provisional = True

        self._show_indicator()
        log_checkout_operation(
            logger,
            "prewarm_payment_intent",
            lead_id=token.lead_id,
            idempotency_key=key,
            payment_intent_id=result.payment_intent_id,
            status="warmed",
        )

    def _show_indicator(self) -> None:
        self._session.preparing_indicator = True
        if self._indicator is not None:
            self._indicator.cancel()
        self._indicator = call_later(self._settings.prepare_indicator_seconds, self._hide_indicator)

    def _hide_indicator(self) -> None:
        self._indicator = None
        self._session.preparing_indicator = False
