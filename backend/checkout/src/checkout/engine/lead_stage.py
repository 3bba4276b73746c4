"""Lead Capture Stage: local validation, lead registration, step advance."""

import asyncio
import re
from datetime import datetime, timezone

from checkout.config import CheckoutSettings
from checkout.models.enums import Step, TrackingEvent
from checkout.models.errors import CheckoutError, CheckoutErrorCode
from checkout.models.lead import LeadForm, LeadRecord, build_lead_payload
from checkout.models.results import LeadAccepted, LeadCaptureResult, TransportFailure
from checkout.models.session import CheckoutSession
from checkout.services.lead_capture import LeadCaptureClient
from checkout.services.tracking import Tracker, safe_track
from checkout.utils.logging import get_logger, log_checkout_operation

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_SEPARATORS = re.compile(r"[\s\-().]")
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15


def clean_phone(phone: str) -> str:
    """Strip spaces, dashes, dots and parentheses from a phone number."""
    return PHONE_SEPARATORS.sub("", phone)


def is_valid_phone(phone: str) -> bool:
    cleaned = clean_phone(phone)
    return cleaned.isdigit() and PHONE_MIN_DIGITS <= len(cleaned) <= PHONE_MAX_DIGITS


def validate_lead_form(form: LeadForm, locale: str = "pt") -> LeadRecord:
    """Validate raw form input and build the lead record.

    Fields are checked in form order; the first failure wins so the
    visitor sees one message at a time.

    Raises:
        CheckoutError: With INVALID_NAME, INVALID_EMAIL or INVALID_PHONE.
    """
    if not form.full_name:
        raise CheckoutError(CheckoutErrorCode.INVALID_NAME, locale)
    if not form.email or not EMAIL_PATTERN.match(form.email):
        raise CheckoutError(CheckoutErrorCode.INVALID_EMAIL, locale)
    if not form.phone or not is_valid_phone(form.phone):
        raise CheckoutError(CheckoutErrorCode.INVALID_PHONE, locale)

    return LeadRecord(
        full_name=form.full_name,
        email=form.email.lower(),
        country_code=form.country_code,
        phone=clean_phone(form.phone),
    )


class LeadCaptureStage:
    """Validates and submits the visitor's identity, then moves the flow to payment."""

    def __init__(
        self,
        session: CheckoutSession,
        client: LeadCaptureClient,
        tracker: Tracker,
        settings: CheckoutSettings,
    ) -> None:
        self._session = session
        self._client = client
        self._tracker = tracker
        self._settings = settings

    async def submit(self, form: LeadForm) -> bool:
        """Handle a lead form submission.

        Returns:
            True if the session advanced to the payment step.
        """
        session = self._session
        if session.step != Step.LEAD or session.submitting_lead:
            logger.debug("Ignoring lead submit in step %s", session.step.value)
            return False

        session.clear_error()

        try:
            lead = validate_lead_form(form, self._settings.locale)
        except CheckoutError as e:
            session.set_error(e.message, e.code.value)
            logger.info("Lead validation failed on %s", e.field.value if e.field else "form")
            return False

        token = session.token()
        payload = build_lead_payload(
            session.lead_id,
            lead,
            session.attribution,
            now=datetime.now(timezone.utc),
        )

        session.submitting_lead = True
        result: LeadCaptureResult
        try:
            result = await asyncio.wait_for(
                self._client.submit(payload),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            result = TransportFailure(message="Lead capture timed out", timed_out=True)
        finally:
            if session.is_current(token):
                session.submitting_lead = False

        if not session.is_current(token):
            log_checkout_operation(logger, "submit_lead", lead_id=token.lead_id, status="stale")
            return False

        if not isinstance(result, LeadAccepted):
            code = (
                CheckoutErrorCode.REQUEST_TIMEOUT
                if isinstance(result, TransportFailure) and result.timed_out
                else CheckoutErrorCode.LEAD_CAPTURE_FAILED
            )
            error = CheckoutError(code, self._settings.locale)
            session.set_error(error.message, code.value)
            log_checkout_operation(
                logger, "submit_lead", lead_id=session.lead_id, error=result.message
            )
            return False

        # Submitted data replaces any provisional record from prewarming
        session.lead = lead
        session.lead_is_provisional = False
        session.advance(Step.PAYMENT)

        safe_track(
            self._tracker,
            TrackingEvent.LEAD_SUBMITTED,
            {
                "lead_id": session.lead_id,
                "form_location": "checkout_modal",
                "source_section": session.attribution.source_section,
            },
        )
        log_checkout_operation(logger, "submit_lead", lead_id=session.lead_id, status="captured")
        return True
