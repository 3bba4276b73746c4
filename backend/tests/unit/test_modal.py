"""Unit tests for the Modal Lifecycle Controller."""

from unittest.mock import patch

from checkout.config import CheckoutSettings
from checkout.engine.modal import CheckoutModal
from checkout.models.enums import Step, TrackingEvent
from checkout.models.errors import CheckoutErrorCode
from checkout.models.lead import Attribution
from checkout.services.lead_capture import LeadCaptureClient
from checkout.services.payment_intents import PaymentIntentClient
from checkout.services.stripe_gateway import StripeGateway
from checkout.utils.logging import get_correlation_id


class TestOpen:
    """Test opening the modal."""

    def test_open_starts_session(self, modal, tracker, page_host):
        modal.open(Attribution(source_section="hero", page="/event"))

        assert modal.is_open is True
        assert modal.step == Step.LEAD
        assert page_host.scroll_locked is True
        opened = tracker.named(TrackingEvent.CHECKOUT_OPENED)
        assert opened == [
            {"lead_id": modal.session.lead_id, "source_section": "hero", "page": "/event"}
        ]

    def test_open_sets_correlation_id(self, modal):
        modal.open()
        assert get_correlation_id() == modal.session.lead_id

    def test_open_twice_is_noop(self, modal, tracker):
        modal.open()
        lead_id = modal.session.lead_id
        modal.open()

        assert modal.session.lead_id == lead_id
        assert len(tracker.named(TrackingEvent.CHECKOUT_OPENED)) == 1

    def test_tracker_failure_does_not_block_open(self, modal, tracker):
        with patch.object(tracker, "track", side_effect=RuntimeError("analytics down")):
            modal.open()
        assert modal.is_open is True


class TestClose:
    """Test closing the modal."""

    def test_reopen_gets_fresh_identity(self, modal):
        """open -> close -> open yields a different lead ID and idempotency key."""
        modal.open()
        first = (modal.session.lead_id, modal.session.idempotency_key)
        modal.close()
        modal.open()

        assert modal.session.lead_id != first[0]
        assert modal.session.idempotency_key != first[1]

    async def test_close_resets_everything(self, modal, gateway, page_host, valid_form):
        modal.open()
        await modal.submit_lead(valid_form)
        surface = gateway.surfaces[0]

        modal.close()

        session = modal.session
        assert surface.destroyed is True
        assert session.is_open is False
        assert session.step == Step.LEAD
        assert session.lead is None
        assert session.intent is None
        assert session.surface is None
        assert session.error is None
        assert page_host.scroll_locked is False

    async def test_teardown_failure_is_swallowed(self, modal, gateway, valid_form):
        modal.open()
        await modal.submit_lead(valid_form)
        gateway.surfaces[0].destroy_error = RuntimeError("already gone")

        modal.close()

        assert modal.is_open is False
        assert modal.session.surface is None

    async def test_close_tracks_progress(self, modal, tracker, valid_form):
        modal.open()
        await modal.submit_lead(valid_form)
        lead_id = modal.session.lead_id

        modal.close(reason="escape")

        closed = tracker.named(TrackingEvent.CHECKOUT_CLOSED)
        assert closed == [
            {"lead_id": lead_id, "step": "payment", "lead_captured": True, "reason": "escape"}
        ]

    def test_close_when_closed_is_noop(self, modal, tracker):
        modal.close()
        assert tracker.events == []

    async def test_actions_ignored_while_closed(self, modal, lead_client, valid_form):
        assert await modal.submit_lead(valid_form) is False
        assert await modal.pay() is None
        assert await modal.retry_payment_setup() is False
        assert lead_client.payloads == []


class TestCorrectPhone:
    """Test phone correction on the payment step."""

    async def test_keeps_lead_id_and_intent(self, modal, valid_form):
        modal.open()
        await modal.submit_lead(valid_form)
        lead_id = modal.session.lead_id
        intent = modal.session.intent

        assert modal.correct_phone("(93) 456-7890", "+44") is True

        assert modal.session.lead_id == lead_id
        assert modal.session.intent == intent
        assert modal.session.lead.full_phone == "+44 934567890"

    async def test_invalid_phone_sets_error(self, modal, valid_form):
        modal.open()
        await modal.submit_lead(valid_form)

        assert modal.correct_phone("12") is False
        assert modal.session.error_code == CheckoutErrorCode.INVALID_PHONE.value
        assert modal.session.lead.phone == "912345678"

    def test_not_available_on_lead_step(self, modal):
        modal.open()
        assert modal.correct_phone("912345678") is False


class TestFromSettings:
    """Test building a modal with real collaborators."""

    async def test_builds_http_clients_and_stripe_gateway(self):
        modal = CheckoutModal.from_settings(CheckoutSettings(publishable_key="pk_test_1"))

        assert isinstance(modal.lead_stage._client, LeadCaptureClient)
        assert isinstance(modal.payment_stage._client, PaymentIntentClient)
        assert isinstance(modal.payment_stage._gateway, StripeGateway)
        await modal.aclose()
