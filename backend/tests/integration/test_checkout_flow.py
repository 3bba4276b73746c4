"""Integration tests: the checkout engine against the real payment-intent API.

The engine's PaymentIntentClient talks to the FastAPI app in-process via
httpx.ASGITransport; Stripe sits behind a mock StripeService, lead capture
behind httpx.MockTransport, and the gateway is the in-memory fake.
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from checkout.engine.modal import CheckoutModal
from checkout.models.enums import Step, TrackingEvent
from checkout.models.lead import Attribution, LeadForm
from checkout.services.lead_capture import LeadCaptureClient
from checkout.services.payment_intents import PaymentIntentClient
from checkout_api.dependencies import get_stripe

BASE_URL = "http://checkout.test"


@pytest.fixture
def stripe_service():
    """StripeService mock that replays intents per idempotency key."""
    service = MagicMock()
    created: dict[str, dict] = {}

    def create_payment_intent(**kwargs):
        key = kwargs["idempotency_key"]
        if key not in created:
            number = len(created) + 1
            created[key] = {
                "client_secret": f"pi_int{number}_secret_s{number}",
                "payment_intent_id": f"pi_int{number}",
                "customer_id": "cus_int",
                "amount": kwargs["amount_cents"],
                "currency": kwargs["currency"],
            }
        return created[key]

    service.create_payment_intent.side_effect = create_payment_intent
    return service


@pytest.fixture
def api_app(stripe_service):
    from checkout_api.main import app

    app.dependency_overrides[get_stripe] = lambda: stripe_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def captured_leads() -> list[dict]:
    return []


@pytest.fixture
def wired_modal(api_app, captured_leads, checkout_settings, gateway, tracker, page_host):
    """CheckoutModal whose HTTP clients reach the API and a mock lead endpoint."""

    def lead_handler(request: httpx.Request) -> httpx.Response:
        captured_leads.append(
            {"body": json.loads(request.content), "correlation": request.headers.get("X-Correlation-ID")}
        )
        return httpx.Response(201, json={"ok": True})

    lead_client = LeadCaptureClient(
        f"{BASE_URL}/api/leads",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lead_handler)),
    )
    intent_client = PaymentIntentClient(
        f"{BASE_URL}/api/payment-intents",
        http_client=httpx.AsyncClient(transport=httpx.ASGITransport(app=api_app), base_url=BASE_URL),
    )
    return CheckoutModal(
        checkout_settings,
        lead_client=lead_client,
        intent_client=intent_client,
        gateway=gateway,
        tracker=tracker,
        host=page_host,
    )


class TestCheckoutFlow:
    """End-to-end checkout scenarios."""

    async def test_prewarmed_purchase(
        self, wired_modal, stripe_service, gateway, tracker, page_host, captured_leads, valid_form, settle
    ):
        """Typing prewarms the intent, submission reuses it, payment succeeds."""
        modal = wired_modal
        modal.open(Attribution(source_section="hero", page="/event", utm={"utm_source": "ig"}))
        lead_id = modal.session.lead_id

        modal.on_input(LeadForm(full_name="Ana Silva", email="ana@example.com"))
        await settle(0.1)
        assert modal.session.intent is not None

        assert await modal.submit_lead(valid_form) is True
        gateway.surfaces[0].emit(complete=True)
        await modal.pay()
        await settle()

        assert stripe_service.create_payment_intent.call_count == 1
        call = stripe_service.create_payment_intent.call_args.kwargs
        assert call["lead_id"] == lead_id
        assert call["phone"] is None
        assert call["metadata"] == {"utm_source": "ig"}

        assert captured_leads[0]["body"]["lead_id"] == lead_id
        assert captured_leads[0]["correlation"] == lead_id

        assert modal.session.step == Step.SUCCESS
        assert len(tracker.named(TrackingEvent.PURCHASE_COMPLETED)) == 1
        assert page_host.redirects == ["/thank-you"]
        await modal.aclose()

    async def test_cold_path_purchase(self, wired_modal, stripe_service, gateway, valid_form):
        modal = wired_modal
        modal.open()

        await modal.submit_lead(valid_form)

        call = stripe_service.create_payment_intent.call_args.kwargs
        assert call["phone"] == "+351 912345678"
        assert call["idempotency_key"] == modal.session.intent.idempotency_key
        assert gateway.surfaces[0].client_secret == "pi_int1_secret_s1"
        await modal.aclose()

    async def test_server_rejection_then_retry(self, wired_modal, stripe_service, valid_form):
        from checkout.services.stripe_service import StripeServiceError

        modal = wired_modal
        replay = stripe_service.create_payment_intent.side_effect
        stripe_service.create_payment_intent.side_effect = [
            StripeServiceError("Stripe down", error_kind="api"),
        ]
        modal.open()

        await modal.submit_lead(valid_form)
        assert modal.session.setup_failed is True
        assert modal.session.error is not None

        stripe_service.create_payment_intent.side_effect = replay
        assert await modal.retry_payment_setup() is True

        keys = [c.kwargs["idempotency_key"] for c in stripe_service.create_payment_intent.call_args_list]
        assert len(keys) == 2
        assert keys[0] != keys[1]
        await modal.aclose()

    async def test_reopen_starts_clean(self, wired_modal, stripe_service, valid_form):
        modal = wired_modal
        modal.open()
        await modal.submit_lead(valid_form)
        first_lead = modal.session.lead_id

        modal.close()
        modal.open()
        await modal.submit_lead(valid_form)

        lead_ids = [c.kwargs["lead_id"] for c in stripe_service.create_payment_intent.call_args_list]
        assert lead_ids[0] == first_lead
        assert lead_ids[1] == modal.session.lead_id
        assert lead_ids[0] != lead_ids[1]
        await modal.aclose()
