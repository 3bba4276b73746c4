"""Unit tests for the Stripe gateway collaborator.

All Stripe interactions are mocked.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe

from checkout.models.results import PaymentFailed, PaymentRequiresAction, PaymentSucceeded
from checkout.services.gateway import GatewayConfigurationError, GatewayError, SurfaceOptions
from checkout.services.stripe_gateway import StripeGateway, StripePaymentSurface

# === Test Configuration ===

TEST_PUBLISHABLE_KEY = "pk_test_abc123"
CLIENT_SECRET = "pi_3Abc123_secret_Xyz789"
BILLING = {"name": "Ana Silva", "email": "ana@example.com"}


@pytest.fixture
def mock_stripe_client():
    """Mock Stripe client for API calls."""
    with patch("checkout.services.stripe_gateway.StripeClient") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        yield mock_client


@pytest.fixture
def gateway(mock_stripe_client) -> StripeGateway:
    return StripeGateway(TEST_PUBLISHABLE_KEY)


@pytest.fixture
def surface(gateway) -> StripePaymentSurface:
    surface = gateway.create_surface(CLIENT_SECRET, SurfaceOptions())
    surface.set_payment_method_data({"type": "card", "card": {"token": "tok_visa"}})
    return surface


class TestConfiguration:
    """Test publishable key handling."""

    def test_missing_key(self):
        with pytest.raises(GatewayConfigurationError):
            StripeGateway(None).create_surface(CLIENT_SECRET, SurfaceOptions())

    def test_secret_key_rejected(self):
        with pytest.raises(GatewayConfigurationError):
            StripeGateway("sk_test_abc").create_surface(CLIENT_SECRET, SurfaceOptions())

    def test_client_lazy_initialized(self, mock_stripe_client):
        gateway = StripeGateway(TEST_PUBLISHABLE_KEY)
        assert gateway._client is None


class TestSurface:
    """Test the payment surface."""

    def test_rejects_non_intent_secret(self, gateway):
        with pytest.raises(GatewayError):
            gateway.create_surface("seti_123_secret_456", SurfaceOptions())

    async def test_lifecycle(self, gateway):
        surface = gateway.create_surface(CLIENT_SECRET, SurfaceOptions(locale="en"))
        changes = []
        surface.on_change(changes.append)

        await surface.mount()
        surface.set_payment_method_data({"type": "card"})
        surface.report_error("incomplete_number", "Your card number is incomplete.")
        surface.destroy()

        assert surface.payment_intent_id == "pi_3Abc123"
        assert [change.complete for change in changes] == [True, False]
        assert changes[1].error_code == "incomplete_number"
        assert surface.destroyed is True
        with pytest.raises(GatewayError):
            await surface.mount()

    def test_element_options_hide_prefilled_fields(self):
        options = SurfaceOptions(billing_details=BILLING).to_element_options()

        assert options["defaultValues"]["billingDetails"] == BILLING
        assert options["fields"]["billingDetails"] == {
            "name": "never",
            "email": "never",
            "phone": "never",
        }


class TestConfirm:
    """Test confirmation outcomes."""

    async def test_succeeded(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.return_value = SimpleNamespace(
            id="pi_3Abc123", status="succeeded", amount=18000, currency="eur"
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="https://x/ty")

        assert result == PaymentSucceeded(payment_intent_id="pi_3Abc123", amount=18000, currency="eur")
        args, kwargs = mock_stripe_client.payment_intents.confirm.call_args
        assert args == ("pi_3Abc123",)
        assert kwargs["params"]["client_secret"] == CLIENT_SECRET
        assert kwargs["params"]["payment_method_data"]["billing_details"] == BILLING
        assert kwargs["params"]["return_url"] == "https://x/ty"

    async def test_requires_action_with_redirect(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.return_value = SimpleNamespace(
            id="pi_3Abc123",
            status="requires_action",
            next_action=SimpleNamespace(redirect_to_url=SimpleNamespace(url="https://bank/3ds")),
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert result == PaymentRequiresAction(
            payment_intent_id="pi_3Abc123",
            status="requires_action",
            redirect_url="https://bank/3ds",
        )

    async def test_processing_multibanco_carries_voucher(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.return_value = SimpleNamespace(
            id="pi_3Abc123",
            status="processing",
            amount=18000,
            currency="eur",
            payment_method_types=["multibanco"],
            next_action=SimpleNamespace(
                type="multibanco_display_details",
                multibanco_display_details=SimpleNamespace(
                    entity="12345",
                    reference="987654321",
                    expires_at=1760900000,
                    hosted_voucher_url="https://payments.stripe.com/multibanco/voucher/x",
                ),
            ),
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert isinstance(result, PaymentRequiresAction)
        assert result.processing is True
        assert result.redirect_url is None
        assert result.payment_method == "multibanco"
        assert result.voucher.entity == "12345"
        assert result.voucher.reference == "987654321"
        assert result.voucher.amount == 18000
        assert result.voucher.expires_at == 1760900000

    async def test_requires_payment_method_is_failure(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.return_value = SimpleNamespace(
            id="pi_3Abc123",
            status="requires_payment_method",
            last_payment_error=SimpleNamespace(
                code="card_declined", decline_code="do_not_honor", message="Declined"
            ),
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert result == PaymentFailed(code="card_declined", decline_code="do_not_honor", message="Declined")

    async def test_card_error(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.side_effect = stripe.CardError(
            "Your card was declined.", None, "card_declined"
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert isinstance(result, PaymentFailed)
        assert result.code == "card_declined"
        assert result.message == "Your card was declined."

    async def test_api_error(self, gateway, surface, mock_stripe_client):
        mock_stripe_client.payment_intents.confirm.side_effect = stripe.APIConnectionError(
            "Network down"
        )

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert isinstance(result, PaymentFailed)
        assert result.code == "processing_error"

    async def test_incomplete_surface(self, gateway, mock_stripe_client):
        surface = gateway.create_surface(CLIENT_SECRET, SurfaceOptions())

        result = await gateway.confirm(surface, billing_details=BILLING, return_url="/ty")

        assert isinstance(result, PaymentFailed)
        assert result.code == "incomplete"
        mock_stripe_client.payment_intents.confirm.assert_not_called()
