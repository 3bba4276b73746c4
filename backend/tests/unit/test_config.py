"""Unit tests for engine and API settings."""

import pytest
from pydantic import ValidationError

from checkout.config import CheckoutSettings
from checkout_api.config import ApiSettings


class TestCheckoutSettings:
    """Test CheckoutSettings defaults and environment loading."""

    def test_defaults(self):
        settings = CheckoutSettings()

        assert settings.locale == "pt"
        assert settings.amount_cents == 18000
        assert settings.currency == "eur"
        assert settings.publishable_key is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("STRIPE_PUBLISHABLE_KEY", "pk_live_1")
        monkeypatch.setenv("CHECKOUT_AMOUNT_CENTS", "25000")
        monkeypatch.setenv("CHECKOUT_PREWARM_DEBOUNCE_SECONDS", "0.5")

        settings = CheckoutSettings.from_env()

        assert settings.environment == "prod"
        assert settings.publishable_key == "pk_live_1"
        assert settings.amount_cents == 25000
        assert settings.prewarm_debounce_seconds == 0.5

    def test_rejects_non_positive_amount(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_AMOUNT_CENTS", "0")
        with pytest.raises(ValidationError):
            CheckoutSettings.from_env()


class TestApiSettings:
    """Test ApiSettings environment loading."""

    def test_allowed_origins_from_env(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_ALLOWED_ORIGINS", "https://a.example, https://b.example")

        settings = ApiSettings.from_env()

        assert settings.allowed_origins == ("https://a.example", "https://b.example")

    def test_rate_limit_defaults(self):
        settings = ApiSettings()

        assert settings.rate_limit == "5/15 minutes"
        assert settings.dev_rate_limit == "20/5 minutes"
