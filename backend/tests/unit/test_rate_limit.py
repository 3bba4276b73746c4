"""Unit tests for rate-limit keys and per-origin limits."""

from unittest.mock import MagicMock

import pytest

from checkout_api.rate_limit import (
    client_ip,
    is_dev_origin,
    payment_intent_limit,
    rate_limit_key,
)


def make_request(headers: dict[str, str] | None = None, host: str = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = {k.lower(): v for k, v in (headers or {}).items()}
    request.client.host = host
    return request


class TestClientIp:
    """Test client address resolution."""

    def test_uses_first_forwarded_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.1.1.1"})

        assert client_ip(request) == "203.0.113.7"

    def test_falls_back_to_peer_address(self):
        assert client_ip(make_request()) == "10.0.0.1"

    def test_unknown_without_client(self):
        request = make_request()
        request.client = None

        assert client_ip(request) == "unknown"


class TestRateLimitKey:
    """Test that development and production traffic use separate keys."""

    def test_production_key_is_address(self):
        request = make_request({"Origin": "https://event.example.com"})

        assert rate_limit_key(request) == "10.0.0.1"

    def test_development_key_is_prefixed(self):
        request = make_request({"Origin": "http://localhost:3000"})

        assert rate_limit_key(request) == "dev:10.0.0.1"


class TestPaymentIntentLimit:
    """Test the limit chosen for each key."""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("10.0.0.1", "5/15 minutes"),
            ("dev:10.0.0.1", "20/5 minutes"),
        ],
    )
    def test_limit_per_origin(self, key, expected):
        assert payment_intent_limit(key) == expected


class TestDevOrigin:
    def test_local_origins(self):
        assert is_dev_origin("http://localhost:3000")
        assert is_dev_origin("http://127.0.0.1:5173")
        assert not is_dev_origin("https://event.example.com")
        assert not is_dev_origin(None)
