"""Pytest configuration and fixtures for checkout backend tests.

This module provides reusable fixtures for testing:
- In-memory collaborators for the engine (lead capture, intent creation,
  payment gateway, tracker, page host)
- A fully wired CheckoutModal with fast timers
- Cache resets for the lru_cache service singletons
"""

import asyncio
import os
from typing import Any, Generator

import pytest

# === Environment Setup ===

os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("ENVIRONMENT", "dev")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from checkout.config import CheckoutSettings  # noqa: E402
from checkout.engine.host import HeadlessPageHost  # noqa: E402
from checkout.engine.modal import CheckoutModal  # noqa: E402
from checkout.models import LeadForm  # noqa: E402
from checkout.models.enums import TrackingEvent  # noqa: E402
from checkout.models.results import (  # noqa: E402
    ConfirmationResult,
    IntentCreated,
    IntentCreationResult,
    LeadAccepted,
    LeadCaptureResult,
    PaymentSucceeded,
    SurfaceChange,
)
from checkout.services.gateway import SurfaceOptions  # noqa: E402

# Timer settings small enough to keep async tests fast
FAST_DEBOUNCE = 0.01
FAST_INDICATOR = 0.05
FAST_REDIRECT = 0.01


# === Collaborator Fakes ===


class FakeLeadClient:
    """Lead capture collaborator returning queued results (accepted by default)."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []
        self.results: list[LeadCaptureResult] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def submit(self, payload: dict[str, Any]) -> LeadCaptureResult:
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            return self.results.pop(0)
        return LeadAccepted(lead_id=payload["lead_id"])

    async def aclose(self) -> None:
        self.closed = True


class FakeIntentsClient:
    """Intent creation collaborator returning queued results (created by default)."""

    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], str]] = []
        self.results: list[IntentCreationResult | Exception] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    @property
    def keys(self) -> list[str]:
        return [key for _, key in self.calls]

    async def create(self, payload: dict[str, Any], *, idempotency_key: str) -> IntentCreationResult:
        self.calls.append((payload, idempotency_key))
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        number = len(self.calls)
        return IntentCreated(
            client_secret=f"pi_test{number}_secret_abc{number}",
            payment_intent_id=f"pi_test{number}",
            customer_id="cus_test",
            amount=payload["amount"],
            currency=payload["currency"],
            idempotency_key=idempotency_key,
        )

    async def aclose(self) -> None:
        self.closed = True


class FakeSurface:
    """Payment surface that records lifecycle calls."""

    def __init__(self, surface_id: str, client_secret: str, options: SurfaceOptions) -> None:
        self.surface_id = surface_id
        self.client_secret = client_secret
        self.options = options
        self.mounted = False
        self.destroyed = False
        self.mount_error: Exception | None = None
        self.destroy_error: Exception | None = None
        self._handlers: list = []

    async def mount(self) -> None:
        if self.mount_error is not None:
            raise self.mount_error
        self.mounted = True

    def destroy(self) -> None:
        self.destroyed = True
        if self.destroy_error is not None:
            raise self.destroy_error

    def on_change(self, handler) -> None:
        self._handlers.append(handler)

    def emit(
        self,
        complete: bool = True,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> None:
        change = SurfaceChange(complete=complete, error_code=error_code, error_message=error_message)
        for handler in list(self._handlers):
            handler(change)


class FakeGateway:
    """Gateway collaborator with queued confirmation results (success by default)."""

    def __init__(self) -> None:
        self.surfaces: list[FakeSurface] = []
        self.confirm_calls: list[dict[str, Any]] = []
        self.confirm_results: list[ConfirmationResult | Exception] = []
        self.create_error: Exception | None = None
        self.mount_error: Exception | None = None
        self.confirm_gate: asyncio.Event | None = None

    def create_surface(self, client_secret: str, options: SurfaceOptions) -> FakeSurface:
        if self.create_error is not None:
            raise self.create_error
        surface = FakeSurface(f"surf_{len(self.surfaces) + 1}", client_secret, options)
        surface.mount_error = self.mount_error
        self.surfaces.append(surface)
        return surface

    async def confirm(
        self,
        surface: FakeSurface,
        *,
        billing_details: dict[str, str],
        return_url: str,
    ) -> ConfirmationResult:
        self.confirm_calls.append(
            {"surface": surface, "billing_details": billing_details, "return_url": return_url}
        )
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        if self.confirm_results:
            result = self.confirm_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return PaymentSucceeded(
            payment_intent_id=surface.client_secret.split("_secret_")[0],
            amount=18000,
            currency="eur",
        )


class RecordingTracker:
    """Tracker that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[TrackingEvent, dict[str, Any]]] = []

    def track(self, event: TrackingEvent, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: TrackingEvent) -> list[dict[str, Any]]:
        return [payload for recorded, payload in self.events if recorded == event]


# === Engine Fixtures ===


@pytest.fixture
def checkout_settings() -> CheckoutSettings:
    """Engine settings with fast timers."""
    return CheckoutSettings(
        environment="test",
        publishable_key="pk_test_123",
        prewarm_debounce_seconds=FAST_DEBOUNCE,
        prepare_indicator_seconds=FAST_INDICATOR,
        redirect_delay_seconds=FAST_REDIRECT,
        request_timeout_seconds=1.0,
    )


@pytest.fixture
def lead_client() -> FakeLeadClient:
    return FakeLeadClient()


@pytest.fixture
def intents_client() -> FakeIntentsClient:
    return FakeIntentsClient()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def tracker() -> RecordingTracker:
    return RecordingTracker()


@pytest.fixture
def page_host() -> HeadlessPageHost:
    return HeadlessPageHost()


@pytest.fixture
def modal(
    checkout_settings: CheckoutSettings,
    lead_client: FakeLeadClient,
    intents_client: FakeIntentsClient,
    gateway: FakeGateway,
    tracker: RecordingTracker,
    page_host: HeadlessPageHost,
) -> CheckoutModal:
    """CheckoutModal wired to in-memory collaborators."""
    return CheckoutModal(
        checkout_settings,
        lead_client=lead_client,
        intent_client=intents_client,
        gateway=gateway,
        tracker=tracker,
        host=page_host,
    )


@pytest.fixture
def valid_form() -> LeadForm:
    """Lead form that passes local validation."""
    return LeadForm(full_name="Ana Silva", email="ana@example.com", phone="912345678")


# === Service Singletons ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Clear lru_cache singletons so each test builds its own services."""
    from checkout.services.ssm_service import get_ssm_service
    from checkout.services.stripe_service import get_stripe_service
    from checkout_api.dependencies import reset_services

    reset_services()
    get_ssm_service.cache_clear()
    get_stripe_service.cache_clear()
    yield
    reset_services()
    get_ssm_service.cache_clear()
    get_stripe_service.cache_clear()


@pytest.fixture
def settle():
    """Coroutine that lets timers fire and spawned tasks run to completion."""

    async def _settle(seconds: float = 0.05) -> None:
        await asyncio.sleep(seconds)

    return _settle
