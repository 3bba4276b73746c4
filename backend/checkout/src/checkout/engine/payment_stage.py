"""Payment Stage Controller.

Binds a payment surface to the session's intent (hot path when the
prewarmer already created one, cold path otherwise), relays surface
changes to the inline error, and runs confirmation.
"""

import asyncio
from urllib.parse import urlencode

from checkout.config import CheckoutSettings
from checkout.models.enums import Step, TrackingEvent
from checkout.models.errors import (
    CheckoutErrorCode,
    categorize_gateway_error,
    get_error_message,
    translate_gateway_error,
)
from checkout.models.lead import build_intent_payload
from checkout.models.results import (
    ConfirmationResult,
    IntentCreated,
    IntentCreationResult,
    IntentRejected,
    PaymentFailed,
    PaymentRequiresAction,
    PaymentSucceeded,
    SurfaceChange,
    TransportFailure,
)
from checkout.models.session import CheckoutSession, PaymentIntentRef, SessionToken
from checkout.services.gateway import (
    ChangeHandler,
    GatewayConfigurationError,
    GatewayError,
    PaymentGateway,
    PaymentSurface,
    SurfaceOptions,
)
from checkout.services.identifiers import IdempotencyGuard
from checkout.services.payment_intents import PaymentIntentClient
from checkout.services.tracking import Tracker, safe_track
from checkout.utils.logging import get_logger, log_checkout_operation

from .host import PageHost
from .prewarmer import PredictiveIntentPrewarmer
from .timers import call_later

logger = get_logger(__name__)

# Rejections from the creation endpoint that have a message of their own
REJECTION_CODES: dict[int, CheckoutErrorCode] = {
    409: CheckoutErrorCode.DUPLICATE_REQUEST,
    429: CheckoutErrorCode.RATE_LIMITED,
}


def processing_redirect_url(base: str, result: PaymentRequiresAction, lead_id: str) -> str:
    """Thank-you URL for a payment that is still processing."""
    params = {
        "payment_intent": result.payment_intent_id or "",
        "payment_method": result.payment_method or "unknown",
        "payment_status": result.status,
        "redirect_status": "processing",
        "lead_id": lead_id,
    }
    if result.voucher is not None:
        params["multibanco_entity"] = result.voucher.entity
        params["multibanco_reference"] = result.voucher.reference
        if result.voucher.amount is not None:
            params["amount"] = str(result.voucher.amount)
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode(params)}"


def teardown_surface(surface: PaymentSurface | None) -> None:
    """Destroy ``surface``; teardown failures are logged and dropped."""
    if surface is None:
        return
    try:
        surface.destroy()
    except Exception:
        logger.exception("Failed to destroy payment surface %s", getattr(surface, "surface_id", "?"))


class PaymentStageController:
    """Owns the payment step of one checkout session."""

    def __init__(
        self,
        session: CheckoutSession,
        client: PaymentIntentClient,
        gateway: PaymentGateway,
        guard: IdempotencyGuard,
        tracker: Tracker,
        host: PageHost,
        prewarmer: PredictiveIntentPrewarmer,
        settings: CheckoutSettings,
    ) -> None:
        self._session = session
        self._client = client
        self._gateway = gateway
        self._guard = guard
        self._tracker = tracker
        self._host = host
        self._prewarmer = prewarmer
        self._settings = settings
        self._redirect: asyncio.TimerHandle | None = None
        self._redirected_for: str | None = None
        self._entering_for: str | None = None

    @property
    def redirect_scheduled(self) -> bool:
        return self._redirect is not None

    async def enter(self) -> bool:
        """Prepare the payment surface for the current session.

        Returns:
            True if a surface is bound and the visitor can pay.
        """
        session = self._session
        if session.step != Step.PAYMENT or self._entering_for == session.lead_id:
            return False
        if session.surface is not None:
            return True

        token = session.token()
        self._entering_for = token.lead_id
        session.setup_failed = False
        try:
            await self._prewarmer.wait_for_inflight()
            if not session.is_current(token):
                log_checkout_operation(logger, "enter_payment", lead_id=token.lead_id, status="stale")
                return False

            if session.intent is not None:
                log_checkout_operation(
                    logger,
                    "enter_payment",
                    lead_id=session.lead_id,
                    payment_intent_id=session.intent.payment_intent_id,
                    status="hot",
                )
            elif not await self._create_intent(token):
                return False

            return await self._bind_surface(token)
        finally:
            if self._entering_for == token.lead_id:
                self._entering_for = None

    async def retry_setup(self) -> bool:
        """Retry a failed intent creation or surface mount."""
        session = self._session
        if session.step != Step.PAYMENT or session.surface is not None:
            return False
        session.clear_error()
        return await self.enter()

    async def _create_intent(self, token: SessionToken) -> bool:
        session = self._session
        assert session.lead is not None

        key = self._guard.mint_key()
        session.idempotency_key = key
        payload = build_intent_payload(
            session.lead_id,
            session.lead,
            session.attribution,
            amount_cents=self._settings.amount_cents,
            currency=self._settings.currency,
        )

        result: IntentCreationResult
        try:
            result = await asyncio.wait_for(
                self._client.create(payload, idempotency_key=key),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            result = TransportFailure(message="Payment intent request timed out", timed_out=True)

        if not session.is_current(token):
            log_checkout_operation(logger, "create_payment_intent", lead_id=token.lead_id, status="stale")
            return False

        if isinstance(result, IntentCreated):
            session.attach_intent(
                PaymentIntentRef(
                    client_secret=result.client_secret,
                    payment_intent_id=result.payment_intent_id,
                    idempotency_key=key,
                )
            )
            log_checkout_operation(
                logger,
                "create_payment_intent",
                lead_id=session.lead_id,
                idempotency_key=key,
                payment_intent_id=result.payment_intent_id,
                status="cold",
            )
            return True

        message, code = self._creation_error(result)
        self._fail_setup(message, result.message, code)
        return False

    def _creation_error(
        self, result: IntentRejected | TransportFailure
    ) -> tuple[str, CheckoutErrorCode | None]:
        locale = self._settings.locale
        if isinstance(result, TransportFailure):
            code = (
                CheckoutErrorCode.REQUEST_TIMEOUT
                if result.timed_out
                else CheckoutErrorCode.INTENT_CREATION_FAILED
            )
            return get_error_message(code, locale), code
        if result.status_code in REJECTION_CODES:
            code = REJECTION_CODES[result.status_code]
            return get_error_message(code, locale), code
        if result.status_code == 400 and result.message:
            # Validation failures carry a field-level message from the server
            return result.message, None
        code = CheckoutErrorCode.INTENT_CREATION_FAILED
        return get_error_message(code, locale), code

    def _fail_setup(self, message: str, detail: str, code: CheckoutErrorCode | None = None) -> None:
        session = self._session
        session.setup_failed = True
        session.set_error(message, code.value if code else None)
        log_checkout_operation(logger, "enter_payment", lead_id=session.lead_id, error=detail)

    async def _bind_surface(self, token: SessionToken) -> bool:
        session = self._session
        assert session.intent is not None and session.lead is not None

        options = SurfaceOptions(
            locale=self._settings.locale,
            billing_details=session.lead.billing_details(),
        )
        surface: PaymentSurface | None = None
        try:
            surface = self._gateway.create_surface(session.intent.client_secret, options)
            surface.on_change(self._change_handler(surface))
            await asyncio.wait_for(surface.mount(), timeout=self._settings.request_timeout_seconds)
        except GatewayConfigurationError as e:
            teardown_surface(surface)
            code = CheckoutErrorCode.GATEWAY_MISCONFIGURED
            self._fail_setup(get_error_message(code, self._settings.locale), str(e), code)
            return False
        except (GatewayError, asyncio.TimeoutError) as e:
            teardown_surface(surface)
            if session.is_current(token):
                code = CheckoutErrorCode.SURFACE_UNAVAILABLE
                self._fail_setup(get_error_message(code, self._settings.locale), repr(e), code)
            return False

        if not session.is_current(token) or session.intent is None:
            teardown_surface(surface)
            log_checkout_operation(logger, "mount_surface", lead_id=token.lead_id, status="stale")
            return False

        session.surface = surface
        session.surface_complete = False
        session.intent = session.intent.model_copy(update={"surface_id": surface.surface_id})
        log_checkout_operation(
            logger,
            "mount_surface",
            lead_id=session.lead_id,
            payment_intent_id=session.intent.payment_intent_id,
            status="mounted",
        )
        return True

    def _change_handler(self, surface: PaymentSurface) -> ChangeHandler:
        def handle(change: SurfaceChange) -> None:
            session = self._session
            if session.surface is not surface:
                return
            session.surface_complete = change.complete
            if change.error_message:
                session.set_error(
                    translate_gateway_error(
                        change.error_code, change.error_message, self._settings.locale
                    ),
                    change.error_code,
                )
            else:
                session.clear_error()

        return handle

    async def confirm(self) -> ConfirmationResult | None:
        """Confirm the payment collected by the bound surface.

        Returns:
            The confirmation result, or None when paying is not possible
            right now (nothing bound, incomplete surface, or a confirmation
            already in flight).
        """
        session = self._session
        if not session.pay_enabled or session.lead is None:
            return None

        surface = session.surface
        assert surface is not None
        token = session.token()
        session.confirming = True
        session.clear_error()

        result: ConfirmationResult
        try:
            result = await asyncio.wait_for(
                self._gateway.confirm(
                    surface,
                    billing_details=session.lead.billing_details(),
                    return_url=self._settings.thank_you_url,
                ),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            result = PaymentFailed(
                code="timeout",
                message=get_error_message(CheckoutErrorCode.REQUEST_TIMEOUT, self._settings.locale),
            )
        except GatewayConfigurationError:
            result = PaymentFailed(
                code="gateway_misconfigured",
                message=get_error_message(
                    CheckoutErrorCode.GATEWAY_MISCONFIGURED, self._settings.locale
                ),
            )
        except GatewayError as e:
            logger.warning("Payment confirmation failed for lead %s: %s", token.lead_id, e)
            result = PaymentFailed(code="processing_error", message=str(e))
        except Exception:
            logger.exception("Unexpected error confirming payment for lead %s", token.lead_id)
            result = PaymentFailed(code="processing_error", message="Processing error")
        finally:
            if session.is_current(token):
                session.confirming = False

        if not session.is_current(token):
            log_checkout_operation(logger, "confirm_payment", lead_id=token.lead_id, status="stale")
            return result

        if isinstance(result, PaymentSucceeded):
            self._on_succeeded(result)
        elif isinstance(result, PaymentRequiresAction):
            self._on_requires_action(result)
        else:
            self._on_failed(result)
        return result

    def _on_succeeded(self, result: PaymentSucceeded) -> None:
        session = self._session
        session.advance(Step.SUCCESS)
        safe_track(
            self._tracker,
            TrackingEvent.PURCHASE_COMPLETED,
            {
                "transaction_id": result.payment_intent_id,
                "value": round(result.amount / 100, 2),
                "currency": result.currency.upper(),
                "lead_id": session.lead_id,
            },
        )
        log_checkout_operation(
            logger,
            "confirm_payment",
            lead_id=session.lead_id,
            payment_intent_id=result.payment_intent_id,
            amount_cents=result.amount,
            status="succeeded",
        )
        teardown_surface(session.release_intent())
        self._schedule_redirect()

    def _on_requires_action(self, result: PaymentRequiresAction) -> None:
        session = self._session
        session.awaiting_action = True
        log_checkout_operation(
            logger,
            "confirm_payment",
            lead_id=session.lead_id,
            payment_intent_id=result.payment_intent_id,
            status=result.status,
        )
        if result.processing:
            self._on_processing(result)
        elif result.redirect_url:
            self._host.redirect(result.redirect_url)

    def _on_processing(self, result: PaymentRequiresAction) -> None:
        """Async method accepted; the payment settles after the visitor leaves."""
        session = self._session
        session.processing_method = result.payment_method or "unknown"
        session.voucher = result.voucher
        safe_track(
            self._tracker,
            TrackingEvent.PAYMENT_PROCESSING,
            {
                "lead_id": session.lead_id,
                "payment_intent_id": result.payment_intent_id or "",
                "payment_method": session.processing_method,
            },
        )
        delay = (
            self._settings.voucher_redirect_delay_seconds
            if result.voucher
            else self._settings.processing_redirect_delay_seconds
        )
        self._schedule_redirect(
            processing_redirect_url(self._settings.thank_you_url, result, session.lead_id), delay
        )

    def _on_failed(self, result: PaymentFailed) -> None:
        session = self._session
        locale = self._settings.locale
        category = categorize_gateway_error(result.code, result.message, result.decline_code)
        session.set_error(
            translate_gateway_error(result.code, result.message, locale, result.decline_code),
            result.code,
        )
        safe_track(
            self._tracker,
            TrackingEvent.PAYMENT_ERROR,
            {
                "lead_id": session.lead_id,
                "error_code": result.code or "unknown",
                "category": category.value if category else "unknown",
                "decline_code": result.decline_code or "",
            },
        )
        log_checkout_operation(
            logger,
            "confirm_payment",
            lead_id=session.lead_id,
            status="failed",
            error=f"{result.code}: {result.message}",
        )

    def _schedule_redirect(self, url: str | None = None, delay: float | None = None) -> None:
        # One redirect per session
        lead_id = self._session.lead_id
        if self._redirected_for == lead_id:
            return
        self._redirected_for = lead_id
        target = url or self._settings.thank_you_url
        if delay is None:
            delay = self._settings.redirect_delay_seconds
        self._redirect = call_later(delay, lambda: self._fire_redirect(target))

    def _fire_redirect(self, url: str) -> None:
        self._redirect = None
        self._host.redirect(url)
