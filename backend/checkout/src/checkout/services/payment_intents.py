"""HTTP client for the payment-intent creation endpoint.

Every call carries its idempotency key twice, as the ``X-Idempotency-Key``
header and as the ``idempotency_key`` body field; the endpoint rejects a
request where the two differ.
"""

from typing import Any

import httpx
from pydantic import ValidationError

from checkout.models.results import (
    IntentCreated,
    IntentCreationResult,
    IntentRejected,
    TransportFailure,
)
from checkout.utils.logging import get_logger, log_checkout_operation

from .http import default_headers, extract_error_message
from .identifiers import IdempotencyGuard

logger = get_logger(__name__)


class PaymentIntentClient:
    """Creates payment intents through the checkout API."""

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def create(
        self,
        payload: dict[str, Any],
        *,
        idempotency_key: str,
    ) -> IntentCreationResult:
        """Create a payment intent.

        Args:
            payload: Lead fields, amount and currency.
            idempotency_key: Freshly minted key for this attempt.

        Returns:
            IntentCreated, IntentRejected or TransportFailure.
        """
        body = {**payload, "idempotency_key": idempotency_key}
        headers = {**default_headers(), **IdempotencyGuard.headers_for(idempotency_key)}
        lead_id = str(payload.get("lead_id", ""))

        try:
            response = await self._client.post(self._url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            log_checkout_operation(
                logger,
                "create_payment_intent",
                lead_id=lead_id,
                idempotency_key=idempotency_key,
                error=f"timeout: {e}",
            )
            return TransportFailure(message=f"Payment intent creation timed out: {e}", timed_out=True)
        except httpx.HTTPError as e:
            log_checkout_operation(
                logger,
                "create_payment_intent",
                lead_id=lead_id,
                idempotency_key=idempotency_key,
                error=str(e),
            )
            return TransportFailure(message=f"Payment intent creation failed: {e}")

        if not response.is_success:
            message, code = extract_error_message(
                response, "Erro ao processar pagamento. Tente novamente."
            )
            log_checkout_operation(
                logger,
                "create_payment_intent",
                lead_id=lead_id,
                idempotency_key=idempotency_key,
                status=f"http_{response.status_code}",
                error=message,
            )
            return IntentRejected(status_code=response.status_code, message=message, code=code)

        try:
            created = IntentCreated.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            log_checkout_operation(
                logger,
                "create_payment_intent",
                lead_id=lead_id,
                idempotency_key=idempotency_key,
                error=f"malformed response: {e}",
            )
            return TransportFailure(message="Malformed payment intent response")

        log_checkout_operation(
            logger,
            "create_payment_intent",
            lead_id=lead_id,
            idempotency_key=idempotency_key,
            payment_intent_id=created.payment_intent_id,
            amount_cents=created.amount,
            status="created",
        )
        return created

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
