"""HTTP client for the lead capture endpoint."""

from typing import Any

import httpx

from checkout.models.results import (
    LeadAccepted,
    LeadCaptureResult,
    LeadRejected,
    TransportFailure,
)
from checkout.utils.logging import get_logger

from .http import default_headers, extract_error_message

logger = get_logger(__name__)


class LeadCaptureClient:
    """Posts captured leads to the lead capture endpoint.

    Never raises for network or HTTP errors; every outcome is returned as a
    ``LeadCaptureResult`` variant.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def submit(self, payload: dict[str, Any]) -> LeadCaptureResult:
        """Submit a lead.

        Args:
            payload: Lead body including ``lead_id``.

        Returns:
            LeadAccepted, LeadRejected or TransportFailure.
        """
        lead_id = str(payload.get("lead_id", ""))
        try:
            response = await self._client.post(self._url, json=payload, headers=default_headers())
        except httpx.TimeoutException as e:
            logger.warning("Lead capture timed out for lead %s: %s", lead_id, e)
            return TransportFailure(message=f"Lead capture timed out: {e}", timed_out=True)
        except httpx.HTTPError as e:
            logger.warning("Lead capture transport error for lead %s: %s", lead_id, e)
            return TransportFailure(message=f"Lead capture failed: {e}")

        if response.is_success:
            logger.info("Lead %s captured", lead_id)
            return LeadAccepted(lead_id=lead_id)

        message, _ = extract_error_message(response, "Lead capture rejected")
        logger.warning(
            "Lead capture rejected for lead %s: HTTP %d %s",
            lead_id,
            response.status_code,
            message,
        )
        return LeadRejected(status_code=response.status_code, message=message)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
