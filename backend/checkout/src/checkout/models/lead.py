"""Lead models: raw form input, the submitted record and page attribution."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

UTM_PARAMS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")


class LeadForm(BaseModel):
    """Raw values of the lead capture form.

    Values are stripped of surrounding whitespace but otherwise unvalidated;
    see ``checkout.engine.lead_stage.validate_lead_form``.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = ""
    email: str = ""
    country_code: str = "+351"
    phone: str = ""


class LeadRecord(BaseModel):
    """Visitor identity captured for one checkout session.

    Immutable once submitted. The phone number may be corrected through
    ``with_phone`` which returns a new record; the lead ID lives on the
    session and is not touched.
    """

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(..., description="Full name as typed")
    email: str = Field(..., description="Lower-cased email address")
    country_code: str = Field(default="", description="Dialling prefix, e.g. +351")
    phone: str = Field(default="", description="Local phone number")

    @property
    def full_phone(self) -> str:
        """Phone number with country code, e.g. ``+351 912345678``."""
        return f"{self.country_code} {self.phone}".strip()

    def with_phone(self, phone: str, country_code: str | None = None) -> "LeadRecord":
        """Return a copy with a corrected phone number."""
        update: dict[str, str] = {"phone": phone}
        if country_code is not None:
            update["country_code"] = country_code
        return self.model_copy(update=update)

    def billing_details(self) -> dict[str, str]:
        """Billing identity passed to the gateway on confirmation."""
        details = {"name": self.full_name, "email": self.email}
        if self.phone:
            details["phone"] = self.full_phone
        return details


class Attribution(BaseModel):
    """Where the visitor came from when the modal was opened."""

    model_config = ConfigDict(frozen=True)

    source_section: str = Field(default="unknown", description="Page region of the trigger")
    page: str = Field(default="/", description="Path of the page hosting the modal")
    utm: dict[str, str] = Field(default_factory=dict, description="UTM parameters")

    @classmethod
    def from_query(
        cls,
        query: dict[str, str],
        *,
        source_section: str = "unknown",
        page: str = "/",
    ) -> "Attribution":
        """Build attribution keeping only the known UTM parameters."""
        utm = {key: value for key, value in query.items() if key in UTM_PARAMS and value}
        return cls(source_section=source_section, page=page, utm=utm)


def build_lead_payload(
    lead_id: str,
    lead: LeadRecord,
    attribution: Attribution,
    *,
    now: datetime,
) -> dict[str, str]:
    """Body sent to the lead capture endpoint."""
    payload = {
        "lead_id": lead_id,
        "status": "started_checkout",
        "full_name": lead.full_name,
        "email": lead.email,
        "phone": lead.full_phone,
        "page": attribution.page,
        "source_section": attribution.source_section,
        "timestamp": now.isoformat(),
    }
    payload.update(attribution.utm)
    return payload


def build_intent_payload(
    lead_id: str,
    lead: LeadRecord,
    attribution: Attribution,
    *,
    amount_cents: int,
    currency: str,
) -> dict[str, str | int]:
    """Body sent to the payment-intent creation endpoint (key added by the client)."""
    payload: dict[str, str | int] = {
        "lead_id": lead_id,
        "full_name": lead.full_name,
        "email": lead.email,
        "amount": amount_cents,
        "currency": currency,
    }
    if lead.phone:
        payload["phone"] = lead.full_phone
    payload.update(attribution.utm)
    return payload
