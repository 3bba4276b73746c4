"""Contract of the payment gateway collaborator.

The engine does not implement a gateway. It needs an intent-bound payment
surface it can mount, listen to and destroy, and a confirm operation that
reports one of three outcomes.
"""

from typing import Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from checkout.models.results import ConfirmationResult, SurfaceChange

ChangeHandler = Callable[[SurfaceChange], None]


class GatewayError(Exception):
    """Raised when the gateway cannot create or mount a payment surface."""


class GatewayConfigurationError(GatewayError):
    """Raised when the gateway integration is misconfigured (e.g. no publishable key)."""


class SurfaceOptions(BaseModel):
    """Configuration of the embeddable payment surface."""

    model_config = ConfigDict(frozen=True)

    locale: str = "pt"
    billing_details: dict[str, str] = Field(default_factory=dict)
    hidden_fields: tuple[str, ...] = ("name", "email", "phone")
    layout: str = "accordion"
    payment_method_order: tuple[str, ...] = ("apple_pay", "google_pay", "card", "mb_way")

    def to_element_options(self) -> dict:
        """Options in the shape the gateway's payment element expects."""
        return {
            "layout": self.layout,
            "defaultValues": {"billingDetails": dict(self.billing_details)},
            "fields": {
                "billingDetails": {field: "never" for field in self.hidden_fields}
            },
            "terms": {"card": "never"},
            "wallets": {"applePay": "auto", "googlePay": "auto"},
            "paymentMethodOrder": list(self.payment_method_order),
        }


class PaymentSurface(Protocol):
    """Embeddable payment-method selection surface bound to one intent."""

    surface_id: str

    async def mount(self) -> None:
        """Render the surface; may suspend while the gateway loads."""
        ...

    def destroy(self) -> None:
        """Tear the surface down."""
        ...

    def on_change(self, handler: ChangeHandler) -> None:
        """Register a handler for completeness/validation changes."""
        ...


class PaymentGateway(Protocol):
    """Gateway client surface used by the payment stage."""

    def create_surface(self, client_secret: str, options: SurfaceOptions) -> PaymentSurface:
        """Create a surface bound to the intent identified by ``client_secret``."""
        ...

    async def confirm(
        self,
        surface: PaymentSurface,
        *,
        billing_details: dict[str, str],
        return_url: str,
    ) -> ConfirmationResult:
        """Confirm the payment collected by ``surface``."""
        ...
