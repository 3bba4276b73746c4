"""Pydantic models and session state for the checkout engine."""

from .enums import GatewayErrorCategory, LeadField, Step, TrackingEvent
from .errors import (
    ERROR_MESSAGES,
    GATEWAY_ERROR_MESSAGES,
    CheckoutError,
    CheckoutErrorCode,
    categorize_gateway_error,
    get_error_message,
    translate_gateway_error,
)
from .lead import (
    Attribution,
    LeadForm,
    LeadRecord,
    build_intent_payload,
    build_lead_payload,
)
from .results import (
    ConfirmationResult,
    IntentCreated,
    IntentCreationResult,
    IntentRejected,
    LeadAccepted,
    LeadCaptureResult,
    LeadRejected,
    PaymentFailed,
    PaymentRequiresAction,
    PaymentSucceeded,
    SurfaceChange,
    TransportFailure,
    VoucherDetails,
)
from .session import (
    CheckoutSession,
    IntentAlreadyBoundError,
    PaymentIntentRef,
    SessionToken,
)

__all__ = [
    # Enums
    "GatewayErrorCategory",
    "LeadField",
    "Step",
    "TrackingEvent",
    # Errors
    "CheckoutError",
    "CheckoutErrorCode",
    "ERROR_MESSAGES",
    "GATEWAY_ERROR_MESSAGES",
    "categorize_gateway_error",
    "get_error_message",
    "translate_gateway_error",
    # Lead
    "Attribution",
    "LeadForm",
    "LeadRecord",
    "build_intent_payload",
    "build_lead_payload",
    # Results
    "ConfirmationResult",
    "IntentCreated",
    "IntentCreationResult",
    "IntentRejected",
    "LeadAccepted",
    "LeadCaptureResult",
    "LeadRejected",
    "PaymentFailed",
    "PaymentRequiresAction",
    "PaymentSucceeded",
    "SurfaceChange",
    "TransportFailure",
    "VoucherDetails",
    # Session
    "CheckoutSession",
    "IntentAlreadyBoundError",
    "PaymentIntentRef",
    "SessionToken",
]
