"""Checkout orchestration engine: modal lifecycle and its stages."""

from .lead_stage import LeadCaptureStage, clean_phone, validate_lead_form
from .modal import CheckoutModal
from .payment_stage import PaymentStageController
from .prewarmer import PredictiveIntentPrewarmer

__all__ = [
    "CheckoutModal",
    "LeadCaptureStage",
    "PaymentStageController",
    "PredictiveIntentPrewarmer",
    "clean_phone",
    "validate_lead_form",
]
