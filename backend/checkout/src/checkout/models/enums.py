"""Enumeration types for checkout data models."""

from enum import Enum


class Step(str, Enum):
    """Step of the checkout modal.

    Moves forward only; a payment failure keeps the modal in PAYMENT.
    """

    LEAD = "lead"
    PAYMENT = "payment"
    SUCCESS = "success"


class LeadField(str, Enum):
    """Field category named by a lead validation error."""

    FULL_NAME = "full_name"
    EMAIL = "email"
    PHONE = "phone"


class GatewayErrorCategory(str, Enum):
    """Closed set of gateway failure categories with localized messages."""

    CARD_DECLINED = "card_declined"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    EXPIRED_CARD = "expired_card"
    INCORRECT_NUMBER = "incorrect_number"
    INCORRECT_CVC = "incorrect_cvc"
    PROCESSING_ERROR = "processing_error"
    AUTHENTICATION_REQUIRED = "authentication_required"


class TrackingEvent(str, Enum):
    """Events emitted to the tracking collaborator."""

    CHECKOUT_OPENED = "checkout_opened"
    CHECKOUT_CLOSED = "checkout_closed"
    LEAD_SUBMITTED = "lead_form_submitted"
    PAYMENT_ERROR = "payment_failed"
    PAYMENT_PROCESSING = "payment_processing"
    PURCHASE_COMPLETED = "purchase_completed"
