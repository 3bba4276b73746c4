"""Checkout engine for a single-product, two-step purchase modal.

The modal collects the visitor's identity, registers it as a lead, then
binds an embeddable payment surface to a server-created payment intent and
confirms the payment. A predictive prewarmer creates the intent while the
visitor is still typing so the payment step opens without waiting.
"""

__version__ = "0.1.0"
