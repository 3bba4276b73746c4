"""HTTP middleware for the checkout API."""

from checkout_api.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
