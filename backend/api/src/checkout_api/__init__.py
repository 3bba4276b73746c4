"""FastAPI application for the checkout payment-intent API."""
