"""Utility helpers for the checkout engine."""
