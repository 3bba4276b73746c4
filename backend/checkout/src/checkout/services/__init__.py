"""Collaborator clients used by the checkout engine and API."""
