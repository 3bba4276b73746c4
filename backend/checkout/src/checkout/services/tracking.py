"""Tracking collaborator used by the engine.

The engine emits a handful of named events; delivery and taxonomy belong
to the tracker implementation. Tracking is fire-and-forget: a failing
tracker is logged and never interrupts the checkout.
"""

from typing import Any, Protocol

from checkout.models.enums import TrackingEvent
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class Tracker(Protocol):
    """Receives analytics events from the engine."""

    def track(self, event: TrackingEvent, payload: dict[str, Any]) -> None:
        """Record ``event`` with ``payload``."""
        ...


class LoggingTracker:
    """Tracker that writes events to the application log."""

    def track(self, event: TrackingEvent, payload: dict[str, Any]) -> None:
        fields = " ".join(f"{key}={value}" for key, value in sorted(payload.items()))
        logger.info("Tracking event %s %s", event.value, fields)


def safe_track(tracker: Tracker, event: TrackingEvent, payload: dict[str, Any]) -> None:
    """Send an event, swallowing tracker failures."""
    try:
        tracker.track(event, payload)
    except Exception:
        logger.exception("Tracker failed for event %s", event.value)
