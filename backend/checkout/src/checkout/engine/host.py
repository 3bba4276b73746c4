"""Page-level side effects of the checkout modal.

The engine never touches the page directly: scroll locking and navigation
go through a ``PageHost``. ``HeadlessPageHost`` records the requested
effects and is what the engine uses when no page is attached.
"""

from typing import Protocol

from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class PageHost(Protocol):
    """Page hosting the checkout modal."""

    def lock_scroll(self) -> None:
        """Block background page scrolling."""
        ...

    def unlock_scroll(self) -> None:
        """Restore background page scrolling."""
        ...

    def redirect(self, url: str) -> None:
        """Navigate to ``url``."""
        ...


class HeadlessPageHost:
    """PageHost that only records state."""

    def __init__(self) -> None:
        self.scroll_locked = False
        self.redirects: list[str] = []

    def lock_scroll(self) -> None:
        self.scroll_locked = True

    def unlock_scroll(self) -> None:
        self.scroll_locked = False

    def redirect(self, url: str) -> None:
        # Leaving the page releases the scroll lock
        self.scroll_locked = False
        self.redirects.append(url)
        logger.info("Redirecting to %s", url)
