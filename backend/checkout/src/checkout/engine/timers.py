"""Timer helpers on top of the running asyncio loop."""

import asyncio
from typing import Callable


class Debouncer:
    """Runs ``callback`` once input has been quiet for ``delay`` seconds.

    Each ``trigger()`` restarts the countdown; timers never stack.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


def call_later(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    """Schedule ``callback`` on the running loop."""
    return asyncio.get_running_loop().call_later(delay, callback)
