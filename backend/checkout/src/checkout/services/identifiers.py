"""Identifier generation and the idempotency guard.

Lead IDs identify one checkout session. Idempotency keys identify one
mutating network attempt: the payment-intent endpoint treats a repeated key
as an exactly-once replay, so every attempt (including a user retry of the
same logical action) gets a key of its own.
"""

import os
import secrets
import socket
import time
import uuid
from collections import deque

from checkout.utils.logging import get_logger

logger = get_logger(__name__)

IDEMPOTENCY_HEADER = "X-Idempotency-Key"

# Keys remembered for the collision check
RECENT_KEYS = 64


def generate_lead_id() -> str:
    """Generate a random lead ID (UUID4)."""
    return str(uuid.uuid4())


def environment_discriminator(environment: str) -> str:
    """Short token separating keys minted by different processes/environments."""
    raw = f"{environment}:{socket.gethostname()}:{os.getpid()}"
    return uuid.uuid5(uuid.NAMESPACE_OID, raw).hex[:8]


def generate_idempotency_key(environment: str = "dev") -> str:
    """Generate an idempotency key.

    Composed of a nanosecond timestamp, 96 random bits and an environment
    discriminator, e.g. ``idm_1760781234567891234_3f9a..._a1b2c3d4``.
    """
    return (
        f"idm_{time.time_ns()}_{secrets.token_hex(12)}"
        f"_{environment_discriminator(environment)}"
    )


class IdempotencyGuard:
    """Mints one fresh key per mutating attempt, never repeating a recent key.

    Usage:
        guard = IdempotencyGuard(environment="prod")
        key = guard.mint_key()
        headers = guard.headers_for(key)
    """

    def __init__(self, environment: str = "dev") -> None:
        self._environment = environment
        self._recent: deque[str] = deque(maxlen=RECENT_KEYS)

    @property
    def recent(self) -> tuple[str, ...]:
        """The most recently minted keys, oldest first."""
        return tuple(self._recent)

    def mint_key(self) -> str:
        """Mint a key that differs from every recently issued one."""
        key = generate_idempotency_key(self._environment)
        while key in self._recent:
            logger.warning("Idempotency key collision, minting again")
            key = generate_idempotency_key(self._environment)
        self._recent.append(key)
        return key

    @staticmethod
    def headers_for(key: str) -> dict[str, str]:
        """Request headers carrying ``key``."""
        return {IDEMPOTENCY_HEADER: key}
