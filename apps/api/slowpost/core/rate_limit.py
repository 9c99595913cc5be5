"""Rate limiting configuration for the slow-mail API.

Two limiters share one storage backend:
- ``limiter`` (slowapi) decorates the public identifier lookup, keyed by IP.
- ``send_rate_limiter`` is a capability the send path consults, keyed by user.

Both fail open: if the storage backend is unreachable, requests proceed and
the daily quota inside the send transaction stays the authoritative backstop.
"""

import logging
import os
from enum import Enum
from typing import Protocol

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from slowpost.core.config import settings

logger = logging.getLogger(__name__)

MEMORY_STORAGE_URI = "memory://"
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")


def _resolve_storage_uri() -> str:
    url = (settings.REDIS_URL or "").strip()
    if IS_TESTING or not url or url.lower() == MEMORY_STORAGE_URI:
        return MEMORY_STORAGE_URI

    # Try Redis, fall back to memory if connection fails
    try:
        import redis

        r = redis.from_url(url, socket_connect_timeout=1)
        r.ping()
        return url
    except Exception as e:
        logger.warning("Redis unavailable for rate limiting, using in-memory: %s", type(e).__name__)
        return MEMORY_STORAGE_URI


STORAGE_URI = _resolve_storage_uri()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=STORAGE_URI,
    swallow_errors=settings.RATE_LIMIT_FAIL_OPEN,
)


class RateLimitDecision(str, Enum):
    """Outcome of consulting a rate limiter."""

    ALLOWED = "allowed"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"  # Storage unreachable; caller decides


class RateLimitCapability(Protocol):
    """Anything the send path can consult for a per-key decision."""

    def hit(self, key: str) -> RateLimitDecision: ...


class SendRateLimiter:
    """
    Per-user moving-window limiter for the send transition.

    ``hit`` never raises. Storage failures come back as
    ``RateLimitDecision.UNAVAILABLE`` so the fail-open policy stays visible
    at the call site instead of hiding in a try/except.
    """

    def __init__(self, limit: str, storage_uri: str = MEMORY_STORAGE_URI, prefix: str = "send"):
        self.item = parse(limit)
        self.storage_uri = storage_uri
        self.prefix = prefix
        self._strategy: MovingWindowRateLimiter | None = None

    def _get_strategy(self) -> MovingWindowRateLimiter:
        if self._strategy is None:
            self._strategy = MovingWindowRateLimiter(storage_from_string(self.storage_uri))
        return self._strategy

    def hit(self, key: str) -> RateLimitDecision:
        try:
            allowed = self._get_strategy().hit(self.item, self.prefix, key)
        except Exception as e:
            logger.warning("Send rate limiter unavailable: %s", type(e).__name__)
            return RateLimitDecision.UNAVAILABLE
        return RateLimitDecision.ALLOWED if allowed else RateLimitDecision.DENIED

    def reset(self) -> None:
        if self._strategy is not None:
            self._strategy.storage.reset()


send_rate_limiter = SendRateLimiter(settings.RATE_LIMIT_SEND, STORAGE_URI)
