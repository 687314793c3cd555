"""Fixed-window rate limiting on top of the ``limits`` library.

One ``RateLimiter`` per policy (gateway by client address, per API key) is built
at startup and kept on ``app.state``; the FastAPI dependencies below look it up
there.  Counters live in a ``limits`` storage (``memory://`` by default), which
increments atomically per key and drops windows once they expire.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItemPerSecond, strategies
from limits.storage import storage_from_string

from paywall.auth.api_key import extract_api_key
from paywall.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds
    retry_after: int  # whole seconds until the window resets


class RateLimiter:
    """``max_requests`` per key in discrete, non-overlapping ``window_seconds`` windows."""

    def __init__(
        self,
        window_seconds: int,
        max_requests: int,
        *,
        storage_uri: str = "memory://",
        namespace: str = "paywall",
    ) -> None:
        if window_seconds <= 0 or max_requests < 1:
            raise ValueError("window_seconds must be positive and max_requests at least 1")
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.item = RateLimitItemPerSecond(max_requests, window_seconds, namespace=namespace)
        self.storage = storage_from_string(storage_uri)
        self._strategy = strategies.FixedWindowRateLimiter(self.storage)

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it is allowed."""
        allowed = self._strategy.hit(self.item, key)
        stats = self._strategy.get_window_stats(self.item, key)
        retry_after = max(math.ceil(stats.reset_time - time.time()), 0)
        if not allowed:
            retry_after = max(retry_after, 1)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=stats.remaining,
            reset_at=stats.reset_time,
            retry_after=retry_after,
        )

    def remaining(self, key: str) -> int:
        return self._strategy.get_window_stats(self.item, key).remaining

    def reset(self) -> None:
        self.storage.reset()


KeyFunc = Callable[[Request], str | None]


def client_address(request: Request) -> str | None:
    return request.client.host if request.client else None


def rate_limit(state_attr: str, key_func: KeyFunc) -> Callable:
    """Build a dependency enforcing the limiter stored at ``app.state.<state_attr>``.

    Requests for which ``key_func`` yields no key are let through.
    """

    async def dependency(request: Request) -> None:
        key = key_func(request)
        if key is None:
            return
        limiter: RateLimiter = getattr(request.app.state, state_attr)
        decision = limiter.hit(key)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded on %s (%s, limit %d per %ss)",
                request.url.path,
                state_attr,
                decision.limit,
                limiter.window_seconds,
            )
            raise RateLimited(decision.retry_after)

    return dependency


limit_by_client = rate_limit("gateway_limiter", client_address)
limit_by_api_key = rate_limit("api_key_limiter", extract_api_key)
