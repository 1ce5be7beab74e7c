"""
DevServe — Fixed Window Rate Limiter
======================================

What:  Per-identity request counter over discrete, non-overlapping windows.
How:   Each identity owns one RateBucket {window_reset_at, count}. The first
       request of a window replaces the bucket; later requests increment it.
Who:   Consulted by BotShieldMiddleware for every request that passed the denylist.

Algorithm: Fixed Window Counter
    1. No bucket, or now >= window_reset_at → new bucket {now + window, 1}, allowed
    2. Otherwise count += 1
    3. Limited iff count > limit (request number limit + 1 is the first rejected)

Scope:
    Counters live in this process only. Several server instances keep
    independent counters, so the effective limit scales with the instance
    count unless clients are routed stickily.
    Best-effort bot mitigation, not a global guarantee.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateBucket:
    """Request count for one identity inside one window."""

    window_reset_at: float
    count: int


class FixedWindowRateLimiter:
    """
    In-memory fixed window limiter keyed by client identity.

    Thread Safety:
        check() never awaits, so it is atomic under a single asyncio loop.
        Guard it with a lock before sharing one instance across threads.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = 1000,
    ):
        self._clock = clock
        self._buckets: Dict[str, RateBucket] = {}
        self._sweep_interval = sweep_interval
        self._checks_since_sweep = 0

    def check(self, identity: str, limit: int, window_seconds: float) -> bool:
        """
        Count one request for `identity` and report whether it is over the limit.

        Returns:
            True when the request is rate-limited, False when it may proceed.
        """
        now = self._clock()
        self._maybe_sweep(now)

        current = self._buckets.get(identity)
        if current is None or now >= current.window_reset_at:
            self._buckets[identity] = RateBucket(window_reset_at=now + window_seconds, count=1)
            return False

        current.count += 1
        return current.count > limit

    def get_bucket(self, identity: str) -> Optional[RateBucket]:
        return self._buckets.get(identity)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Drop buckets whose window has already ended.

        An expired bucket is replaced on its identity's next request anyway,
        so removing it early never changes a decision.

        Returns:
            Number of buckets removed.
        """
        if now is None:
            now = self._clock()
        expired = [key for key, bucket in self._buckets.items() if now >= bucket.window_reset_at]
        for key in expired:
            del self._buckets[key]

        if expired:
            logger.debug("Swept %d expired rate-limit buckets", len(expired))
        return len(expired)

    def _maybe_sweep(self, now: float) -> None:
        self._checks_since_sweep += 1
        if self._checks_since_sweep >= self._sweep_interval:
            self._checks_since_sweep = 0
            self.sweep(now)

    def __len__(self) -> int:
        return len(self._buckets)
