"""Rate limit rules and the default in-process rate limiter.

Wraps pyrate-limiter's in-memory buckets. Each key (a sender, or a sender and
command pair) gets its own bucket holding every rule that applies to it, so a
single ``put`` checks and records against all of that key's rules at once.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Protocol, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pyrate_limiter import InMemoryBucket, Rate, RateItem

logger = logging.getLogger(__name__)


class RateLimitRule(BaseModel):
    """At most ``limit`` invocations within ``duration`` milliseconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: int = Field(..., ge=1)
    duration: int = Field(..., ge=1, description="Window length in milliseconds")


RateLimitCheck = Tuple[str, Sequence[RateLimitRule]]


class RateLimiter(Protocol):
    def try_acquire(self, checks: Sequence[RateLimitCheck]) -> bool:
        """Record one invocation against every check, or none if any is full."""
        ...


class BucketRateLimiter:
    """Sliding-window limiter keyed by arbitrary strings.

    Example:
        limiter = BucketRateLimiter()
        rules = [RateLimitRule(limit=3, duration=60_000)]
        if limiter.try_acquire([("user@c.us", rules)]):
            run_command()
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        """
        Args:
            clock: Returns the current time in milliseconds
        """
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._buckets: Dict[str, Tuple[Tuple[RateLimitRule, ...], InMemoryBucket]] = {}

    def _bucket_for(self, key: str, rules: Sequence[RateLimitRule]) -> InMemoryBucket:
        rules_key = tuple(rules)
        cached = self._buckets.get(key)
        if cached is not None and cached[0] == rules_key:
            return cached[1]

        # Rules changed (config reload) or first use: start a fresh window
        rates = sorted((Rate(rule.limit, rule.duration) for rule in rules), key=lambda r: r.interval)
        bucket = InMemoryBucket(rates)
        self._buckets[key] = (rules_key, bucket)
        return bucket

    def try_acquire(self, checks: Sequence[RateLimitCheck]) -> bool:
        now = self._clock()
        acquired: list[InMemoryBucket] = []

        for key, rules in checks:
            if not rules:
                continue

            bucket = self._bucket_for(key, rules)
            bucket.leak(now)
            if bucket.put(RateItem(key, now)):
                acquired.append(bucket)
                continue

            logger.debug(f"Rate limit hit for '{key}': {bucket.failing_rate}")
            # A refused invocation does not count against the earlier keys
            for earlier in acquired:
                earlier.items.pop()
            return False

        return True

    def reset(self) -> None:
        """Forget every recorded invocation."""
        self._buckets.clear()
