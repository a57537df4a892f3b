"""Token bucket rate limiting per caller and category.

Two categories exist: ``catalog`` for list and detail reads plus admin
writes, and ``playback`` for playable URL issuance. The playback category
is the tighter one since every premium call mints a new signed URL.
"""

import re
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Tuple

import structlog

logger = structlog.get_logger(__name__)

CATALOG = "catalog"
PLAYBACK = "playback"


@dataclass
class TokenBucket:
    """Token bucket state.

    Attributes:
        capacity: Maximum number of tokens (burst capacity)
        refill_rate: Tokens added per second
        tokens: Current token count, starts full
        last_refill: Timestamp of last refill
    """

    capacity: int
    refill_rate: float
    last_refill: float
    tokens: float = field(default=-1.0)

    def __post_init__(self) -> None:
        if self.tokens < 0:
            self.tokens = float(self.capacity)

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.refill_rate)
        self.last_refill = now


@dataclass
class RateLimitConfig:
    """Limits of one category.

    Attributes:
        rpm: Requests per minute
        burst_capacity: Maximum burst size (tokens)
    """

    rpm: int
    burst_capacity: int = 20


class RateLimiter:
    """Token bucket rate limiter keyed by caller and category.

    Example:
        limiter = RateLimiter()
        allowed, retry_after = await limiter.check_rate_limit("sha256:ab12...", "playback")
        if not allowed:
            # Return 429 with Retry-After header
            pass
    """

    DEFAULT_LIMITS: Dict[str, RateLimitConfig] = {
        CATALOG: RateLimitConfig(rpm=120, burst_capacity=20),
        PLAYBACK: RateLimitConfig(rpm=20, burst_capacity=20),
    }

    # First match wins, so the playback route precedes the catalog prefix
    PATH_CATEGORIES: List[Tuple[Pattern[str], str]] = [
        (re.compile(r"^/api/v1/videos/[^/]+/playback$"), PLAYBACK),
        (re.compile(r"^/api/v1/videos(/[^/]+)?$"), CATALOG),
    ]

    def __init__(
        self,
        limits: Optional[Dict[str, RateLimitConfig]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize rate limiter.

        Args:
            limits: Custom limits per category. Uses DEFAULT_LIMITS if not provided.
            clock: Monotonic time source in seconds, injectable for tests.
        """
        self.limits = dict(limits or self.DEFAULT_LIMITS)
        self._clock = clock or time.monotonic
        self._buckets: Dict[str, Dict[str, TokenBucket]] = defaultdict(dict)

    def configure_limits(
        self,
        catalog_rpm: Optional[int] = None,
        playback_rpm: Optional[int] = None,
        burst_capacity: Optional[int] = None,
    ) -> None:
        """Override limits from config values. Existing buckets are dropped."""
        for category, rpm in ((CATALOG, catalog_rpm), (PLAYBACK, playback_rpm)):
            current = self.limits[category]
            self.limits[category] = RateLimitConfig(
                rpm=rpm if rpm is not None else current.rpm,
                burst_capacity=(
                    burst_capacity if burst_capacity is not None else current.burst_capacity
                ),
            )
        self._buckets.clear()

    def get_endpoint_category(self, path: str) -> Optional[str]:
        """
        Determine the rate limit category of a request path.

        Args:
            path: The request URL path

        Returns:
            Category name, or None if the path is not rate limited
        """
        normalized = path.rstrip("/") or "/"
        for pattern, category in self.PATH_CATEGORIES:
            if pattern.match(normalized):
                return category
        return None

    def _get_bucket(self, caller: str, category: str) -> TokenBucket:
        bucket = self._buckets[caller].get(category)
        if bucket is None:
            config = self.limits.get(category, self.limits[CATALOG])
            bucket = TokenBucket(
                capacity=config.burst_capacity,
                refill_rate=config.rpm / 60.0,
                last_refill=self._clock(),
            )
            self._buckets[caller][category] = bucket
        return bucket

    async def check_rate_limit(self, caller: str, category: str) -> Tuple[bool, float]:
        """
        Consume one token if available.

        Args:
            caller: Caller key (hashed token or "anonymous")
            category: "catalog" or "playback"

        Returns:
            Tuple of (allowed, retry_after_seconds); retry_after is 0 when allowed
        """
        bucket = self._get_bucket(caller, category)
        bucket.refill(self._clock())

        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return True, 0.0

        retry_after = (1.0 - bucket.tokens) / bucket.refill_rate
        logger.info(
            "rate_limit_bucket_empty",
            category=category,
            retry_after=retry_after,
        )
        return False, retry_after

    def get_bucket_status(self, caller: str, category: str) -> Dict[str, float]:
        config = self.limits.get(category, self.limits[CATALOG])
        bucket = self._buckets.get(caller, {}).get(category)
        if bucket is None:
            return {
                "tokens": float(config.burst_capacity),
                "capacity": config.burst_capacity,
                "rpm": config.rpm,
            }
        bucket.refill(self._clock())
        return {"tokens": bucket.tokens, "capacity": bucket.capacity, "rpm": config.rpm}

    def clear_all_buckets(self) -> None:
        """Clear all buckets. Useful for testing."""
        self._buckets.clear()


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


def configure_rate_limiter(
    catalog_rpm: Optional[int] = None,
    playback_rpm: Optional[int] = None,
    burst_capacity: Optional[int] = None,
) -> RateLimiter:
    """Replace the global rate limiter with one using the given limits.

    Returns:
        The configured RateLimiter instance
    """
    global _rate_limiter
    _rate_limiter = RateLimiter()
    _rate_limiter.configure_limits(
        catalog_rpm=catalog_rpm,
        playback_rpm=playback_rpm,
        burst_capacity=burst_capacity,
    )
    return _rate_limiter
