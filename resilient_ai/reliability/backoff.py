"""
Backoff Policy
==============
Exponential backoff with jitter for retries against one provider.

    delay(i) = clamp(min(base * 2**i, cap) * uniform(0.75, 1.25), floor, cap)

With the defaults (base 2000ms, cap 10000ms, floor 1000ms) every delay
falls in [1000, 10000] ms. Jitter above the cap is clamped back to it.
"""

import random
from typing import Optional, Tuple
from dataclasses import dataclass

DEFAULT_BASE_DELAY_MS = 2000.0
DEFAULT_MAX_DELAY_MS = 10000.0
DEFAULT_MIN_DELAY_MS = 1000.0
DEFAULT_JITTER_RANGE = (0.75, 1.25)


@dataclass(frozen=True)
class BackoffConfig:
    """Configuration for backoff delays (milliseconds)."""
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    min_delay_ms: float = DEFAULT_MIN_DELAY_MS
    multiplier: float = 2.0
    jitter_range: Tuple[float, float] = DEFAULT_JITTER_RANGE


class BackoffPolicy:
    """
    Computes retry delays.

    Example:
        policy = BackoffPolicy(seed=42)   # reproducible under test
        policy.delay(0)        # ~2000ms +/- 25%
        policy.delay(3)        # capped: ~10000ms
        policy.total_time(3)   # 2000 + 4000 + 8000 = 14000ms estimate
    """

    def __init__(
        self,
        base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
        max_delay_ms: float = DEFAULT_MAX_DELAY_MS,
        min_delay_ms: float = DEFAULT_MIN_DELAY_MS,
        multiplier: float = 2.0,
        jitter_range: Tuple[float, float] = DEFAULT_JITTER_RANGE,
        seed: Optional[int] = None,
    ):
        """
        Initialize backoff policy.

        Args:
            base_delay_ms: Delay for attempt index 0 before jitter
            max_delay_ms: Cap applied before jitter
            min_delay_ms: Floor applied after jitter
            multiplier: Growth factor per attempt
            jitter_range: Uniform multiplier range applied to the capped delay
            seed: Seed for a private random source; None draws from an unseeded one
        """
        jitter_min, jitter_max = jitter_range
        if base_delay_ms <= 0 or max_delay_ms <= 0:
            raise ValueError("base_delay_ms and max_delay_ms must be positive")
        if not 0 <= min_delay_ms <= max_delay_ms:
            raise ValueError("min_delay_ms must be between 0 and max_delay_ms")
        if not 0 < jitter_min <= jitter_max:
            raise ValueError(f"Invalid jitter range: {jitter_range}")

        self.config = BackoffConfig(
            base_delay_ms=base_delay_ms,
            max_delay_ms=max_delay_ms,
            min_delay_ms=min_delay_ms,
            multiplier=multiplier,
            jitter_range=(jitter_min, jitter_max),
        )
        self._random = random.Random(seed)

    def unjittered_delay(self, attempt_index: int) -> float:
        """Capped exponential delay for an attempt index, before jitter."""
        if attempt_index < 0:
            raise ValueError(f"attempt_index must be non-negative, got {attempt_index}")
        # Once past the cap the exact power no longer matters; avoid float overflow
        try:
            delay = self.config.base_delay_ms * (self.config.multiplier ** attempt_index)
        except OverflowError:
            return self.config.max_delay_ms
        return min(delay, self.config.max_delay_ms)

    def delay(self, attempt_index: int) -> float:
        """
        Delay in milliseconds before retrying after attempt `attempt_index`.

        The jittered value is clamped back to the cap so callers can rely on
        delay(i) never exceeding max_delay_ms.
        """
        capped = self.unjittered_delay(attempt_index)
        jitter_min, jitter_max = self.config.jitter_range
        delay = capped * self._random.uniform(jitter_min, jitter_max)
        delay = min(delay, self.config.max_delay_ms)
        return max(delay, self.config.min_delay_ms)

    def delay_seconds(self, attempt_index: int) -> float:
        return self.delay(attempt_index) / 1000.0

    def total_time(self, max_retries: int) -> float:
        """
        Estimated total wait (ms) across `max_retries` retries.

        Sums unjittered, capped delays; an estimate for logs and capacity
        planning, not a guarantee.
        """
        return sum(self.unjittered_delay(i) for i in range(max(max_retries, 0)))


# Export public API
__all__ = [
    'BackoffPolicy',
    'BackoffConfig',
    'DEFAULT_BASE_DELAY_MS',
    'DEFAULT_MAX_DELAY_MS',
    'DEFAULT_MIN_DELAY_MS',
]
