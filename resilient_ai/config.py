"""
Resilience Configuration
========================
Environment-driven settings for breakers, backoff and retries.

Environment variables:
- RESILIENT_AI_FAILURE_THRESHOLD: consecutive failures that open a circuit (5)
- RESILIENT_AI_CIRCUIT_TIMEOUT_SECONDS: time a circuit stays open (60)
- RESILIENT_AI_BACKOFF_BASE_MS: first retry delay before jitter (2000)
- RESILIENT_AI_BACKOFF_MAX_MS: delay cap (10000)
- RESILIENT_AI_BACKOFF_MIN_MS: delay floor (1000)
- RESILIENT_AI_RETRY_MAX_ATTEMPTS: attempts per provider when retrying (3)
- RESILIENT_AI_BACKOFF_SEED: seed for reproducible jitter (unset)
- RESILIENT_AI_DEFAULT_STRATEGY: fast_fail or retry_with_backoff
"""

import os
import time
from typing import Optional, Mapping, Callable
from dataclasses import dataclass

from .reliability.circuit_breaker import (
    CircuitBreakerRegistry,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_TIMEOUT_SECONDS,
)
from .reliability.backoff import (
    BackoffPolicy,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MIN_DELAY_MS,
)
from .reliability.retry_handler import RetryStrategy, DEFAULT_MAX_ATTEMPTS

ENV_PREFIX = "RESILIENT_AI_"


@dataclass
class ResilienceConfig:
    """Resilience settings shared by one client."""
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    circuit_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    backoff_base_ms: float = DEFAULT_BASE_DELAY_MS
    backoff_max_ms: float = DEFAULT_MAX_DELAY_MS
    backoff_min_ms: float = DEFAULT_MIN_DELAY_MS
    retry_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seed: Optional[int] = None
    default_strategy: RetryStrategy = RetryStrategy.RETRY_WITH_BACKOFF

    def __post_init__(self):
        self.default_strategy = RetryStrategy.parse(self.default_strategy)
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.circuit_timeout_seconds < 0:
            raise ValueError("circuit_timeout_seconds must be non-negative")
        if self.retry_max_attempts < 1:
            raise ValueError("retry_max_attempts must be at least 1")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ResilienceConfig":
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            ValueError: If a variable is set to an unparseable value
        """
        env = os.environ if environ is None else environ

        def read(name: str, parse: Callable, default):
            key = ENV_PREFIX + name
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                return default
            try:
                return parse(raw.strip())
            except ValueError:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from None

        return cls(
            failure_threshold=read("FAILURE_THRESHOLD", int, DEFAULT_FAILURE_THRESHOLD),
            circuit_timeout_seconds=read("CIRCUIT_TIMEOUT_SECONDS", float, DEFAULT_TIMEOUT_SECONDS),
            backoff_base_ms=read("BACKOFF_BASE_MS", float, DEFAULT_BASE_DELAY_MS),
            backoff_max_ms=read("BACKOFF_MAX_MS", float, DEFAULT_MAX_DELAY_MS),
            backoff_min_ms=read("BACKOFF_MIN_MS", float, DEFAULT_MIN_DELAY_MS),
            retry_max_attempts=read("RETRY_MAX_ATTEMPTS", int, DEFAULT_MAX_ATTEMPTS),
            backoff_seed=read("BACKOFF_SEED", int, None),
            default_strategy=read("DEFAULT_STRATEGY", RetryStrategy.parse, RetryStrategy.RETRY_WITH_BACKOFF),
        )

    def build_backoff(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_delay_ms=self.backoff_base_ms,
            max_delay_ms=self.backoff_max_ms,
            min_delay_ms=self.backoff_min_ms,
            seed=self.backoff_seed,
        )

    def build_registry(self, clock: Callable[[], float] = time.monotonic) -> CircuitBreakerRegistry:
        return CircuitBreakerRegistry(
            failure_threshold=self.failure_threshold,
            timeout_seconds=self.circuit_timeout_seconds,
            clock=clock,
        )


# Export public API
__all__ = [
    'ResilienceConfig',
    'ENV_PREFIX',
]
