"""
Retry Handler
=============
Retry strategies and the per-provider attempt loop.

Strategies (chosen by the caller per invocation):
- FAST_FAIL: one attempt per provider, no backoff
- RETRY_WITH_BACKOFF: up to 3 attempts per provider; transient failures
  back off exponentially with jitter, permanent failures and empty
  responses move on immediately

Every attempt outcome is classified and reported to the provider's
circuit breaker.
"""

import time
import asyncio
import logging
from typing import Optional, Callable, Any, Union, List, Awaitable
from dataclasses import dataclass, field
from enum import Enum

from ..providers.classifier import ErrorClassifier
from ..providers.errors import ClassifiedError, InvalidResponse, ProviderFailure
from .backoff import BackoffPolicy
from .circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class RetryStrategy(Enum):
    """How many times one provider is tried within a single call."""
    FAST_FAIL = "fast_fail"                     # User is waiting
    RETRY_WITH_BACKOFF = "retry_with_backoff"   # Background work

    @property
    def uses_backoff(self) -> bool:
        return self is RetryStrategy.RETRY_WITH_BACKOFF

    @classmethod
    def parse(cls, value: Union["RetryStrategy", str]) -> "RetryStrategy":
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown retry strategy {value!r}, expected one of: {valid}") from None


class RetryOutcome(Enum):
    """Outcome of the attempts against one provider."""
    SUCCESS = "success"
    INVALID_RESPONSE = "invalid_response"
    FAILED = "failed"
    CIRCUIT_OPEN = "circuit_open"   # Breaker denied a retry mid-loop


@dataclass
class RetryResult:
    """Result of attempting one provider."""
    outcome: RetryOutcome
    provider: str
    value: Optional[str] = None
    failure: Optional[ProviderFailure] = None
    attempts: int = 0
    total_time: float = 0.0
    delays: List[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == RetryOutcome.SUCCESS


def is_valid_response(value: Any) -> bool:
    """A response is usable only if it is a non-blank string."""
    return isinstance(value, str) and bool(value.strip())


class RetryHandler:
    """
    Runs attempts against a single provider according to a RetryStrategy.

    Example:
        handler = RetryHandler(backoff=BackoffPolicy(), classifier=ErrorClassifier())

        result = await handler.execute(
            "primary",
            lambda: provider.generate_content(prompt),
            RetryStrategy.RETRY_WITH_BACKOFF,
            circuit_breaker=breaker,
        )
        if result.outcome == RetryOutcome.SUCCESS:
            print(result.value)
    """

    def __init__(
        self,
        backoff: Optional[BackoffPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep_func: Optional[Callable[[float], Awaitable[Any]]] = None,
        on_retry: Optional[Callable[[str, int, ClassifiedError, float], None]] = None,
    ):
        """
        Initialize retry handler.

        Args:
            backoff: Delay policy for RETRY_WITH_BACKOFF
            classifier: Error classifier for failed attempts
            max_attempts: Attempts per provider under RETRY_WITH_BACKOFF
            sleep_func: Awaitable sleep taking seconds (asyncio.sleep by default)
            on_retry: Callback(provider, attempt, error, delay_ms) before each retry
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.backoff = backoff or BackoffPolicy()
        self.classifier = classifier or ErrorClassifier()
        self.max_attempts = max_attempts
        self._sleep = sleep_func or asyncio.sleep
        self._on_retry = on_retry

    def max_attempts_for(self, strategy: Union[RetryStrategy, str]) -> int:
        if RetryStrategy.parse(strategy).uses_backoff:
            return self.max_attempts
        return 1

    async def execute(
        self,
        provider: str,
        operation: Callable[[], Awaitable[Optional[str]]],
        strategy: Union[RetryStrategy, str],
        circuit_breaker: Optional[CircuitBreaker] = None,
    ) -> RetryResult:
        """
        Attempt one provider.

        The caller has already checked the breaker for the first attempt;
        it is consulted again before each retry.

        Args:
            provider: Provider name for classification and logs
            operation: Zero-argument coroutine factory performing one attempt
            strategy: Retry strategy for this call
            circuit_breaker: Breaker to update with each outcome

        Returns:
            RetryResult with outcome, value and the last failure
        """
        strategy = RetryStrategy.parse(strategy)
        max_attempts = self.max_attempts_for(strategy)
        start_time = time.time()
        delays: List[float] = []
        last_failure: Optional[ClassifiedError] = None
        attempts_made = 0

        for attempt in range(1, max_attempts + 1):
            if attempt > 1 and circuit_breaker is not None and not circuit_breaker.allow_request():
                logger.warning(
                    f"Circuit for {provider} opened during retries, giving up after {attempt - 1} attempt(s)"
                )
                return RetryResult(
                    outcome=RetryOutcome.CIRCUIT_OPEN,
                    provider=provider,
                    failure=last_failure,
                    attempts=attempt - 1,
                    total_time=time.time() - start_time,
                    delays=delays,
                )

            attempts_made = attempt
            try:
                value = await operation()
            except asyncio.CancelledError:
                logger.warning(f"Attempt {attempt} against {provider} cancelled")
                if circuit_breaker is not None:
                    circuit_breaker.release_probe()
                raise
            except Exception as e:
                error = self.classifier.classify(provider, e)
                last_failure = error
                if circuit_breaker is not None:
                    circuit_breaker.record_failure()

                if error.is_permanent:
                    logger.warning(f"Permanent failure from {error}, not retrying")
                    break

                if attempt >= max_attempts:
                    logger.warning(f"Transient failure from {error} on final attempt {attempt}/{max_attempts}")
                    break

                delay_ms = self.backoff.delay(attempt - 1)
                delays.append(delay_ms)
                logger.warning(
                    f"Retry {attempt}/{max_attempts} for {provider} after {error}, delay={delay_ms:.0f}ms"
                )

                if self._on_retry:
                    try:
                        self._on_retry(provider, attempt, error, delay_ms)
                    except Exception as callback_error:
                        logger.error(f"Retry callback error: {callback_error}")

                await self._sleep(delay_ms / 1000.0)
                continue

            # The provider answered, so the breaker counts a success even
            # when the body is unusable
            if circuit_breaker is not None:
                circuit_breaker.record_success()

            if not is_valid_response(value):
                logger.warning(f"Provider {provider} returned empty/invalid response, not retrying")
                return RetryResult(
                    outcome=RetryOutcome.INVALID_RESPONSE,
                    provider=provider,
                    failure=InvalidResponse(provider=provider),
                    attempts=attempt,
                    total_time=time.time() - start_time,
                    delays=delays,
                )

            if attempt > 1:
                logger.info(f"Provider {provider} succeeded on attempt {attempt}/{max_attempts}")
            return RetryResult(
                outcome=RetryOutcome.SUCCESS,
                provider=provider,
                value=value,
                attempts=attempt,
                total_time=time.time() - start_time,
                delays=delays,
            )

        return RetryResult(
            outcome=RetryOutcome.FAILED,
            provider=provider,
            failure=last_failure,
            attempts=attempts_made,
            total_time=time.time() - start_time,
            delays=delays,
        )


# Export public API
__all__ = [
    'RetryHandler',
    'RetryResult',
    'RetryOutcome',
    'RetryStrategy',
    'is_valid_response',
    'DEFAULT_MAX_ATTEMPTS',
]
