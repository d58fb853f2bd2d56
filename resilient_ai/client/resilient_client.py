"""
Resilient AI Client
===================
Calls AI providers in fixed priority order with retries, circuit breakers
and fallback.

For each call:
1. Walk providers in priority order
2. Skip providers that are unavailable or whose circuit denies the request
3. Attempt the provider per the caller's retry strategy
4. Return the first non-empty response
5. Raise AllProvidersExhaustedError (or NoProvidersConfiguredError when
   nothing could be attempted) otherwise

The client owns one breaker per provider; it holds no other shared state,
so concurrent calls are independent walks.
"""

import time
import logging
from typing import Optional, Dict, Any, List, Sequence, Callable, Union, Awaitable
from dataclasses import dataclass, field

from ..config import ResilienceConfig
from ..providers.base import ProviderAdapter
from ..providers.classifier import ErrorClassifier
from ..providers.errors import (
    ProviderFailure,
    AllProvidersExhaustedError,
    NoProvidersConfiguredError,
)
from ..reliability.backoff import BackoffPolicy
from ..reliability.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from ..reliability.retry_handler import RetryHandler, RetryOutcome, RetryStrategy
from .provider_pool import ProviderPool, ProviderEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """Prompt for one generation call."""
    user_prompt: str
    system_prompt: Optional[str] = None
    json_schema: Optional[str] = None
    structured: bool = False

    @property
    def operation(self) -> str:
        return "generate_structured_content" if self.structured else "generate_content"


@dataclass
class GenerationResult:
    """Result of a successful call, with how it was reached."""
    value: str
    provider_name: str
    provider_index: int
    attempts: int = 1
    fallback_level: int = 0     # Providers attempted before the winner
    latency_ms: float = 0.0
    failures: List[ProviderFailure] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.fallback_level > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "provider": self.provider_name,
            "provider_index": self.provider_index,
            "attempts": self.attempts,
            "fallback_level": self.fallback_level,
            "used_fallback": self.used_fallback,
            "latency_ms": self.latency_ms,
            "failures": [f.to_dict() for f in self.failures],
        }


class ResilientAIClient(ProviderAdapter):
    """
    Multi-provider AI client with per-provider circuit breakers.

    The client is itself a ProviderAdapter, so it can be nested inside
    another client's provider list.

    Example:
        client = ResilientAIClient(
            [primary, secondary, tertiary],
            config=ResilienceConfig.from_env(),
        )

        # Interactive request: one attempt per provider
        text = await client.generate_content(prompt, strategy=RetryStrategy.FAST_FAIL)

        # Background job: retry transient failures with backoff
        plan = await client.generate_structured_content(
            prompt, schema, strategy=RetryStrategy.RETRY_WITH_BACKOFF,
        )
    """

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        config: Optional[ResilienceConfig] = None,
        backoff: Optional[BackoffPolicy] = None,
        classifier: Optional[ErrorClassifier] = None,
        sleep_func: Optional[Callable[[float], Awaitable[Any]]] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "resilient",
    ):
        """
        Initialize resilient client.

        Args:
            providers: Adapters in priority order
            config: Resilience settings; defaults when omitted
            backoff: Backoff policy overriding the one built from config
            classifier: Error classifier
            sleep_func: Awaitable sleep for backoff waits
            clock: Monotonic time source for the breakers
            name: Name when nested as a provider
        """
        self.config = config or ResilienceConfig()
        self._name = name
        self.registry: CircuitBreakerRegistry = self.config.build_registry(clock=clock)
        self.pool = ProviderPool(providers, self.registry)
        self.handler = RetryHandler(
            backoff=backoff or self.config.build_backoff(),
            classifier=classifier or ErrorClassifier(),
            max_attempts=self.config.retry_max_attempts,
            sleep_func=sleep_func,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def default_strategy(self) -> RetryStrategy:
        return self.config.default_strategy

    async def generate_content(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        strategy: Union[RetryStrategy, str, None] = None,
    ) -> str:
        """Generate free-form text from the first provider that answers."""
        request = GenerationRequest(user_prompt=user_prompt, system_prompt=system_prompt)
        return await self.invoke(request, strategy)

    async def generate_structured_content(
        self,
        user_prompt: str,
        json_schema: Optional[str],
        system_prompt: Optional[str] = None,
        strategy: Union[RetryStrategy, str, None] = None,
    ) -> str:
        """Generate schema-shaped text from the first provider that answers."""
        request = GenerationRequest(
            user_prompt=user_prompt,
            system_prompt=system_prompt,
            json_schema=json_schema,
            structured=True,
        )
        return await self.invoke(request, strategy)

    async def invoke(
        self,
        request: GenerationRequest,
        strategy: Union[RetryStrategy, str, None] = None,
    ) -> str:
        result = await self.invoke_detailed(request, strategy)
        return result.value

    async def invoke_detailed(
        self,
        request: GenerationRequest,
        strategy: Union[RetryStrategy, str, None] = None,
    ) -> GenerationResult:
        """
        Run one call across the provider list.

        Args:
            request: Prompt to send
            strategy: Retry strategy; the configured default when None

        Returns:
            GenerationResult for the winning provider

        Raises:
            ValueError: Unknown strategy (before any provider is touched)
            AllProvidersExhaustedError: Every attempted provider failed
            NoProvidersConfiguredError: No provider could be attempted
        """
        strategy = RetryStrategy.parse(strategy if strategy is not None else self.default_strategy)
        operation = request.operation
        start_time = time.time()

        logger.debug(
            f"{operation} with {len(self.pool)} provider(s), strategy={strategy.value}"
        )

        failures: List[ProviderFailure] = []
        available = 0
        circuit_open = 0

        for entry in self.pool:
            if not entry.adapter.is_available():
                logger.debug(f"Provider {entry.index + 1} ({entry.name}) not available, skipping")
                continue
            available += 1

            if not entry.breaker.allow_request():
                circuit_open += 1
                logger.debug(f"Provider {entry.index + 1} ({entry.name}) circuit open, skipping")
                continue

            logger.info(
                f"Attempting {operation} with provider {entry.index + 1} ({entry.name})"
            )
            result = await self.handler.execute(
                entry.name,
                self._operation_for(entry, request),
                strategy,
                circuit_breaker=entry.breaker,
            )

            if result.outcome == RetryOutcome.SUCCESS:
                latency = (time.time() - start_time) * 1000
                logger.info(
                    f"Provider {entry.index + 1} ({entry.name}) succeeded "
                    f"after {result.attempts} attempt(s)"
                )
                return GenerationResult(
                    value=result.value,
                    provider_name=entry.name,
                    provider_index=entry.index,
                    attempts=result.attempts,
                    fallback_level=len(failures),
                    latency_ms=latency,
                    failures=failures,
                )

            failures.append(result.failure)
            logger.warning(
                f"Provider {entry.index + 1} ({entry.name}) failed "
                f"({result.outcome.value}, {result.attempts} attempt(s)): {result.failure}"
            )

        if not failures:
            error = NoProvidersConfiguredError(
                configured=len(self.pool),
                available=available,
                circuit_open=circuit_open,
                operation=operation,
            )
            logger.error(error.summary)
            raise error

        error = AllProvidersExhaustedError(failures, operation=operation)
        logger.error(
            f"All {len(failures)} attempted provider(s) failed for {operation} "
            f"(configured: {len(self.pool)}, available: {available})"
        )
        raise error

    def _operation_for(self, entry: ProviderEntry, request: GenerationRequest):
        adapter = entry.adapter
        if request.structured:
            return lambda: adapter.generate_structured_content(
                request.user_prompt, request.json_schema, request.system_prompt,
            )
        return lambda: adapter.generate_content(request.user_prompt, request.system_prompt)

    def is_available(self) -> bool:
        """True if any provider is available."""
        return self.pool.available_count() > 0

    def available_provider_count(self) -> int:
        return self.pool.available_count()

    @property
    def providers(self) -> List[ProviderAdapter]:
        return [e.adapter for e in self.pool]

    def describe_self(self) -> str:
        if not len(self.pool):
            return "ResilientAIClient (no providers)"
        return "ResilientAIClient [" + ", ".join(e.adapter.describe_self() for e in self.pool) + "]"

    def provider_statuses(self) -> List[Dict[str, Any]]:
        return self.pool.statuses()

    def breaker(self, provider_name: str) -> Optional[CircuitBreaker]:
        return self.registry.get(provider_name)

    def reset_breaker(self, provider_name: str) -> bool:
        """Reset one provider's breaker; False if the provider is unknown."""
        breaker = self.registry.get(provider_name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all_breakers(self):
        self.registry.reset_all()


# Export public API
__all__ = [
    'ResilientAIClient',
    'GenerationRequest',
    'GenerationResult',
]
