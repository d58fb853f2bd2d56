"""
Reliability Module
==================
Reliability patterns for calling AI providers.

Components:
- CircuitBreaker: Per-provider circuit breaker with a single half-open probe
- BackoffPolicy: Exponential backoff with jitter, capped and floored
- RetryHandler: Fast-fail or retry-with-backoff against one provider
- HealthChecker: Kubernetes-ready health probes per provider
"""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitConfig,
    CircuitMetrics,
    CircuitBreakerRegistry,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_TIMEOUT_SECONDS,
)

from .backoff import (
    BackoffPolicy,
    BackoffConfig,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MIN_DELAY_MS,
)

from .retry_handler import (
    RetryHandler,
    RetryResult,
    RetryOutcome,
    RetryStrategy,
    is_valid_response,
    DEFAULT_MAX_ATTEMPTS,
)

from .health_checks import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    ComponentHealth,
    HealthCheckComponent,
    ProviderHealthCheck,
    CustomHealthCheck,
)


__all__ = [
    # Circuit Breaker
    'CircuitBreaker',
    'CircuitState',
    'CircuitConfig',
    'CircuitMetrics',
    'CircuitBreakerRegistry',
    'DEFAULT_FAILURE_THRESHOLD',
    'DEFAULT_TIMEOUT_SECONDS',

    # Backoff
    'BackoffPolicy',
    'BackoffConfig',
    'DEFAULT_BASE_DELAY_MS',
    'DEFAULT_MAX_DELAY_MS',
    'DEFAULT_MIN_DELAY_MS',

    # Retry Handler
    'RetryHandler',
    'RetryResult',
    'RetryOutcome',
    'RetryStrategy',
    'is_valid_response',
    'DEFAULT_MAX_ATTEMPTS',

    # Health Checks
    'HealthChecker',
    'HealthCheckResult',
    'HealthStatus',
    'ComponentHealth',
    'HealthCheckComponent',
    'ProviderHealthCheck',
    'CustomHealthCheck',
]
