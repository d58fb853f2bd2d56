"""
Provider Errors
===============
Error taxonomy for the provider invocation layer.

Provider-local (never escape the client):
- TransientProviderError / PermanentProviderError: raised by adapters
- ClassifiedError: immutable record of one failed attempt
- InvalidResponse: marker for an empty/blank "successful" response

Caller-facing:
- AllProvidersExhaustedError: every eligible provider was tried and failed
- NoProvidersConfiguredError: no provider was eligible to be tried
"""

import time
from typing import Optional, Dict, Any, List, Union
from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(Enum):
    """Classification of a failed provider attempt."""
    TRANSIENT = "transient"    # Retrying may help
    PERMANENT = "permanent"    # Request cannot succeed on this provider


class ProviderError(RuntimeError):
    """Base exception adapters may raise with an explicit classification."""

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: int = 0,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.cause = cause


class TransientProviderError(ProviderError):
    """Rate limit, overload, timeout or other retryable failure."""
    kind = ErrorKind.TRANSIENT


class PermanentProviderError(ProviderError):
    """Bad credentials, forbidden, malformed request or unknown endpoint."""
    kind = ErrorKind.PERMANENT


@dataclass(frozen=True)
class ClassifiedError:
    """One failed attempt against one provider."""
    provider: str
    kind: ErrorKind
    status_code: int = 0
    message: str = ""
    occurred_at: float = field(default_factory=time.time)
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def is_transient(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT

    @property
    def is_permanent(self) -> bool:
        return self.kind == ErrorKind.PERMANENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logs and JSON responses."""
        return {
            "provider": self.provider,
            "kind": self.kind.value,
            "status_code": self.status_code,
            "message": self.message,
            "occurred_at": self.occurred_at,
        }

    def __str__(self) -> str:
        code = f" {self.status_code}" if self.status_code else ""
        return f"{self.provider}: {self.kind.value}{code} - {self.message}"


@dataclass(frozen=True)
class InvalidResponse:
    """Marker for a provider that answered with nothing usable."""
    provider: str
    occurred_at: float = field(default_factory=time.time)
    message: str = "empty response"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "kind": "invalid_response",
            "message": self.message,
            "occurred_at": self.occurred_at,
        }

    def __str__(self) -> str:
        return f"{self.provider}: {self.message}"


ProviderFailure = Union[ClassifiedError, InvalidResponse]


class ResilientClientError(Exception):
    """Base class for errors raised to callers of the resilient client."""

    @property
    def summary(self) -> str:
        return str(self)


class AllProvidersExhaustedError(ResilientClientError):
    """
    Raised when every eligible provider was tried and none produced content.

    Attributes:
        failures: One entry per attempted provider, in priority order
        operation: Name of the operation that failed
    """

    def __init__(self, failures: List[ProviderFailure], operation: str = "generate_content"):
        self.failures = list(failures)
        self.operation = operation
        super().__init__(self._build_summary())

    @property
    def attempted(self) -> int:
        """Number of providers that were tried."""
        return len(self.failures)

    @property
    def classified_errors(self) -> List[ClassifiedError]:
        return [f for f in self.failures if isinstance(f, ClassifiedError)]

    @property
    def invalid_responses(self) -> List[InvalidResponse]:
        return [f for f in self.failures if isinstance(f, InvalidResponse)]

    def _build_summary(self) -> str:
        details = "; ".join(str(f) for f in self.failures)
        return f"All {self.attempted} AI provider(s) failed for {self.operation}: {details}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "all_providers_exhausted",
            "operation": self.operation,
            "attempted": self.attempted,
            "summary": self.summary,
            "failures": [f.to_dict() for f in self.failures],
        }


class NoProvidersConfiguredError(ResilientClientError):
    """
    Raised when no provider was eligible to be tried at all.

    This is a configuration problem (nothing configured, credentials
    missing) or every available provider has an open circuit. It is
    distinct from exhaustion: nothing was attempted.
    """

    def __init__(
        self,
        configured: int = 0,
        available: int = 0,
        circuit_open: int = 0,
        operation: str = "generate_content",
    ):
        self.configured = configured
        self.available = available
        self.circuit_open = circuit_open
        self.operation = operation
        super().__init__(self._build_summary())

    def _build_summary(self) -> str:
        if self.configured == 0:
            return "No AI providers configured - check configuration"
        if self.available == 0:
            return (
                f"No AI providers available ({self.configured} configured, none available) "
                f"- check configuration"
            )
        return (
            f"No AI providers eligible for {self.operation}: "
            f"{self.circuit_open} of {self.available} available provider(s) have open circuits"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "no_providers_configured",
            "operation": self.operation,
            "configured": self.configured,
            "available": self.available,
            "circuit_open": self.circuit_open,
            "summary": self.summary,
        }


# Export public API
__all__ = [
    'ErrorKind',
    'ProviderError',
    'TransientProviderError',
    'PermanentProviderError',
    'ClassifiedError',
    'InvalidResponse',
    'ProviderFailure',
    'ResilientClientError',
    'AllProvidersExhaustedError',
    'NoProvidersConfiguredError',
]
