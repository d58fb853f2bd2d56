"""
Error Classifier
================
Maps a failed provider attempt to exactly one ClassifiedError.

Precedence:
1. Adapter-declared TransientProviderError / PermanentProviderError
2. Protocol status code (error.status_code, error.status, error.response.status_code)
3. Malformed-request exceptions from requests (bad URL, schema or header)
4. Timeout and connection exceptions (builtin, asyncio and requests)
5. Message patterns
6. Unknown failures default to transient
"""

import asyncio
import logging
from typing import Optional, FrozenSet, Tuple, Type

import requests

from .errors import ClassifiedError, ErrorKind, ProviderError

logger = logging.getLogger(__name__)


TRANSIENT_STATUS_CODES: FrozenSet[int] = frozenset({
    408,  # Request Timeout
    425,  # Too Early
    429,  # Too Many Requests
    500,  # Internal Server Error
    502,  # Bad Gateway
    503,  # Service Unavailable (overloaded)
    504,  # Gateway Timeout
    529,  # Overloaded
})

TIMEOUT_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    requests.Timeout,
)

CONNECTION_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    requests.ConnectionError,
)

PERMANENT_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
)

TRANSIENT_PATTERNS = (
    "rate limit",
    "too many requests",
    "overloaded",
    "temporarily unavailable",
    "service unavailable",
    "timed out",
    "timeout",
    "connection reset",
)

PERMANENT_PATTERNS = (
    "invalid api key",
    "unauthorized",
    "forbidden",
    "permission denied",
)


def extract_status_code(error: BaseException) -> Optional[int]:
    """Find a protocol status code on an exception, if it carries one."""
    for candidate in (
        getattr(error, "status_code", None),
        getattr(error, "status", None),
        getattr(getattr(error, "response", None), "status_code", None),
    ):
        if isinstance(candidate, int) and not isinstance(candidate, bool) and candidate > 0:
            return candidate
    return None


def classify_status_code(status_code: int) -> ErrorKind:
    """Classify an HTTP-style status code."""
    if status_code in TRANSIENT_STATUS_CODES:
        return ErrorKind.TRANSIENT
    if 400 <= status_code < 500:
        return ErrorKind.PERMANENT
    return ErrorKind.TRANSIENT


class ErrorClassifier:
    """
    Pure mapping from provider exceptions to classified errors.

    Example:
        classifier = ErrorClassifier()
        try:
            text = await provider.generate_content(prompt)
        except Exception as e:
            error = classifier.classify(provider.name, e)
            if error.is_transient:
                ...
    """

    def classify(self, provider: str, error: BaseException) -> ClassifiedError:
        """
        Classify a failed attempt.

        Args:
            provider: Name of the provider that failed
            error: Exception raised by the adapter

        Returns:
            ClassifiedError describing the failure
        """
        message = str(error) or type(error).__name__

        if isinstance(error, ProviderError):
            return self._build(provider, error.kind, error.status_code, message, error)

        status_code = extract_status_code(error)
        if status_code is not None:
            return self._build(provider, classify_status_code(status_code), status_code, message, error)

        if isinstance(error, PERMANENT_EXCEPTIONS):
            return self._build(provider, ErrorKind.PERMANENT, 0, message, error)

        if isinstance(error, TIMEOUT_EXCEPTIONS) or isinstance(error, CONNECTION_EXCEPTIONS):
            return self._build(provider, ErrorKind.TRANSIENT, 0, message, error)

        lowered = message.lower()
        if any(pattern in lowered for pattern in PERMANENT_PATTERNS):
            return self._build(provider, ErrorKind.PERMANENT, 0, message, error)
        if any(pattern in lowered for pattern in TRANSIENT_PATTERNS):
            return self._build(provider, ErrorKind.TRANSIENT, 0, message, error)

        logger.debug(f"Unrecognized {type(error).__name__} from {provider}, treating as transient")
        return self._build(provider, ErrorKind.TRANSIENT, 0, message, error)

    @staticmethod
    def _build(
        provider: str,
        kind: ErrorKind,
        status_code: int,
        message: str,
        cause: BaseException,
    ) -> ClassifiedError:
        return ClassifiedError(
            provider=provider,
            kind=kind,
            status_code=status_code,
            message=message,
            cause=cause,
        )


# Export public API
__all__ = [
    'ErrorClassifier',
    'TRANSIENT_STATUS_CODES',
    'PERMANENT_EXCEPTIONS',
    'extract_status_code',
    'classify_status_code',
]
