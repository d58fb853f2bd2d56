"""
Provider Pool
=============
Fixed-priority list of provider adapters, each paired with its breaker.

The pool is built once at startup and never reordered; index 0 is the
preferred provider.
"""

import logging
from typing import Optional, Dict, Any, List, Sequence, Iterator
from dataclasses import dataclass

from ..providers.base import ProviderAdapter
from ..reliability.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderEntry:
    """One provider at its priority position."""
    index: int
    adapter: ProviderAdapter
    breaker: CircuitBreaker

    @property
    def name(self) -> str:
        return self.adapter.name

    def status(self) -> Dict[str, Any]:
        """Structured status for diagnostics and health checks."""
        snapshot = self.breaker.snapshot()
        return {
            "index": self.index,
            "name": self.name,
            "available": self.adapter.is_available(),
            "circuit_state": snapshot["state"],
            "consecutive_failures": snapshot["consecutive_failures"],
            "description": self.adapter.describe_self(),
        }


class ProviderPool:
    """
    Ordered providers with one circuit breaker each.

    Example:
        registry = CircuitBreakerRegistry(failure_threshold=5, timeout_seconds=60)
        pool = ProviderPool([primary, secondary, tertiary], registry)

        for entry in pool:
            print(entry.index, entry.name, entry.breaker.state)
    """

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        registry: Optional[CircuitBreakerRegistry] = None,
    ):
        """
        Initialize provider pool.

        Args:
            providers: Adapters in priority order
            registry: Breaker registry owned by the client; a fresh one if omitted

        Raises:
            ValueError: If two providers share a name
        """
        self.registry = registry or CircuitBreakerRegistry()

        seen = set()
        entries: List[ProviderEntry] = []
        for index, adapter in enumerate(providers):
            if adapter.name in seen:
                raise ValueError(f"Duplicate provider name: {adapter.name!r}")
            seen.add(adapter.name)
            entries.append(ProviderEntry(
                index=index,
                adapter=adapter,
                breaker=self.registry.get_or_create(adapter.name),
            ))
        self._entries = tuple(entries)

        self._log_summary()

    def _log_summary(self):
        available = [e.name for e in self._entries if e.adapter.is_available()]
        logger.info(
            f"Provider pool initialized with {len(self._entries)} provider(s), "
            f"{len(available)} available: {', '.join(available) or 'none'}"
        )
        if not available:
            logger.error("No AI providers available - check configuration")
        elif len(available) == 1:
            logger.warning(f"Only one AI provider available ({available[0]}), no redundancy")

    @property
    def entries(self) -> List[ProviderEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProviderEntry]:
        return iter(self._entries)

    def get(self, name: str) -> Optional[ProviderEntry]:
        """Look up an entry by provider name."""
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    @property
    def names(self) -> List[str]:
        return [e.name for e in self._entries]

    def available_count(self) -> int:
        return sum(1 for e in self._entries if e.adapter.is_available())

    def eligible(self) -> List[ProviderEntry]:
        """
        Available providers whose circuit is not OPEN, for diagnostics.

        Reads breaker state without claiming a half-open probe; the client
        itself gates attempts through allow_request().
        """
        return [
            e for e in self._entries
            if e.adapter.is_available() and e.breaker.state != CircuitState.OPEN
        ]

    def open_circuit_count(self) -> int:
        return sum(
            1 for e in self._entries
            if e.adapter.is_available() and e.breaker.state == CircuitState.OPEN
        )

    def statuses(self) -> List[Dict[str, Any]]:
        return [e.status() for e in self._entries]

    def describe(self) -> str:
        """Human-readable list of providers with availability and breaker state."""
        if not self._entries:
            return "No providers configured"
        lines = []
        for e in self._entries:
            availability = "available" if e.adapter.is_available() else "unavailable"
            lines.append(
                f"{e.index + 1}. {e.adapter.describe_self()} [{availability}, "
                f"circuit {e.breaker.state.value}]"
            )
        return "\n".join(lines)


# Export public API
__all__ = [
    'ProviderPool',
    'ProviderEntry',
]
