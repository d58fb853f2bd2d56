"""
Circuit Breaker
===============
Per-provider circuit breaker gating AI provider attempts.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Provider failing, requests are skipped
- HALF_OPEN: Timeout elapsed, exactly one probe request allowed

Transitions are evaluated lazily on the next query; there is no
background timer. Every read and write is serialized by a per-breaker lock.
"""

import time
import logging
from typing import Optional, Dict, Any, Callable, List
from dataclasses import dataclass
from enum import Enum
import threading

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_TIMEOUT_SECONDS = 60.0


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Skipping provider
    HALF_OPEN = "half_open"  # Probing recovery


@dataclass
class CircuitConfig:
    """Circuit breaker configuration."""
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD  # Consecutive failures before opening
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS    # Time in open state before half-open


@dataclass
class CircuitMetrics:
    """Circuit breaker metrics."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None
    time_in_open: float = 0.0
    current_state: CircuitState = CircuitState.CLOSED


class CircuitBreaker:
    """
    Circuit breaker for one AI provider.

    Example:
        breaker = CircuitBreaker(name="primary", failure_threshold=5, timeout_seconds=60)

        if breaker.allow_request():
            try:
                text = await provider.generate_content(prompt)
                breaker.record_success()
            except Exception:
                breaker.record_failure()
                raise
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[CircuitState, CircuitState], None]] = None,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Provider name for identification
            failure_threshold: Consecutive failures that open the circuit
            timeout_seconds: Time the circuit stays open before a probe
            clock: Monotonic time source, injectable for tests
            on_state_change: Callback when state changes
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must be non-negative")

        self.name = name
        self.config = CircuitConfig(
            failure_threshold=failure_threshold,
            timeout_seconds=timeout_seconds,
        )
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

        self._on_state_change = on_state_change

        # Thread safety
        self._lock = threading.Lock()

        self._metrics = CircuitMetrics()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, applying any due OPEN -> HALF_OPEN transition."""
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def opened_at(self) -> Optional[float]:
        """Clock reading when the circuit last opened, None unless OPEN."""
        with self._lock:
            return self._opened_at if self._state == CircuitState.OPEN else None

    @property
    def metrics(self) -> CircuitMetrics:
        """Get current metrics."""
        with self._lock:
            self._metrics.current_state = self._state
            return self._metrics

    def _check_state_transition(self):
        """Lazily move OPEN -> HALF_OPEN once the timeout has elapsed."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            elapsed = self._clock() - self._opened_at
            if elapsed > self.config.timeout_seconds:
                logger.info(
                    f"Circuit '{self.name}' timeout elapsed after {elapsed:.1f}s, allowing probe"
                )
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState):
        """Transition to new state."""
        old_state = self._state
        if old_state == new_state:
            return

        now = self._clock()
        if old_state == CircuitState.OPEN and self._opened_at is not None:
            self._metrics.time_in_open += now - self._opened_at

        self._state = new_state
        self._metrics.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._opened_at = now
        elif new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0
            self._opened_at = None
        elif new_state == CircuitState.HALF_OPEN:
            self._probe_in_flight = False

        logger.info(f"Circuit '{self.name}' state change: {old_state.value} -> {new_state.value}")

        if self._on_state_change:
            try:
                self._on_state_change(old_state, new_state)
            except Exception as e:
                logger.error(f"State change callback error: {e}")

    def allow_request(self) -> bool:
        """
        Check whether the provider may be attempted now.

        In HALF_OPEN only the first caller gets the probe; everyone else is
        denied until that probe's outcome is recorded.
        """
        with self._lock:
            self._check_state_transition()

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    self._metrics.rejected_calls += 1
                    logger.debug(f"Circuit '{self.name}' probe already in flight, denying request")
                    return False
                self._probe_in_flight = True
                logger.debug(f"Circuit '{self.name}' is HALF_OPEN, allowing probe request")
                return True

            # OPEN
            self._metrics.rejected_calls += 1
            if self._opened_at is not None:
                remaining = self.config.timeout_seconds - (self._clock() - self._opened_at)
                logger.debug(
                    f"Circuit '{self.name}' is OPEN, denying request ({remaining:.1f}s remaining)"
                )
            return False

    def record_success(self):
        """Record a successful attempt."""
        with self._lock:
            self._metrics.total_calls += 1
            self._metrics.successful_calls += 1
            self._metrics.last_success_time = time.time()

            previous_failures = self._consecutive_failures
            self._consecutive_failures = 0
            self._probe_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                logger.info(f"Circuit '{self.name}' probe succeeded, provider recovered")
                self._transition_to(CircuitState.CLOSED)
            elif self._state == CircuitState.OPEN:
                # A call admitted before the circuit opened finished late
                logger.warning(f"Circuit '{self.name}' received success while OPEN, closing")
                self._transition_to(CircuitState.CLOSED)
            elif previous_failures > 0:
                logger.debug(
                    f"Circuit '{self.name}' success reset failure count from {previous_failures}"
                )

    def record_failure(self):
        """Record a failed attempt."""
        with self._lock:
            self._metrics.total_calls += 1
            self._metrics.failed_calls += 1
            self._metrics.last_failure_time = time.time()

            self._consecutive_failures += 1
            self._probe_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(f"Circuit '{self.name}' probe failed, reopening")
                self._transition_to(CircuitState.OPEN)
            elif (
                self._state == CircuitState.CLOSED
                and self._consecutive_failures >= self.config.failure_threshold
            ):
                logger.error(
                    f"Circuit '{self.name}' OPENED after {self._consecutive_failures} consecutive failures"
                )
                self._transition_to(CircuitState.OPEN)
            else:
                logger.debug(
                    f"Circuit '{self.name}' recorded failure "
                    f"{self._consecutive_failures}/{self.config.failure_threshold}"
                )

    def release_probe(self):
        """
        Give back a half-open probe slot without recording an outcome.

        Used when an admitted attempt is cancelled before it finishes, so the
        next caller can probe instead of being denied indefinitely.
        """
        with self._lock:
            if self._probe_in_flight:
                self._probe_in_flight = False
                logger.info(f"Circuit '{self.name}' probe abandoned, slot released")

    def reset(self):
        """Reset circuit to closed state (ops/test hook)."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._opened_at = None
            self._probe_in_flight = False
        logger.info(f"Circuit '{self.name}' manually reset")

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time view for diagnostics."""
        with self._lock:
            self._check_state_transition()
            return {
                "name": self.name,
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "failure_threshold": self.config.failure_threshold,
                "timeout_seconds": self.config.timeout_seconds,
                "opened_at": self._opened_at,
                "rejected_calls": self._metrics.rejected_calls,
            }

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self._state.value}, "
            f"failures={self._consecutive_failures}/{self.config.failure_threshold})"
        )


class CircuitBreakerRegistry:
    """
    One circuit breaker per provider, owned by a single client.

    Example:
        registry = CircuitBreakerRegistry(failure_threshold=5, timeout_seconds=60)
        breaker = registry.get_or_create("primary")

        # Get all metrics
        metrics = registry.get_all_metrics()
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize registry with the config every breaker gets."""
        self.default_config = CircuitConfig(
            failure_threshold=failure_threshold,
            timeout_seconds=timeout_seconds,
        )
        self._clock = clock
        self._circuits: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str, **kwargs) -> CircuitBreaker:
        """Get existing circuit or create new one."""
        with self._lock:
            if name not in self._circuits:
                self._circuits[name] = CircuitBreaker(
                    name=name,
                    failure_threshold=kwargs.pop('failure_threshold', self.default_config.failure_threshold),
                    timeout_seconds=kwargs.pop('timeout_seconds', self.default_config.timeout_seconds),
                    clock=kwargs.pop('clock', self._clock),
                    **kwargs,
                )
            return self._circuits[name]

    def get(self, name: str) -> Optional[CircuitBreaker]:
        """Get circuit by name."""
        return self._circuits.get(name)

    def names(self) -> List[str]:
        return list(self._circuits)

    def get_all_metrics(self) -> Dict[str, CircuitMetrics]:
        """Get metrics for all circuits."""
        return {name: circuit.metrics for name, circuit in self._circuits.items()}

    def get_open_circuits(self) -> List[str]:
        """Get names of all open circuits."""
        return [name for name, circuit in self._circuits.items() if circuit.state == CircuitState.OPEN]

    def reset_all(self):
        """Reset all circuits to closed state."""
        for circuit in self._circuits.values():
            circuit.reset()


# Export public API
__all__ = [
    'CircuitBreaker',
    'CircuitState',
    'CircuitConfig',
    'CircuitMetrics',
    'CircuitBreakerRegistry',
    'DEFAULT_FAILURE_THRESHOLD',
    'DEFAULT_TIMEOUT_SECONDS',
]
