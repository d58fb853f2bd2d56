"""
Health Checks
=============
Kubernetes-ready health checks for a resilient AI client.

Probes:
- Liveness: Is the process running?
- Readiness: Can at least one provider take traffic?
- Startup: Has the service finished initializing?

Provider components report availability and circuit state without sending
a request; custom components wrap a plain or async function with a timeout.
"""

import time
import asyncio
import logging
from typing import Optional, Dict, Any, Callable, Union
from dataclasses import dataclass, field
from enum import Enum
from abc import ABC, abstractmethod

from ..providers.base import ProviderAdapter
from .circuit_breaker import CircuitBreaker, CircuitState

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health of one provider or custom component."""
    name: str
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "latency_ms": self.latency_ms,
            "metadata": self.metadata,
        }


@dataclass
class HealthCheckResult:
    """Aggregated health check result."""
    status: HealthStatus
    components: Dict[str, ComponentHealth]
    timestamp: float = field(default_factory=time.time)
    version: Optional[str] = None

    @property
    def serving(self) -> bool:
        """Whether the service can take traffic (healthy or degraded)."""
        return self.status != HealthStatus.UNHEALTHY

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "version": self.version,
            "components": {name: comp.to_dict() for name, comp in self.components.items()},
        }


class HealthCheckComponent(ABC):
    """Abstract base class for health check components."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Component name."""
        pass

    @abstractmethod
    async def check(self) -> ComponentHealth:
        """Perform health check."""
        pass


class ProviderHealthCheck(HealthCheckComponent):
    """
    Health of one AI provider, derived from its availability and breaker.

    No request is sent to the provider; a health probe must never consume
    the half-open probe slot or count against the failure threshold.

    Example:
        check = ProviderHealthCheck(adapter, breaker)
        health = await check.check()
        # HEALTHY: available, circuit closed, no recent failures
        # DEGRADED: half-open, or closed with recent failures
        # UNHEALTHY: unavailable or circuit open
    """

    def __init__(self, adapter: ProviderAdapter, breaker: CircuitBreaker):
        self._adapter = adapter
        self._breaker = breaker

    @property
    def name(self) -> str:
        return f"provider:{self._adapter.name}"

    async def check(self) -> ComponentHealth:
        """Check provider availability and circuit state."""
        start = time.time()
        available = self._adapter.is_available()
        snapshot = self._breaker.snapshot()
        state = CircuitState(snapshot["state"])
        failures = snapshot["consecutive_failures"]

        if not available:
            status = HealthStatus.UNHEALTHY
            message = "Provider not available (check configuration)"
        elif state == CircuitState.OPEN:
            status = HealthStatus.UNHEALTHY
            message = f"Circuit open after {failures} consecutive failures"
        elif state == CircuitState.HALF_OPEN:
            status = HealthStatus.DEGRADED
            message = "Circuit half-open, probing recovery"
        elif failures > 0:
            status = HealthStatus.DEGRADED
            message = f"{failures} recent consecutive failure(s)"
        else:
            status = HealthStatus.HEALTHY
            message = "Provider ready"

        return ComponentHealth(
            name=self.name,
            status=status,
            message=message,
            latency_ms=(time.time() - start) * 1000,
            metadata={
                "provider": self._adapter.name,
                "available": available,
                "circuit_state": state.value,
                "consecutive_failures": failures,
                "description": self._adapter.describe_self(),
            },
        )


class CustomHealthCheck(HealthCheckComponent):
    """
    Health check backed by a plain or async function.

    The function returns a bool, or a dict whose optional "status" and
    "message" keys are lifted out; remaining keys become metadata.

    Example:
        ready_check = CustomHealthCheck(
            "client_ready",
            check_func=lambda: {"status": "healthy", "available_providers": 2},
        )
    """

    def __init__(
        self,
        name: str,
        check_func: Callable[[], Union[bool, Dict[str, Any]]],
        timeout_seconds: float = 5.0,
    ):
        self._name = name
        self._check_func = check_func
        self._timeout = timeout_seconds

    @property
    def name(self) -> str:
        return self._name

    async def _run(self):
        if asyncio.iscoroutinefunction(self._check_func):
            return await self._check_func()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._check_func)

    async def check(self) -> ComponentHealth:
        """Run the function and translate its result."""
        start = time.time()
        try:
            result = await asyncio.wait_for(self._run(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return ComponentHealth(
                name=self._name,
                status=HealthStatus.UNHEALTHY,
                message=f"Check timeout after {self._timeout}s",
            )
        except Exception as e:
            logger.warning(f"Health check {self._name} failed: {e}")
            return ComponentHealth(name=self._name, status=HealthStatus.UNHEALTHY, message=str(e))

        latency = (time.time() - start) * 1000
        if isinstance(result, dict):
            raw_status = result.get("status", HealthStatus.HEALTHY.value)
            try:
                status = HealthStatus(raw_status)
            except ValueError:
                status = HealthStatus.HEALTHY
            return ComponentHealth(
                name=self._name,
                status=status,
                message=result.get("message"),
                latency_ms=latency,
                metadata={k: v for k, v in result.items() if k not in ("status", "message")},
            )

        healthy = result is not False
        return ComponentHealth(
            name=self._name,
            status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            latency_ms=latency,
        )


class HealthChecker:
    """
    Runs every registered component and aggregates the result.

    Provider components are aggregated leniently by default: the client
    keeps serving while any provider is usable, so the overall status is
    UNHEALTHY only when every provider is unhealthy. Other components
    (custom checks) still count individually.

    Example:
        checker = HealthChecker(version="1.0.0")
        for entry in pool.entries:
            checker.add_component(ProviderHealthCheck(entry.adapter, entry.breaker))

        result = await checker.check_health()
        app.include_router(checker.create_fastapi_routes())
    """

    def __init__(
        self,
        version: Optional[str] = None,
        fail_on_degraded: bool = False,
        require_all: bool = False,
    ):
        """
        Initialize health checker.

        Args:
            version: Application version
            fail_on_degraded: Whether degraded status counts as unhealthy
            require_all: Whether a single unhealthy provider makes the whole service unhealthy
        """
        self.version = version
        self.fail_on_degraded = fail_on_degraded
        self.require_all = require_all
        self._components: Dict[str, HealthCheckComponent] = {}
        self._startup_complete = False

    def add_component(self, component: HealthCheckComponent):
        """Add a health check component."""
        self._components[component.name] = component

    def mark_startup_complete(self):
        self._startup_complete = True
        logger.info(f"Startup complete, {len(self._components)} health component(s) registered")

    async def check_health(self) -> HealthCheckResult:
        """Run all components concurrently and aggregate their status."""
        checks = list(self._components.values())
        outcomes = await asyncio.gather(*(c.check() for c in checks), return_exceptions=True)

        components: Dict[str, ComponentHealth] = {}
        for check, outcome in zip(checks, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Health check {check.name} raised: {outcome}")
                outcome = ComponentHealth(
                    name=check.name, status=HealthStatus.UNHEALTHY, message=str(outcome),
                )
            components[check.name] = outcome

        overall = self._aggregate(components)
        if overall != HealthStatus.HEALTHY:
            logger.warning(f"Health check status: {overall.value}")

        return HealthCheckResult(status=overall, components=components, version=self.version)

    def _aggregate(self, components: Dict[str, ComponentHealth]) -> HealthStatus:
        provider_statuses = [
            c.status for name, c in components.items()
            if isinstance(self._components.get(name), ProviderHealthCheck)
        ]
        other_statuses = [
            c.status for name, c in components.items()
            if not isinstance(self._components.get(name), ProviderHealthCheck)
        ]

        if not self.require_all and provider_statuses:
            if all(s == HealthStatus.UNHEALTHY for s in provider_statuses):
                provider_overall = HealthStatus.UNHEALTHY
            elif all(s == HealthStatus.HEALTHY for s in provider_statuses):
                provider_overall = HealthStatus.HEALTHY
            else:
                provider_overall = HealthStatus.DEGRADED
            statuses = other_statuses + [provider_overall]
        else:
            statuses = other_statuses + provider_statuses

        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.UNHEALTHY if self.fail_on_degraded else HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    async def check_readiness(self) -> HealthCheckResult:
        """Readiness check - can the service handle requests?"""
        return await self.check_health()

    async def check_startup(self) -> bool:
        """Startup check - has initialization completed?"""
        return self._startup_complete

    def create_fastapi_routes(self):
        """
        Create FastAPI routes for health endpoints.

        Example:
            app = FastAPI()
            app.include_router(checker.create_fastapi_routes())
        """
        from fastapi import APIRouter
        from fastapi.responses import JSONResponse

        router = APIRouter()

        @router.get("/health")
        async def health():
            result = await self.check_health()
            status_code = 200 if result.status == HealthStatus.HEALTHY else 503
            return JSONResponse(content=result.to_dict(), status_code=status_code)

        @router.get("/live")
        @router.get("/livez")
        async def liveness():
            # Independent of providers
            return JSONResponse(content={"status": "alive"})

        @router.get("/ready")
        @router.get("/readyz")
        async def readiness():
            result = await self.check_readiness()
            return JSONResponse(content=result.to_dict(), status_code=200 if result.serving else 503)

        @router.get("/startup")
        @router.get("/startupz")
        async def startup():
            ready = await self.check_startup()
            return JSONResponse(
                content={"status": "ready" if ready else "starting"},
                status_code=200 if ready else 503,
            )

        return router


# Export public API
__all__ = [
    'HealthChecker',
    'HealthCheckResult',
    'HealthStatus',
    'ComponentHealth',
    'HealthCheckComponent',
    'ProviderHealthCheck',
    'CustomHealthCheck',
]
