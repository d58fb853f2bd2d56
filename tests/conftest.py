"""
Pytest configuration and fixtures
==================================
"""

import os
import pytest
from typing import List

# Set test environment variables
os.environ["RESILIENT_AI_MOCK_PROVIDERS"] = "primary,secondary,tertiary"
os.environ["RESILIENT_AI_BACKOFF_SEED"] = "1234"
os.environ["LOG_LEVEL"] = "WARNING"

from resilient_ai.config import ResilienceConfig
from resilient_ai.client import ResilientAIClient
from resilient_ai.providers import MockProvider
from resilient_ai.reliability import BackoffPolicy


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Awaitable sleep that records requested durations instead of waiting."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def backoff() -> BackoffPolicy:
    """Seeded backoff policy for reproducible delays."""
    return BackoffPolicy(seed=42)


@pytest.fixture
def make_client(clock, sleeper, backoff):
    """Factory for clients with a fake clock and no real sleeping."""
    def _make(providers, **config_overrides) -> ResilientAIClient:
        return ResilientAIClient(
            providers,
            config=ResilienceConfig(**config_overrides),
            backoff=backoff,
            sleep_func=sleeper,
            clock=clock,
        )
    return _make


@pytest.fixture
def echo_providers() -> List[MockProvider]:
    return [MockProvider.echo(name) for name in ("primary", "secondary", "tertiary")]


@pytest.fixture
def sample_prompt():
    """Sample prompt for testing."""
    return "Plan a relaxed three-day trip to Lisbon with one museum per day."


@pytest.fixture
def sample_schema():
    """Sample JSON schema for structured generation."""
    return '{"type": "object", "properties": {"days": {"type": "array"}}}'
