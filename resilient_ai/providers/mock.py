"""
Mock Provider
=============
Scriptable provider for tests, local development and mock mode.

Each call consumes the next scripted outcome: a string is returned, an
exception (instance or class) is raised. When the script runs out the
default outcome is repeated.
"""

import asyncio
import time
from typing import Optional, List, Union, Type, Callable, Sequence
from dataclasses import dataclass, field

from .base import ProviderAdapter

Outcome = Union[str, None, BaseException, Type[BaseException]]


@dataclass
class MockCall:
    """A recorded call to a MockProvider."""
    operation: str
    user_prompt: str
    system_prompt: Optional[str] = None
    json_schema: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class MockProvider(ProviderAdapter):
    """
    Provider with scripted outcomes and call recording.

    Example:
        flaky = MockProvider(
            "flaky",
            responses=[TransientProviderError("overloaded", status_code=503), "ok"],
        )
        await flaky.generate_content("hi")   # raises
        await flaky.generate_content("hi")   # "ok"
        assert flaky.call_count == 2
    """

    def __init__(
        self,
        name: str,
        responses: Optional[Sequence[Outcome]] = None,
        default: Outcome = "",
        responder: Optional[Callable[[MockCall], str]] = None,
        available: bool = True,
        latency_seconds: float = 0.0,
    ):
        """
        Initialize mock provider.

        Args:
            name: Provider name
            responses: Ordered outcomes consumed one per call
            default: Outcome once responses are used up
            responder: Builds the text from the call when no scripted outcome applies
            available: Initial availability flag
            latency_seconds: Simulated latency per call
        """
        self._name = name
        self._responses: List[Outcome] = list(responses or [])
        self._default = default
        self._responder = responder
        self._available = available
        self._latency = latency_seconds
        self.calls: List[MockCall] = []

    @classmethod
    def echo(cls, name: str, **kwargs) -> "MockProvider":
        """Provider that answers every prompt with a tagged echo."""
        return cls(
            name,
            responder=lambda call: f"[{name}] {call.user_prompt}",
            **kwargs,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate_content(self, user_prompt: str, system_prompt: Optional[str] = None) -> str:
        return await self._respond(MockCall(
            operation="generate_content",
            user_prompt=user_prompt,
            system_prompt=system_prompt,
        ))

    async def generate_structured_content(
        self,
        user_prompt: str,
        json_schema: Optional[str],
        system_prompt: Optional[str] = None,
    ) -> str:
        return await self._respond(MockCall(
            operation="generate_structured_content",
            user_prompt=user_prompt,
            system_prompt=system_prompt,
            json_schema=json_schema,
        ))

    def is_available(self) -> bool:
        return self._available

    def set_available(self, available: bool):
        self._available = available

    def describe_self(self) -> str:
        return f"Provider: {self._name}, Mock ({self.call_count} calls)"

    def reset_calls(self):
        self.calls.clear()

    async def _respond(self, call: MockCall) -> str:
        self.calls.append(call)
        if self._latency:
            await asyncio.sleep(self._latency)

        if self._responses:
            outcome = self._responses.pop(0)
        elif self._responder is not None:
            return self._responder(call)
        else:
            outcome = self._default

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, type) and issubclass(outcome, BaseException):
            raise outcome(f"{self._name} scripted failure")
        return outcome


# Export public API
__all__ = [
    'MockProvider',
    'MockCall',
]
