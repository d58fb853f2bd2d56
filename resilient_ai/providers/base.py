"""
Provider Adapters
=================
Contract every AI provider adapter implements, plus in-process variants.

A provider is an opaque capability: attempt generation and either return
text or raise an error the classifier understands. Adapters own their
transport and configuration; the resilient client only queries them.

Variants:
- FunctionProvider: wraps sync or async callables
- StaticProvider: always returns the same text
"""

import asyncio
from abc import ABC, abstractmethod
from functools import partial
from typing import Optional, Callable, Any, Union, Awaitable


class ProviderAdapter(ABC):
    """Abstract base class for AI provider adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used for logs, breakers and diagnostics."""
        pass

    @abstractmethod
    async def generate_content(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate free-form text."""
        pass

    @abstractmethod
    async def generate_structured_content(
        self,
        user_prompt: str,
        json_schema: Optional[str],
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate text that should conform to a JSON schema."""
        pass

    def is_available(self) -> bool:
        """Whether the adapter is configured (credentials present, etc.)."""
        return True

    def describe_self(self) -> str:
        """Human-readable description for diagnostics."""
        return f"Provider: {self.name}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


ContentFunc = Callable[..., Union[str, Awaitable[str]]]


class FunctionProvider(ProviderAdapter):
    """
    Wraps plain functions as a provider.

    Synchronous functions run in the default executor so a blocking SDK
    call never stalls the event loop.

    Example:
        async def call_model(user_prompt, system_prompt=None):
            return await sdk.complete(user_prompt, system=system_prompt)

        provider = FunctionProvider("primary", call_model, model="model-large")
    """

    def __init__(
        self,
        name: str,
        content_func: ContentFunc,
        structured_func: Optional[ContentFunc] = None,
        model: Optional[str] = None,
        available: Union[bool, Callable[[], bool]] = True,
    ):
        """
        Initialize with functions.

        Args:
            name: Provider name
            content_func: Called as content_func(user_prompt, system_prompt)
            structured_func: Called as structured_func(user_prompt, json_schema, system_prompt);
                falls back to content_func with the schema appended to the prompt
            model: Model identifier for diagnostics
            available: Availability flag or a callable evaluated on each query
        """
        self._name = name
        self._content_func = content_func
        self._structured_func = structured_func
        self._model = model
        self._available = available

    @property
    def name(self) -> str:
        return self._name

    async def generate_content(self, user_prompt: str, system_prompt: Optional[str] = None) -> str:
        return await self._call(self._content_func, user_prompt, system_prompt)

    async def generate_structured_content(
        self,
        user_prompt: str,
        json_schema: Optional[str],
        system_prompt: Optional[str] = None,
    ) -> str:
        if self._structured_func is not None:
            return await self._call(self._structured_func, user_prompt, json_schema, system_prompt)
        prompt = user_prompt
        if json_schema:
            prompt = f"{user_prompt}\n\nRespond with JSON matching this schema:\n{json_schema}"
        return await self._call(self._content_func, prompt, system_prompt)

    def is_available(self) -> bool:
        if callable(self._available):
            return bool(self._available())
        return bool(self._available)

    def set_available(self, available: bool):
        """Toggle availability at runtime."""
        self._available = available

    def describe_self(self) -> str:
        model = self._model or "unspecified"
        return f"Provider: {self._name}, Model: {model}"

    async def _call(self, func: ContentFunc, *args: Any) -> str:
        if asyncio.iscoroutinefunction(func):
            return await func(*args)
        return await asyncio.get_event_loop().run_in_executor(None, partial(func, *args))


class StaticProvider(ProviderAdapter):
    """
    Returns the same text for every request.

    Example:
        canned = StaticProvider("canned", '{"status": "degraded"}')
    """

    def __init__(self, name: str, text: str, available: bool = True):
        self._name = name
        self._text = text
        self._available = available

    @property
    def name(self) -> str:
        return self._name

    async def generate_content(self, user_prompt: str, system_prompt: Optional[str] = None) -> str:
        return self._text

    async def generate_structured_content(
        self,
        user_prompt: str,
        json_schema: Optional[str],
        system_prompt: Optional[str] = None,
    ) -> str:
        return self._text

    def is_available(self) -> bool:
        return self._available

    def describe_self(self) -> str:
        return f"Provider: {self._name}, Static ({len(self._text)} chars)"


# Export public API
__all__ = [
    'ProviderAdapter',
    'FunctionProvider',
    'StaticProvider',
]
