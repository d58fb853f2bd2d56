"""
Resilient AI Pack
=================
Resilient invocation layer for interchangeable AI providers.

Modules:
- providers: Adapter contract, error taxonomy, error classifier
- reliability: Circuit breakers, backoff, retry strategies, health checks
- client: Provider pool and the resilient client
- config: Environment-driven resilience settings
"""

from . import providers
from . import reliability
from . import client
from .config import ResilienceConfig
from .client import ResilientAIClient, GenerationRequest, GenerationResult
from .reliability import RetryStrategy
from .providers import AllProvidersExhaustedError, NoProvidersConfiguredError

__version__ = "1.0.0"

__all__ = [
    'providers',
    'reliability',
    'client',
    'ResilienceConfig',
    'ResilientAIClient',
    'GenerationRequest',
    'GenerationResult',
    'RetryStrategy',
    'AllProvidersExhaustedError',
    'NoProvidersConfiguredError',
]
