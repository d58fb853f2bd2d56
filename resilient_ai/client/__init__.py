"""
Client Module
=============
Multi-provider orchestration.

Components:
- ResilientAIClient: Priority-ordered fallback across providers
- ProviderPool: Providers paired with their circuit breakers
"""

from .provider_pool import (
    ProviderPool,
    ProviderEntry,
)

from .resilient_client import (
    ResilientAIClient,
    GenerationRequest,
    GenerationResult,
)


__all__ = [
    # Provider Pool
    'ProviderPool',
    'ProviderEntry',

    # Resilient Client
    'ResilientAIClient',
    'GenerationRequest',
    'GenerationResult',
]
