"""
Providers Module
================
Provider adapter contract and error taxonomy.

Components:
- ProviderAdapter: Interface every AI provider adapter implements
- FunctionProvider / StaticProvider / MockProvider: In-process adapters
- ErrorClassifier: Maps adapter failures to transient/permanent
- Error types: ClassifiedError, InvalidResponse, caller-facing errors
"""

from .base import (
    ProviderAdapter,
    FunctionProvider,
    StaticProvider,
)

from .mock import (
    MockProvider,
    MockCall,
)

from .errors import (
    ErrorKind,
    ProviderError,
    TransientProviderError,
    PermanentProviderError,
    ClassifiedError,
    InvalidResponse,
    ProviderFailure,
    ResilientClientError,
    AllProvidersExhaustedError,
    NoProvidersConfiguredError,
)

from .classifier import (
    ErrorClassifier,
    extract_status_code,
    classify_status_code,
)


__all__ = [
    # Adapters
    'ProviderAdapter',
    'FunctionProvider',
    'StaticProvider',
    'MockProvider',
    'MockCall',

    # Errors
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

    # Classifier
    'ErrorClassifier',
    'extract_status_code',
    'classify_status_code',
]
