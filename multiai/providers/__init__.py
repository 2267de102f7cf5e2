"""
Multi-Provider Adapter Layer

Uniform asynchronous adapters over the Gemini, OpenAI and Claude SDKs.
Every adapter issues exactly one call per invocation, honours an absolute
deadline and reports failures as typed values instead of raising.

Key Components:
    - ProviderAdapter: Protocol every backend implements
    - ProviderDescriptor: Immutable identity and capabilities of a backend
    - ExtractionTask/EvaluationTask: The two task kinds
    - RawResponse/AdapterError: Adapter results
    - ProviderRegistry: Frozen registry of descriptors and adapters
    - BaseProvider: Abstract base class with deadline and error handling

Example:
    >>> from multiai.providers import build_registry, ProviderConfig
    >>> registry = build_registry([ProviderConfig(name="gemini", api_key="AIza...")])
    >>> adapter = registry.get_adapter("gemini")
    >>> descriptor = registry.get_descriptor("gemini")
    >>> result = await adapter.invoke(task, descriptor, deadline)
"""

from multiai.providers.interfaces import (
    AdapterError,
    Capability,
    ConfigurationError,
    EvaluationTask,
    ExtractionTask,
    FailureKind,
    ProviderAdapter,
    ProviderAuthenticationError,
    ProviderConfig,
    ProviderDescriptor,
    ProviderError,
    ProviderMetrics,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RawResponse,
    TaskRequest,
)
from multiai.providers.registry import (
    ProviderRegistry,
    build_registry,
    registry_from_adapters,
)
from multiai.providers.base import BaseProvider

__all__ = [
    "AdapterError",
    "Capability",
    "ConfigurationError",
    "EvaluationTask",
    "ExtractionTask",
    "FailureKind",
    "ProviderAdapter",
    "ProviderAuthenticationError",
    "ProviderConfig",
    "ProviderDescriptor",
    "ProviderError",
    "ProviderMetrics",
    "ProviderNetworkError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "RawResponse",
    "TaskRequest",
    "ProviderRegistry",
    "build_registry",
    "registry_from_adapters",
    "BaseProvider",
]
