"""
Provider Registry

Central registry of provider adapters and their descriptors. The registry
is built once at start-up, frozen, and read concurrently afterwards.
"""

from typing import Dict, Iterable, List, Optional, Type

from multiai.observability.logging import get_logger
from multiai.observability.metrics import set_gauge
from multiai.providers.base import BaseProvider
from multiai.providers.interfaces import (
    Capability,
    ProviderAdapter,
    ProviderConfig,
    ProviderDescriptor,
)

logger = get_logger(__name__)


class ProviderRegistry:
    """
    Registry of provider descriptors and the adapters serving them.

    Unavailable providers (no credentials) are registered with a descriptor
    but no adapter, so they are visible to callers and excluded from every
    fan-out.

    Thread-safe once frozen: no mutation is possible after freeze().

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register(adapter.describe(), adapter)
        >>> registry.freeze()
        >>> registry.available_descriptors(Capability.VISION_EXTRACTION)
    """

    def __init__(self):
        """Initialize an empty, unfrozen registry"""
        self._descriptors: Dict[str, ProviderDescriptor] = {}
        self._adapters: Dict[str, ProviderAdapter] = {}
        self._frozen = False

    def register(
        self,
        descriptor: ProviderDescriptor,
        adapter: Optional[ProviderAdapter] = None,
    ) -> None:
        """
        Register a provider.

        Args:
            descriptor: Immutable provider descriptor
            adapter: Adapter serving the descriptor; required when available

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If the name is already registered or the adapter is
                missing or does not match the descriptor
            TypeError: If descriptor is not a ProviderDescriptor
        """
        if self._frozen:
            raise RuntimeError("Provider registry is frozen")

        if not isinstance(descriptor, ProviderDescriptor):
            raise TypeError(
                f"descriptor must be a ProviderDescriptor, got {type(descriptor).__name__}"
            )

        if descriptor.name in self._descriptors:
            raise ValueError(f"Provider already registered: {descriptor.name}")

        if adapter is None:
            if descriptor.available:
                raise ValueError(f"Available provider '{descriptor.name}' needs an adapter")
        else:
            if not all(hasattr(adapter, attr) for attr in ("name", "invoke")):
                raise TypeError("adapter must implement the ProviderAdapter protocol")
            if adapter.name != descriptor.name:
                raise ValueError(
                    f"Adapter '{adapter.name}' does not match descriptor '{descriptor.name}'"
                )
            self._adapters[descriptor.name] = adapter

        self._descriptors[descriptor.name] = descriptor

    def freeze(self) -> "ProviderRegistry":
        """Make the registry read-only. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get_adapter(self, name: str) -> Optional[ProviderAdapter]:
        """Adapter registered under name, or None if absent or unavailable."""
        return self._adapters.get(name)

    def get_descriptor(self, name: str) -> Optional[ProviderDescriptor]:
        return self._descriptors.get(name)

    def has_provider(self, name: str) -> bool:
        return name in self._descriptors

    def list_providers(self) -> List[str]:
        """Sorted list of registered provider names."""
        return sorted(self._descriptors.keys())

    def descriptors(self) -> List[ProviderDescriptor]:
        """All descriptors, available or not, sorted by name."""
        return [self._descriptors[name] for name in self.list_providers()]

    def available_descriptors(
        self, capability: Optional[Capability] = None
    ) -> List[ProviderDescriptor]:
        """
        Available descriptors, optionally filtered by capability.

        Example:
            >>> names = [d.name for d in registry.available_descriptors(Capability.TEXT_EVALUATION)]
        """
        return [
            descriptor
            for descriptor in self.descriptors()
            if descriptor.available
            and (capability is None or descriptor.supports(capability))
        ]


def _default_provider_classes() -> Dict[str, Type[BaseProvider]]:
    from multiai.providers.implementations import (
        AnthropicProvider,
        GeminiProvider,
        OpenAIProvider,
    )

    return {
        "gemini": GeminiProvider,
        "openai": OpenAIProvider,
        "claude": AnthropicProvider,
    }


def _unavailable_descriptor(
    provider_class: Type[BaseProvider], config: ProviderConfig
) -> ProviderDescriptor:
    return ProviderDescriptor(
        name=config.name,
        capabilities=provider_class.CAPABILITIES,
        available=False,
        vision_model=config.vision_model or provider_class.DEFAULT_VISION_MODEL,
        text_model=config.text_model or provider_class.DEFAULT_TEXT_MODEL,
    )


def build_registry(
    configs: Iterable[ProviderConfig],
    provider_classes: Optional[Dict[str, Type[BaseProvider]]] = None,
) -> ProviderRegistry:
    """
    Build and freeze a registry from provider configurations.

    A provider without credentials, or whose SDK cannot be constructed, is
    registered as unavailable instead of failing start-up.

    Args:
        configs: One configuration per provider
        provider_classes: Override of the name -> adapter class mapping

    Returns:
        Frozen ProviderRegistry

    Raises:
        ValueError: If a configuration names an unknown provider
    """
    classes = provider_classes or _default_provider_classes()
    registry = ProviderRegistry()

    for config in configs:
        if not config.enabled:
            continue

        provider_class = classes.get(config.name)
        if provider_class is None:
            raise ValueError(f"Unknown provider: {config.name}")

        adapter: Optional[BaseProvider] = None
        if config.has_credentials:
            try:
                adapter = provider_class(config)
            except (ImportError, ValueError) as exc:
                logger.warning(
                    "provider_unavailable",
                    provider=config.name,
                    reason=str(exc),
                )
        else:
            logger.info(
                "provider_unavailable",
                provider=config.name,
                reason="no credentials supplied",
            )

        if adapter is not None:
            registry.register(adapter.describe(available=True), adapter)
        else:
            registry.register(_unavailable_descriptor(provider_class, config))

        set_gauge(
            "providers_available",
            1 if adapter is not None else 0,
            labels={"provider": config.name},
        )

    return registry.freeze()


def registry_from_adapters(adapters: Iterable[BaseProvider]) -> ProviderRegistry:
    """Build a frozen registry where every adapter is available."""
    registry = ProviderRegistry()
    for adapter in adapters:
        registry.register(adapter.describe(available=True), adapter)
    return registry.freeze()

