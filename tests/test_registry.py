"""
Tests for the provider registry
"""

import pytest

from multiai.providers.interfaces import Capability, ProviderConfig
from multiai.providers.registry import (
    ProviderRegistry,
    build_registry,
    registry_from_adapters,
)

from scripted_providers import ScriptedProvider


class FakeGemini(ScriptedProvider):
    DEFAULT_VISION_MODEL = "fake-vision"

    def __init__(self, config: ProviderConfig):
        super().__init__("gemini", reply="{}")


class BrokenSdk(ScriptedProvider):
    def __init__(self, config: ProviderConfig):
        raise ImportError("sdk not installed")


FAKE_CLASSES = {"gemini": FakeGemini, "claude": BrokenSdk, "openai": FakeGemini}


class TestProviderRegistry:
    def test_register_and_lookup(self):
        adapter = ScriptedProvider("gemini")
        registry = ProviderRegistry()
        registry.register(adapter.describe(), adapter)

        assert registry.get_adapter("gemini") is adapter
        assert registry.get_descriptor("gemini").available is True
        assert registry.has_provider("gemini")
        assert registry.list_providers() == ["gemini"]

    def test_register_after_freeze_fails(self):
        registry = ProviderRegistry().freeze()
        adapter = ScriptedProvider("gemini")

        with pytest.raises(RuntimeError):
            registry.register(adapter.describe(), adapter)
        assert registry.frozen

    def test_duplicate_name_rejected(self):
        registry = ProviderRegistry()
        adapter = ScriptedProvider("gemini")
        registry.register(adapter.describe(), adapter)

        with pytest.raises(ValueError):
            registry.register(adapter.describe(), adapter)

    def test_available_descriptor_needs_adapter(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register(ScriptedProvider("gemini").describe(available=True))

    def test_adapter_name_must_match(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register(
                ScriptedProvider("gemini").describe(), ScriptedProvider("claude")
            )

    def test_available_descriptors_filter(self):
        registry = ProviderRegistry()
        ocr = ScriptedProvider("ocr", capabilities=[Capability.VISION_EXTRACTION])
        claude = ScriptedProvider("claude")
        registry.register(ocr.describe(), ocr)
        registry.register(claude.describe(), claude)
        registry.register(ScriptedProvider("openai").describe(available=False))

        vision = [d.name for d in registry.available_descriptors(Capability.VISION_EXTRACTION)]
        text = [d.name for d in registry.available_descriptors(Capability.TEXT_EVALUATION)]

        assert vision == ["claude", "ocr"]
        assert text == ["claude"]
        assert [d.name for d in registry.descriptors()] == ["claude", "ocr", "openai"]


class TestBuildRegistry:
    def test_missing_key_marks_provider_unavailable(self):
        registry = build_registry(
            [
                ProviderConfig(name="gemini", api_key="key"),
                ProviderConfig(name="openai"),
            ],
            provider_classes=FAKE_CLASSES,
        )

        assert registry.frozen
        assert registry.get_descriptor("gemini").available is True
        assert registry.get_descriptor("openai").available is False
        assert registry.get_descriptor("openai").vision_model == "fake-vision"
        assert registry.get_adapter("openai") is None

    def test_construction_failure_marks_provider_unavailable(self):
        registry = build_registry(
            [ProviderConfig(name="claude", api_key="key")], provider_classes=FAKE_CLASSES
        )
        assert registry.get_descriptor("claude").available is False

    def test_disabled_provider_skipped(self):
        registry = build_registry(
            [ProviderConfig(name="gemini", api_key="key", enabled=False)],
            provider_classes=FAKE_CLASSES,
        )
        assert registry.list_providers() == []

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError):
            build_registry([ProviderConfig(name="mistral", api_key="key")], FAKE_CLASSES)


def test_registry_from_adapters_is_frozen():
    registry = registry_from_adapters([ScriptedProvider("gemini")])
    assert registry.frozen
    assert registry.get_descriptor("gemini").available

