"""
Tests for the orchestration controller
"""

import asyncio
import gc

import pytest

from multiai.orchestration.controller import OrchestrationController
from multiai.providers.interfaces import (
    Capability,
    ConfigurationError,
    FailureKind,
    ProviderDescriptor,
)
from multiai.providers.registry import ProviderRegistry, registry_from_adapters

from scripted_providers import (
    ScriptedProvider,
    evaluation_reply,
    evaluation_task,
    extraction_reply,
    extraction_task,
    question,
)


class CrashingAdapter:
    """Adapter that breaks the contract by raising from invoke()."""

    name = "broken"

    async def invoke(self, task, descriptor, deadline):
        raise RuntimeError("adapter bug")


class StubbornAdapter:
    """Adapter that keeps running after cancellation and then fails."""

    name = "stubborn"

    def __init__(self):
        self.finished = asyncio.Event()

    async def invoke(self, task, descriptor, deadline):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            await asyncio.sleep(0.1)
            self.finished.set()
            raise RuntimeError("late failure while unwinding")


def _by_provider(outcomes):
    return {outcome.provider: outcome for outcome in outcomes}


@pytest.mark.asyncio
async def test_every_target_produces_an_outcome():
    registry = registry_from_adapters(
        [
            ScriptedProvider("gemini", reply=extraction_reply([question(1, "Q1")])),
            ScriptedProvider("claude", reply=extraction_reply([question(1, "Q1")], fenced=True)),
            ScriptedProvider("openai", reply="Sorry, I cannot help with that."),
        ]
    )
    controller = OrchestrationController(registry)

    outcomes = _by_provider(await controller.run(extraction_task(), timeout=1.0))

    assert set(outcomes) == {"gemini", "claude", "openai"}
    assert outcomes["gemini"].succeeded
    assert outcomes["claude"].succeeded
    assert outcomes["openai"].failure_kind == FailureKind.PARSE_ERROR


@pytest.mark.asyncio
async def test_slow_provider_is_cancelled_at_deadline():
    slow = ScriptedProvider("openai", reply=evaluation_reply(), delay=10.0)
    registry = registry_from_adapters(
        [ScriptedProvider("claude", reply=evaluation_reply()), slow]
    )
    controller = OrchestrationController(registry, cancel_grace_seconds=0.05)
    loop = asyncio.get_running_loop()
    started = loop.time()

    outcomes = _by_provider(await controller.run(evaluation_task(), timeout=0.2))

    elapsed = loop.time() - started
    assert elapsed < 0.2 + 0.05 + 0.5
    assert outcomes["claude"].succeeded
    assert outcomes["openai"].failure_kind == FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_adapter_failures_become_outcomes():
    registry = registry_from_adapters(
        [
            ScriptedProvider("gemini", error=ConnectionError("connection refused")),
            ScriptedProvider("claude", reply=evaluation_reply()),
        ]
    )

    outcomes = _by_provider(
        await OrchestrationController(registry).run(evaluation_task(), timeout=1.0)
    )

    assert outcomes["gemini"].failure_kind == FailureKind.NETWORK_FAILURE
    assert outcomes["claude"].succeeded


@pytest.mark.asyncio
async def test_crashing_adapter_is_absorbed():
    registry = ProviderRegistry()
    registry.register(
        ProviderDescriptor(
            name="broken",
            capabilities=frozenset({Capability.TEXT_EVALUATION}),
            available=True,
        ),
        CrashingAdapter(),
    )
    registry.freeze()

    outcomes = await OrchestrationController(registry).run(evaluation_task(), timeout=1.0)

    assert len(outcomes) == 1
    assert outcomes[0].failure_kind == FailureKind.NETWORK_FAILURE
    assert "adapter bug" in outcomes[0].failure.message


@pytest.mark.asyncio
async def test_only_supporting_providers_are_asked():
    vision_only = ScriptedProvider(
        "ocr", reply=extraction_reply([]), capabilities=[Capability.VISION_EXTRACTION]
    )
    grader = ScriptedProvider("claude", reply=evaluation_reply())
    registry = registry_from_adapters([vision_only, grader])

    outcomes = await OrchestrationController(registry).run(evaluation_task(), timeout=1.0)

    assert [outcome.provider for outcome in outcomes] == ["claude"]
    assert vision_only.requests == []


@pytest.mark.asyncio
async def test_unavailable_providers_are_skipped():
    registry = ProviderRegistry()
    available = ScriptedProvider("claude", reply=evaluation_reply())
    registry.register(available.describe(), available)
    registry.register(ScriptedProvider("openai").describe(available=False))
    registry.freeze()

    outcomes = await OrchestrationController(registry).run(evaluation_task(), timeout=1.0)

    assert [outcome.provider for outcome in outcomes] == ["claude"]


@pytest.mark.asyncio
async def test_no_targets_is_a_configuration_error():
    registry = ProviderRegistry()
    registry.register(ScriptedProvider("openai").describe(available=False))
    registry.freeze()

    with pytest.raises(ConfigurationError):
        await OrchestrationController(registry).run(extraction_task(), timeout=1.0)


@pytest.mark.asyncio
async def test_late_failure_after_grace_is_retrieved():
    adapter = StubbornAdapter()
    registry = ProviderRegistry()
    registry.register(
        ProviderDescriptor(
            name="stubborn",
            capabilities=frozenset({Capability.TEXT_EVALUATION}),
            available=True,
        ),
        adapter,
    )
    registry.freeze()
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        controller = OrchestrationController(registry, cancel_grace_seconds=0.01)
        outcomes = await controller.run(evaluation_task(), timeout=0.05)

        assert outcomes[0].failure_kind == FailureKind.TIMEOUT

        await asyncio.wait_for(adapter.finished.wait(), timeout=1.0)
        for _ in range(3):
            await asyncio.sleep(0)
        gc.collect()

        assert reported == []
    finally:
        loop.set_exception_handler(None)
