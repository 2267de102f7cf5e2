"""
Tests for BaseProvider.invoke(): deadlines, validation and error categorization
"""

import asyncio

import pytest

from multiai.providers.interfaces import (
    AdapterError,
    Capability,
    FailureKind,
    ProviderDescriptor,
    ProviderRateLimitError,
    RawResponse,
)

from scripted_providers import ScriptedProvider, evaluation_task, extraction_task


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


async def _invoke(provider, task, seconds: float = 1.0):
    loop = asyncio.get_running_loop()
    return await provider.invoke(task, provider.describe(), loop.time() + seconds)


@pytest.mark.asyncio
async def test_success_returns_raw_response():
    provider = ScriptedProvider("gemini", reply='{"questions": []}')

    result = await _invoke(provider, extraction_task())

    assert isinstance(result, RawResponse)
    assert result.provider == "gemini"
    assert result.text == '{"questions": []}'
    assert result.duration_seconds >= 0.0
    assert len(provider.requests) == 1


@pytest.mark.asyncio
async def test_expired_deadline_skips_the_call():
    provider = ScriptedProvider("gemini", reply="{}")
    loop = asyncio.get_running_loop()

    result = await provider.invoke(extraction_task(), provider.describe(), loop.time() - 1)

    assert isinstance(result, AdapterError)
    assert result.kind == FailureKind.TIMEOUT
    assert provider.requests == []


@pytest.mark.asyncio
async def test_slow_call_times_out_at_deadline():
    provider = ScriptedProvider("openai", reply="{}", delay=5.0)
    loop = asyncio.get_running_loop()
    started = loop.time()

    result = await _invoke(provider, evaluation_task(), seconds=0.1)

    assert isinstance(result, AdapterError)
    assert result.kind == FailureKind.TIMEOUT
    assert loop.time() - started < 1.0


@pytest.mark.asyncio
async def test_unsupported_capability_raises():
    provider = ScriptedProvider(
        "ocr", reply="{}", capabilities=[Capability.VISION_EXTRACTION]
    )

    with pytest.raises(ValueError):
        await _invoke(provider, evaluation_task())
    assert provider.requests == []


@pytest.mark.asyncio
async def test_foreign_descriptor_raises():
    provider = ScriptedProvider("gemini", reply="{}")
    other = ProviderDescriptor(
        name="claude",
        capabilities=frozenset({Capability.VISION_EXTRACTION}),
        available=True,
    )
    loop = asyncio.get_running_loop()

    with pytest.raises(ValueError):
        await provider.invoke(extraction_task(), other, loop.time() + 1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, kind",
    [
        (ProviderRateLimitError(), FailureKind.RATE_LIMITED),
        (StatusError("Too many requests", 429), FailureKind.RATE_LIMITED),
        (StatusError("Forbidden", 403), FailureKind.AUTH_FAILURE),
        (RuntimeError("Invalid API key supplied"), FailureKind.AUTH_FAILURE),
        (RuntimeError("read timed out"), FailureKind.TIMEOUT),
        (ConnectionResetError("connection reset by peer"), FailureKind.NETWORK_FAILURE),
    ],
)
async def test_exceptions_are_categorized(error, kind):
    provider = ScriptedProvider("claude", error=error)

    result = await _invoke(provider, evaluation_task())

    assert isinstance(result, AdapterError)
    assert result.kind == kind
    assert result.provider == "claude"


@pytest.mark.asyncio
async def test_empty_error_message_is_replaced():
    provider = ScriptedProvider("claude", error=RuntimeError(""))

    result = await _invoke(provider, evaluation_task())

    assert result.message == "unknown error"


@pytest.mark.asyncio
async def test_metrics_snapshot():
    provider = ScriptedProvider("gemini", reply="{}")
    await _invoke(provider, extraction_task())
    provider.error = RuntimeError("boom")
    await _invoke(provider, extraction_task())

    metrics = provider.get_metrics()

    assert metrics.call_count == 2
    assert metrics.failure_count == 1
    assert provider.call_count == 2
    assert metrics.total_duration >= 0.0


def test_describe_uses_default_capabilities():
    descriptor = ScriptedProvider("gemini").describe(available=False)

    assert descriptor.name == "gemini"
    assert descriptor.available is False
    assert descriptor.supports(Capability.VISION_EXTRACTION)
    assert descriptor.supports(Capability.TEXT_EVALUATION)
