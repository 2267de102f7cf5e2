"""
Tests for logging helpers and metrics export
"""

import structlog

from multiai.observability import (
    bind_task_context,
    clear_correlation_id,
    get_correlation_id,
    get_metrics_output,
    get_metrics_registry,
    increment_counter,
    set_correlation_id,
    set_gauge,
)
from multiai.observability.logging import redact_secrets


def test_correlation_id_lifecycle():
    task_id = set_correlation_id()

    assert task_id.startswith("task-")
    assert get_correlation_id() == task_id

    clear_correlation_id()
    assert get_correlation_id() is None


def test_explicit_correlation_id_is_kept():
    assert set_correlation_id("page-7") == "page-7"
    clear_correlation_id()


def test_task_context_cleared_with_correlation_id():
    clear_correlation_id()
    set_correlation_id()
    bind_task_context(kind="extraction", page_number=3)
    assert structlog.contextvars.get_contextvars() == {"kind": "extraction", "page_number": 3}

    clear_correlation_id()
    assert structlog.contextvars.get_contextvars() == {}


def test_api_keys_are_masked():
    event = {
        "event": "provider_call_failed",
        "error": "Invalid key sk-ant-REDACTED supplied",
        "other": "AIza" + "x" * 30,
        "count": 3,
    }

    redacted = redact_secrets(None, "warning", event)

    assert "abcdefghijklmnop" not in redacted["error"]
    assert redacted["error"].startswith("Invalid key sk-ant***")
    assert redacted["other"] == "AIzaxx***"
    assert redacted["count"] == 3


def _sample(name, labels):
    return get_metrics_registry().get_sample_value(name, labels) or 0.0


def test_counter_accepts_prefixed_and_bare_names():
    labels = {"kind": "extraction", "status": "single"}
    before = _sample("multiai_consensus_tasks_total", labels)

    increment_counter("consensus_tasks_total", labels=labels)
    increment_counter("multiai_consensus_tasks_total", labels=labels)

    assert _sample("multiai_consensus_tasks_total", labels) == before + 2


def test_unknown_or_mismatched_metric_is_ignored():
    increment_counter("no_such_metric")
    increment_counter("providers_available", labels={"provider": "gemini"})


def test_gauge_and_export():
    set_gauge("providers_available", 0, labels={"provider": "openai"})

    output = get_metrics_output().decode("utf-8")

    assert 'multiai_providers_available{provider="openai"} 0.0' in output
