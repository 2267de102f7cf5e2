"""Observability for the consensus engine.

Components:
    - logging: Structured logging with structlog and correlation IDs
    - metrics: Prometheus metrics export

Usage:
    from multiai.observability import get_logger, increment_counter

    logger = get_logger(__name__)
    logger.info("consensus_task_started", kind="extraction")
"""

from multiai.observability.logging import (
    get_logger,
    configure_logging,
    set_correlation_id,
    bind_task_context,
    clear_correlation_id,
    get_correlation_id,
)
from multiai.observability.metrics import (
    increment_counter,
    record_histogram,
    set_gauge,
    get_metrics_registry,
    get_metrics_output,
    get_metrics_content_type,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "set_correlation_id",
    "bind_task_context",
    "clear_correlation_id",
    "get_correlation_id",
    "increment_counter",
    "record_histogram",
    "set_gauge",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
]
