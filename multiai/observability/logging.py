"""Structured logging for consensus tasks.

Every consensus task runs under its own correlation ID, so the fan-out to
several providers can be followed through the logs as one unit. Provider
error messages sometimes echo request headers; API keys found in log values
are masked before rendering.

Usage:
    from multiai.observability import configure_logging, get_logger

    configure_logging(level="INFO", format="json")
    logger = get_logger(__name__)

    task_id = set_correlation_id()
    bind_task_context(kind="extraction", page_number=3)
    logger.info("consensus_task_started", providers=["claude", "gemini"])
    clear_correlation_id()
"""

import logging
import logging.handlers
import re
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor


_task_id: ContextVar[Optional[str]] = ContextVar("multiai_task_id", default=None)

# OpenAI / Anthropic ("sk-...", "sk-ant-...") and Google ("AIza...") key shapes
_SECRET_PATTERN = re.compile(r"\b(sk-(?:ant-)?[A-Za-z0-9_\-]{8,}|AIza[A-Za-z0-9_\-]{20,})")


def _mask(value: str) -> str:
    return _SECRET_PATTERN.sub(lambda match: match.group(0)[:6] + "***", value)


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask API keys in string values of the event."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _mask(value)
    return event_dict


def add_task_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    task_id = _task_id.get()
    if task_id:
        event_dict["correlation_id"] = task_id
    return event_dict


def _level_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["level"] = "warning" if method_name == "warn" else method_name
    return event_dict


def _handlers(level: int, log_file: Optional[Path], max_bytes: int, backup_count: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=str(log_file),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
    return handlers


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    log_file: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Route structlog through the standard library root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        format: "json" for aggregation, "console" for local development
        log_file: Optional rotating log file
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Example:
        >>> configure_logging(level="DEBUG", format="console")
    """
    logging_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging_level)
    for handler in _handlers(logging_level, log_file, max_bytes, backup_count):
        root_logger.addHandler(handler)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_task_id,
        _level_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]
    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Start tracing a consensus task; generates a 'task-' ID when none is given."""
    if correlation_id is None:
        correlation_id = f"task-{uuid.uuid4().hex[:12]}"
    _task_id.set(correlation_id)
    return correlation_id


def bind_task_context(**context: Any) -> None:
    """Attach task fields (kind, page number) to every log line of the task."""
    structlog.contextvars.bind_contextvars(**context)


def clear_correlation_id() -> None:
    """End the task: drop its ID and any bound task context."""
    _task_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_correlation_id() -> Optional[str]:
    return _task_id.get()


__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "bind_task_context",
    "clear_correlation_id",
    "get_correlation_id",
    "redact_secrets",
]
