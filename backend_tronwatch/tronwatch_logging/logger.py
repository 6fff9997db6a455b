"""
Structured logging: timestamp, event_type, level, logger name.

structlog with ISO timestamps and consistent keys so ingestion, jobs and the
API can be filtered by event_type (e.g. "delegation_duplicate_skipped",
"summation_created"). Every module uses get_logger(__name__) and logs an
event name plus keyword context.

Only stdlib logging and structlog are imported here; no backend_tronwatch
imports, so any module can depend on it without cycles.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# JSON output for production (LOG_FORMAT=json); console renderer otherwise
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601, UTC)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep a message for plain-text sinks."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog(log_format: str | None = None, level: int | None = None) -> None:
    """Configure structlog: timestamp, level, event_type, JSON or console renderer."""
    fmt = (log_format or LOG_FORMAT).strip().lower()
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if fmt == "json":
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            LOG_LEVEL_VALUE if level is None else level
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("delegation_recorded", tx_id=tx_id, block_number=123)

    Output (JSON): {"event_type": "delegation_recorded", "tx_id": "...",
    "block_number": 123, "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_tx(tx_id: str) -> structlog.BoundLogger:
    """Return a logger with tx_id bound to all subsequent log calls."""
    return get_logger("backend_tronwatch").bind(tx_id=tx_id)
