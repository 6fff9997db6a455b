"""Structured logging for Tronwatch (structlog)."""

from backend_tronwatch.tronwatch_logging.logger import (  # noqa: F401
    bind_tx,
    configure_structlog,
    get_logger,
)

__all__ = ["bind_tx", "configure_structlog", "get_logger"]
