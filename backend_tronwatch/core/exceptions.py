"""
Application-level exceptions.

Duplicate ingestion is not an exception here: storage returns an
InsertResult with status ALREADY_EXISTS instead.
"""

from __future__ import annotations


class TronwatchError(Exception):
    """Base class for Tronwatch errors."""


class ConfigurationMissing(TronwatchError):
    """No tunables found in the key-value store yet."""


class InvalidSamplingRequest(TronwatchError, ValueError):
    """Bad period, point count or time window for a summation query."""


class CacheUnavailable(TronwatchError):
    """Cache backend could not be reached; callers fall back to direct computation."""


class PersistenceError(TronwatchError):
    """Non-duplicate storage failure on a write path."""

    def __init__(self, message: str, *, table: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.table = table
        self.cause = cause


class TronGridError(TronwatchError):
    """Account lookup against TronGrid failed."""
