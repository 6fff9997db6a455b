"""
Configuration for the Tronwatch backend.

Process settings come from environment variables (.env supported); runtime
tunables come from the key-value store through a TTL cache.
"""

from backend_tronwatch.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
