"""
Environment variable loading for Tronwatch.

- DATABASE_URL: SQLAlchemy URL (default: sqlite:///tronwatch.db)
- REDIS_URL: optional cache backend; empty means in-process cache
- TRONGRID_URL / TRONGRID_API_KEY: account lookups for pool discovery
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_tronwatch/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_DATABASE_URL = "sqlite:///tronwatch.db"
DEFAULT_TRONGRID_URL = "https://api.trongrid.io"

_TRUTHY = ("1", "true", "yes", "on")


def load_tronwatch_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    """Return a stripped env value, or default when unset/blank."""
    return (os.getenv(name) or "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    raw = env_str(name).lower()
    if not raw:
        return default
    return raw in _TRUTHY


def get_database_url() -> str:
    """
    Resolve the database URL.
    Order: TRONWATCH_DB_URL > DATABASE_URL > sqlite file from DATABASE_PATH > default.
    """
    load_tronwatch_env()
    url = env_str("TRONWATCH_DB_URL") or env_str("DATABASE_URL")
    if url:
        return url
    path = env_str("DATABASE_PATH")
    if path:
        return f"sqlite:///{path}"
    return DEFAULT_DATABASE_URL


def get_trongrid_url() -> str:
    load_tronwatch_env()
    return env_str("TRONGRID_URL", DEFAULT_TRONGRID_URL).rstrip("/")
