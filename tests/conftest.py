"""
Pytest fixtures for Tronwatch tests. Each test gets a temporary SQLite database.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

DELEGATOR = "TPoolMemberAccount1111111111111111"
RECEIVER = "TReceiverAccount222222222222222222"
POOL = "TPoolControllerKey3333333333333333"


@pytest.fixture
def db(tmp_path):
    """Fresh Database on a temporary SQLite file with tables created."""
    from backend_tronwatch.database import Database

    database = Database(f"sqlite:///{tmp_path / 'tronwatch.db'}")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def settings(tmp_path):
    """Settings with background threads off and no config caching."""
    from backend_tronwatch.config.settings import Settings

    return Settings(
        database_url=f"sqlite:///{tmp_path / 'tronwatch.db'}",
        scheduler_enabled=False,
        discovery_enabled=False,
        config_ttl_sec=0,
    )


@pytest.fixture
def fetcher():
    """TronGrid stand-in: unknown accounts by default."""
    mock = MagicMock()
    mock.get_account.return_value = None
    return mock


@pytest.fixture
def container(settings, db, fetcher):
    from backend_tronwatch.query.cache import MemoryCache
    from backend_tronwatch.runtime import build_container

    c = build_container(settings, db=db, cache=MemoryCache(), fetcher=fetcher)
    yield c
    c.stop()


@pytest.fixture
def client(container):
    """FastAPI TestClient bound to the test container (lifespan not run)."""
    from fastapi.testclient import TestClient

    from backend_tronwatch.api_server.server import create_app

    return TestClient(create_app(container))


@pytest.fixture
def make_tx():
    """Factory for delegation Transactions with sensible defaults."""
    from backend_tronwatch.tron_listener.models import Transaction

    def _make(
        tx_id: str = "tx-1",
        *,
        type: str = "DelegateResourceContract",
        amount: int = 1_000_000_000,
        block_number: int = 100,
        timestamp: int = 1_700_000_000,
        resource: object = "ENERGY",
        from_address: str | None = DELEGATOR,
        to_address: str | None = RECEIVER,
        permission_id: int = 0,
        lock: bool | None = None,
        lock_period: object = None,
    ) -> Transaction:
        params: dict = {}
        if resource is not None:
            params["resource"] = resource
        if lock is not None:
            params["lock"] = lock
        if lock_period is not None:
            params["lock_period"] = lock_period
        return Transaction(
            tx_id=tx_id,
            block_number=block_number,
            timestamp=timestamp,
            type=type,
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            parameters=params,
            permission_id=permission_id,
        )

    return _make
