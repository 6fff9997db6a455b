"""
Tests for the observer registry: routing, handler isolation, token launches.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from backend_tronwatch.core.exceptions import PersistenceError
from backend_tronwatch.ingestion.observer import TransactionObserver
from backend_tronwatch.ingestion.registry import ObserverRegistry, build_registry
from backend_tronwatch.ingestion.token_launch import TokenLaunchDetector
from backend_tronwatch.tron_listener.abi import CREATE_TOKEN_METHOD, SUNPUMP_FACTORY_ADDRESS


def _word(text: str = "") -> str:
    return text.encode("utf-8").hex().ljust(64, "0")


def test_build_registry_routes_by_type(db):
    """Delegate and reclaim go to the observer; TriggerSmartContract to token launches."""
    registry = build_registry(TransactionObserver(db), TokenLaunchDetector(db))
    assert registry.handlers_for("DelegateResourceContract") == ["delegation_observer"]
    assert registry.handlers_for("UnDelegateResourceContract") == ["delegation_observer"]
    assert registry.handlers_for("TriggerSmartContract") == ["token_launch_detector"]
    assert registry.handlers_for("TransferContract") == []


def test_dispatch_processed_payload(db):
    """A processed pipeline payload is parsed and recorded."""
    registry = build_registry(TransactionObserver(db))
    handled = registry.dispatch(
        {
            "txId": "t1",
            "blockNumber": 10,
            "timestamp": 1_700_000_000_000,
            "type": "DelegateResourceContract",
            "from": {"address": "TFrom"},
            "to": {"address": "TTo"},
            "amount": 1_000_000,
            "contract": {"parameters": {"resource": "ENERGY"}},
        }
    )
    assert handled == 1
    assert db.get_delegation("t1").resource_type == 1
    assert registry.dispatch({"blockNumber": 1}) == 0


def test_token_launch_recorded(db):
    """A createToken call to the factory stores a TokenLaunch once."""
    from backend_tronwatch.tron_listener.models import Transaction

    data = CREATE_TOKEN_METHOD + _word() * 3 + _word("MyToken") + _word() + _word("MTK")
    tx = Transaction(
        tx_id="launch-1",
        block_number=5,
        timestamp=1_700_000_000,
        type="TriggerSmartContract",
        from_address="TCreator",
        to_address=SUNPUMP_FACTORY_ADDRESS,
        amount=0,
        parameters={"data": data},
        contract_address=SUNPUMP_FACTORY_ADDRESS,
    )
    registry = build_registry(TransactionObserver(db), TokenLaunchDetector(db))
    registry.dispatch(tx)
    registry.dispatch(tx)
    launches = db.recent_token_launches(10)
    assert len(launches) == 1
    assert (launches[0].token_name, launches[0].token_symbol) == ("MyToken", "MTK")
    assert launches[0].owner_address == "TCreator"


def test_handler_failure_isolated(make_tx):
    """One failing handler does not stop the next."""
    registry = ObserverRegistry()
    failing = MagicMock(side_effect=ValueError("bad"))
    ok = MagicMock()
    registry.subscribe("DelegateResourceContract", failing, name="failing")
    registry.subscribe("DelegateResourceContract", ok, name="ok")
    assert registry.dispatch(make_tx()) == 1
    ok.assert_called_once()


def test_persistence_error_reraised_after_other_handlers(make_tx):
    """A lost canonical write propagates, but only after the remaining handlers ran."""
    registry = ObserverRegistry()
    lost = MagicMock(side_effect=PersistenceError("disk full", table="delegation_records"))
    ok = MagicMock()
    registry.subscribe("DelegateResourceContract", lost, name="observer")
    registry.subscribe("DelegateResourceContract", ok, name="other")
    with pytest.raises(PersistenceError):
        registry.dispatch(make_tx())
    ok.assert_called_once()


def test_dispatch_many_counts(db, make_tx):
    registry = build_registry(TransactionObserver(db))
    assert registry.dispatch_many([make_tx("a"), make_tx("b"), make_tx("c", type="TransferContract")]) == 2
