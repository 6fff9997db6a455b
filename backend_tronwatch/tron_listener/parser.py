"""
TRON transaction parser: sync-pipeline payloads to Transaction.

Accepts two shapes:
- processed: {"txId", "blockNumber", "timestamp", "type", "from": {"address"},
  "to": {"address"}, "amount", "contract": {"address", "parameters"}, "raw": {...}}
- raw TronGrid: {"txID", "blockNumber", "block_timestamp",
  "raw_data": {"contract": [{"type", "Permission_id", "parameter": {"value": {...}}}]}}

Hex addresses (41...) are converted to base58. Purely structural; no
classification happens here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from backend_tronwatch.core.address import to_base58_address
from backend_tronwatch.tron_listener.models import Transaction
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

# Millisecond timestamps are above this; second timestamps are below
_MS_THRESHOLD = 10_000_000_000


def parse_timestamp(value: Any) -> int | None:
    """Return Unix seconds from ms/s ints, ISO-8601 strings or datetimes; None if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())
    if isinstance(value, (int, float)):
        return int(value / 1000) if value > _MS_THRESHOLD else int(value)
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return parse_timestamp(int(raw))
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parse_timestamp(dt)
    return None


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _address(container: Any) -> str | None:
    if isinstance(container, dict):
        container = container.get("address")
    if isinstance(container, str) and container:
        return to_base58_address(container)
    return None


def _skip(reason: str, **fields: Any) -> None:
    logger.debug("tx_parse_skip", reason=reason, **fields)
    return None


def _first_contract(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return {}
    raw_data = raw.get("raw_data") if isinstance(raw.get("raw_data"), dict) else raw
    contracts = raw_data.get("contract") if isinstance(raw_data, dict) else None
    if isinstance(contracts, list) and contracts and isinstance(contracts[0], dict):
        return contracts[0]
    return {}


def _parse_processed(item: dict[str, Any]) -> Transaction | None:
    tx_id = item.get("txId")
    if not tx_id:
        return _skip("missing_tx_id")
    timestamp = parse_timestamp(item.get("timestamp"))
    if timestamp is None:
        return _skip("missing_timestamp", tx_id=tx_id)
    contract = item.get("contract") if isinstance(item.get("contract"), dict) else {}
    parameters = contract.get("parameters") if isinstance(contract.get("parameters"), dict) else {}
    envelope = _first_contract(item.get("raw"))
    permission_id = _int_or(
        item.get("permissionId", envelope.get("Permission_id")), 0
    )
    return Transaction(
        tx_id=str(tx_id),
        block_number=_int_or(item.get("blockNumber"), 0),
        timestamp=timestamp,
        type=str(item.get("type") or envelope.get("type") or ""),
        from_address=_address(item.get("from")),
        to_address=_address(item.get("to")),
        amount=abs(_int_or(item.get("amount"), 0)),
        parameters=dict(parameters),
        contract_address=_address(contract.get("address")),
        permission_id=permission_id,
    )


def _parse_raw(item: dict[str, Any]) -> Transaction | None:
    tx_id = item.get("txID")
    if not tx_id:
        return _skip("missing_tx_id")
    contract = _first_contract(item)
    parameter = contract.get("parameter") if isinstance(contract.get("parameter"), dict) else {}
    value = parameter.get("value") if isinstance(parameter.get("value"), dict) else {}
    raw_data = item.get("raw_data") if isinstance(item.get("raw_data"), dict) else {}
    timestamp = parse_timestamp(item.get("block_timestamp")) or parse_timestamp(raw_data.get("timestamp"))
    if timestamp is None:
        return _skip("missing_timestamp", tx_id=tx_id)
    to_address = value.get("receiver_address") or value.get("to_address") or value.get("contract_address")
    amount = value.get("balance", value.get("amount", value.get("call_value", 0)))
    return Transaction(
        tx_id=str(tx_id),
        block_number=_int_or(item.get("blockNumber"), 0),
        timestamp=timestamp,
        type=str(contract.get("type") or ""),
        from_address=_address(value.get("owner_address")),
        to_address=_address(to_address),
        amount=abs(_int_or(amount, 0)),
        parameters=dict(value),
        contract_address=_address(value.get("contract_address")),
        permission_id=_int_or(contract.get("Permission_id"), 0),
    )


def parse_transaction(item: Any) -> Transaction | None:
    """
    Parse one pipeline payload. Returns None (and logs at debug) when the
    payload is not a mapping or lacks a transaction id or a usable timestamp.
    """
    if isinstance(item, Transaction):
        return item
    if not isinstance(item, dict):
        logger.debug("tx_parse_skip", reason="not_a_mapping")
        return None
    if "txId" in item:
        return _parse_processed(item)
    return _parse_raw(item)
