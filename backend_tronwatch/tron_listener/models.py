"""
Data models for transactions handed over by the block sync pipeline.

One Transaction per contract call, already split out of its block. The
observer layer only reads these; it never builds them from the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Transaction:
    """
    Normalized TRON transaction as delivered by the sync pipeline.

    Mirrors the fields the delegation observer needs: type, parties, amount,
    contract parameters, and the permission slot that authorized it.
    """

    tx_id: str
    block_number: int
    timestamp: int  # Unix seconds (block time)
    type: str  # Contract type, e.g. DelegateResourceContract
    from_address: str | None
    to_address: str | None
    amount: int  # SUN, unsigned as reported by the chain
    parameters: dict[str, Any] = field(default_factory=dict)
    """Contract parameters: resource, lock, lock_period, data, ..."""
    contract_address: str | None = None
    permission_id: int = 0
    """Permission_id from the raw envelope; 0 (owner) when absent."""

    @property
    def data(self) -> str | None:
        """Raw ABI call payload for TriggerSmartContract, hex."""
        value = self.parameters.get("data")
        return value if isinstance(value, str) else None
