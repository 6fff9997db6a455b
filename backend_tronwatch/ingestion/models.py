"""Delegation event built by the observer and passed to derived detectors."""

from __future__ import annotations

from dataclasses import dataclass

from backend_tronwatch.core.units import sun_to_trx
from backend_tronwatch.database import DelegationRecord


@dataclass(frozen=True)
class DelegationEvent:
    """
    Canonical view of one delegate/reclaim transaction.

    amount_sun carries the sign: positive for a delegation, negative for a
    reclaim. Detectors must not re-derive the sign from the transaction type.
    """

    tx_id: str
    timestamp: int
    """Unix seconds (block time)."""
    block_number: int
    from_address: str
    to_address: str
    resource_type: int
    """0 = BANDWIDTH, 1 = ENERGY."""
    amount_sun: int
    locked: bool = False
    lock_period: int | None = None
    """Lock length in blocks; None when the delegation is not time-locked."""

    @property
    def is_delegation(self) -> bool:
        return self.amount_sun > 0

    @property
    def is_reclaim(self) -> bool:
        return self.amount_sun < 0

    @property
    def amount_trx(self) -> float:
        return sun_to_trx(abs(self.amount_sun))

    def to_record(self) -> DelegationRecord:
        return DelegationRecord(
            tx_id=self.tx_id,
            timestamp=self.timestamp,
            block_number=self.block_number,
            from_address=self.from_address,
            to_address=self.to_address,
            resource_type=self.resource_type,
            amount_sun=self.amount_sun,
            locked=self.locked,
            lock_period=self.lock_period,
        )
