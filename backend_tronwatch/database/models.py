"""
SQLAlchemy models for the delegation pipeline.

Timestamps are Unix seconds (UTC). Amounts are SUN in BigInteger columns;
derived TRX values are floats. Unique constraints carry idempotence:
re-ingesting a tx_id hits the constraint and is reported as ALREADY_EXISTS.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DelegationRecord(Base):
    """
    Canonical record: one row per Delegate/UnDelegate-Resource transaction.
    amount_sun is signed (positive delegate, negative reclaim).
    """

    __tablename__ = "delegation_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tx_id = Column(String(128), unique=True, nullable=False)
    timestamp = Column(Integer, nullable=False, index=True)
    block_number = Column(BigInteger, nullable=False, index=True)
    from_address = Column(String(64), nullable=False, index=True)
    to_address = Column(String(64), nullable=False, index=True)
    resource_type = Column(Integer, nullable=False)
    amount_sun = Column(BigInteger, nullable=False)
    locked = Column(Boolean, nullable=False, default=False)
    lock_period = Column(BigInteger, nullable=True)  # Blocks

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "resource_type": self.resource_type,
            "amount_sun": self.amount_sun,
            "locked": self.locked,
            "lock_period": self.lock_period,
        }


class WhaleDelegation(Base):
    """Delegation or reclaim at or above the whale threshold; amount always positive."""

    __tablename__ = "whale_delegations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tx_id = Column(String(128), unique=True, nullable=False)
    timestamp = Column(Integer, nullable=False, index=True)
    block_number = Column(BigInteger, nullable=False)
    from_address = Column(String(64), nullable=False)
    to_address = Column(String(64), nullable=False)
    resource_type = Column(Integer, nullable=False, index=True)
    amount_sun = Column(BigInteger, nullable=False)
    amount_trx = Column(Float, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "resource_type": self.resource_type,
            "amount_sun": self.amount_sun,
            "amount_trx": self.amount_trx,
        }


class PoolDelegation(Base):
    """
    Delegation authorized under a custom permission (id >= 3). pool_address is the
    controlling pool at ingestion time, backfilled by discovery when it was unknown.
    """

    __tablename__ = "pool_delegations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tx_id = Column(String(128), unique=True, nullable=False)
    timestamp = Column(Integer, nullable=False, index=True)
    block_number = Column(BigInteger, nullable=False)
    from_address = Column(String(64), nullable=False, index=True)
    to_address = Column(String(64), nullable=False)
    pool_address = Column(String(64), nullable=True, index=True)
    resource_type = Column(Integer, nullable=False)
    amount_sun = Column(BigInteger, nullable=False)
    permission_id = Column(Integer, nullable=False)
    lock_period = Column(BigInteger, nullable=True)
    rental_period_minutes = Column(Float, nullable=True)
    normalized_amount_trx = Column(Float, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "pool_address": self.pool_address,
            "resource_type": self.resource_type,
            "amount_sun": self.amount_sun,
            "permission_id": self.permission_id,
            "lock_period": self.lock_period,
            "rental_period_minutes": self.rental_period_minutes,
            "normalized_amount_trx": self.normalized_amount_trx,
        }


class PoolMember(Base):
    """Account controlled by a pool address through a custom permission."""

    __tablename__ = "pool_members"
    __table_args__ = (UniqueConstraint("account", "pool", name="uq_pool_members_account_pool"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    account = Column(String(64), nullable=False, index=True)
    pool = Column(String(64), nullable=False, index=True)
    permission_id = Column(Integer, nullable=False)
    permission_name = Column(String(128), nullable=True)
    self_signed = Column(Boolean, nullable=False, default=False)
    discovered_at = Column(Integer, nullable=False)
    last_seen_at = Column(Integer, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "pool": self.pool,
            "permission_id": self.permission_id,
            "permission_name": self.permission_name,
            "self_signed": self.self_signed,
            "discovered_at": self.discovered_at,
            "last_seen_at": self.last_seen_at,
        }


class Summation(Base):
    """One rolled-up block range. Nets are exact differences of the stored sums."""

    __tablename__ = "summations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Integer, nullable=False, index=True)
    start_block = Column(BigInteger, unique=True, nullable=False)
    end_block = Column(BigInteger, nullable=False)
    energy_delegated = Column(BigInteger, nullable=False, default=0)
    energy_reclaimed = Column(BigInteger, nullable=False, default=0)
    bandwidth_delegated = Column(BigInteger, nullable=False, default=0)
    bandwidth_reclaimed = Column(BigInteger, nullable=False, default=0)
    net_energy = Column(BigInteger, nullable=False, default=0)
    net_bandwidth = Column(BigInteger, nullable=False, default=0)
    transaction_count = Column(Integer, nullable=False, default=0)
    total_transactions_delegated = Column(Integer, nullable=False, default=0)
    total_transactions_undelegated = Column(Integer, nullable=False, default=0)
    total_transactions_net = Column(Integer, nullable=False, default=0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "start_block": self.start_block,
            "end_block": self.end_block,
            "energy_delegated": self.energy_delegated,
            "energy_reclaimed": self.energy_reclaimed,
            "bandwidth_delegated": self.bandwidth_delegated,
            "bandwidth_reclaimed": self.bandwidth_reclaimed,
            "net_energy": self.net_energy,
            "net_bandwidth": self.net_bandwidth,
            "transaction_count": self.transaction_count,
            "total_transactions_delegated": self.total_transactions_delegated,
            "total_transactions_undelegated": self.total_transactions_undelegated,
            "total_transactions_net": self.total_transactions_net,
        }


class AddressBookEntry(Base):
    """Human-readable name for a known address (pool, exchange, notable)."""

    __tablename__ = "address_book"

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(64), unique=True, nullable=False)
    name = Column(String(256), nullable=False)
    category = Column(String(32), nullable=False, default="pool")

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "name": self.name, "category": self.category}


class TokenLaunch(Base):
    """Token created through the SunPump factory contract."""

    __tablename__ = "token_launches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tx_id = Column(String(128), unique=True, nullable=False)
    timestamp = Column(Integer, nullable=False, index=True)
    block_number = Column(BigInteger, nullable=False)
    owner_address = Column(String(64), nullable=False)
    contract_address = Column(String(64), nullable=False)
    token_name = Column(String(256), nullable=False)
    token_symbol = Column(String(64), nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "owner_address": self.owner_address,
            "contract_address": self.contract_address,
            "token_name": self.token_name,
            "token_symbol": self.token_symbol,
        }


class KeyValue(Base):
    """JSON document per key (tunables, job cursors)."""

    __tablename__ = "kv_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
