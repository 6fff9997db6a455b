"""
Database facade for delegation records, derived rows, summaries and key-value state.

SQLAlchemy over DATABASE_URL (SQLite file by default, PostgreSQL via URL).
One Database instance is built at process start and passed to every
component; there is no module-level engine.

Writes that must be idempotent go through insert_if_absent(), which turns the
unique-constraint violation into an explicit InsertResult instead of an
exception the caller has to sniff.
"""

from __future__ import annotations

import json
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Iterator

from sqlalchemy import case, create_engine, event, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from backend_tronwatch.database.address_book_seed import ADDRESS_BOOK_SEED
from backend_tronwatch.database.models import (
    AddressBookEntry,
    Base,
    DelegationRecord,
    KeyValue,
    PoolDelegation,
    PoolMember,
    Summation,
    TokenLaunch,
    WhaleDelegation,
)
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

SQLITE_BUSY_TIMEOUT_SEC = 30.0


class InsertStatus(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass(frozen=True)
class InsertResult:
    """Outcome of insert_if_absent: Inserted, AlreadyExists, or Failed(error)."""

    status: InsertStatus
    error: Exception | None = None

    @classmethod
    def inserted(cls) -> "InsertResult":
        return cls(InsertStatus.INSERTED)

    @classmethod
    def already_exists(cls) -> "InsertResult":
        return cls(InsertStatus.ALREADY_EXISTS)

    @classmethod
    def failed(cls, error: Exception) -> "InsertResult":
        return cls(InsertStatus.FAILED, error)

    @property
    def is_inserted(self) -> bool:
        return self.status is InsertStatus.INSERTED

    @property
    def is_duplicate(self) -> bool:
        return self.status is InsertStatus.ALREADY_EXISTS

    @property
    def is_failed(self) -> bool:
        return self.status is InsertStatus.FAILED


def _redact_url(url: str) -> str:
    return url.split("?")[0].split("@")[-1].split("//")[-1]


class Database:
    """
    Facade over one SQLAlchemy engine. Thread-safe: every call opens its own
    short session, so ingestion, scheduler jobs and API handlers can share it.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SEC
        self.engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, echo=echo)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _sqlite_on_connect)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init_db(self, *, seed_address_book: bool = True) -> None:
        """Create tables if missing and seed known addresses. Safe on every startup."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.exception("database_init_failed", url=_redact_url(self.url), error=str(e))
            raise
        if seed_address_book:
            self.seed_address_book(ADDRESS_BOOK_SEED)
        logger.info("database_initialized", url=_redact_url(self.url))

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Idempotent inserts
    # -------------------------------------------------------------------------

    def insert_if_absent(self, row: Base) -> InsertResult:
        """
        Insert row; a unique-key collision is ALREADY_EXISTS, any other storage
        error is FAILED(error). Never raises for storage errors.
        """
        try:
            with self.session_scope() as session:
                session.add(row)
                session.flush()
            return InsertResult.inserted()
        except IntegrityError as e:
            if _is_unique_violation(e):
                return InsertResult.already_exists()
            return InsertResult.failed(e)
        except SQLAlchemyError as e:
            return InsertResult.failed(e)

    # -------------------------------------------------------------------------
    # Key-value helpers
    # -------------------------------------------------------------------------

    def get_value(self, key: str) -> Any | None:
        with self.session_scope() as session:
            row = session.get(KeyValue, key)
            return json.loads(row.value) if row is not None else None

    def set_value(self, key: str, value: Any) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        with self.session_scope() as session:
            session.merge(KeyValue(key=key, value=payload))

    # -------------------------------------------------------------------------
    # Delegation records
    # -------------------------------------------------------------------------

    def get_delegation(self, tx_id: str) -> DelegationRecord | None:
        with self.session_scope() as session:
            return session.query(DelegationRecord).filter(DelegationRecord.tx_id == tx_id).first()

    def delegation_block_bounds(self) -> tuple[int | None, int | None]:
        """Return (earliest, latest) indexed block numbers; (None, None) when empty."""
        with self.session_scope() as session:
            lo, hi = session.query(
                func.min(DelegationRecord.block_number), func.max(DelegationRecord.block_number)
            ).one()
            return (int(lo) if lo is not None else None, int(hi) if hi is not None else None)

    def delegations_in_block_range(self, start_block: int, end_block: int) -> list[DelegationRecord]:
        """Records with start_block <= block_number <= end_block, in block order."""
        with self.session_scope() as session:
            return (
                session.query(DelegationRecord)
                .filter(
                    DelegationRecord.block_number >= start_block,
                    DelegationRecord.block_number <= end_block,
                )
                .order_by(DelegationRecord.block_number.asc(), DelegationRecord.id.asc())
                .all()
            )

    def delete_delegations_before(self, cutoff_ts: int) -> int:
        with self.session_scope() as session:
            return (
                session.query(DelegationRecord)
                .filter(DelegationRecord.timestamp < cutoff_ts)
                .delete(synchronize_session=False)
            )

    # -------------------------------------------------------------------------
    # Whale delegations
    # -------------------------------------------------------------------------

    def recent_whales(self, limit: int, resource_type: int | None = None) -> list[WhaleDelegation]:
        with self.session_scope() as session:
            q = session.query(WhaleDelegation)
            if resource_type is not None:
                q = q.filter(WhaleDelegation.resource_type == resource_type)
            return (
                q.order_by(WhaleDelegation.timestamp.desc(), WhaleDelegation.id.desc())
                .limit(limit)
                .all()
            )

    def whale_daily_series(self, since_ts: int) -> list[dict[str, Any]]:
        """Per UTC day: total volume, largest delegation (TRX) and count since since_ts."""
        with self.session_scope() as session:
            rows = (
                session.query(WhaleDelegation.timestamp, WhaleDelegation.amount_trx)
                .filter(WhaleDelegation.timestamp >= since_ts)
                .all()
            )
        days: dict[str, list[float]] = defaultdict(list)
        for ts, amount_trx in rows:
            day = datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")
            days[day].append(float(amount_trx))
        return [
            {
                "date": day,
                "volume_trx": sum(amounts),
                "max_trx": max(amounts),
                "count": len(amounts),
            }
            for day, amounts in sorted(days.items())
        ]

    def delete_whales_before(self, cutoff_ts: int) -> int:
        with self.session_scope() as session:
            return (
                session.query(WhaleDelegation)
                .filter(WhaleDelegation.timestamp < cutoff_ts)
                .delete(synchronize_session=False)
            )

    # -------------------------------------------------------------------------
    # Pool members
    # -------------------------------------------------------------------------

    def find_pool_membership(self, account: str, permission_id: int) -> PoolMember | None:
        """Earliest-discovered membership for (account, permission_id); last_seen_at refreshed on hit."""
        now = int(time.time())
        with self.session_scope() as session:
            member = (
                session.query(PoolMember)
                .filter(PoolMember.account == account, PoolMember.permission_id == permission_id)
                .order_by(PoolMember.discovered_at.asc(), PoolMember.id.asc())
                .first()
            )
            if member is not None:
                member.last_seen_at = now
            return member

    def record_pool_membership(
        self,
        account: str,
        pool: str,
        permission_id: int,
        permission_name: str | None,
        self_signed: bool,
    ) -> InsertResult:
        """Insert (account, pool); on duplicate refresh last_seen_at and report ALREADY_EXISTS."""
        now = int(time.time())
        result = self.insert_if_absent(
            PoolMember(
                account=account,
                pool=pool,
                permission_id=permission_id,
                permission_name=permission_name,
                self_signed=self_signed,
                discovered_at=now,
                last_seen_at=now,
            )
        )
        if result.is_duplicate:
            with self.session_scope() as session:
                session.query(PoolMember).filter(
                    PoolMember.account == account, PoolMember.pool == pool
                ).update({PoolMember.last_seen_at: now}, synchronize_session=False)
        return result

    def pool_members(self, pool: str) -> list[PoolMember]:
        with self.session_scope() as session:
            return (
                session.query(PoolMember)
                .filter(PoolMember.pool == pool)
                .order_by(PoolMember.last_seen_at.desc())
                .all()
            )

    # -------------------------------------------------------------------------
    # Pool delegations
    # -------------------------------------------------------------------------

    def backfill_pool_address(self, account: str, permission_id: int, pool: str) -> int:
        """Set pool_address on rows ingested before the membership was known."""
        with self.session_scope() as session:
            return (
                session.query(PoolDelegation)
                .filter(
                    PoolDelegation.from_address == account,
                    PoolDelegation.permission_id == permission_id,
                    PoolDelegation.pool_address.is_(None),
                )
                .update({PoolDelegation.pool_address: pool}, synchronize_session=False)
            )

    def latest_pool_delegation_timestamp(self) -> int | None:
        with self.session_scope() as session:
            ts = session.query(func.max(PoolDelegation.timestamp)).scalar()
            return int(ts) if ts is not None else None

    def pool_volume(
        self, since_ts: int, until_ts: int, resource_type: int, limit: int
    ) -> list[dict[str, Any]]:
        """
        Group pool delegations in [since_ts, until_ts] by pool (stored pool_address,
        else from_address), largest volume first.
        """
        pool_key = func.coalesce(PoolDelegation.pool_address, PoolDelegation.from_address)
        total_sun = func.sum(func.abs(PoolDelegation.amount_sun))
        with self.session_scope() as session:
            rows = (
                session.query(
                    pool_key.label("pool"),
                    total_sun.label("total_sun"),
                    func.sum(PoolDelegation.normalized_amount_trx).label("normalized_trx"),
                    func.count(PoolDelegation.id).label("delegation_count"),
                    func.count(func.distinct(PoolDelegation.from_address)).label("delegator_count"),
                    func.count(func.distinct(PoolDelegation.to_address)).label("recipient_count"),
                    func.max(
                        case((PoolDelegation.pool_address == PoolDelegation.from_address, 1), else_=0)
                    ).label("self_signed"),
                )
                .filter(
                    PoolDelegation.timestamp >= since_ts,
                    PoolDelegation.timestamp <= until_ts,
                    PoolDelegation.resource_type == resource_type,
                )
                .group_by(pool_key)
                .order_by(total_sun.desc())
                .limit(limit)
                .all()
            )
        return [
            {
                "pool": r.pool,
                "total_sun": int(r.total_sun or 0),
                "normalized_trx": float(r.normalized_trx or 0.0),
                "delegation_count": int(r.delegation_count),
                "delegator_count": int(r.delegator_count),
                "recipient_count": int(r.recipient_count),
                "self_signed": bool(r.self_signed),
            }
            for r in rows
        ]

    def pool_delegations_for(
        self, pool: str, *, since_ts: int | None = None, limit: int | None = None
    ) -> list[PoolDelegation]:
        """Delegations attributed to pool (or sent from it when unattributed), newest first."""
        with self.session_scope() as session:
            q = session.query(PoolDelegation).filter(
                func.coalesce(PoolDelegation.pool_address, PoolDelegation.from_address) == pool
            )
            if since_ts is not None:
                q = q.filter(PoolDelegation.timestamp >= since_ts)
            q = q.order_by(PoolDelegation.timestamp.desc(), PoolDelegation.id.desc())
            if limit is not None:
                q = q.limit(limit)
            return q.all()

    def delete_pool_delegations_before(self, cutoff_ts: int) -> int:
        with self.session_scope() as session:
            return (
                session.query(PoolDelegation)
                .filter(PoolDelegation.timestamp < cutoff_ts)
                .delete(synchronize_session=False)
            )

    # -------------------------------------------------------------------------
    # Summations
    # -------------------------------------------------------------------------

    def summations_between(self, start_ts: int, end_ts: int) -> list[Summation]:
        with self.session_scope() as session:
            return (
                session.query(Summation)
                .filter(Summation.timestamp >= start_ts, Summation.timestamp <= end_ts)
                .order_by(Summation.timestamp.asc(), Summation.start_block.asc())
                .all()
            )

    def delete_summations_before(self, cutoff_ts: int) -> int:
        with self.session_scope() as session:
            return (
                session.query(Summation)
                .filter(Summation.timestamp < cutoff_ts)
                .delete(synchronize_session=False)
            )

    # -------------------------------------------------------------------------
    # Address book and token launches
    # -------------------------------------------------------------------------

    def seed_address_book(self, entries: Iterable[tuple[str, str, str]]) -> int:
        """Insert entries whose address is not present yet. Returns number inserted."""
        inserted = 0
        for address, name, category in entries:
            result = self.insert_if_absent(
                AddressBookEntry(address=address, name=name, category=category)
            )
            if result.is_inserted:
                inserted += 1
            elif result.is_failed:
                logger.warning("address_book_seed_failed", address=address, error=str(result.error))
        if inserted:
            logger.info("address_book_seeded", inserted=inserted)
        return inserted

    def address_names(self, addresses: Iterable[str]) -> dict[str, str]:
        wanted = list({a for a in addresses if a})
        if not wanted:
            return {}
        with self.session_scope() as session:
            rows = (
                session.query(AddressBookEntry.address, AddressBookEntry.name)
                .filter(AddressBookEntry.address.in_(wanted))
                .all()
            )
        return {address: name for address, name in rows}

    def recent_token_launches(self, limit: int) -> list[TokenLaunch]:
        with self.session_scope() as session:
            return (
                session.query(TokenLaunch)
                .order_by(TokenLaunch.timestamp.desc(), TokenLaunch.id.desc())
                .limit(limit)
                .all()
            )

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def table_counts(self) -> dict[str, int]:
        with self.session_scope() as session:
            return {
                "delegations": session.query(func.count(DelegationRecord.id)).scalar() or 0,
                "whales": session.query(func.count(WhaleDelegation.id)).scalar() or 0,
                "pool_delegations": session.query(func.count(PoolDelegation.id)).scalar() or 0,
                "pool_members": session.query(func.count(PoolMember.id)).scalar() or 0,
                "summations": session.query(func.count(Summation.id)).scalar() or 0,
            }

    def count_summations(self) -> int:
        with self.session_scope() as session:
            return session.query(func.count(Summation.id)).scalar() or 0


def _is_unique_violation(error: IntegrityError) -> bool:
    """Unique/primary-key collision (SQLSTATE 23505 or driver message), not NOT NULL/FK."""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == "23505"
    message = str(orig or error).lower()
    return "unique" in message or "duplicate" in message


def _sqlite_on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    """WAL lets API reads proceed while ingestion writes."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.close()


def get_database(url: str | None = None, *, init: bool = True) -> Database:
    """Return a new Database for url (DATABASE_URL resolution when None); tables created when init."""
    if url is None:
        from backend_tronwatch.config.env import get_database_url

        url = get_database_url()
    db = Database(url)
    if init:
        db.init_db()
    return db
