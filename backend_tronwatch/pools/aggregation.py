"""
Pool-attributed energy volume over a trailing window.

The window ends at the newest pool delegation (not wall-clock now), so a
stalled ingestion still shows the last known activity instead of an empty
chart. Delegations group by their stored pool_address; rows whose pool is
still unknown group under their sender.
"""

from __future__ import annotations

import time
from typing import Any

from backend_tronwatch.core.units import ResourceType, sun_to_trx
from backend_tronwatch.database import Database

DEFAULT_POOL_HOURS = 24
MAX_POOL_HOURS = 168
MAX_POOLS = 50
RECENT_POOL_DELEGATIONS = 20


def clamp_hours(hours: int | None) -> int:
    if hours is None:
        return DEFAULT_POOL_HOURS
    return max(1, min(MAX_POOL_HOURS, int(hours)))


def _window(db: Database, hours: int, now: int | None) -> tuple[int, int]:
    end = db.latest_pool_delegation_timestamp()
    if end is None:
        end = int(now if now is not None else time.time())
    return end - hours * 3600, end


def aggregate_pools(db: Database, hours: int | None = None, *, now: int | None = None) -> dict[str, Any]:
    """Top pools by energy delegated in the window, named from the address book."""
    hours = clamp_hours(hours)
    since, until = _window(db, hours, now)
    rows = db.pool_volume(since, until, int(ResourceType.ENERGY), MAX_POOLS)
    names = db.address_names(r["pool"] for r in rows)
    pools = [
        {
            "address": r["pool"],
            "name": names.get(r["pool"]),
            "totalAmountTrx": sun_to_trx(r["total_sun"]),
            "totalNormalizedTrx": round(r["normalized_trx"], 6),
            "delegationCount": r["delegation_count"],
            "delegatorCount": r["delegator_count"],
            "recipientCount": r["recipient_count"],
            "selfSigned": r["self_signed"],
        }
        for r in rows
    ]
    return {"pools": pools, "addressBook": names, "hours": hours, "timestamp": until}


def _delegation_view(row: Any) -> dict[str, Any]:
    return {
        "txId": row.tx_id,
        "timestamp": row.timestamp,
        "blockNumber": row.block_number,
        "fromAddress": row.from_address,
        "toAddress": row.to_address,
        "resourceType": row.resource_type,
        "amountTrx": sun_to_trx(abs(row.amount_sun)),
        "permissionId": row.permission_id,
        "rentalPeriodMinutes": row.rental_period_minutes,
        "normalizedAmountTrx": row.normalized_amount_trx,
    }


def pool_members_view(db: Database, address: str) -> list[dict[str, Any]]:
    return [
        {
            "account": m.account,
            "permissionId": m.permission_id,
            "permissionName": m.permission_name,
            "selfSigned": m.self_signed,
            "discoveredAt": m.discovered_at,
            "lastSeenAt": m.last_seen_at,
        }
        for m in db.pool_members(address)
    ]


def recent_pool_delegations(db: Database, address: str, limit: int = RECENT_POOL_DELEGATIONS) -> list[dict[str, Any]]:
    return [_delegation_view(row) for row in db.pool_delegations_for(address, limit=limit)]


def pool_details(
    db: Database, address: str, hours: int | None = None, *, now: int | None = None
) -> dict[str, Any] | None:
    """Members, window totals and latest delegations for one pool; None when never seen."""
    hours = clamp_hours(hours)
    members = pool_members_view(db, address)
    recent = recent_pool_delegations(db, address)
    if not members and not recent:
        return None
    since, until = _window(db, hours, now)
    window_rows = [
        row
        for row in db.pool_delegations_for(address, since_ts=since)
        if row.timestamp <= until and row.resource_type == int(ResourceType.ENERGY)
    ]
    names = db.address_names([address])
    return {
        "address": address,
        "name": names.get(address),
        "hours": hours,
        "timestamp": until,
        "totalAmountTrx": sun_to_trx(sum(abs(r.amount_sun) for r in window_rows)),
        "totalNormalizedTrx": round(sum(r.normalized_amount_trx for r in window_rows), 6),
        "delegationCount": len(window_rows),
        "delegatorCount": len({r.from_address for r in window_rows}),
        "recipientCount": len({r.to_address for r in window_rows}),
        "members": members,
        "recentDelegations": recent,
    }
