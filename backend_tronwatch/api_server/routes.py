"""
HTTP routes: summations, whales, pools, settings, cache admin, stats.

Handlers are read-only views over the database and caches, except
PATCH /settings and POST /admin/cache/clear. Reads never depend on the
background jobs being healthy; they return whatever is stored.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from backend_tronwatch.core.exceptions import InvalidSamplingRequest
from backend_tronwatch.ingestion.whale_detector import recent_whales, whale_timeseries
from backend_tronwatch.pools.aggregation import (
    MAX_POOL_HOURS,
    RECENT_POOL_DELEGATIONS,
    aggregate_pools,
    pool_details,
    pool_members_view,
    recent_pool_delegations,
)
from backend_tronwatch.query.service import DEFAULT_POINTS, DEFAULT_PERIOD, MAX_POINTS
from backend_tronwatch.runtime import Container
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_container(request: Request) -> Container:
    """Dependency: the process-wide Container attached to the app."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="service not initialized")
    return container


# -----------------------------------------------------------------------------
# Response / request models
# -----------------------------------------------------------------------------


class SummationMetadata(BaseModel):
    period: str = Field(..., description="Requested period (1d, 7d, 30d, 6m)")
    requestedPoints: int = Field(..., description="Number of buckets requested")
    actualPoints: int = Field(..., description="Buckets holding at least one summary")
    samplingApplied: bool = Field(..., description="True when summaries outnumber buckets")
    recordsPerPoint: float = Field(..., description="Average summaries per non-empty bucket")
    totalRecordsInDatabase: int = Field(..., description="All stored summaries")
    start: int = Field(..., description="Window start (Unix seconds)")
    end: int = Field(..., description="Window end (Unix seconds)")


class SummationsResponse(BaseModel):
    """GET /summations: exactly requestedPoints entries; null marks a gap."""

    data: list[dict[str, Any] | None] = Field(..., description="Sampled points, amounts in millions of TRX")
    metadata: SummationMetadata


class WhalesResponse(BaseModel):
    whales: list[dict[str, Any]] = Field(default_factory=list, description="Most recent first")


class WhaleSeriesResponse(BaseModel):
    days: int = Field(..., description="Days covered")
    series: list[dict[str, Any]] = Field(default_factory=list, description="Per-day volume, max and count")


class PoolsResponse(BaseModel):
    pools: list[dict[str, Any]] = Field(default_factory=list, description="Top pools by energy delegated")
    addressBook: dict[str, str] = Field(default_factory=dict, description="Known names by address")
    hours: int = Field(..., description="Trailing window in hours")
    timestamp: int = Field(..., description="Window end (Unix seconds)")


class SettingsModel(BaseModel):
    detailsRetentionDays: int = Field(..., description="Delegation detail retention in days")
    summationRetentionMonths: int = Field(..., description="Summary retention in 30-day months")
    purgeFrequencyHours: int = Field(..., description="Hours between purge runs")
    blocksPerInterval: int = Field(..., description="Blocks per summary")
    whaleDetectionEnabled: bool = Field(..., description="Whale detection on/off")
    whaleThresholdTrx: int = Field(..., description="Inclusive whale threshold in TRX")


class SettingsUpdate(BaseModel):
    """PATCH /settings body; omitted fields keep their value, numbers are clamped to >= 1."""

    detailsRetentionDays: int | None = None
    summationRetentionMonths: int | None = None
    purgeFrequencyHours: int | None = None
    blocksPerInterval: int | None = None
    whaleDetectionEnabled: bool | None = None
    whaleThresholdTrx: int | None = None


class CacheClearResponse(BaseModel):
    cleared: int = Field(..., description="Cached query responses removed")


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/summations", response_model=SummationsResponse)
def get_summations(
    period: str = Query(DEFAULT_PERIOD, description="1d | 7d | 30d | 6m"),
    points: int = Query(DEFAULT_POINTS, description=f"Chart points (1-{MAX_POINTS})"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    """Sampled summation chart data; served from cache for one aggregation interval."""
    try:
        return container.query_service.get_summations(period, points)
    except InvalidSamplingRequest as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/whales/recent", response_model=WhalesResponse)
def get_recent_whales(
    limit: int = Query(50, description="Max rows, capped at 100"),
    resourceType: int | None = Query(None, ge=0, le=1, description="0 = BANDWIDTH, 1 = ENERGY"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return {"whales": recent_whales(container.db, limit, resourceType)}


@router.get("/whales/timeseries", response_model=WhaleSeriesResponse)
def get_whale_timeseries(
    days: int = Query(30, description="Days back, capped at 90"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    days = max(1, min(90, days))
    return {"days": days, "series": whale_timeseries(container.db, days, now=int(time.time()))}


@router.get("/pools", response_model=PoolsResponse)
def get_pools(
    hours: int = Query(24, description=f"Trailing window, capped at {MAX_POOL_HOURS}"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return aggregate_pools(container.db, hours)


@router.get("/pools/{address}")
def get_pool(
    address: str,
    hours: int = Query(24, description=f"Trailing window, capped at {MAX_POOL_HOURS}"),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    """Members, window totals and latest delegations for one pool."""
    details = pool_details(container.db, address.strip(), hours)
    if details is None:
        raise HTTPException(status_code=404, detail="pool not found")
    return details


@router.get("/pools/{address}/members")
def get_pool_members(address: str, container: Container = Depends(get_container)) -> dict[str, Any]:
    return {"address": address, "members": pool_members_view(container.db, address.strip())}


@router.get("/pools/{address}/delegations")
def get_pool_delegations(
    address: str,
    limit: int = Query(RECENT_POOL_DELEGATIONS, ge=1, le=100),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    return {
        "address": address,
        "delegations": recent_pool_delegations(container.db, address.strip(), limit),
    }


@router.get("/settings", response_model=SettingsModel)
def get_settings_view(container: Container = Depends(get_container)) -> dict[str, Any]:
    return container.read_config().to_mapping()


@router.patch("/settings", response_model=SettingsModel)
def update_settings(body: SettingsUpdate, container: Container = Depends(get_container)) -> dict[str, Any]:
    updates = body.model_dump(exclude_unset=True)
    config = container.update_config(updates)
    return config.to_mapping()


@router.post("/admin/cache/clear", response_model=CacheClearResponse)
def clear_cache(container: Container = Depends(get_container)) -> CacheClearResponse:
    cleared = container.query_service.invalidate()
    container.resolver.clear_cache()
    logger.info("admin_cache_cleared", cleared=cleared)
    return CacheClearResponse(cleared=cleared)


@router.get("/stats")
def get_stats(container: Container = Depends(get_container)) -> dict[str, Any]:
    return container.stats()
