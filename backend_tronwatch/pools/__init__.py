"""
Pool attribution: membership resolution, background discovery, and
aggregated pool volume for the API and real-time updates.
"""

from backend_tronwatch.pools.aggregation import aggregate_pools, pool_details
from backend_tronwatch.pools.membership import (
    DiscoveryQueue,
    PoolDiscoveryService,
    PoolMembershipResolver,
)

__all__ = [
    "DiscoveryQueue",
    "PoolDiscoveryService",
    "PoolMembershipResolver",
    "aggregate_pools",
    "pool_details",
]
