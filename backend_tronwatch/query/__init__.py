"""Read side for summaries: time-bucket sampler, cache backends, cached query service."""

from backend_tronwatch.query.cache import MemoryCache, RedisCache, build_cache
from backend_tronwatch.query.sampler import SampledPoint, SamplingMetadata, display_point, sample
from backend_tronwatch.query.service import SummationQueryService

__all__ = [
    "MemoryCache",
    "RedisCache",
    "SampledPoint",
    "SamplingMetadata",
    "SummationQueryService",
    "build_cache",
    "display_point",
    "sample",
]
