"""
Ingestion: the transaction observer and the detectors it fans out to
(whale detection, pool tracking), plus token-launch recognition and the
registry that routes transactions by contract type.
"""

from backend_tronwatch.ingestion.models import DelegationEvent
from backend_tronwatch.ingestion.observer import TransactionObserver, build_delegation_event
from backend_tronwatch.ingestion.pool_tracker import PoolDelegationTracker
from backend_tronwatch.ingestion.registry import ObserverRegistry, build_registry
from backend_tronwatch.ingestion.token_launch import TokenLaunchDetector
from backend_tronwatch.ingestion.whale_detector import WhaleDetector

__all__ = [
    "DelegationEvent",
    "ObserverRegistry",
    "PoolDelegationTracker",
    "TokenLaunchDetector",
    "TransactionObserver",
    "WhaleDetector",
    "build_delegation_event",
    "build_registry",
]
