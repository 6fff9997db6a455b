"""
TRON input side: transaction model and parser for sync-pipeline payloads,
ABI segment decoding, and the TronGrid account client used by discovery.
"""

from backend_tronwatch.tron_listener.models import Transaction
from backend_tronwatch.tron_listener.parser import parse_transaction

__all__ = ["Transaction", "parse_transaction"]
