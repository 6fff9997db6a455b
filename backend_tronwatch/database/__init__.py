"""
Persistence layer: SQLAlchemy models and the Database facade.

Build one Database at startup (get_database) and pass it to every component.
"""

from backend_tronwatch.database.database import (
    Database,
    InsertResult,
    InsertStatus,
    get_database,
)
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

__all__ = [
    "AddressBookEntry",
    "Base",
    "Database",
    "DelegationRecord",
    "InsertResult",
    "InsertStatus",
    "KeyValue",
    "PoolDelegation",
    "PoolMember",
    "Summation",
    "TokenLaunch",
    "WhaleDelegation",
    "get_database",
]
