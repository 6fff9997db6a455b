"""
Observer registry: routes each transaction to the handlers subscribed to its type.

Handlers run synchronously in subscription order. A handler exception is
logged and does not stop the others, except PersistenceError, which means a
canonical record was lost and is re-raised to the block loop after the
remaining handlers have run.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Iterable

from backend_tronwatch.core.exceptions import PersistenceError
from backend_tronwatch.core.units import DELEGATION_CONTRACT_TYPES, TRIGGER_SMART_CONTRACT
from backend_tronwatch.ingestion.observer import TransactionObserver
from backend_tronwatch.ingestion.token_launch import TokenLaunchDetector
from backend_tronwatch.tron_listener.models import Transaction
from backend_tronwatch.tron_listener.parser import parse_transaction
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Transaction], Any]


class ObserverRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, list[tuple[str, Handler]]] = defaultdict(list)

    def subscribe(self, tx_type: str, handler: Handler, *, name: str | None = None) -> None:
        label = name or getattr(handler, "__qualname__", repr(handler))
        self._handlers[tx_type].append((label, handler))
        logger.info("observer_subscribed", tx_type=tx_type, handler=label)

    def handlers_for(self, tx_type: str) -> list[str]:
        return [label for label, _ in self._handlers.get(tx_type, [])]

    def dispatch(self, payload: Transaction | dict[str, Any]) -> int:
        """Deliver one transaction. Returns number of handlers that ran without error."""
        tx = parse_transaction(payload)
        if tx is None:
            return 0
        handled = 0
        lost: PersistenceError | None = None
        for label, handler in self._handlers.get(tx.type, []):
            try:
                handler(tx)
                handled += 1
            except PersistenceError as e:
                lost = e
            except Exception as e:
                logger.exception("observer_handler_failed", handler=label, tx_id=tx.tx_id, error=str(e))
        if lost is not None:
            raise lost
        return handled

    def dispatch_many(self, payloads: Iterable[Transaction | dict[str, Any]]) -> int:
        """Deliver transactions in order; stops at the first PersistenceError."""
        count = 0
        for payload in payloads:
            count += self.dispatch(payload)
        return count


def build_registry(
    observer: TransactionObserver, token_launches: TokenLaunchDetector | None = None
) -> ObserverRegistry:
    registry = ObserverRegistry()
    for tx_type in DELEGATION_CONTRACT_TYPES:
        registry.subscribe(tx_type, observer.process, name="delegation_observer")
    if token_launches is not None:
        registry.subscribe(TRIGGER_SMART_CONTRACT, token_launches.process, name="token_launch_detector")
    return registry
