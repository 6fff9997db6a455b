"""Token launches through the SunPump factory, recognized from createToken call data."""

from __future__ import annotations

from backend_tronwatch.core.units import TRIGGER_SMART_CONTRACT, UNKNOWN_ADDRESS
from backend_tronwatch.database import Database, TokenLaunch
from backend_tronwatch.tron_listener.abi import match_token_creation
from backend_tronwatch.tron_listener.models import Transaction
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)


class TokenLaunchDetector:
    def __init__(self, db: Database) -> None:
        self._db = db

    def process(self, tx: Transaction) -> TokenLaunch | None:
        """Persist a TokenLaunch for a factory createToken call; None for anything else."""
        if tx.type != TRIGGER_SMART_CONTRACT:
            return None
        creation = match_token_creation(tx.contract_address or tx.to_address, tx.data)
        if creation is None:
            return None
        launch = TokenLaunch(
            tx_id=tx.tx_id,
            timestamp=tx.timestamp,
            block_number=tx.block_number,
            owner_address=tx.from_address or UNKNOWN_ADDRESS,
            contract_address=tx.contract_address or tx.to_address or UNKNOWN_ADDRESS,
            token_name=creation.token_name,
            token_symbol=creation.token_symbol,
        )
        result = self._db.insert_if_absent(launch)
        if result.is_duplicate:
            logger.debug("token_launch_duplicate_skipped", tx_id=tx.tx_id)
            return None
        if result.is_failed:
            logger.warning("token_launch_persist_failed", tx_id=tx.tx_id, error=str(result.error))
            return None
        logger.info(
            "token_launch_detected",
            tx_id=tx.tx_id,
            owner=launch.owner_address,
            token_name=creation.token_name,
            token_symbol=creation.token_symbol,
        )
        return launch
