"""
Summation aggregator: rolls delegation records into fixed block-range summaries.

Progress is a cursor ("aggregation-state": lastProcessedBlock) in the
key-value store. Each run processes up to MAX_TRANCHES_PER_RUN ranges of
blocksPerInterval blocks, and only ranges the indexer has fully passed
(latest indexed block > range end). Ranges without delegations advance the
cursor but write nothing. A written summary is announced on the
"summation-updates" room.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from backend_tronwatch.config.runtime_config import CONFIG_KEY, Config
from backend_tronwatch.core.exceptions import ConfigurationMissing, PersistenceError
from backend_tronwatch.core.units import ResourceType
from backend_tronwatch.database import Database, DelegationRecord, Summation
from backend_tronwatch.query.sampler import display_point
from backend_tronwatch.realtime.hub import SUMMATION_EVENT, SUMMATION_ROOM, RoomPublisher
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

AGGREGATION_STATE_KEY = "aggregation-state"
MAX_TRANCHES_PER_RUN = 3


@dataclass(frozen=True)
class AggregationState:
    last_processed_block: int
    last_aggregation_time: int | None = None

    @classmethod
    def from_mapping(cls, data: Any) -> "AggregationState | None":
        if not isinstance(data, dict) or data.get("lastProcessedBlock") is None:
            return None
        return cls(
            last_processed_block=int(data["lastProcessedBlock"]),
            last_aggregation_time=data.get("lastAggregationTime"),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "lastProcessedBlock": self.last_processed_block,
            "lastAggregationTime": self.last_aggregation_time,
        }


def summarize_range(
    records: Sequence[DelegationRecord], start_block: int, end_block: int
) -> Summation | None:
    """Sum |amount| by resource and sign over records; None when records is empty."""
    if not records:
        return None
    sums = {
        (ResourceType.ENERGY, True): 0,
        (ResourceType.ENERGY, False): 0,
        (ResourceType.BANDWIDTH, True): 0,
        (ResourceType.BANDWIDTH, False): 0,
    }
    delegated = 0
    undelegated = 0
    for record in records:
        resource = ResourceType.parse(record.resource_type)
        is_delegation = record.amount_sun >= 0
        sums[(resource, is_delegation)] += abs(record.amount_sun)
        if is_delegation:
            delegated += 1
        else:
            undelegated += 1

    energy_delegated = sums[(ResourceType.ENERGY, True)]
    energy_reclaimed = sums[(ResourceType.ENERGY, False)]
    bandwidth_delegated = sums[(ResourceType.BANDWIDTH, True)]
    bandwidth_reclaimed = sums[(ResourceType.BANDWIDTH, False)]
    return Summation(
        timestamp=records[0].timestamp,
        start_block=start_block,
        end_block=end_block,
        energy_delegated=energy_delegated,
        energy_reclaimed=energy_reclaimed,
        bandwidth_delegated=bandwidth_delegated,
        bandwidth_reclaimed=bandwidth_reclaimed,
        net_energy=energy_delegated - energy_reclaimed,
        net_bandwidth=bandwidth_delegated - bandwidth_reclaimed,
        transaction_count=len(records),
        total_transactions_delegated=delegated,
        total_transactions_undelegated=undelegated,
        total_transactions_net=delegated - undelegated,
    )


class SummationJob:
    def __init__(
        self,
        db: Database,
        publisher: RoomPublisher | None = None,
        *,
        clock: Callable[[], float] = time.time,
        max_tranches: int = MAX_TRANCHES_PER_RUN,
    ) -> None:
        self._db = db
        self._publisher = publisher
        self._clock = clock
        self._max_tranches = max(1, max_tranches)

    def load_config(self) -> Config:
        raw = self._db.get_value(CONFIG_KEY)
        if raw is None:
            raise ConfigurationMissing("no tunables stored under 'config'")
        return Config.from_mapping(raw)

    def load_state(self) -> AggregationState | None:
        return AggregationState.from_mapping(self._db.get_value(AGGREGATION_STATE_KEY))

    def save_state(self, state: AggregationState) -> None:
        self._db.set_value(AGGREGATION_STATE_KEY, state.to_mapping())

    def run(self) -> int:
        """Process pending block ranges. Returns number of summaries written."""
        try:
            config = self.load_config()
        except ConfigurationMissing:
            logger.warning("summation_config_missing")
            return 0

        earliest, latest = self._db.delegation_block_bounds()
        state = self.load_state()
        if state is None:
            if earliest is None:
                logger.info("summation_waiting_for_data")
                return 0
            state = AggregationState(last_processed_block=earliest - 1)
            self.save_state(state)
            logger.info("summation_state_initialized", last_processed_block=state.last_processed_block)
            return 0
        if latest is None:
            return 0

        written = 0
        for _ in range(self._max_tranches):
            start_block = state.last_processed_block + 1
            end_block = start_block + config.blocks_per_interval - 1
            if latest < end_block + 1:
                logger.debug(
                    "summation_range_not_ready",
                    start_block=start_block,
                    end_block=end_block,
                    latest_block=latest,
                )
                break
            records = self._db.delegations_in_block_range(start_block, end_block)
            summation = summarize_range(records, start_block, end_block)
            if summation is None:
                logger.debug("summation_range_empty", start_block=start_block, end_block=end_block)
            else:
                result = self._db.insert_if_absent(summation)
                if result.is_failed:
                    raise PersistenceError(
                        f"failed to write summation {start_block}-{end_block}",
                        table="summations",
                        cause=result.error,
                    ) from result.error
                if result.is_duplicate:
                    logger.info("summation_range_already_written", start_block=start_block)
                else:
                    written += 1
                    logger.info(
                        "summation_created",
                        start_block=start_block,
                        end_block=end_block,
                        transactions=summation.transaction_count,
                        net_energy=summation.net_energy,
                        net_bandwidth=summation.net_bandwidth,
                    )
                    self._announce(summation)
            state = AggregationState(last_processed_block=end_block, last_aggregation_time=int(self._clock()))
            self.save_state(state)
        return written

    def run_safe(self) -> int:
        """Scheduler entry point: failures are logged; the next tick retries."""
        try:
            return self.run()
        except Exception as e:
            logger.exception("summation_job_failed", error=str(e))
            return 0

    def _announce(self, summation: Summation) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.emit_to_room(SUMMATION_ROOM, SUMMATION_EVENT, display_point(summation))
        except Exception as e:
            logger.warning("summation_announce_failed", start_block=summation.start_block, error=str(e))
