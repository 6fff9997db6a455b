"""Units and enumerations shared across the pipeline."""

from __future__ import annotations

from enum import IntEnum

SUN_PER_TRX = 1_000_000
# Summation metrics are stored in SUN and published in millions of TRX
SUMMATION_DISPLAY_DIVISOR = 1e12

# Permission ids 0-2 are owner/witness/default active; >= 3 are custom pool grants
POOL_PERMISSION_MIN_ID = 3

DELEGATE_CONTRACT = "DelegateResourceContract"
UNDELEGATE_CONTRACT = "UnDelegateResourceContract"
TRIGGER_SMART_CONTRACT = "TriggerSmartContract"
DELEGATION_CONTRACT_TYPES = (DELEGATE_CONTRACT, UNDELEGATE_CONTRACT)

UNKNOWN_ADDRESS = "unknown"


class ResourceType(IntEnum):
    BANDWIDTH = 0
    ENERGY = 1

    @classmethod
    def parse(cls, value: object) -> "ResourceType":
        """
        Map the contract's resource field to a ResourceType.

        None (field absent) is BANDWIDTH, the protocol default. Strings match
        by name, ints by value; anything else unrecognised is BANDWIDTH.
        """
        if value is None:
            return cls.BANDWIDTH
        if isinstance(value, bool):
            return cls.BANDWIDTH
        if isinstance(value, int):
            return cls.ENERGY if value == cls.ENERGY else cls.BANDWIDTH
        if isinstance(value, str):
            return cls.ENERGY if value.strip().upper() == "ENERGY" else cls.BANDWIDTH
        return cls.BANDWIDTH


def sun_to_trx(amount_sun: int | float) -> float:
    return amount_sun / SUN_PER_TRX
