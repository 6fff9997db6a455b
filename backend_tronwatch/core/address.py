"""
TRON address helpers.

Chain payloads carry addresses either as base58check ("T...") or as hex with
the 0x41 mainnet prefix ("41..." / "0x41..."). Everything persisted uses the
base58 form.
"""

from __future__ import annotations

import base58

HEX_ADDRESS_PREFIX = "41"
HEX_ADDRESS_LENGTH = 42


def is_hex_address(value: str) -> bool:
    raw = value[2:] if value.lower().startswith("0x") else value
    if len(raw) != HEX_ADDRESS_LENGTH or not raw.lower().startswith(HEX_ADDRESS_PREFIX):
        return False
    try:
        bytes.fromhex(raw)
    except ValueError:
        return False
    return True


def to_base58_address(value: str | None) -> str | None:
    """Convert a 41-prefixed hex address to base58check; pass other values through."""
    if not value:
        return value
    value = value.strip()
    if not is_hex_address(value):
        return value
    raw = value[2:] if value.lower().startswith("0x") else value
    return base58.b58encode_check(bytes.fromhex(raw)).decode("ascii")


def to_hex_address(value: str) -> str:
    """Convert a base58check address to its 41-prefixed hex form."""
    return base58.b58decode_check(value.strip()).hex()
