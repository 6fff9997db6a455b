"""
ABI segment decoding for smart-contract call payloads.

A call payload is a 4-byte method selector followed by 32-byte words. The
decoder only splits and reads fixed offsets; it does not follow dynamic
offsets or lengths, which is enough for factory calls with short strings.
"""

from __future__ import annotations

from dataclasses import dataclass

SUNPUMP_FACTORY_ADDRESS = "TTfvyrAz86hbZk5iDpKD78pqLGgi8C7AAw"
CREATE_TOKEN_METHOD = "2f70d762"

METHOD_HEX_LENGTH = 8
SEGMENT_HEX_LENGTH = 64
# Word offsets (counting the method as segment 0) of the name and symbol strings
TOKEN_NAME_SEGMENT = 4
TOKEN_SYMBOL_SEGMENT = 6


@dataclass(frozen=True)
class TokenCreation:
    """Token name/symbol decoded from a factory createToken call."""

    token_name: str
    token_symbol: str


def decode_segments(data: str | None) -> list[str] | None:
    """
    Split a hex payload into [method, word1, word2, ...].

    Strips an optional 0x prefix. Returns None when fewer than 8 hex chars
    remain. The method is lower-cased; a trailing partial word is kept as-is.
    """
    if not data:
        return None
    raw = data.strip()
    if raw[:2].lower() == "0x":
        raw = raw[2:]
    if len(raw) < METHOD_HEX_LENGTH:
        return None
    segments = [raw[:METHOD_HEX_LENGTH].lower()]
    body = raw[METHOD_HEX_LENGTH:]
    segments.extend(
        body[i : i + SEGMENT_HEX_LENGTH] for i in range(0, len(body), SEGMENT_HEX_LENGTH)
    )
    return segments


def decode_utf8(segment: str | None) -> str:
    """Decode a zero-padded 32-byte word as UTF-8; "" when empty or not hex."""
    if not segment:
        return ""
    hex_str = segment
    while hex_str.endswith("00"):
        hex_str = hex_str[:-2]
    if not hex_str or len(hex_str) % 2:
        return ""
    try:
        raw = bytes.fromhex(hex_str)
    except ValueError:
        return ""
    return raw.decode("utf-8", errors="replace").strip()


def match_token_creation(contract_address: str | None, data: str | None) -> TokenCreation | None:
    """Recognize a createToken call to the SunPump factory; None for anything else."""
    if contract_address != SUNPUMP_FACTORY_ADDRESS:
        return None
    segments = decode_segments(data)
    if not segments or segments[0] != CREATE_TOKEN_METHOD:
        return None
    if len(segments) <= TOKEN_SYMBOL_SEGMENT:
        return None
    name = decode_utf8(segments[TOKEN_NAME_SEGMENT])
    symbol = decode_utf8(segments[TOKEN_SYMBOL_SEGMENT])
    if not name or not symbol:
        return None
    return TokenCreation(token_name=name, token_symbol=symbol)
