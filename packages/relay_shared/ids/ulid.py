"""ULID generation and parsing helpers.

Relay identifies actions, approval requests, and audit entries with canonical
26-character Crockford Base32 ULID strings. The leading 48 bits carry the
creation time in milliseconds, so lexical order tracks creation order.
"""

from __future__ import annotations

import secrets
import time

_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE_TABLE = {char: index for index, char in enumerate(_ULID_ALPHABET)}
_MAX_ULID_INT = (1 << 128) - 1
_MAX_TIMESTAMP_MS = (1 << 48) - 1


def generate_ulid_str(*, timestamp_ms: int | None = None) -> str:
    """Generate a new ULID in canonical 26-char string format."""
    ts_ms = int(time.time() * 1000) if timestamp_ms is None else int(timestamp_ms)
    if ts_ms < 0 or ts_ms > _MAX_TIMESTAMP_MS:
        raise ValueError("timestamp_ms out of ULID 48-bit range")

    entropy = int.from_bytes(secrets.token_bytes(10), byteorder="big", signed=False)
    return _encode((ts_ms << 80) | entropy)


def parse_ulid_str(value: str) -> int:
    """Decode a canonical ULID string into its 128-bit integer value."""
    candidate = value.strip().upper()
    if len(candidate) != 26:
        raise ValueError("ULID string must be exactly 26 characters")

    number = 0
    for char in candidate:
        if char not in _DECODE_TABLE:
            raise ValueError(f"Invalid ULID character: {char!r}")
        number = (number << 5) | _DECODE_TABLE[char]

    # 26 base32 chars encode 130 bits; canonical ULID uses only lower 128 bits.
    if number > _MAX_ULID_INT:
        raise ValueError("ULID value exceeds 128-bit range")
    return number


def ulid_timestamp_ms(value: str) -> int:
    """Return the embedded millisecond timestamp of a ULID string."""
    return parse_ulid_str(value) >> 80


def is_ulid_str(value: object) -> bool:
    """Return True when ``value`` is a canonical ULID string."""
    if not isinstance(value, str):
        return False
    try:
        parse_ulid_str(value)
    except ValueError:
        return False
    return True


def _encode(number: int) -> str:
    chars: list[str] = []
    for _ in range(26):
        number, remainder = divmod(number, 32)
        chars.append(_ULID_ALPHABET[remainder])
    return "".join(reversed(chars))
