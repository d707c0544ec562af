"""Shared ULID primitives for record identifiers."""

from packages.relay_shared.ids.ulid import (
    generate_ulid_str,
    is_ulid_str,
    parse_ulid_str,
    ulid_timestamp_ms,
)

__all__ = [
    "generate_ulid_str",
    "is_ulid_str",
    "parse_ulid_str",
    "ulid_timestamp_ms",
]
