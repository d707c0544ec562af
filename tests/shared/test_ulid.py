"""Tests for shared ULID generation and parsing semantics."""

from __future__ import annotations

import pytest

from packages.relay_shared.ids import (
    generate_ulid_str,
    is_ulid_str,
    parse_ulid_str,
    ulid_timestamp_ms,
)


def test_generated_ulid_is_canonical() -> None:
    """Generated identifiers are 26 Crockford Base32 characters."""
    value = generate_ulid_str()
    assert len(value) == 26
    assert is_ulid_str(value)


def test_timestamp_is_embedded_in_leading_bits() -> None:
    """The creation timestamp can be read back from the identifier."""
    value = generate_ulid_str(timestamp_ms=1_700_000_000_000)
    assert ulid_timestamp_ms(value) == 1_700_000_000_000


def test_lexical_order_follows_creation_time() -> None:
    """Later timestamps always sort after earlier ones."""
    earlier = [generate_ulid_str(timestamp_ms=1_000) for _ in range(50)]
    later = [generate_ulid_str(timestamp_ms=1_001) for _ in range(50)]
    assert max(earlier) < min(later)


def test_parse_is_case_insensitive() -> None:
    """Lower-case input decodes to the same value."""
    value = generate_ulid_str()
    assert parse_ulid_str(value.lower()) == parse_ulid_str(value)


@pytest.mark.parametrize(
    "candidate",
    ["", "too-short", "U" * 26, "8" + "0" * 25, 42, None],
)
def test_invalid_values_are_not_ulids(candidate: object) -> None:
    """Wrong length, bad characters, overflow, and non-strings are rejected."""
    assert is_ulid_str(candidate) is False


def test_timestamp_out_of_range_is_rejected() -> None:
    """Timestamps must fit in 48 bits."""
    with pytest.raises(ValueError, match="48-bit"):
        generate_ulid_str(timestamp_ms=1 << 48)
