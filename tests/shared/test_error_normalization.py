"""Tests for shared exception normalization."""

from __future__ import annotations

from packages.relay_shared.errors import (
    ErrorCategory,
    RelayError,
    codes,
    exception_to_error,
    not_found_error,
)


def test_relay_errors_keep_their_detail() -> None:
    """Domain exceptions are returned unchanged."""
    detail = not_found_error("missing action", metadata={"action_id": 7})
    error = RelayError(detail)

    assert exception_to_error(error) is detail
    assert error.code == detail.code
    assert detail.metadata == {"action_id": "7"}


def test_builtin_exceptions_map_by_type() -> None:
    """Builtin exceptions map to conservative categories."""
    assert exception_to_error(ValueError("bad")).category is ErrorCategory.VALIDATION
    assert exception_to_error(KeyError("k")).category is ErrorCategory.NOT_FOUND
    timeout = exception_to_error(TimeoutError())
    assert timeout.code == codes.DEPENDENCY_TIMEOUT
    assert timeout.retryable is True
    assert exception_to_error(ConnectionError("down")).retryable is True


def test_unknown_exceptions_are_internal() -> None:
    """Anything else is an unexpected internal failure."""
    detail = exception_to_error(RuntimeError("boom"))

    assert detail.category is ErrorCategory.INTERNAL
    assert detail.code == codes.UNEXPECTED_EXCEPTION
    assert detail.as_dict()["metadata"] == {"exception_type": "RuntimeError"}
