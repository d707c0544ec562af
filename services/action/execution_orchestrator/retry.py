"""Retry classification and backoff helpers for executor failures."""

from __future__ import annotations

from collections.abc import Iterable

from services.state.action_store.domain import RetryPolicy


def should_retry(retry_count: int, max_retries: int) -> bool:
    """Return whether another retry attempt is permitted."""
    return int(retry_count) < int(max_retries)


def is_retryable_error(error: BaseException | str, markers: Iterable[str]) -> bool:
    """Return whether ``error`` names a transient failure.

    Exception type names and messages are both matched, case-insensitively,
    against the retryable markers.
    """
    if isinstance(error, BaseException):
        text = f"{type(error).__name__} {error}"
    else:
        text = error
    lowered = text.lower()
    return any(marker.lower() in lowered for marker in markers)


def compute_backoff_delay_ms(policy: RetryPolicy, retry_count: int) -> int:
    """Compute the delay before retry number ``retry_count`` (1-based)."""
    if retry_count <= 0:
        raise ValueError("retry_count must be >= 1.")
    if policy.backoff_strategy == "fixed":
        delay = policy.base_delay_ms
    elif policy.backoff_strategy == "linear":
        delay = policy.base_delay_ms * retry_count
    else:
        delay = policy.base_delay_ms * (2 ** (retry_count - 1))
    return min(policy.max_delay_ms, delay)
