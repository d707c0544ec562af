"""Base exception type carrying a structured ``ErrorDetail``."""

from __future__ import annotations

from .types import ErrorDetail


class RelayError(Exception):
    """Root of all domain exceptions raised by Relay services."""

    def __init__(self, detail: ErrorDetail) -> None:
        super().__init__(detail.message)
        self.detail = detail

    @property
    def code(self) -> str:
        """Return the machine-readable error code."""
        return self.detail.code

    @property
    def retryable(self) -> bool:
        """Return whether the failure is safe to retry."""
        return self.detail.retryable
