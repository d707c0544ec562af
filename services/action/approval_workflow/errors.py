"""Exceptions raised by the Approval Workflow service."""

from __future__ import annotations

from packages.relay_shared.errors import (
    RelayError,
    codes,
    conflict_error,
    not_found_error,
)


class ApprovalNotFoundError(RelayError):
    """Raised when an approval id matches neither a pending nor a stored request."""

    def __init__(self, approval_id: str) -> None:
        super().__init__(
            not_found_error(
                f"approval request not found: {approval_id}",
                code=codes.RESOURCE_NOT_FOUND,
                metadata={"approval_id": approval_id},
            )
        )
        self.approval_id = approval_id


class ApprovalAlreadyResolvedError(RelayError):
    """Raised when a second response arrives for a resolved request."""

    def __init__(self, approval_id: str) -> None:
        super().__init__(
            conflict_error(
                f"approval request already resolved: {approval_id}",
                code=codes.CONFLICT,
                metadata={"approval_id": approval_id},
            )
        )
        self.approval_id = approval_id
