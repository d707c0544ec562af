"""Exceptions raised by the Priority Queue Manager."""

from __future__ import annotations

from packages.relay_shared.errors import RelayError, codes, not_found_error


class QueueNotFoundError(RelayError):
    """Raised when a queue id is not configured."""

    def __init__(self, queue_id: str) -> None:
        super().__init__(
            not_found_error(
                f"queue not found: {queue_id}",
                code=codes.RESOURCE_NOT_FOUND,
                metadata={"queue_id": queue_id},
            )
        )
        self.queue_id = queue_id
