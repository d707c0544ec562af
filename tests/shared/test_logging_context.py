"""Tests for structured logging context propagation."""

from __future__ import annotations

import asyncio

import pytest

from packages.relay_shared.logging import (
    bind_context,
    clear_context,
    get_context,
    log_context,
)


def test_log_context_restores_previous_values() -> None:
    """Scoped bindings disappear when the block exits."""
    clear_context()
    bind_context(agent_id="agent-1")

    with log_context({"action_id": "a-1", "queue_id": None}):
        assert get_context() == {"agent_id": "agent-1", "action_id": "a-1"}

    assert get_context() == {"agent_id": "agent-1"}
    clear_context()


def test_clear_context_removes_selected_keys() -> None:
    """Named keys are removed and others kept."""
    clear_context()
    bind_context(action_id="a-1", approval_id="ap-1")
    clear_context("approval_id")

    assert get_context() == {"action_id": "a-1"}
    clear_context()
    assert get_context() == {}


@pytest.mark.asyncio
async def test_context_is_isolated_between_tasks() -> None:
    """Concurrent tasks never see each other's bindings."""
    clear_context()

    async def run(action_id: str) -> dict[str, str]:
        with log_context({"action_id": action_id}):
            await asyncio.sleep(0.01)
            return get_context()

    first, second = await asyncio.gather(run("a-1"), run("a-2"))

    assert first == {"action_id": "a-1"}
    assert second == {"action_id": "a-2"}
    assert get_context() == {}
