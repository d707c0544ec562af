"""Protocols for pluggable executors and the writing-style service."""

from __future__ import annotations

from typing import Protocol

from services.state.action_store.domain import Action, ActionResult


class ActionExecutor(Protocol):
    """Performs the side effect for one action type."""

    async def execute(self, action: Action) -> ActionResult:
        """Run ``action`` and return its outcome; may raise on failure."""


class StyleService(Protocol):
    """Rewrites outbound text in an agent's personal voice."""

    async def mimic_writing_style(
        self, *, agent_id: str, content: str, content_type: str
    ) -> str:
        """Return ``content`` restyled for ``agent_id``."""
