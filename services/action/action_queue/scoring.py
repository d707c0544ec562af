"""Pure dequeue-order scoring for queued actions.

A member's score is its priority weight plus bonuses for being approved,
being a retry, and having waited more than an hour. Higher scores dequeue
first; equal scores fall back to creation order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from services.state.action_store.domain import Action, ActionPriority

APPROVED_BONUS = 1.0
RETRY_BONUS = 0.5
AGING_THRESHOLD = timedelta(hours=1)
AGING_PER_HOUR = 0.1
AGING_CAP = 2.0


def aging_bonus(*, created_at: datetime, now: datetime) -> float:
    """Return the starvation bonus for an action created at ``created_at``."""
    waited = now - created_at
    if waited <= AGING_THRESHOLD:
        return 0.0
    hours = waited / timedelta(hours=1)
    return min(AGING_CAP, hours * AGING_PER_HOUR)


def priority_score(
    action: Action,
    *,
    weights: Mapping[ActionPriority, float],
    now: datetime,
) -> float:
    """Return the dequeue score for one queued action."""
    score = weights.get(action.priority, 0.0)
    if action.requires_approval and action.approved_at is not None:
        score += APPROVED_BONUS
    if action.retry_count > 0:
        score += RETRY_BONUS
    return score + aging_bonus(created_at=action.created_at, now=now)


def select_next(
    actions: Iterable[Action],
    *,
    weights: Mapping[ActionPriority, float],
    now: datetime,
) -> Action | None:
    """Return the highest-scoring action, earliest-created on ties."""
    best: Action | None = None
    best_key: tuple[float, datetime] | None = None
    for action in actions:
        key = (-priority_score(action, weights=weights, now=now), action.created_at)
        if best_key is None or key < best_key:
            best, best_key = action, key
    return best
