"""Pydantic settings for the Action Store service."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.relay_shared.config import RelaySettings, resolve_component_settings
from services.state.action_store.component import SERVICE_COMPONENT_ID

_DAY_SECONDS = 86_400


class ActionStoreSettings(BaseModel):
    """Backend selection, key namespace, and snapshot retention."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: Literal["memory", "redis"] = "redis"
    key_prefix: str = Field(default="relay", min_length=1)
    action_ttl_seconds: int = Field(default=_DAY_SECONDS, gt=0)
    approval_ttl_seconds: int = Field(default=_DAY_SECONDS, gt=0)
    queue_ttl_seconds: int = Field(default=_DAY_SECONDS, gt=0)
    audit_ttl_seconds: int = Field(default=30 * _DAY_SECONDS, gt=0)


def resolve_action_store_settings(settings: RelaySettings) -> ActionStoreSettings:
    """Resolve store settings from ``components.service.action_store``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ActionStoreSettings,
    )
