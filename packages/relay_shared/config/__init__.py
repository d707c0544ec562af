"""Public API for shared Relay configuration utilities."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    CoreRuntimeSettings,
    LoggingSettings,
    ObservabilitySettings,
    RelaySettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "CoreRuntimeSettings",
    "LoggingSettings",
    "ObservabilitySettings",
    "RelaySettings",
    "load_settings",
    "resolve_component_settings",
]
