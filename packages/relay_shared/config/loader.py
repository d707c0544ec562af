"""Settings loading with deterministic precedence.

The cascade is always:
1) CLI/init params
2) Environment variables
3) ~/.config/relay/relay.yaml (or ``RELAY_CONFIG_FILE``)
4) Model defaults

Environment variable format:
- Prefix: ``RELAY_``
- Nested keys: ``__`` separator
- Example: ``RELAY_LOGGING__LEVEL=DEBUG`` -> ``logging.level = "DEBUG"``
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, ClassVar, Mapping

from .models import DEFAULT_CONFIG_PATH, RelaySettings

ENV_PREFIX = "RELAY_"
CONFIG_FILE_ENV = "RELAY_CONFIG_FILE"


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
) -> RelaySettings:
    """Load root settings applying the standard Relay precedence cascade.

    When ``environ`` is supplied it replaces the process environment entirely,
    which keeps tests hermetic.
    """
    env = environ if environ is not None else os.environ
    resolved_path = _resolve_config_path(config_path=config_path, environ=env)

    env_data = _load_env_config(environ=env, prefix=ENV_PREFIX)
    cli_data = _as_plain_dict(cli_params) if cli_params is not None else {}
    init_data = _merge_dicts(env_data, cli_data)

    settings_cls = _settings_class(config_path=resolved_path)
    return settings_cls(**init_data)


def _settings_class(*, config_path: Path) -> type[RelaySettings]:
    """Return a settings subclass bound to one YAML path, ignoring process env."""

    class _LoadedRelaySettings(RelaySettings):
        _config_path: ClassVar[Path] = config_path
        _read_process_env: ClassVar[bool] = False

    return _LoadedRelaySettings


def _resolve_config_path(
    *, config_path: str | Path | None, environ: Mapping[str, str]
) -> Path:
    """Return explicit config path, env-referenced path, or the default."""
    if config_path is not None:
        return Path(config_path)
    from_env = environ.get(CONFIG_FILE_ENV, "").strip()
    if from_env != "":
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH


def _load_env_config(
    *, environ: Mapping[str, str], prefix: str
) -> dict[str, Any]:
    """Extract and map prefixed environment variables into nested config."""
    output: dict[str, Any] = {}

    for key, raw_value in environ.items():
        if not key.startswith(prefix) or key == CONFIG_FILE_ENV:
            continue

        remainder = key[len(prefix) :]
        if not remainder:
            continue

        path = [
            segment.strip().lower()
            for segment in remainder.split("__")
            if segment.strip()
        ]
        if not path:
            continue

        _set_nested(output, path, _coerce_scalar(raw_value))

    return output


def _set_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set a nested mapping value by path, creating intermediate dicts."""
    cursor: dict[str, Any] = target
    for segment in path[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[path[-1]] = value


def _merge_dicts(
    base: Mapping[str, Any], override: Mapping[str, Any]
) -> dict[str, Any]:
    """Recursively merge mappings, with ``override`` taking precedence."""
    result = _as_plain_dict(base)
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, Mapping):
            result[key] = _merge_dicts(base_value, override_value)
            continue
        result[key] = copy.deepcopy(override_value)
    return result


def _coerce_scalar(raw: str) -> Any:
    """Coerce JSON-looking env strings; leave scalars for pydantic to parse."""
    value = raw.strip()
    if value.startswith("{") or value.startswith("["):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return raw
    return value


def _as_plain_dict(value: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-copy a mapping into plain ``dict`` values recursively."""
    output: dict[str, Any] = {}
    for key, subvalue in value.items():
        if isinstance(subvalue, Mapping):
            output[str(key)] = _as_plain_dict(subvalue)
        else:
            output[str(key)] = copy.deepcopy(subvalue)
    return output
