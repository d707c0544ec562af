"""Tests for pydantic-settings-backed shared configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.relay_shared.config import load_settings, resolve_component_settings
from resources.substrates.redis.config import RedisSettings
from services.action.approval_workflow.component import SERVICE_COMPONENT_ID
from services.action.approval_workflow.config import ApprovalWorkflowSettings


def test_load_settings_uses_relay_precedence_cascade(tmp_path: Path) -> None:
    """Init params should override env, env should override YAML, then defaults."""
    config_file = tmp_path / "relay.yaml"
    config_file.write_text(
        "\n".join(
            [
                "logging:",
                "  level: WARNING",
                "components:",
                "  substrate:",
                "    redis:",
                "      max_connections: 7",
                "  service:",
                "    approval_workflow:",
                "      max_escalations: 5",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(
        cli_params={"logging": {"level": "DEBUG"}},
        environ={
            "RELAY_LOGGING__LEVEL": "ERROR",
            "RELAY_COMPONENTS__CORE_RUNTIME__SHUTDOWN_TIMEOUT_SECONDS": "4",
            "RELAY_COMPONENTS__SUBSTRATE__REDIS__MAX_CONNECTIONS": "9",
        },
        config_path=config_file,
    )

    redis = resolve_component_settings(
        settings=settings,
        component_id="substrate_redis",
        model=RedisSettings,
    )
    approvals = resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ApprovalWorkflowSettings,
    )

    assert settings.logging.level == "DEBUG"
    assert settings.components.core_runtime.shutdown_timeout_seconds == 4.0
    assert redis.max_connections == 9
    assert approvals.max_escalations == 5
    assert approvals.escalation_roles == ("manager", "director")


def test_load_settings_uses_model_defaults_when_sources_missing(tmp_path: Path) -> None:
    """Settings should fall back to model defaults when env and YAML are absent."""
    settings = load_settings(config_path=tmp_path / "relay.yaml", environ={})
    approvals = resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ApprovalWorkflowSettings,
    )

    assert settings.logging.service == "relay"
    assert settings.logging.level == "INFO"
    assert settings.components.core_runtime.shutdown_timeout_seconds == 10.0
    assert approvals.max_escalations == 3
    assert approvals.default_timeout_minutes == 30.0


def test_config_file_env_var_selects_yaml(tmp_path: Path) -> None:
    """``RELAY_CONFIG_FILE`` should point the loader at another YAML file."""
    config_file = tmp_path / "custom.yaml"
    config_file.write_text("logging:\n  service: relay-worker\n", encoding="utf-8")

    settings = load_settings(environ={"RELAY_CONFIG_FILE": str(config_file)})

    assert settings.logging.service == "relay-worker"


def test_json_env_values_are_decoded(tmp_path: Path) -> None:
    """JSON-looking env values should populate structured settings."""
    settings = load_settings(
        config_path=tmp_path / "relay.yaml",
        environ={
            "RELAY_COMPONENTS__SERVICE__APPROVAL_WORKFLOW__ESCALATION_ROLES": '["vp"]'
        },
    )
    approvals = resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ApprovalWorkflowSettings,
    )

    assert approvals.escalation_roles == ("vp",)


def test_flat_component_keys_are_rejected(tmp_path: Path) -> None:
    """Component settings must live under their kind namespace."""
    with pytest.raises(ValidationError, match="components.service.action_queue"):
        load_settings(
            cli_params={"components": {"service_action_queue": {}}},
            config_path=tmp_path / "relay.yaml",
            environ={},
        )
