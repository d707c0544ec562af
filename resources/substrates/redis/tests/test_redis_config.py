"""Unit tests for Redis substrate settings resolution and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from packages.relay_shared.config import load_settings
from resources.substrates.redis.config import RedisSettings, resolve_redis_settings


def test_redis_settings_rejects_ambiguous_password_sources() -> None:
    """Password cannot be supplied inline and via env reference together."""
    with pytest.raises(ValidationError, match="mutually exclusive"):
        RedisSettings(url=None, password="one", password_env="REDIS_PASSWORD")


def test_redis_settings_resolves_password_from_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Password should resolve from the referenced environment variable."""
    monkeypatch.setenv("REDIS_PASSWORD", "secret")

    settings = RedisSettings(url=None, password_env="REDIS_PASSWORD")

    assert settings.password == "secret"
    assert settings.url == "redis://:secret@localhost:6379/0"


def test_redis_settings_builds_url_from_split_fields() -> None:
    """Settings should build a URL when no explicit URL is provided."""
    settings = RedisSettings(
        url="",
        host="cache.internal",
        port=6380,
        db=4,
        username="relay",
        password="pw",
        ssl=True,
    )

    assert settings.url == "rediss://relay:pw@cache.internal:6380/4"


def test_redis_settings_rejects_missing_password_env_when_url_unset(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Split-field mode should fail when the referenced env var is unset."""
    monkeypatch.delenv("REDIS_PASSWORD", raising=False)
    with pytest.raises(ValidationError, match="references missing env var"):
        RedisSettings(url=None, password_env="REDIS_PASSWORD")


def test_resolve_redis_settings_reads_substrate_namespace(tmp_path) -> None:
    """Component settings should come from ``components.substrate.redis``."""
    settings = load_settings(
        environ={"RELAY_COMPONENTS__SUBSTRATE__REDIS__URL": "redis://example:6390/2"},
        config_path=tmp_path / "missing.yaml",
    )

    assert resolve_redis_settings(settings).url == "redis://example:6390/2"
