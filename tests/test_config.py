"""
Settings validation and environment prefix tests.
"""

import pytest
from pydantic import ValidationError

from promptpilot.core.config import (
    CacheSettings,
    DatabaseSettings,
    LoggingSettings,
    Settings,
    SyncSettings,
)


def test_defaults_run_local_only(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)
    settings = Settings(_env_file=None)
    assert settings.database.is_configured is False
    assert settings.remote_sync_enabled is False
    assert settings.cache.capacity_bytes == 5 * 1024 * 1024
    assert settings.cache.namespace == "promptpilot_prompt_groups"


def test_prefixed_environment_variables(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    monkeypatch.setenv("CACHE_CAPACITY_BYTES", "1024")
    monkeypatch.setenv("SYNC_MAX_PUSH_ATTEMPTS", "7")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.database.uri == "mongodb://localhost:27017"
    assert settings.cache.capacity_bytes == 1024
    assert settings.sync.max_push_attempts == 7
    assert settings.logging.level == "DEBUG"
    assert settings.remote_sync_enabled is True


def test_sync_can_be_switched_off(monkeypatch):
    monkeypatch.setenv("SYNC_ENABLED", "false")
    settings = Settings(_env_file=None, database=DatabaseSettings(uri="mongodb://localhost"))
    assert settings.remote_sync_enabled is False


@pytest.mark.parametrize("uri", ["postgres://db", "localhost:27017"])
def test_invalid_mongo_uri(uri):
    with pytest.raises(ValidationError):
        DatabaseSettings(uri=uri)


def test_srv_uri_is_accepted():
    assert DatabaseSettings(uri="mongodb+srv://cluster.example.net").is_configured


@pytest.mark.parametrize(
    "kwargs",
    [
        {"capacity_bytes": 0},
        {"near_limit_ratio": 0},
        {"near_limit_ratio": 1.5},
        {"namespace": "../escape"},
        {"namespace": "  "},
    ],
)
def test_invalid_cache_settings(kwargs):
    with pytest.raises(ValidationError):
        CacheSettings(**kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_push_attempts": 0},
        {"pull_interval_seconds": -1},
        {"pull_delay_seconds": -0.5},
        {"remote_timeout_seconds": -1},
        {"backoff_base_seconds": 10, "backoff_max_seconds": 5},
    ],
)
def test_invalid_sync_settings(kwargs):
    with pytest.raises(ValidationError):
        SyncSettings(**kwargs)


def test_logging_settings_are_normalized():
    settings = LoggingSettings(level="warning", format="TEXT")
    assert settings.level == "WARNING"
    assert settings.format == "text"
    with pytest.raises(ValidationError):
        LoggingSettings(level="verbose")
    with pytest.raises(ValidationError):
        LoggingSettings(format="xml")


def test_invalid_app_env():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, app_env="qa")


def test_get_settings_is_cached_until_reset(monkeypatch, tmp_path):
    from promptpilot.core import config

    monkeypatch.chdir(tmp_path)
    config.reset_settings()
    try:
        monkeypatch.setenv("APP_NAME", "First")
        first = config.get_settings()
        monkeypatch.setenv("APP_NAME", "Second")
        assert config.get_settings() is first

        config.reset_settings()
        assert config.get_settings().app_name == "Second"
    finally:
        config.reset_settings()
