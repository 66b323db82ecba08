"""Tests for settings and configuration."""

import pytest
from pydantic import ValidationError

from draftflow.models.settings import Settings


def test_settings_defaults(monkeypatch):
    """Test that settings have proper default values."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("CANVA_CLIENT_ID", raising=False)
    monkeypatch.delenv("DEV_USER_ID", raising=False)

    settings = Settings(_env_file=None)
    assert settings.debug is False
    assert settings.log_level == "INFO"
    assert settings.gemini_api_key is None
    assert settings.canva_client_id is None
    assert settings.dev_user_id is None
    assert settings.retry_max_attempts == 3
    assert settings.stale_pending_minutes == 15


def test_settings_from_env(monkeypatch):
    """Test that settings are loaded from environment variables."""
    monkeypatch.setenv("GEMINI_API_KEY", "test_gemini_key")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")

    settings = Settings(_env_file=None)
    assert settings.gemini_api_key == "test_gemini_key"
    assert settings.debug is True
    assert settings.retry_max_attempts == 5


def test_settings_case_insensitive(monkeypatch):
    monkeypatch.setenv("gemini_api_key", "lower_key")

    settings = Settings(_env_file=None)
    assert settings.gemini_api_key == "lower_key"


def test_model_chain_splits_and_strips():
    settings = Settings(_env_file=None, text_models=" first , second,,third ")
    assert settings.model_chain == ["first", "second", "third"]


def test_retry_bounds_are_validated():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, retry_max_attempts=0)

    with pytest.raises(ValidationError):
        Settings(_env_file=None, generation_timeout=1.0)


def test_log_level_is_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")

    settings = Settings(_env_file=None)
    assert settings.log_level == "WARNING"


def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")
