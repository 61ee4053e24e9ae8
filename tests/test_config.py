"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from config import load_config, validate_config

ENV_VARS = [
    "API_URL", "API_KEY", "WINNER_WEBHOOK_URL", "HTTP_TIMEOUT", "POLL_INTERVAL_SECONDS",
    "REEL_DURATION_SECONDS", "REEL_REPETITIONS", "REEL_ITEM_HEIGHT", "JOIN_CODE_LENGTH",
    "LOCAL_DB_PATH", "SESSION_STORAGE_KEY", "WEB_HOST", "WEB_PORT", "LOG_LEVEL",
    "LOG_FOLDER", "ENVIRONMENT", "DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    """Test defaults match the reference deployment."""
    config = load_config()

    assert config.api_url == "http://localhost:3001"
    assert config.api_key is None
    assert config.winner_webhook_url is None
    assert config.poll_interval == 3.0
    assert config.reel_duration == 8.0
    assert config.reel_repetitions == 10
    assert config.reel_item_height == 80
    assert config.session_storage_key == "hypnoraffle_session_id"
    assert config.debug is False
    assert validate_config(config) == []


def test_environment_overrides(clean_env):
    """Test values are read from the environment."""
    clean_env.setenv("API_URL", "https://db.example.com/rest/v1/")
    clean_env.setenv("API_KEY", "anon")
    clean_env.setenv("WINNER_WEBHOOK_URL", "https://hooks.example.com/winner")
    clean_env.setenv("POLL_INTERVAL_SECONDS", "1.5")
    clean_env.setenv("REEL_REPETITIONS", "6")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("DEBUG", "yes")

    config = load_config()

    assert config.api_url == "https://db.example.com/rest/v1"
    assert config.api_key == "anon"
    assert config.winner_webhook_url == "https://hooks.example.com/winner"
    assert config.poll_interval == 1.5
    assert config.reel_repetitions == 6
    assert config.log_level == "DEBUG"
    assert config.debug is True


def test_malformed_numbers_fall_back(clean_env):
    """Test unparsable numbers keep their defaults."""
    clean_env.setenv("WEB_PORT", "eighty")
    clean_env.setenv("HTTP_TIMEOUT", "soon")

    config = load_config()

    assert config.web_port == 8080
    assert config.http_timeout == 10.0


def test_validation_errors(clean_env):
    """Test each invalid setting is reported."""
    config = replace(
        load_config(),
        api_url="localhost:3001",
        winner_webhook_url="hooks.example.com",
        poll_interval=0,
        reel_repetitions=1,
        join_code_length=2,
        web_port=70000,
    )

    errors = validate_config(config)

    assert len(errors) == 6
    assert any("API_URL" in e for e in errors)
    assert any("WINNER_WEBHOOK_URL" in e for e in errors)
    assert any("REEL_REPETITIONS" in e for e in errors)
