"""Application configuration module.

Reads settings from environment variables with defaults matching the
reference deployment (PostgREST on localhost:3001, 3 second polling,
8 second reel reveal).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default).strip()


def _get_optional_str(name: str) -> Optional[str]:
    value = _get_str(name)
    return value or None


@dataclass(frozen=True)
class Config:
    api_url: str
    api_key: Optional[str]
    winner_webhook_url: Optional[str]
    http_timeout: float
    poll_interval: float
    reel_duration: float
    reel_repetitions: int
    reel_item_height: int
    join_code_length: int
    local_db_path: str
    session_storage_key: str
    web_host: str
    web_port: int
    log_level: str
    log_folder: str
    environment: str
    debug: bool


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration
    """
    return Config(
        api_url=_get_str("API_URL", "http://localhost:3001").rstrip("/"),
        api_key=_get_optional_str("API_KEY"),
        winner_webhook_url=_get_optional_str("WINNER_WEBHOOK_URL"),
        http_timeout=_get_float("HTTP_TIMEOUT", 10.0),
        poll_interval=_get_float("POLL_INTERVAL_SECONDS", 3.0),
        reel_duration=_get_float("REEL_DURATION_SECONDS", 8.0),
        reel_repetitions=_get_int("REEL_REPETITIONS", 10),
        reel_item_height=_get_int("REEL_ITEM_HEIGHT", 80),
        join_code_length=_get_int("JOIN_CODE_LENGTH", 6),
        local_db_path=_get_str("LOCAL_DB_PATH", "data/raffle_local.sqlite"),
        session_storage_key=_get_str("SESSION_STORAGE_KEY", "hypnoraffle_session_id"),
        web_host=_get_str("WEB_HOST", "127.0.0.1"),
        web_port=_get_int("WEB_PORT", 8080),
        log_level=_get_str("LOG_LEVEL", "INFO").upper(),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
    )


def validate_config(config: Config) -> list[str]:
    """Return a list of human readable configuration problems."""
    errors: list[str] = []
    if "://" not in config.api_url:
        errors.append("API_URL must include scheme, e.g. http://")
    if config.winner_webhook_url and "://" not in config.winner_webhook_url:
        errors.append("WINNER_WEBHOOK_URL must include scheme, e.g. https://")
    if config.http_timeout <= 0:
        errors.append("HTTP_TIMEOUT must be > 0")
    if config.poll_interval <= 0:
        errors.append("POLL_INTERVAL_SECONDS must be > 0")
    if config.reel_duration < 0:
        errors.append("REEL_DURATION_SECONDS must be >= 0")
    if config.reel_repetitions < 2:
        errors.append("REEL_REPETITIONS must be >= 2")
    if config.reel_item_height <= 0:
        errors.append("REEL_ITEM_HEIGHT must be > 0")
    if not 4 <= config.join_code_length <= 12:
        errors.append("JOIN_CODE_LENGTH must be between 4 and 12")
    if not config.session_storage_key:
        errors.append("SESSION_STORAGE_KEY is required")
    if not 0 < config.web_port < 65536:
        errors.append("WEB_PORT must be a valid TCP port")
    return errors
