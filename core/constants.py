"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Remote resources
class Tables:
    """Names of the REST resources exposed by the remote store."""
    SESSIONS = "sessions"
    PARTICIPANTS = "participants"
    SESSION_CODES = "session_codes"


# Session constants
class SessionDefaults:
    """Session identity and join-code settings."""
    STORAGE_KEY = "hypnoraffle_session_id"
    JOIN_CODE_LENGTH = 6
    # No 0/O or 1/I so codes can be read off a projector
    JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


# Synchronizer constants
class PollDefaults:
    """Participant polling configuration."""
    INTERVAL = 3.0  # seconds
    ORDER_COLUMN = "created_at"


# Reel constants
class ReelDefaults:
    """Reel reveal configuration."""
    REPETITIONS = 10
    ITEM_HEIGHT = 80  # pixels
    DURATION = 8.0  # seconds
    # CSS "ease": cubic-bezier(0.25, 0.1, 0.25, 1.0)
    EASING = (0.25, 0.1, 0.25, 1.0)


# HTTP constants
class HttpDefaults:
    """Remote store and webhook HTTP settings."""
    API_URL = "http://localhost:3001"
    TIMEOUT = 10  # seconds
    WEBHOOK_TIMEOUT = 5  # seconds


# Local storage constants
class LocalStorageDefaults:
    """Local client storage configuration."""
    DATABASE_PATH = "data/raffle_local.sqlite"
    BUSY_TIMEOUT = 5000  # milliseconds


# Host display
class MessageDefaults:
    """User-facing message buffer."""
    MAX_MESSAGES = 20


class ReelState(str, Enum):
    """Reel animator states."""
    IDLE = "idle"
    SPINNING = "spinning"
    SETTLING = "settling"
    LANDED = "landed"


class MessageLevel(str, Enum):
    """Severity of a user-facing message."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
