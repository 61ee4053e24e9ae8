"""Application-wide exception classes."""

from __future__ import annotations

from typing import Optional


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class RemoteStoreError(ApplicationError):
    """Base exception for failures talking to the remote REST store."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ConnectivityError(RemoteStoreError):
    """Network failure or unexpected response from the remote store.

    Never fatal: polling retries on the next tick and user actions
    report a message.
    """
    pass


class NotFoundError(RemoteStoreError):
    """Session or join-code lookup found nothing."""
    pass


class ServiceError(ApplicationError):
    """Base exception for service-level errors."""
    pass


class DrawError(ServiceError):
    """Base exception for draw operations."""
    pass


class EmptyPoolError(DrawError):
    """Raised when a draw is requested with no eligible participants."""
    pass


class CommitFailure(DrawError):
    """The winner's ``won`` flag could not be persisted.

    Reported, not raised: the round proceeds and the next poll or a
    manual reset brings viewers back in line.
    """

    def __init__(self, message: str, participant_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.participant_id = participant_id


class NoPendingWinnerError(DrawError):
    """Raised when commit or advance is called out of order."""
    pass


class ReelStateError(ServiceError):
    """Raised on an illegal reel state transition."""
    pass


class ValidationError(ApplicationError):
    """Raised when user supplied data is malformed."""
    pass
