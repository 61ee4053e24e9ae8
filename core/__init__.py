"""Core application components."""

# Import in correct order to avoid circular dependencies
from core.logger import setup_logger, get_logger
from core.constants import (
    Tables,
    SessionDefaults,
    PollDefaults,
    ReelDefaults,
    HttpDefaults,
    LocalStorageDefaults,
    MessageDefaults,
    ReelState,
    MessageLevel,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    RemoteStoreError,
    ConnectivityError,
    NotFoundError,
    ServiceError,
    DrawError,
    EmptyPoolError,
    CommitFailure,
    NoPendingWinnerError,
    ReelStateError,
    ValidationError,
)

__all__ = [
    # Initializer
    'ApplicationInitializer',
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'Tables',
    'SessionDefaults',
    'PollDefaults',
    'ReelDefaults',
    'HttpDefaults',
    'LocalStorageDefaults',
    'MessageDefaults',
    'ReelState',
    'MessageLevel',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'RemoteStoreError',
    'ConnectivityError',
    'NotFoundError',
    'ServiceError',
    'DrawError',
    'EmptyPoolError',
    'CommitFailure',
    'NoPendingWinnerError',
    'ReelStateError',
    'ValidationError',
]

# Import ApplicationInitializer last to avoid circular imports
from core.app_initializer import ApplicationInitializer
