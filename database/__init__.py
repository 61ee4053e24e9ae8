"""Database package public API."""

from .connection import LocalDatabase, open_local_database
from .local_storage import LocalStorage
from .migrations import run_migrations
from .models import DrawState, Participant, PoolSnapshot, Session, SessionCode
from .remote import PostgrestClient, QueryBuilder, RemoteResult, RemoteStore

__all__ = [
    "LocalDatabase",
    "open_local_database",
    "LocalStorage",
    "run_migrations",
    "DrawState",
    "Participant",
    "PoolSnapshot",
    "Session",
    "SessionCode",
    "PostgrestClient",
    "QueryBuilder",
    "RemoteResult",
    "RemoteStore",
]
