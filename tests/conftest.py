"""Pytest configuration and fixtures."""

from __future__ import annotations

import itertools
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from core.exceptions import ConnectivityError
from database.connection import LocalDatabase
from database.local_storage import LocalStorage
from database.migrations import run_migrations
from database.remote import Filter, Query, RemoteResult, RemoteStore
from services.draw_engine import DrawEngine
from services.notification_service import WinnerNotifier
from services.participant_sync import ParticipantSynchronizer
from services.raffle import RaffleController
from services.reel_animator import ReelAnimator
from services.session_manager import SessionManager


def _matches(row: Dict[str, Any], item: Filter) -> bool:
    value = row.get(item.column)
    if item.operator in ("eq", "is"):
        return value == item.value
    if item.operator == "neq":
        return value != item.value
    if item.operator == "in":
        return value in item.value
    if value is None:
        return False
    if item.operator == "gt":
        return value > item.value
    if item.operator == "gte":
        return value >= item.value
    if item.operator == "lt":
        return value < item.value
    if item.operator == "lte":
        return value <= item.value
    raise AssertionError(f"operator {item.operator} not supported by the in-memory store")


class InMemoryStore(RemoteStore):
    """Dict-backed stand-in for the PostgREST server.

    Runs the same :class:`Query` objects the real client sends, so the
    query builder is exercised end to end without a network.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.queries: List[Query] = []
        self._failures: Set[Tuple[str, Optional[str]]] = set()
        self._clock = itertools.count(1)

    def fail(self, table: str, method: Optional[str] = None) -> None:
        """Make requests to ``table`` (optionally only ``method``) fail."""
        self._failures.add((table, method))

    def recover(self) -> None:
        self._failures.clear()

    def _timestamp(self) -> str:
        return f"2026-01-01T00:00:00.{next(self._clock):06d}+00:00"

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stamp = self._timestamp()
        stored = {"id": str(uuid.uuid4()), "created_at": stamp, "updated_at": stamp, **row}
        self.tables[table].append(stored)
        return stored

    def add_session(self, session_id: str, is_active: bool = True) -> Dict[str, Any]:
        return self.insert_row("sessions", {"id": session_id, "is_active": is_active})

    def add_participant(self, session_id: str, pid: str, name: str, won: bool = False) -> Dict[str, Any]:
        return self.insert_row(
            "participants",
            {
                "id": pid,
                "session_id": session_id,
                "name": name,
                "last_name": "Tester",
                "display_name": f"{name} T.",
                "email": f"{name.lower()}@example.com",
                "won": won,
            },
        )

    def row(self, table: str, row_id: str) -> Dict[str, Any]:
        return next(r for r in self.tables[table] if r["id"] == row_id)

    async def run(self, query: Query) -> RemoteResult[Any]:
        self.queries.append(query)
        if (query.table, None) in self._failures or (query.table, query.method) in self._failures:
            return RemoteResult.failure(ConnectivityError(f"simulated outage on {query.table}", status=503))

        rows = self.tables[query.table]
        if query.method == "POST":
            body = query.body if isinstance(query.body, list) else [query.body]
            created = [self.insert_row(query.table, dict(item)) for item in body]
            return self.shape(query, [dict(r) for r in created] if query.returning else None)

        matched = [r for r in rows if all(_matches(r, f) for f in query.filters)]
        if query.method == "GET":
            if query.order is not None:
                column, ascending = query.order
                matched.sort(key=lambda r: r.get(column) or "", reverse=not ascending)
            if query.limit is not None:
                matched = matched[: query.limit]
            return self.shape(query, [dict(r) for r in matched])
        if query.method == "PATCH":
            for r in matched:
                r.update(query.body)
                r["updated_at"] = self._timestamp()
            return self.shape(query, [dict(r) for r in matched] if query.returning else None)
        if query.method == "DELETE":
            self.tables[query.table] = [r for r in rows if r not in matched]
            return RemoteResult(data=None)
        raise AssertionError(f"unexpected method {query.method}")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
async def local_db(tmp_path):
    """Migrated local SQLite database in a temp directory."""
    database = LocalDatabase(database_path=str(tmp_path / "local.sqlite"))
    await database.open()
    await run_migrations(database)
    yield database
    await database.close()


@pytest.fixture
def storage(local_db) -> LocalStorage:
    return LocalStorage(local_db)


@pytest.fixture
def session_manager(store, storage) -> SessionManager:
    return SessionManager(store, storage)


@pytest.fixture
async def controller(store, session_manager):
    """Fully wired controller with an instant reel and slow polling.

    Polling is effectively manual (``synchronizer.refresh()``) so tests
    control exactly when the remote roster is re-read.
    """
    raffle = RaffleController(
        sessions=session_manager,
        synchronizer=ParticipantSynchronizer(store, interval=60),
        engine=DrawEngine(store),
        reel=ReelAnimator(repetitions=4, duration=0),
        notifier=WinnerNotifier(None),
    )
    yield raffle
    await raffle.stop()
