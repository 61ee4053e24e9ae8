"""SQLite connection holder for client-local state."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from core import LocalStorageDefaults


class LocalDatabase:
    """Single shared aiosqlite connection serialised by an asyncio lock.

    Local state is a handful of keys written on session changes, so one
    connection is plenty; the lock keeps statements from interleaving
    with an open transaction.
    """

    def __init__(
        self,
        database_path: str = LocalStorageDefaults.DATABASE_PATH,
        busy_timeout_ms: int = LocalStorageDefaults.BUSY_TIMEOUT,
    ) -> None:
        self.database_path = Path(database_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return

        if not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self.database_path.as_posix())
        self._conn.row_factory = aiosqlite.Row
        await self._apply_pragma(self._conn)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def _apply_pragma(self, conn: aiosqlite.Connection) -> None:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is None:
            await self.open()
        async with self._lock:
            yield self._conn


async def open_local_database(database_path: str) -> LocalDatabase:
    from .migrations import run_migrations

    database = LocalDatabase(database_path=database_path)
    await database.open()
    await run_migrations(database)
    return database
