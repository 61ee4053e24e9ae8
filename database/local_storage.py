"""Key/value repository backing the client's persisted identifiers."""

from __future__ import annotations

from typing import Optional

from .connection import LocalDatabase


class LocalStorage:
    """Browser-``localStorage``-like API over the ``local_storage`` table."""

    def __init__(self, database: LocalDatabase) -> None:
        self.database = database

    async def get_item(self, key: str) -> Optional[str]:
        async with self.database.connection() as conn:
            cursor = await conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set_item(self, key: str, value: str) -> None:
        async with self.database.connection() as conn:
            await conn.execute(
                """
                INSERT INTO local_storage (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            await conn.commit()

    async def remove_item(self, key: str) -> None:
        async with self.database.connection() as conn:
            await conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            await conn.commit()
