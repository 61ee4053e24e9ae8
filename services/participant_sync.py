"""Polling synchronizer for the participant roster of the active session."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import List, Optional

from core import PollDefaults, Tables, get_logger
from database.models import Participant, PoolSnapshot
from database.remote import RemoteResult, RemoteStore
from services.observable import Observable

logger = get_logger(__name__)


class ParticipantSynchronizer:
    """Keeps a local :class:`PoolSnapshot` in line with the remote store.

    The remote roster is the single source of truth: every fetch rebuilds
    ``all_pool`` and derives ``available_pool`` from the ``won`` flags. A
    snapshot is only published when the fetched rows differ by value from
    the previous one (or after :meth:`invalidate`), so consumers are not
    woken by unchanged polls.
    """

    def __init__(self, store: RemoteStore, interval: float = PollDefaults.INTERVAL) -> None:
        self.store = store
        self.interval = interval
        self.session_id: Optional[str] = None
        self.snapshot: Optional[PoolSnapshot] = None
        self.last_error: Optional[Exception] = None
        self.on_snapshot = Observable("participants")
        self._task: Optional[asyncio.Task] = None
        self._stale = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, session_id: str) -> None:
        """Begin polling ``session_id``; any previous loop is stopped first."""
        await self.stop()
        self.session_id = session_id
        self.snapshot = None
        self.last_error = None
        self._stale = False
        self._task = asyncio.create_task(self._poll_loop(session_id), name=f"poll-{session_id}")
        logger.info(f"Participant polling started for session {session_id} every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        if task is not asyncio.current_task():
            with suppress(asyncio.CancelledError):
                await task
        logger.info(f"Participant polling stopped for session {self.session_id}")
        self.session_id = None

    async def refresh(self) -> bool:
        """Poll once right now.

        Returns:
            True if a new snapshot was published
        """
        if self.session_id is None:
            return False
        return await self._poll_once(self.session_id)

    def invalidate(self) -> None:
        """Publish the next successful poll even if the rows look unchanged.

        Called after the local pool was changed optimistically, so a remote
        state equal to the last snapshot still overwrites the local one.
        """
        self._stale = True

    async def fetch(self, session_id: str) -> RemoteResult[List[Participant]]:
        result = await (
            self.store.from_(Tables.PARTICIPANTS)
            .select()
            .eq("session_id", session_id)
            .order(PollDefaults.ORDER_COLUMN)
        )
        if not result.ok:
            return RemoteResult.failure(result.error)
        return RemoteResult(data=[Participant.from_row(row) for row in result.data or []])

    async def _poll_loop(self, session_id: str) -> None:
        while True:
            try:
                await self._poll_once(session_id)
            except Exception as e:
                self.last_error = e
                logger.exception(f"Participant poll crashed for session {session_id}, retrying next tick")
            await asyncio.sleep(self.interval)

    async def _poll_once(self, session_id: str) -> bool:
        result = await self.fetch(session_id)
        if session_id != self.session_id:
            # Session changed while the request was in flight
            return False
        if not result.ok:
            self.last_error = result.error
            logger.warning(f"Participant poll failed for session {session_id}: {result.error}")
            return False
        self.last_error = None

        participants = result.data
        unchanged = self.snapshot is not None and self.snapshot.all_pool == tuple(participants)
        if unchanged and not self._stale:
            return False

        self._stale = False
        self.snapshot = PoolSnapshot.from_participants(session_id, participants)
        logger.debug(
            f"Published pool for session {session_id}: "
            f"{len(self.snapshot.available_pool)}/{len(self.snapshot.all_pool)} available"
        )
        await self.on_snapshot.emit(self.snapshot)
        return True
