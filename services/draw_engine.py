"""Fair winner selection and round bookkeeping."""

from __future__ import annotations

import secrets
from typing import Callable, Optional, Sequence

from core import Tables, get_logger
from core.exceptions import CommitFailure, EmptyPoolError, NoPendingWinnerError
from database.models import DrawState, Participant
from database.remote import RemoteResult, RemoteStore

logger = get_logger(__name__)


class DrawEngine:
    """Picks one winner per round and records the outcome remotely.

    A round goes through three calls in order: :meth:`start_draw` picks the
    pending winner, :meth:`commit_winner` persists ``won = true`` once the
    reveal has landed, and :meth:`advance_round` drops the winner from the
    local pool (resetting everybody when the pool runs dry).

    Selection uses ``secrets.randbelow``, which rejection-samples instead of
    reducing a fixed-width integer modulo the pool size, so every member of
    a pool of size N is drawn with probability exactly 1/N.
    """

    def __init__(
        self,
        store: RemoteStore,
        randbelow: Callable[[int], int] = secrets.randbelow,
    ) -> None:
        self.store = store
        self._randbelow = randbelow
        self.pending_winner: Optional[Participant] = None
        self.committed_winner: Optional[Participant] = None

    def start_draw(self, pool: Sequence[Participant]) -> Participant:
        """Select the pending winner of this round from ``pool``.

        Nothing is written remotely yet.

        Raises:
            EmptyPoolError: If ``pool`` is empty
        """
        if not pool:
            raise EmptyPoolError("No participants available. Add participants or reset the draw.")
        index = self._randbelow(len(pool))
        if not 0 <= index < len(pool):
            raise RuntimeError(f"Random source returned {index} for a pool of {len(pool)}")
        winner = pool[index]
        self.pending_winner = winner
        self.committed_winner = None
        logger.info(f"Drew {winner.display_name} ({winner.id}) from {len(pool)} participants")
        return winner

    def abandon(self) -> None:
        """Drop an uncommitted draw, e.g. when its reveal was cancelled."""
        if self.pending_winner is not None:
            logger.info(f"Abandoned pending winner {self.pending_winner.id}")
        self.pending_winner = None
        self.committed_winner = None

    async def commit_winner(self, winner: Participant, session_id: str) -> RemoteResult[Participant]:
        """Persist ``won = true`` for the pending winner.

        Best effort: a failure is logged and returned as :class:`CommitFailure`
        but the round still counts locally.

        Raises:
            NoPendingWinnerError: If ``winner`` is not the pending winner
        """
        if self.pending_winner is None:
            raise NoPendingWinnerError("commit_winner called without a pending draw")
        if winner.id != self.pending_winner.id:
            raise NoPendingWinnerError(
                f"commit_winner called for {winner.id}, pending winner is {self.pending_winner.id}"
            )

        self.committed_winner = self.pending_winner
        self.pending_winner = None

        result = await (
            self.store.from_(Tables.PARTICIPANTS)
            .update({"won": True})
            .eq("id", winner.id)
            .eq("session_id", session_id)
            .eq("won", False)
            .select()
        )
        if not result.ok:
            logger.error(f"Failed to mark winner {winner.id} in store: {result.error}")
            return RemoteResult.failure(CommitFailure(str(result.error), participant_id=winner.id))
        if not result.data:
            # No row matched: removed, or already marked by another viewer
            logger.warning(f"Winner {winner.id} was not updated; already won or no longer registered")
            return RemoteResult.failure(
                CommitFailure(f"Participant {winner.id} was not eligible at commit time", participant_id=winner.id)
            )
        logger.info(f"Committed winner {winner.id} for session {session_id}")
        return RemoteResult(data=Participant.from_row(result.data[0]))

    async def advance_round(self, state: DrawState) -> bool:
        """Remove the committed winner from the local pool.

        Returns:
            True if the pool ran dry and a full reset was performed

        Raises:
            NoPendingWinnerError: If no winner has been committed this round
        """
        winner = self.committed_winner
        if winner is None:
            raise NoPendingWinnerError("advance_round called before commit_winner")
        self.committed_winner = None

        state.available_pool = [p for p in state.available_pool if p.id != winner.id]
        state.round_complete = False
        if state.available_pool or not state.all_pool:
            return False

        logger.info(f"All {len(state.all_pool)} participants drawn in session {state.session_id}, resetting")
        await self.reset(state)
        state.round_complete = True
        return True

    async def reset(self, state: DrawState) -> RemoteResult[None]:
        """Clear every ``won`` flag of the session and make everyone available."""
        self.pending_winner = None
        self.committed_winner = None
        result = await (
            self.store.from_(Tables.PARTICIPANTS)
            .update({"won": False})
            .eq("session_id", state.session_id)
            .eq("won", True)
        )
        if not result.ok:
            logger.error(f"Failed to reset winners for session {state.session_id}: {result.error}")
        state.repopulate()
        state.round_complete = False
        return RemoteResult(error=result.error)
