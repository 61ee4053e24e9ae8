"""Round lifecycle tying sessions, polling, drawing and the reel together."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional

from core import MessageDefaults, MessageLevel, ReelState, get_logger
from core.exceptions import EmptyPoolError, ValidationError
from database.models import DrawState, Participant, PoolSnapshot, Session
from database.remote import RemoteResult
from services.draw_engine import DrawEngine
from services.notification_service import WinnerNotifier
from services.observable import Observable
from services.participant_sync import ParticipantSynchronizer
from services.reel_animator import ReelAnimator
from services.session_manager import SessionManager, normalize_join_code

logger = get_logger(__name__)


@dataclass(frozen=True)
class Message:
    """Non-blocking notice shown on the host display."""

    level: MessageLevel
    title: str
    text: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level.value, "title": self.title, "text": self.text, "created_at": self.created_at}


class RaffleController:
    """Owns the :class:`DrawState` of the active session and runs its rounds.

    A round is ``draw()`` -> reel lands -> commit + advance -> ``next_round()``.
    The draw state is thrown away and rebuilt whenever the session changes.
    Landing, drawing, advancing and resetting take turns on one lock so a
    reset cannot interleave with the commit of a landed winner.
    """

    def __init__(
        self,
        sessions: SessionManager,
        synchronizer: ParticipantSynchronizer,
        engine: DrawEngine,
        reel: ReelAnimator,
        notifier: Optional[WinnerNotifier] = None,
        max_messages: int = MessageDefaults.MAX_MESSAGES,
    ) -> None:
        self.sessions = sessions
        self.synchronizer = synchronizer
        self.engine = engine
        self.reel = reel
        self.notifier = notifier or WinnerNotifier(None)
        self.state: Optional[DrawState] = None
        self.messages: Deque[Message] = deque(maxlen=max_messages)
        self.on_state = Observable("draw_state")
        self._round_lock = asyncio.Lock()

        sessions.on_change.subscribe(self._on_session_change)
        synchronizer.on_snapshot.subscribe(self._on_snapshot)
        reel.on_landed.subscribe(self._on_landed)

    async def start(self) -> RemoteResult[Session]:
        """Resume (or create) the client's session and start polling it."""
        result = await self.sessions.resume()
        if not result.ok:
            self._message(MessageLevel.ERROR, "Session Error", f"Could not open a session: {result.error}")
        return result

    async def stop(self) -> None:
        self.reel.clear()
        self.engine.abandon()
        await self.synchronizer.stop()
        await self.notifier.close()

    async def draw(self) -> Optional[Participant]:
        """Pick this round's winner and start the reveal."""
        async with self._round_lock:
            return await self._draw()

    async def _draw(self) -> Optional[Participant]:
        state = self.state
        if state is None:
            self._message(MessageLevel.ERROR, "Session Error", "No active session. Please retry.")
            return None
        if self.reel.state is not ReelState.IDLE:
            self._message(MessageLevel.WARNING, "Draw in progress", "Finish the current round first.")
            return None
        try:
            winner = self.engine.start_draw(state.available_pool)
        except EmptyPoolError as e:
            self._message(MessageLevel.WARNING, "Raffle is empty!", str(e))
            return None

        state.winner = None
        state.round_complete = False
        self.reel.spin(state.available_pool, winner)
        await self.on_state.emit(state)
        return winner

    async def next_round(self) -> bool:
        """Clear the landed winner so the next draw can start."""
        async with self._round_lock:
            return await self._next_round()

    async def _next_round(self) -> bool:
        if self.reel.state is not ReelState.LANDED:
            return False
        self.reel.next_round()
        if self.state is not None:
            self.state.winner = None
            self.state.round_complete = False
            await self.on_state.emit(self.state)
        return True

    async def reset(self) -> bool:
        """Make every participant of the session available again.

        Waits for a landing that is still being committed.
        """
        async with self._round_lock:
            return await self._reset()

    async def _reset(self) -> bool:
        state = self.state
        if state is None:
            return False
        if self.reel.cancel():
            self.engine.abandon()
        if self.reel.state is ReelState.LANDED:
            self.reel.next_round()
        state.winner = None
        result = await self.engine.reset(state)
        self.synchronizer.invalidate()
        if result.ok:
            self._message(MessageLevel.INFO, "Raffle Reset", "All participants are now available for the next round.")
        else:
            self._message(
                MessageLevel.WARNING,
                "Raffle Reset",
                "Participants were reset on this screen but the store could not be updated.",
            )
        await self.on_state.emit(state)
        return result.ok

    async def new_session(self, name: Optional[str] = None) -> bool:
        result = await self.sessions.start_new_session(name)
        if not result.ok:
            self._message(MessageLevel.ERROR, "Session Error", f"Could not create a session: {result.error}")
        return result.ok

    async def switch_session(self, target: str) -> bool:
        """Switch by join code when ``target`` looks like one, else by session id."""
        target = target.strip()
        try:
            normalize_join_code(target, self.sessions.join_code_length)
        except ValidationError:
            switched = await self.sessions.switch_to(target)
        else:
            switched = await self.sessions.switch_to_code(target)
        if not switched:
            self._message(MessageLevel.ERROR, "Invalid session", f"No session found for {target!r}.")
        return switched

    async def _on_session_change(self, session: Session) -> None:
        # Nothing from the old session may survive the switch
        self.reel.clear()
        self.engine.abandon()
        self.state = DrawState(session_id=session.id)
        await self.synchronizer.start(session.id)
        await self.on_state.emit(self.state)

    async def _on_snapshot(self, snapshot: PoolSnapshot) -> None:
        state = self.state
        if state is None or snapshot.session_id != state.session_id:
            return
        state.apply_snapshot(snapshot)
        if self.reel.is_busy and not state.available_pool:
            logger.info(f"Pool of session {state.session_id} emptied mid-reveal, cancelling")
            self.reel.cancel()
            self.engine.abandon()
        await self.on_state.emit(state)

    async def _on_landed(self, winner: Participant) -> None:
        async with self._round_lock:
            await self._settle_round(winner)

    async def _settle_round(self, winner: Participant) -> None:
        state = self.state
        if state is None or winner.session_id != state.session_id:
            return
        pending = self.engine.pending_winner
        if pending is None or pending.id != winner.id:
            logger.warning(f"Ignoring landing on {winner.id}; the draw was abandoned")
            return
        state.winner = winner

        committed = await self.engine.commit_winner(winner, state.session_id)
        if not committed.ok:
            self._message(
                MessageLevel.WARNING,
                "Winner not saved",
                f"{winner.display_name} could not be marked as a winner; other screens will catch up.",
            )
        if self.state is not state:
            # Session switched while the commit was in flight
            return
        reset_done = await self.engine.advance_round(state)
        self.synchronizer.invalidate()
        if reset_done:
            self._message(
                MessageLevel.INFO,
                "Round Complete!",
                "All participants have been chosen. Resetting for a new round.",
            )
        self.notifier.schedule(winner)
        await self.on_state.emit(state)

    def _message(self, level: MessageLevel, title: str, text: str) -> None:
        self.messages.append(Message(level=level, title=title, text=text))
        log = logger.warning if level is not MessageLevel.INFO else logger.info
        log(f"{title}: {text}")

    def to_dict(self) -> Dict[str, Any]:
        session = self.sessions.session
        return {
            "session": session.to_dict() if session else None,
            "join_code": self.sessions.join_code,
            "draw": self.state.to_dict() if self.state else None,
            "reel": self.reel.to_dict(),
            "sync": {
                "running": self.synchronizer.running,
                "last_error": str(self.synchronizer.last_error) if self.synchronizer.last_error else None,
            },
            "messages": [m.to_dict() for m in self.messages],
        }
