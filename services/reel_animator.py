"""Reel reveal state machine.

The reel never chooses anything: it is handed a winner that the draw engine
already picked and only decides how to scroll a long list of names so the
motion ends exactly on that winner.

States::

    IDLE --spin()--> SPINNING --(transition starts)--> SETTLING
    SETTLING --finish_transition()--> LANDED --next_round()--> IDLE
    SPINNING/SETTLING --cancel()--> IDLE

Offsets are in pixels from the top of the track; item ``i`` sits at
``i * item_height``.
"""

from __future__ import annotations

import asyncio
import secrets
from contextlib import suppress
from random import Random
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core import ReelDefaults, ReelState, get_logger
from core.exceptions import ReelStateError
from database.models import Participant
from services.observable import Observable

logger = get_logger(__name__)


def cubic_bezier(x1: float, y1: float, x2: float, y2: float) -> Callable[[float], float]:
    """Timing function equivalent to CSS ``cubic-bezier(x1, y1, x2, y2)``."""
    cx = 3.0 * x1
    bx = 3.0 * (x2 - x1) - cx
    ax = 1.0 - cx - bx
    cy = 3.0 * y1
    by = 3.0 * (y2 - y1) - cy
    ay = 1.0 - cy - by

    def sample_x(t: float) -> float:
        return ((ax * t + bx) * t + cx) * t

    def sample_y(t: float) -> float:
        return ((ay * t + by) * t + cy) * t

    def slope_x(t: float) -> float:
        return (3.0 * ax * t + 2.0 * bx) * t + cx

    def solve_t(x: float) -> float:
        t = x
        for _ in range(8):
            error = sample_x(t) - x
            if abs(error) < 1e-7:
                return t
            slope = slope_x(t)
            if abs(slope) < 1e-6:
                break
            t -= error / slope
        # Newton stalled; bisect
        lo, hi = 0.0, 1.0
        t = x
        while hi - lo > 1e-7:
            if sample_x(t) < x:
                lo = t
            else:
                hi = t
            t = (lo + hi) / 2.0
        return t

    def ease(progress: float) -> float:
        if progress <= 0.0:
            return 0.0
        if progress >= 1.0:
            return 1.0
        return sample_y(solve_t(progress))

    return ease


class ReelAnimator:
    """Drives a scrolling track of names to a stop on a pre-selected winner."""

    def __init__(
        self,
        repetitions: int = ReelDefaults.REPETITIONS,
        item_height: int = ReelDefaults.ITEM_HEIGHT,
        duration: float = ReelDefaults.DURATION,
        easing: Tuple[float, float, float, float] = ReelDefaults.EASING,
        rng: Optional[Random] = None,
    ) -> None:
        if repetitions < 2:
            raise ValueError("repetitions must be at least 2 to land past the midpoint")
        self.repetitions = repetitions
        self.item_height = item_height
        self.duration = duration
        self.easing = easing
        self._ease = cubic_bezier(*easing)
        self._rng = rng or secrets.SystemRandom()

        self.state = ReelState.IDLE
        self.track: List[Participant] = []
        self.offset: float = 0.0
        self.target_index: Optional[int] = None
        self.target_offset: float = 0.0
        self.winner: Optional[Participant] = None
        self.on_landed = Observable("reel.landed")

        self._pending: Optional[Participant] = None
        self._started_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_busy(self) -> bool:
        return self.state in (ReelState.SPINNING, ReelState.SETTLING)

    def build_track(self, pool: Sequence[Participant]) -> List[Participant]:
        """Shuffle ``pool`` once and tile it; the current head stays on top."""
        shuffled = list(pool)
        self._rng.shuffle(shuffled)
        head = self.track[:1]
        return head + shuffled * self.repetitions

    @staticmethod
    def landing_index(track: Sequence[Participant], winner: Participant) -> int:
        """First position of ``winner`` in the second half of ``track``."""
        midpoint = len(track) / 2
        for index, participant in enumerate(track):
            if index >= midpoint and participant.id == winner.id:
                return index
        raise ReelStateError(f"Winner {winner.id} does not appear past the middle of the track")

    def spin(self, pool: Sequence[Participant], winner: Participant) -> None:
        """Start revealing ``winner`` drawn from ``pool``.

        Raises:
            ReelStateError: If a reveal is already running or ``winner``
                is not in ``pool``
        """
        if self.state is not ReelState.IDLE:
            raise ReelStateError(f"Cannot spin while {self.state.value}")
        if not any(p.id == winner.id for p in pool):
            raise ReelStateError(f"Winner {winner.id} is not part of the pool being spun")

        track = self.build_track(pool)
        index = self.landing_index(track, winner)

        self.state = ReelState.SPINNING
        self.track = track
        self.offset = 0.0
        self.target_index = index
        self.target_offset = float(index * self.item_height)
        self.winner = None
        self._pending = winner
        logger.debug(f"Reel spinning over {len(track)} items, landing at index {index}")
        self._begin_transition()

    def _begin_transition(self) -> None:
        loop = asyncio.get_running_loop()
        self.state = ReelState.SETTLING
        self._started_at = loop.time()
        self._task = loop.create_task(self._settle_after(self.duration), name="reel-transition")

    async def _settle_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.finish_transition()

    async def finish_transition(self) -> bool:
        """Handle the end of the scroll transition.

        Returns:
            False if no transition was running (stray or late event)
        """
        if self.state is not ReelState.SETTLING or self._pending is None:
            return False
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        self.offset = self.target_offset
        landed = self.displayed_item()
        winner = self._pending
        if landed is None or landed.id != winner.id:
            raise ReelStateError(f"Reel stopped on {landed.id if landed else None}, expected {winner.id}")

        self.state = ReelState.LANDED
        self.winner = winner
        self._pending = None
        self._started_at = None
        self._rebase()
        logger.info(f"Reel landed on {winner.display_name}")
        await self.on_landed.emit(winner)
        return True

    def _rebase(self) -> None:
        """Move the winner to the head of the track and jump to offset 0.

        The item under the window does not change, so nothing visibly moves.
        """
        index = self.target_index
        if index is None:
            return
        winner = self.track[index]
        self.track = [winner] + [p for i, p in enumerate(self.track) if i != index]
        self.offset = 0.0
        self.target_index = 0
        self.target_offset = 0.0

    def next_round(self) -> None:
        if self.state is not ReelState.LANDED:
            raise ReelStateError(f"next_round called while {self.state.value}")
        self.winner = None
        self.state = ReelState.IDLE

    def cancel(self) -> bool:
        """Abandon an in-flight reveal without any landing notification."""
        if not self.is_busy:
            return False
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self.state = ReelState.IDLE
        self._pending = None
        self._started_at = None
        self.offset = 0.0
        self.target_index = None
        self.target_offset = 0.0
        logger.info("Reel reveal cancelled")
        return True

    def clear(self) -> None:
        """Cancel and forget the track, e.g. when the session changes."""
        self.cancel()
        self.state = ReelState.IDLE
        self.track = []
        self.winner = None
        self.target_index = None

    async def settled(self) -> Optional[Participant]:
        """Wait for the running transition, returning the landed winner."""
        task = self._task
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task
        return self.winner

    def progress(self, now: Optional[float] = None) -> float:
        if self.state is not ReelState.SETTLING or self._started_at is None:
            return 1.0 if self.state is ReelState.LANDED else 0.0
        if self.duration <= 0:
            return 1.0
        if now is None:
            now = asyncio.get_running_loop().time()
        return min(max((now - self._started_at) / self.duration, 0.0), 1.0)

    def offset_at(self, now: Optional[float] = None) -> float:
        """Current scroll offset, following the easing curve while settling."""
        if self.state is not ReelState.SETTLING:
            return self.offset
        return self.target_offset * self._ease(self.progress(now))

    def displayed_item(self, offset: Optional[float] = None) -> Optional[Participant]:
        if not self.track:
            return None
        if offset is None:
            offset = self.offset
        index = int(round(offset / self.item_height))
        index = min(max(index, 0), len(self.track) - 1)
        return self.track[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "track": [p.display_name for p in self.track],
            "item_height": self.item_height,
            "duration": self.duration,
            "easing": list(self.easing),
            "offset": self.offset_at(),
            "progress": self.progress(),
            # Target and winner stay hidden until landed so the result cannot leak early
            "winner": self.winner.to_dict() if self.winner else None,
        }
