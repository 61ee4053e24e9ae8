"""Services package."""

from .observable import Observable
from .session_manager import SessionManager, generate_join_code, normalize_join_code
from .participant_sync import ParticipantSynchronizer
from .draw_engine import DrawEngine
from .reel_animator import ReelAnimator, cubic_bezier
from .notification_service import WinnerNotifier
from .raffle import Message, RaffleController

__all__ = [
    "Observable",
    "SessionManager",
    "generate_join_code",
    "normalize_join_code",
    "ParticipantSynchronizer",
    "DrawEngine",
    "ReelAnimator",
    "cubic_bezier",
    "WinnerNotifier",
    "Message",
    "RaffleController",
]
