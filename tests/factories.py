"""Builders for test records."""

from typing import Optional

from database.models import Participant


def make_participant(pid: str, name: Optional[str] = None, session_id: str = "session-1", won: bool = False) -> Participant:
    name = name or pid.upper()
    return Participant(
        id=pid,
        session_id=session_id,
        name=name,
        last_name="Tester",
        display_name=f"{name} T.",
        email=None,
        won=won,
        created_at=None,
        updated_at=None,
    )
