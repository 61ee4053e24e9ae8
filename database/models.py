"""Records exchanged with the remote store and the local draw state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    name: Optional[str]
    is_active: bool
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Session":
        return cls(
            id=str(row["id"]),
            name=row.get("name"),
            is_active=bool(row.get("is_active", True)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    session_id: str
    name: str
    last_name: str
    display_name: str
    email: Optional[str]
    won: bool
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Participant":
        name = row.get("name") or ""
        last_name = row.get("last_name") or ""
        display_name = row.get("display_name") or _default_display_name(name, last_name)
        return cls(
            id=str(row["id"]),
            session_id=str(row["session_id"]),
            name=name,
            last_name=last_name,
            display_name=display_name,
            email=row.get("email") or None,
            won=bool(row.get("won", False)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "name": self.name,
            "last_name": self.last_name,
            "display_name": self.display_name,
            "email": self.email,
            "won": self.won,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def webhook_payload(self) -> Dict[str, Any]:
        """Body posted to the winner webhook."""
        return {"name": self.name, "last_name": self.last_name, "email": self.email}


@dataclass(frozen=True, slots=True)
class SessionCode:
    session_id: str
    short_code: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SessionCode":
        return cls(session_id=str(row["session_id"]), short_code=str(row["short_code"]))


@dataclass(frozen=True, slots=True)
class PoolSnapshot:
    """Participants of one session as last seen remotely."""

    session_id: str
    all_pool: Tuple[Participant, ...]
    available_pool: Tuple[Participant, ...]

    @classmethod
    def from_participants(cls, session_id: str, participants: List[Participant]) -> "PoolSnapshot":
        all_pool = tuple(participants)
        return cls(
            session_id=session_id,
            all_pool=all_pool,
            available_pool=tuple(p for p in all_pool if not p.won),
        )


@dataclass(slots=True)
class DrawState:
    """Local, ephemeral state of the draw for one session.

    Recreated from scratch whenever the active session changes.
    """

    session_id: str
    all_pool: List[Participant] = field(default_factory=list)
    available_pool: List[Participant] = field(default_factory=list)
    winner: Optional[Participant] = None
    round_complete: bool = False

    def apply_snapshot(self, snapshot: PoolSnapshot) -> None:
        self.all_pool = list(snapshot.all_pool)
        self.available_pool = list(snapshot.available_pool)

    def repopulate(self) -> None:
        """Make every participant available again with ``won`` cleared."""
        self.all_pool = [replace(p, won=False) if p.won else p for p in self.all_pool]
        self.available_pool = list(self.all_pool)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total": len(self.all_pool),
            "available": len(self.available_pool),
            "available_pool": [p.to_dict() for p in self.available_pool],
            "winner": self.winner.to_dict() if self.winner else None,
            "round_complete": self.round_complete,
        }


def _default_display_name(name: str, last_name: str) -> str:
    if last_name:
        return f"{name} {last_name[0]}."
    return name
