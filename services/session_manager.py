"""Ownership of the active draw session.

The session id is remembered in local storage so a reload resumes the same
draw. Every remote failure is returned as a :class:`RemoteResult`; nothing
here raises past the manager, and retrying is left to the caller.
"""

from __future__ import annotations

import secrets
from typing import Optional

import aiosqlite

from core import SessionDefaults, Tables, get_logger
from core.exceptions import NotFoundError, ValidationError
from database.local_storage import LocalStorage
from database.models import Session, SessionCode
from database.remote import RemoteResult, RemoteStore
from services.observable import Observable

logger = get_logger(__name__)


def generate_join_code(length: int = SessionDefaults.JOIN_CODE_LENGTH) -> str:
    """Random short code participants type to join a session."""
    alphabet = SessionDefaults.JOIN_CODE_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_join_code(code: str, length: int = SessionDefaults.JOIN_CODE_LENGTH) -> str:
    """Upper-case and strip a typed code, rejecting impossible values.

    Raises:
        ValidationError: If the code has the wrong length or characters
    """
    cleaned = "".join(code.split()).replace("-", "").upper()
    if len(cleaned) != length:
        raise ValidationError(f"Join code must be {length} characters")
    invalid = set(cleaned) - set(SessionDefaults.JOIN_CODE_ALPHABET)
    if invalid:
        raise ValidationError(f"Join code contains invalid characters: {''.join(sorted(invalid))}")
    return cleaned


class SessionManager:
    """Creates, resumes and switches the client's active session."""

    def __init__(
        self,
        store: RemoteStore,
        storage: LocalStorage,
        storage_key: str = SessionDefaults.STORAGE_KEY,
        join_code_length: int = SessionDefaults.JOIN_CODE_LENGTH,
    ) -> None:
        self.store = store
        self.storage = storage
        self.storage_key = storage_key
        self.join_code_length = join_code_length
        self.session: Optional[Session] = None
        self.join_code: Optional[str] = None
        self.on_change = Observable("session")

    @property
    def session_id(self) -> Optional[str]:
        return self.session.id if self.session else None

    async def resume(self) -> RemoteResult[Session]:
        """Reactivate the persisted session, or create a new one.

        A stored id the store no longer knows (or that was deactivated) is
        discarded before falling through to :meth:`create`. A connectivity
        failure keeps the id so a later retry can still resume it.
        """
        stored_id = await self._read_persisted_id()
        if stored_id:
            result = await self.fetch_session(stored_id)
            if result.ok:
                await self._activate(result.data, persist=False)
                logger.info(f"Resumed session {stored_id}")
                return result
            if not isinstance(result.error, NotFoundError):
                logger.warning(f"Could not resume session {stored_id}: {result.error}")
                return result
            logger.info(f"Stored session {stored_id} is gone, starting a new one")
            await self._forget_persisted_id()
        return await self.create()

    async def create(self, name: Optional[str] = None) -> RemoteResult[Session]:
        """Create a session record, persist its id and make it active."""
        payload = {"is_active": True}
        if name:
            payload["name"] = name
        result = await self.store.from_(Tables.SESSIONS).insert(payload).select().single()
        if not result.ok:
            logger.error(f"Error creating session: {result.error}")
            return result

        session = Session.from_row(result.data)
        # Without a code the session still works; only join-by-code degrades
        join_code = await self._create_join_code(session.id)
        await self._activate(session, persist=True, join_code=join_code)
        logger.info(f"Created session {session.id} (join code: {join_code or 'none'})")
        return RemoteResult(data=session)

    async def start_new_session(self, name: Optional[str] = None) -> RemoteResult[Session]:
        """Forget the current session and create a fresh one."""
        await self._forget_persisted_id()
        return await self.create(name)

    async def switch_to(self, target_id: str) -> bool:
        """Make ``target_id`` the active session.

        Returns:
            True on success; on failure the previous session stays active
        """
        result = await self.fetch_session(target_id)
        if not result.ok:
            logger.warning(f"Cannot switch to session {target_id}: {result.error}")
            return False
        await self._activate(result.data, persist=True)
        logger.info(f"Switched to session {target_id}")
        return True

    async def switch_to_code(self, code: str) -> bool:
        """Switch to the session a typed join code points at."""
        try:
            normalized = normalize_join_code(code, self.join_code_length)
        except ValidationError as e:
            logger.info(f"Rejected join code {code!r}: {e}")
            return False
        resolved = await self.resolve_join_code(normalized)
        if not resolved.ok:
            return False
        return await self.switch_to(resolved.data)

    async def resolve_join_code(self, code: str) -> RemoteResult[str]:
        result = await (
            self.store.from_(Tables.SESSION_CODES).select().eq("short_code", code).single()
        )
        if not result.ok:
            return RemoteResult.failure(result.error)
        return RemoteResult(data=SessionCode.from_row(result.data).session_id)

    async def fetch_session(self, session_id: str) -> RemoteResult[Session]:
        result = await self.store.from_(Tables.SESSIONS).select().eq("id", session_id).single()
        if not result.ok:
            return RemoteResult.failure(result.error)
        session = Session.from_row(result.data)
        if not session.is_active:
            return RemoteResult.failure(NotFoundError(f"Session {session_id} is no longer active"))
        return RemoteResult(data=session)

    async def _activate(
        self,
        session: Session,
        persist: bool,
        join_code: Optional[str] = None,
    ) -> None:
        if persist:
            await self._persist_id(session.id)
        if join_code is None:
            join_code = await self._load_join_code(session.id)
        self.session = session
        self.join_code = join_code
        await self.on_change.emit(session)

    async def _create_join_code(self, session_id: str) -> Optional[str]:
        code = generate_join_code(self.join_code_length)
        result = await self.store.from_(Tables.SESSION_CODES).insert(
            {"session_id": session_id, "short_code": code}
        )
        if not result.ok:
            logger.warning(f"Session {session_id} created without join code: {result.error}")
            return None
        return code

    async def _load_join_code(self, session_id: str) -> Optional[str]:
        result = await (
            self.store.from_(Tables.SESSION_CODES)
            .select()
            .eq("session_id", session_id)
            .order("created_at", ascending=False)
            .limit(1)
        )
        if not result.ok or not result.data:
            return None
        return SessionCode.from_row(result.data[0]).short_code

    async def _read_persisted_id(self) -> Optional[str]:
        try:
            return await self.storage.get_item(self.storage_key)
        except aiosqlite.Error as e:
            logger.error(f"Failed to read persisted session id: {e}")
            return None

    async def _persist_id(self, session_id: str) -> None:
        try:
            await self.storage.set_item(self.storage_key, session_id)
        except aiosqlite.Error as e:
            logger.error(f"Failed to persist session id {session_id}: {e}")

    async def _forget_persisted_id(self) -> None:
        try:
            await self.storage.remove_item(self.storage_key)
        except aiosqlite.Error as e:
            logger.error(f"Failed to clear persisted session id: {e}")
