from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from loguru import logger

from agent_desk.errors import LoadFailure, MutationFailure
from agent_desk.models import Session
from agent_desk.notifications import Notifier, error_notice, success_notice

SelectionObserver = Callable[[Session | None], Awaitable[None]]


class SessionBackend(Protocol):
    async def create_session(self) -> Session: ...

    async def list_sessions(self) -> list[Session]: ...

    async def delete_session(self, session_id: str) -> None: ...


class SessionRegistry:
    def __init__(self, *, backend: SessionBackend, notifier: Notifier) -> None:
        self._backend = backend
        self._notifier = notifier
        self._sessions: list[Session] = []
        self._active: Session | None = None
        self._observers: list[SelectionObserver] = []
        self._loading = False

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._sessions)

    @property
    def active(self) -> Session | None:
        return self._active

    @property
    def loading(self) -> bool:
        return self._loading

    def add_observer(self, observer: SelectionObserver) -> None:
        self._observers.append(observer)

    async def load(self) -> list[Session]:
        self._loading = True
        try:
            sessions = await self._backend.list_sessions()
        except LoadFailure as ex:
            logger.warning(f"Could not load sessions: {ex}")
            self._notifier.notify(error_notice("Failed to load sessions", ex))
            return list(self._sessions)
        finally:
            self._loading = False
        self._sessions = list(sessions)
        logger.info(f"Loaded {len(self._sessions)} sessions")
        return list(self._sessions)

    async def create(self) -> Session | None:
        try:
            session = await self._backend.create_session()
        except MutationFailure as ex:
            logger.warning(f"Could not create session: {ex}")
            self._notifier.notify(error_notice("Failed to create session", ex))
            return None
        self._sessions.insert(0, session)
        await self.select(session)
        self._notifier.notify(success_notice("New session created"))
        return session

    async def delete(self, session_id: str) -> bool:
        try:
            await self._backend.delete_session(session_id)
        except MutationFailure as ex:
            logger.warning(f"Could not delete session {session_id}: {ex}")
            self._notifier.notify(error_notice("Failed to delete session", ex))
            return False

        self._sessions = [s for s in self._sessions if s.id != session_id]
        if self._active is not None and self._active.id == session_id:
            await self.select(self._sessions[0] if self._sessions else None)
        self._notifier.notify(success_notice("Session deleted"))
        return True

    async def select(self, session: Session | None) -> None:
        # The active reference changes before any observer runs, so loads
        # still in flight for the previous session see they are stale.
        self._active = session
        logger.debug(f"Active session: {session.id if session else None}")
        for observer in self._observers:
            await observer(session)

    def find(self, identifier: str) -> Session | None:
        """Resolve a session by exact id, id prefix or suffix, or display name.

        Raises ValueError when a partial identifier matches more than one session.
        """
        needle = identifier.strip()
        if not needle:
            return None
        for session in self._sessions:
            if session.id == needle:
                return session

        folded = needle.casefold()
        matches = [
            s
            for s in self._sessions
            if s.id.startswith(needle) or s.id.endswith(needle) or (s.name or "").casefold() == folded
        ]
        if len(matches) > 1:
            raise ValueError(f"Ambiguous session identifier: {identifier}")
        return matches[0] if matches else None
