from __future__ import annotations

from typing import Protocol

from loguru import logger

from agent_desk.errors import LoadFailure
from agent_desk.models import Message, Session
from agent_desk.notifications import Notifier, error_notice
from agent_desk.sync.live_updates import LiveUpdateSubscriber
from agent_desk.sync.message_store import MessageStore
from agent_desk.sync.pending_sends import PendingSends
from agent_desk.sync.send_coordinator import SendCoordinator


class HistorySource(Protocol):
    async def list_messages(self, session_id: str) -> list[Message]: ...


class ChatPanel:
    """Keeps the message store and live subscription in step with the active session."""

    def __init__(
        self,
        *,
        history: HistorySource,
        store: MessageStore,
        subscriber: LiveUpdateSubscriber,
        coordinator: SendCoordinator,
        notifier: Notifier,
        pending: PendingSends | None = None,
    ) -> None:
        self._history = history
        self._store = store
        self._subscriber = subscriber
        self._coordinator = coordinator
        self._notifier = notifier
        self._pending = pending
        self._session: Session | None = None
        self._activation = 0
        self.draft = ""

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def store(self) -> MessageStore:
        return self._store

    async def activate(self, session: Session | None) -> None:
        """Bind the panel to ``session``, or to nothing when it is None.

        Each call takes a new activation number. Work that finishes after a
        later activation started, even one for the same session, is dropped.
        """
        self._activation += 1
        activation = self._activation
        self._session = session
        await self._subscriber.close()
        if not self._is_current(activation):
            # A newer activation ran while the old subscription was closing.
            return
        if self._pending is not None:
            self._pending.clear()

        if session is None:
            self._store.clear()
            return

        session_id = session.id
        self._store.begin_loading(session_id)
        # Subscribe before fetching history; events that arrive meanwhile are
        # held by the store and land after the history.
        await self._subscriber.open(session_id)

        try:
            messages = await self._history.list_messages(session_id)
        except LoadFailure as ex:
            if not self._is_current(activation):
                return
            logger.warning(f"Could not load messages for session {session_id}: {ex}")
            self._store.fail_loading(session_id)
            self._notifier.notify(error_notice("Failed to load messages", ex))
            return

        if not self._is_current(activation):
            logger.debug(f"Discarding stale history for session {session_id}")
            return
        self._store.replace(session_id, messages)

    async def submit(self, text: str | None = None) -> bool:
        content = self.draft if text is None else text
        self.draft = ""
        if self._session is None:
            return False
        return await self._coordinator.send(self._session.id, content)

    async def shutdown(self) -> None:
        await self._subscriber.close()

    def _is_current(self, activation: int) -> bool:
        return activation == self._activation
