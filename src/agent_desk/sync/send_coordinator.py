from __future__ import annotations

from typing import Protocol

from loguru import logger

from agent_desk.errors import MutationFailure
from agent_desk.models import Message, Role, utc_now
from agent_desk.notifications import Notifier, error_notice
from agent_desk.sync.message_store import MessageStore
from agent_desk.sync.pending_sends import PendingSends


class ChatSender(Protocol):
    async def send_message(self, session_id: str, content: str, *, client_token: str | None = None) -> None: ...


class SendCoordinator:
    def __init__(
        self,
        *,
        sender: ChatSender,
        store: MessageStore,
        notifier: Notifier,
        pending: PendingSends | None = None,
    ) -> None:
        self._sender = sender
        self._store = store
        self._notifier = notifier
        self._pending = pending
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def send(self, session_id: str, content: str) -> bool:
        """Optimistically append and forward a user message.

        Returns False without touching the store when the content is blank or
        another send from this coordinator is still in flight, and after
        rolling back a send the server rejected.
        """
        text = content.strip()
        if not text or self._busy:
            return False

        self._busy = True
        try:
            message = Message(role=Role.USER, content=text, timestamp=utc_now(), session_id=session_id)
            token = self._pending.register(message) if self._pending is not None else None
            self._store.append(message)
            try:
                await self._sender.send_message(session_id, text, client_token=token)
            except MutationFailure as ex:
                logger.warning(f"Send to session {session_id} failed, rolling back: {ex}")
                if token is not None and self._pending is not None:
                    self._pending.discard(token)
                self._store.remove_by_identity(message)
                self._notifier.notify(error_notice("Failed to send message", ex))
                return False
            return True
        finally:
            self._busy = False
