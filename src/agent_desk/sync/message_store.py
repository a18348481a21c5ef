from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from loguru import logger

from agent_desk.models import Message


class StoreState(StrEnum):
    EMPTY = "empty"
    LOADING = "loading"
    POPULATED = "populated"


StoreListener = Callable[[str, Message | None], None]


class MessageStore:
    """Ordered chat log of the session currently on display.

    Not a multi-session cache: loading another session discards whatever was
    held before. Appends that land while history is still loading are held
    back and replayed after it, so history always precedes live traffic.
    """

    def __init__(self) -> None:
        self._session_id: str | None = None
        self._state = StoreState.EMPTY
        self._messages: list[Message] = []
        self._held: list[Message] = []
        self._listeners: list[StoreListener] = []

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages) + tuple(self._held)

    def __len__(self) -> int:
        return len(self._messages) + len(self._held)

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def begin_loading(self, session_id: str) -> None:
        self._session_id = session_id
        self._state = StoreState.LOADING
        self._messages = []
        self._held = []
        self._notify("reset", None)

    def fail_loading(self, session_id: str) -> None:
        if self._session_id != session_id:
            return
        self._state = StoreState.EMPTY
        self._messages = []
        self._held = []
        self._notify("reset", None)

    def replace(self, session_id: str, messages: list[Message]) -> None:
        held = self._held if self._session_id == session_id else []
        self._session_id = session_id
        self._messages = list(messages) + held
        self._held = []
        self._state = StoreState.POPULATED
        logger.debug(f"Loaded {len(messages)} messages for session {session_id} ({len(held)} held back)")
        self._notify("replace", None)

    def append(self, message: Message) -> bool:
        if self._session_id is None or message.session_id != self._session_id:
            logger.warning(
                f"Refusing message for session {message.session_id}; store is bound to {self._session_id}"
            )
            return False
        if self._state is StoreState.LOADING:
            self._held.append(message)
        else:
            self._messages.append(message)
            self._state = StoreState.POPULATED
        self._notify("append", message)
        return True

    def remove_by_identity(self, message: Message) -> bool:
        for bucket in (self._messages, self._held):
            for index, existing in enumerate(bucket):
                if existing is message:
                    del bucket[index]
                    self._notify("remove", message)
                    return True
        return False

    def clear(self) -> None:
        self._session_id = None
        self._state = StoreState.EMPTY
        self._messages = []
        self._held = []
        self._notify("reset", None)

    def _notify(self, kind: str, message: Message | None) -> None:
        for listener in self._listeners:
            listener(kind, message)
