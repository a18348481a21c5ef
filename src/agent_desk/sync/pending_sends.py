from __future__ import annotations

from collections import OrderedDict
from uuid import uuid4

from agent_desk.models import Message


class PendingSends:
    """Optimistic user messages awaiting their echo, keyed by client token."""

    def __init__(self, *, max_entries: int = 256) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: OrderedDict[str, Message] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def register(self, message: Message) -> str:
        token = uuid4().hex
        self._entries[token] = message
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
        return token

    def claim(self, token: str) -> Message | None:
        return self._entries.pop(token, None)

    def discard(self, token: str) -> None:
        self._entries.pop(token, None)

    def clear(self) -> None:
        self._entries.clear()
