from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class Session:
    id: str
    created_at: str = ""
    updated_at: str = ""
    name: str | None = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        return f"Session {self.id[-8:]}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            id=str(data["id"]),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
            name=data.get("name") or None,
        )


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    timestamp: str
    session_id: str
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, session_id: str) -> Message:
        """Build a history entry; the owning session comes from the request, not the row."""
        message_id = data.get("id")
        return cls(
            role=Role(data["role"]),
            content=str(data.get("content", "")),
            timestamp=str(data.get("timestamp", "")),
            session_id=session_id,
            id=str(message_id) if message_id is not None else None,
        )


@dataclass(frozen=True)
class LiveEvent:
    sender: Role
    content: str
    timestamp: str
    client_token: str | None = None

    def to_message(self, session_id: str) -> Message:
        return Message(
            role=self.sender,
            content=self.content,
            timestamp=self.timestamp,
            session_id=session_id,
        )


@dataclass(frozen=True)
class DesktopStatus:
    running: bool
    host: str | None = None
    port: int | None = None
    display: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DesktopStatus:
        port = data.get("port")
        display = data.get("display")
        return cls(
            running=bool(data.get("running", False)),
            host=data.get("host") or None,
            port=int(port) if port is not None else None,
            display=str(display) if display is not None else None,
        )
