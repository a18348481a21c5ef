from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from agent_desk.models import DesktopStatus, Message, Role, Session


@dataclass(frozen=True)
class RoleStyle:
    icon: str
    badge: str
    label: str


ROLE_STYLES: dict[Role, RoleStyle] = {
    Role.USER: RoleStyle(icon="user", badge="default", label="User"),
    Role.ASSISTANT: RoleStyle(icon="bot", badge="secondary", label="Assistant"),
    Role.TOOL: RoleStyle(icon="settings", badge="outline", label="Tool"),
}


def role_style(role: Role) -> RoleStyle:
    return ROLE_STYLES[role]


def _local_time(timestamp: str) -> str:
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.astimezone().strftime("%H:%M:%S")


def _local_date(timestamp: str) -> str:
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.astimezone().strftime("%Y-%m-%d")


class Presenter:
    def __init__(self, *, line_prefix: str = "") -> None:
        self._line_prefix = line_prefix

    def format_message(self, message: Message) -> str:
        style = role_style(message.role)
        return f"{self._line_prefix}[{style.label} {_local_time(message.timestamp)}] {message.content}"

    def format_session_entry(self, session: Session, *, index: int, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        created = _local_date(session.created_at) if session.created_at else "-"
        return f"{self._line_prefix}{marker} {index}. {session.label} (id={session.id}, created={created})"

    def format_session_list(self, sessions: tuple[Session, ...], *, active_session_id: str | None) -> list[str]:
        if not sessions:
            return [f"{self._line_prefix}No sessions yet. Create your first session with /new"]
        return [
            self.format_session_entry(s, index=i, active_session_id=active_session_id)
            for i, s in enumerate(sessions, start=1)
        ]

    def format_chat_header(self, session: Session | None) -> str:
        if session is None:
            return f"{self._line_prefix}No session selected. Choose a session to start chatting"
        return f"{self._line_prefix}Session: {session.label}"

    def format_desktop_status(self, status: DesktopStatus | None, *, last_updated: datetime) -> str:
        if status is None or not status.running:
            return f"{self._line_prefix}Desktop: Disconnected (the desktop viewer is currently offline)"
        return (
            f"{self._line_prefix}Desktop: Connected {status.host}:{status.port} | Display {status.display} | "
            f"Last updated: {last_updated.strftime('%H:%M:%S')}"
        )
