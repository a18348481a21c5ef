from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from loguru import logger

from agent_desk.errors import DeskClientError


@dataclass(frozen=True)
class Notice:
    level: str
    title: str
    description: str
    error: DeskClientError | None = None


@runtime_checkable
class Notifier(Protocol):
    def notify(self, notice: Notice) -> None: ...


def error_notice(description: str, error: DeskClientError | None = None) -> Notice:
    return Notice(level="error", title="Error", description=description, error=error)


def warning_notice(title: str, description: str, error: DeskClientError | None = None) -> Notice:
    return Notice(level="warning", title=title, description=description, error=error)


def success_notice(description: str) -> Notice:
    return Notice(level="success", title="Success", description=description)


class ConsoleNotifier:
    """Prints notices on their own line, the terminal stand-in for toast popups."""

    _MARKERS = {"error": "!", "warning": "~", "success": "+"}

    def __init__(self, *, line_prefix: str = "") -> None:
        self._line_prefix = line_prefix

    def notify(self, notice: Notice) -> None:
        marker = self._MARKERS.get(notice.level, "-")
        print(f"\n{self._line_prefix}[{marker}] {notice.title}: {notice.description}", flush=True)
        if notice.error is not None:
            logger.debug(f"Notice {notice.title!r} caused by: {notice.error}")
