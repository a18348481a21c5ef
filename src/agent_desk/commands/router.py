from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_sessions: Callable[[], Awaitable[None]],
        on_new: Callable[[], Awaitable[None]],
        on_select: Callable[[str], Awaitable[None]],
        on_delete: Callable[[str], Awaitable[None]],
        on_desktop: Callable[[], Awaitable[None]],
        on_refresh: Callable[[], Awaitable[None]],
        on_screenshot: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_sessions = on_sessions
        self._on_new = on_new
        self._on_select = on_select
        self._on_delete = on_delete
        self._on_desktop = on_desktop
        self._on_refresh = on_refresh
        self._on_screenshot = on_screenshot
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command, _, argument = trimmed.partition(" ")
        argument = argument.strip()

        if command == "/help":
            await self._on_help()
            return True
        if command == "/sessions":
            await self._on_sessions()
            return True
        if command == "/new":
            await self._on_new()
            return True
        if command == "/select":
            await self._on_select(argument)
            return True
        if command == "/delete":
            await self._on_delete(argument)
            return True
        if command == "/desktop":
            await self._on_desktop()
            return True
        if command == "/refresh":
            await self._on_refresh()
            return True
        if command == "/screenshot":
            await self._on_screenshot(argument)
            return True

        self._on_unknown(trimmed)
        return True
