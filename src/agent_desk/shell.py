from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from agent_desk.bootstrap import AppRuntime
from agent_desk.commands.router import CommandRouter
from agent_desk.errors import LoadFailure
from agent_desk.models import Message, Session
from agent_desk.services.presentation import Presenter
from agent_desk.sync import StoreState


class DeskShell:
    _LINE_PREFIX = "desk> "
    _USER_PROMPT = "you> "

    def __init__(self, runtime: AppRuntime) -> None:
        self._runtime = runtime
        self._presenter = Presenter(line_prefix=self._LINE_PREFIX)
        self._router = CommandRouter(
            on_help=self._on_help,
            on_sessions=self._on_sessions,
            on_new=self._on_new,
            on_select=self._on_select,
            on_delete=self._on_delete,
            on_desktop=self._on_desktop,
            on_refresh=self._on_refresh,
            on_screenshot=self._on_screenshot,
            on_unknown=self._on_unknown,
        )
        runtime.panel.store.add_listener(self._on_store_change)

    async def handle_line(self, line: str) -> None:
        if await self._router.try_handle(line):
            return
        if self._runtime.panel.session is None:
            print(self._presenter.format_chat_header(None))
            return
        await self._runtime.panel.submit(line)

    async def run(self) -> None:
        while True:
            try:
                line = await asyncio.to_thread(input, self._USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = line.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                await self.handle_line(trimmed)
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")

    def _on_store_change(self, kind: str, message: Message | None) -> None:
        store = self._runtime.panel.store
        if kind == "append" and message is not None:
            # Held while history loads; printed with the history on replace.
            if store.state is StoreState.LOADING:
                return
            print(self._presenter.format_message(message), flush=True)
        elif kind == "replace":
            messages = store.messages
            if not messages:
                print(f"{self._LINE_PREFIX}No messages yet. Start the conversation!")
            for existing in messages:
                print(self._presenter.format_message(existing))
        elif kind == "remove" and message is not None:
            print(f"{self._LINE_PREFIX}(withdrawn) {message.content}")

    async def _on_help(self) -> None:
        print(f"{self._LINE_PREFIX}Commands:")
        print(f"{self._LINE_PREFIX}  /sessions            list sessions (* marks the active one)")
        print(f"{self._LINE_PREFIX}  /new                 create a session and switch to it")
        print(f"{self._LINE_PREFIX}  /select <id|n>       switch to a session by id, number or name")
        print(f"{self._LINE_PREFIX}  /delete <id|n>       delete a session")
        print(f"{self._LINE_PREFIX}  /desktop             show remote desktop status")
        print(f"{self._LINE_PREFIX}  /refresh             refresh the screenshot reference now")
        print(f"{self._LINE_PREFIX}  /screenshot <path>   save the current screenshot to a file")
        print(f"{self._LINE_PREFIX}  exit | quit          leave")
        print(f"{self._LINE_PREFIX}Anything else is sent to the active session.")

    async def _on_sessions(self) -> None:
        registry = self._runtime.registry
        active = registry.active
        for line in self._presenter.format_session_list(
            registry.sessions, active_session_id=active.id if active else None
        ):
            print(line)

    async def _on_new(self) -> None:
        session = await self._runtime.registry.create()
        if session is not None:
            print(self._presenter.format_chat_header(session))

    async def _on_select(self, argument: str) -> None:
        session = self._resolve(argument)
        if session is None:
            return
        await self._runtime.registry.select(session)
        print(self._presenter.format_chat_header(session))

    async def _on_delete(self, argument: str) -> None:
        session = self._resolve(argument)
        if session is None:
            return
        if await self._runtime.registry.delete(session.id):
            print(self._presenter.format_chat_header(self._runtime.registry.active))

    async def _on_desktop(self) -> None:
        poller = self._runtime.poller
        print(self._presenter.format_desktop_status(poller.status, last_updated=poller.last_updated))
        if poller.status is not None and poller.status.running:
            print(f"{self._LINE_PREFIX}Screenshot: {poller.screenshot_url}")

    async def _on_refresh(self) -> None:
        url = self._runtime.poller.refresh()
        print(f"{self._LINE_PREFIX}Screenshot: {url}")

    async def _on_screenshot(self, argument: str) -> None:
        if not argument:
            print(f"{self._LINE_PREFIX}Usage: /screenshot <path>")
            return
        try:
            image = await self._runtime.poller.fetch_screenshot()
        except LoadFailure as ex:
            print(f"{self._LINE_PREFIX}Screenshot failed to load: {ex}")
            return
        target = Path(argument).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image)
        print(f"{self._LINE_PREFIX}Saved {len(image)} bytes to {target}")

    def _on_unknown(self, command: str) -> None:
        print(f"{self._LINE_PREFIX}Unknown command: {command} (try /help)")

    def _resolve(self, argument: str) -> Session | None:
        registry = self._runtime.registry
        if not argument:
            print(f"{self._LINE_PREFIX}A session id, number or name is required")
            return None
        if argument.isdigit():
            index = int(argument) - 1
            if 0 <= index < len(registry.sessions):
                return registry.sessions[index]
        try:
            session = registry.find(argument)
        except ValueError as ex:
            print(f"{self._LINE_PREFIX}{ex}")
            return None
        if session is None:
            print(f"{self._LINE_PREFIX}Session not found: {argument}")
        return session
