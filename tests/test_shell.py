import asyncio
import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from agent_desk.bootstrap import AppRuntime
from agent_desk.chat_panel import ChatPanel
from agent_desk.models import DesktopStatus, Role
from agent_desk.notifications import ConsoleNotifier
from agent_desk.shell import DeskShell
from agent_desk.snapshot_poller import SnapshotPoller
from agent_desk.sync import LiveUpdateSubscriber, MessageStore, PendingSends, SendCoordinator, SessionRegistry
from tests.fakes import FakeDeskApi, event_json, make_message, make_session, settle


class FakeDesktop:
    async def desktop_status(self) -> DesktopStatus:
        return DesktopStatus(running=True, host="localhost", port=5901, display=":1")

    def screenshot_url(self, cache_bust: int | None = None) -> str:
        return "http://desk.test/api/vnc/screenshot?t=1"

    async def fetch_screenshot(self, url: str) -> bytes:
        return b"png-bytes"


class DeskShellTests(unittest.TestCase):
    def setUp(self) -> None:
        self.api = FakeDeskApi([make_session("aaaa-0001", "Alpha"), make_session("bbbb-0002")])
        self.api.history["bbbb-0002"] = [make_message("bbbb-0002", "from history", Role.ASSISTANT)]
        notifier = ConsoleNotifier(line_prefix="desk> ")
        store = MessageStore()
        pending = PendingSends()
        subscriber = LiveUpdateSubscriber(source=self.api, store=store, notifier=notifier, pending=pending)
        coordinator = SendCoordinator(sender=self.api, store=store, notifier=notifier, pending=pending)
        panel = ChatPanel(
            history=self.api,
            store=store,
            subscriber=subscriber,
            coordinator=coordinator,
            notifier=notifier,
            pending=pending,
        )
        registry = SessionRegistry(backend=self.api, notifier=notifier)
        registry.add_observer(panel.activate)
        self.runtime = AppRuntime(
            api=self.api,
            registry=registry,
            panel=panel,
            poller=SnapshotPoller(FakeDesktop()),
            log_descriptions=[],
        )
        self.shell = DeskShell(self.runtime)

    def _run_lines(self, *lines: str) -> str:
        async def scenario() -> None:
            await self.runtime.registry.load()
            for line in lines:
                await self.shell.handle_line(line)
            await self.runtime.panel.shutdown()

        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            asyncio.run(scenario())
        return buffer.getvalue()

    def test_sessions_lists_known_sessions(self) -> None:
        output = self._run_lines("/sessions")
        self.assertIn("1. Alpha", output)
        self.assertIn("2. Session bbb-0002 (id=bbbb-0002", output)

    def test_select_by_number_prints_header_and_history(self) -> None:
        output = self._run_lines("/select 2")
        self.assertEqual("bbbb-0002", self.runtime.registry.active.id)
        self.assertIn("from history", output)
        self.assertIn("Session: Session bbb-0002", output)

    def test_event_held_during_history_load_is_printed_once(self) -> None:
        self.api.history_gates["bbbb-0002"] = asyncio.Event()

        async def scenario() -> None:
            await self.runtime.registry.load()
            selecting = asyncio.create_task(self.shell.handle_line("/select 2"))
            await settle()
            self.api.feed("bbbb-0002", event_json("arrived while loading"))
            await settle()
            self.api.history_gates["bbbb-0002"].set()
            await selecting
            await self.runtime.panel.shutdown()

        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            asyncio.run(scenario())
        output = buffer.getvalue()

        self.assertEqual(1, output.count("arrived while loading"))
        self.assertLess(output.index("from history"), output.index("arrived while loading"))

    def test_select_by_name(self) -> None:
        self._run_lines("/select alpha")
        self.assertEqual("aaaa-0001", self.runtime.registry.active.id)

    def test_select_unknown_session(self) -> None:
        output = self._run_lines("/select nope")
        self.assertIn("Session not found: nope", output)
        self.assertIsNone(self.runtime.registry.active)

    def test_text_without_session_is_not_sent(self) -> None:
        output = self._run_lines("hello")
        self.assertIn("No session selected", output)
        self.assertEqual([], self.api.sent)

    def test_text_is_sent_to_active_session(self) -> None:
        output = self._run_lines("/select 1", "hello there")
        self.assertEqual("aaaa-0001", self.api.sent[0][0])
        self.assertEqual("hello there", self.api.sent[0][1])
        self.assertIn("[User", output)

    def test_failed_send_prints_error_notice(self) -> None:
        self.api.fail_send = True
        output = self._run_lines("/select 1", "hello there")
        self.assertIn("desk> [!] Error: Failed to send message", output)
        self.assertEqual((), self.runtime.panel.store.messages)

    def test_new_creates_and_selects(self) -> None:
        output = self._run_lines("/new")
        self.assertEqual("new-session-0001", self.runtime.registry.active.id)
        self.assertIn("[+] Success: New session created", output)

    def test_delete_active_falls_back(self) -> None:
        self._run_lines("/select 1", "/delete aaaa-0001")
        self.assertEqual("bbbb-0002", self.runtime.registry.active.id)

    def test_unknown_command(self) -> None:
        output = self._run_lines("/frobnicate")
        self.assertIn("Unknown command: /frobnicate", output)

    def test_screenshot_saves_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "shots" / "desk.png"
            output = self._run_lines(f"/screenshot {target}")
            self.assertEqual(b"png-bytes", target.read_bytes())
        self.assertIn("Saved 9 bytes", output)

    def test_desktop_status_before_first_poll(self) -> None:
        output = self._run_lines("/desktop")
        self.assertIn("Desktop: Disconnected", output)


if __name__ == "__main__":
    unittest.main()
