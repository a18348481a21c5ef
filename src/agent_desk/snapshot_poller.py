from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from loguru import logger

from agent_desk.errors import LoadFailure
from agent_desk.models import DesktopStatus


class DesktopSource(Protocol):
    async def desktop_status(self) -> DesktopStatus: ...

    def screenshot_url(self, cache_bust: int | None = None) -> str: ...

    async def fetch_screenshot(self, url: str) -> bytes: ...


class SnapshotPoller:
    """Refreshes the remote screen reference and desktop status on two timers.

    Shares nothing with the chat side. Failed status checks read as "not
    running"; nothing is retried before the next tick.
    """

    def __init__(
        self,
        source: DesktopSource,
        *,
        screenshot_interval_seconds: float = 5.0,
        status_interval_seconds: float = 30.0,
        clock: Callable[[], datetime] = datetime.now,
        on_refresh: Callable[[str], None] | None = None,
    ) -> None:
        self._source = source
        self._screenshot_interval = max(0.01, screenshot_interval_seconds)
        self._status_interval = max(0.01, status_interval_seconds)
        self._clock = clock
        self._on_refresh = on_refresh
        self._screenshot_url = ""
        self._last_updated = clock()
        self._status: DesktopStatus | None = None
        self._tasks: list[asyncio.Task] = []

    @property
    def screenshot_url(self) -> str:
        return self._screenshot_url

    @property
    def last_updated(self) -> datetime:
        return self._last_updated

    @property
    def status(self) -> DesktopStatus | None:
        return self._status

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        await self.load_status()
        self.refresh()
        self._tasks = [
            asyncio.create_task(self._every(self._screenshot_interval, self._tick_screenshot)),
            asyncio.create_task(self._every(self._status_interval, self.load_status)),
        ]

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def refresh(self) -> str:
        self._screenshot_url = self._source.screenshot_url()
        self._last_updated = self._clock()
        if self._on_refresh is not None:
            self._on_refresh(self._screenshot_url)
        return self._screenshot_url

    async def load_status(self) -> DesktopStatus:
        try:
            self._status = await self._source.desktop_status()
        except LoadFailure as ex:
            logger.error(f"Failed to load desktop status: {ex}")
            self._status = DesktopStatus(running=False)
        return self._status

    async def fetch_screenshot(self) -> bytes:
        """Download the image behind a freshly refreshed reference."""
        url = self.refresh()
        return await self._source.fetch_screenshot(url)

    async def _tick_screenshot(self) -> None:
        self.refresh()

    async def _every(self, interval: float, action) -> None:
        while True:
            await asyncio.sleep(interval)
            await action()
