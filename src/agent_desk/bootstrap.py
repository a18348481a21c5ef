from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from agent_desk.api_client import DeskApiClient
from agent_desk.app_config import AppConfig
from agent_desk.chat_panel import ChatPanel
from agent_desk.logging_config import setup_logging
from agent_desk.notifications import Notifier
from agent_desk.snapshot_poller import SnapshotPoller
from agent_desk.sync import (
    LiveUpdateSubscriber,
    MessageStore,
    PendingSends,
    SendCoordinator,
    SessionRegistry,
)


@dataclass
class AppRuntime:
    api: DeskApiClient
    registry: SessionRegistry
    panel: ChatPanel
    poller: SnapshotPoller
    log_descriptions: list[str]

    async def aclose(self) -> None:
        await self.poller.stop()
        await self.panel.shutdown()
        await self.api.aclose()


def build_runtime(app: AppConfig, notifier: Notifier, *, api: DeskApiClient | None = None) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    if api is None:
        api = DeskApiClient(app.api_base_url, timeout=app.request_timeout_seconds)
    store = MessageStore()
    pending = PendingSends() if app.echo_correlation else None

    subscriber = LiveUpdateSubscriber(source=api, store=store, notifier=notifier, pending=pending)
    coordinator = SendCoordinator(sender=api, store=store, notifier=notifier, pending=pending)
    panel = ChatPanel(
        history=api,
        store=store,
        subscriber=subscriber,
        coordinator=coordinator,
        notifier=notifier,
        pending=pending,
    )

    registry = SessionRegistry(backend=api, notifier=notifier)
    registry.add_observer(panel.activate)

    poller = SnapshotPoller(
        api,
        screenshot_interval_seconds=app.screenshot_interval_seconds,
        status_interval_seconds=app.status_interval_seconds,
    )
    logger.info(f"Desk client configured for {app.api_base_url} (echo correlation: {app.echo_correlation})")

    return AppRuntime(
        api=api,
        registry=registry,
        panel=panel,
        poller=poller,
        log_descriptions=log_descriptions,
    )
