from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator
from typing import Any, Protocol

from loguru import logger

from agent_desk.errors import StreamPayloadFailure, StreamTransportFailure
from agent_desk.models import LiveEvent, Role
from agent_desk.notifications import Notifier, warning_notice
from agent_desk.sync.message_store import MessageStore
from agent_desk.sync.pending_sends import PendingSends


class LiveEventSource(Protocol):
    def stream_events(self, session_id: str) -> AsyncIterator[str]: ...


def parse_live_event(raw: str) -> LiveEvent:
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as ex:
        raise StreamPayloadFailure("decode live event", f"invalid JSON: {ex.msg}") from ex
    if not isinstance(payload, dict):
        raise StreamPayloadFailure("decode live event", "payload is not an object")

    event_type = payload.get("type")
    if event_type != "message":
        raise StreamPayloadFailure("decode live event", f"unsupported event type {event_type!r}")
    try:
        sender = Role(payload.get("sender"))
    except ValueError as ex:
        raise StreamPayloadFailure("decode live event", f"unknown sender {payload.get('sender')!r}") from ex

    content = payload.get("content")
    timestamp = payload.get("timestamp")
    if not isinstance(content, str) or not isinstance(timestamp, str):
        raise StreamPayloadFailure("decode live event", "content and timestamp must be strings")

    token = payload.get("client_token")
    return LiveEvent(
        sender=sender,
        content=content,
        timestamp=timestamp,
        client_token=token if isinstance(token, str) and token else None,
    )


class LiveUpdateSubscriber:
    """Owns the single push-event subscription of the displayed session.

    Every event is stamped with the session id captured when the subscription
    was opened. ``close()`` bumps a generation counter before cancelling the
    consumer, so nothing read from an old subscription is ever applied once a
    switch has started. Transport loss is reported once and not retried; the
    next ``open()`` reconnects.
    """

    def __init__(
        self,
        *,
        source: LiveEventSource,
        store: MessageStore,
        notifier: Notifier,
        pending: PendingSends | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._notifier = notifier
        self._pending = pending
        self._session_id: str | None = None
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._failed = False

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def is_open(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def failed(self) -> bool:
        return self._failed

    async def open(self, session_id: str) -> None:
        await self.close()
        self._generation += 1
        self._session_id = session_id
        self._failed = False
        self._task = asyncio.create_task(self._consume(session_id, self._generation))
        logger.info(f"Subscribed to live updates for session {session_id}")

    async def close(self) -> None:
        self._generation += 1
        previous = self._session_id
        task = self._task
        self._session_id = None
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if previous is not None:
            logger.debug(f"Closed live updates for session {previous}")

    async def _consume(self, session_id: str, generation: int) -> None:
        try:
            async for raw in self._source.stream_events(session_id):
                if generation != self._generation:
                    return
                self._apply(session_id, raw)
        except asyncio.CancelledError:
            raise
        except StreamTransportFailure as ex:
            self._on_transport_failure(session_id, generation, ex)
            return
        except Exception as ex:
            self._on_transport_failure(
                session_id, generation, StreamTransportFailure("event stream", str(ex) or type(ex).__name__)
            )
            return
        self._on_transport_failure(
            session_id, generation, StreamTransportFailure("event stream", "closed by server")
        )

    def _apply(self, session_id: str, raw: str) -> None:
        try:
            event = parse_live_event(raw)
        except StreamPayloadFailure as ex:
            logger.warning(f"Dropping live event for session {session_id}: {ex}")
            return

        if event.client_token and self._pending is not None:
            echoed = self._pending.claim(event.client_token)
            if echoed is not None and echoed.session_id == session_id:
                logger.debug(f"Suppressed echo of optimistic message in session {session_id}")
                return

        self._store.append(event.to_message(session_id))

    def _on_transport_failure(self, session_id: str, generation: int, error: StreamTransportFailure) -> None:
        if generation != self._generation:
            return
        self._failed = True
        self._task = None
        logger.warning(f"Live updates lost for session {session_id}: {error}")
        self._notifier.notify(
            warning_notice("Connection Error", "Lost connection to real-time updates", error)
        )
