from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agent_desk.errors import LoadFailure, MutationFailure, StreamTransportFailure
from agent_desk.models import DesktopStatus, Message, Session
from agent_desk.sse import iter_sse_data

DEFAULT_BASE_URL = "http://localhost:8000"
_READ_ATTEMPTS = 3


def _on_retry(retry_state):
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason}. Retrying in {wait:.1f}s (attempt {attempt}/{_READ_ATTEMPTS})...")


# Only transport-level failures of idempotent reads are retried; HTTP status
# failures surface immediately.
_retry_reads = retry(
    retry=retry_if_exception_type(httpx.TransportError),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(_READ_ATTEMPTS),
    before_sleep=_on_retry,
    reraise=True,
)


class DeskApiClient:
    """Thin wrapper over the ``/api`` REST and event-stream contract."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- sessions --

    async def create_session(self) -> Session:
        data = await self._mutate("create session", "POST", "/sessions")
        return self._parse(MutationFailure, "create session", lambda: Session.from_dict(data))

    async def list_sessions(self) -> list[Session]:
        data = await self._load("list sessions", "/sessions")
        return self._parse(LoadFailure, "list sessions", lambda: [Session.from_dict(item) for item in data])

    async def get_session(self, session_id: str) -> Session:
        data = await self._load("get session", f"/sessions/{session_id}")
        return self._parse(LoadFailure, "get session", lambda: Session.from_dict(data))

    async def delete_session(self, session_id: str) -> None:
        await self._mutate("delete session", "DELETE", f"/sessions/{session_id}", expect_body=False)

    async def list_messages(self, session_id: str) -> list[Message]:
        data = await self._load("list messages", f"/sessions/{session_id}/messages")
        return self._parse(
            LoadFailure,
            "list messages",
            lambda: [Message.from_dict(item, session_id=session_id) for item in data],
        )

    # -- chat --

    async def send_message(self, session_id: str, content: str, *, client_token: str | None = None) -> None:
        body: dict[str, Any] = {"content": content}
        if client_token:
            body["client_token"] = client_token
        await self._mutate("send message", "POST", f"/sessions/{session_id}/chat", body=body, expect_body=False)

    async def stream_events(self, session_id: str) -> AsyncIterator[str]:
        """Yield the raw ``data`` payload of every event pushed for ``session_id``.

        Raises StreamTransportFailure when the stream cannot be opened or breaks.
        """
        try:
            async with self._client.stream(
                "GET",
                f"/sessions/{session_id}/stream",
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=httpx.Timeout(self._timeout, read=None),
            ) as response:
                if not response.is_success:
                    raise StreamTransportFailure("open event stream", status_code=response.status_code)
                logger.debug(f"Event stream opened for session {session_id}")
                async for data in iter_sse_data(response.aiter_lines()):
                    yield data
        except httpx.HTTPError as ex:
            raise StreamTransportFailure("event stream", str(ex) or type(ex).__name__) from ex

    # -- remote desktop --

    async def desktop_status(self) -> DesktopStatus:
        data = await self._request(LoadFailure, "desktop status", "GET", "/vnc/status")
        return self._parse(LoadFailure, "desktop status", lambda: DesktopStatus.from_dict(data))

    def screenshot_url(self, cache_bust: int | None = None) -> str:
        stamp = cache_bust if cache_bust is not None else int(time.time() * 1000)
        return f"{self._base_url}/api/vnc/screenshot?t={stamp}"

    async def fetch_screenshot(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as ex:
            raise LoadFailure("fetch screenshot", str(ex) or type(ex).__name__) from ex
        if not response.is_success:
            raise LoadFailure("fetch screenshot", status_code=response.status_code)
        return response.content

    # -- plumbing --

    async def _load(self, operation: str, path: str) -> Any:
        try:
            return await self._get_with_retry(operation, path)
        except httpx.HTTPError as ex:
            raise LoadFailure(operation, str(ex) or type(ex).__name__) from ex

    @_retry_reads
    async def _get_with_retry(self, operation: str, path: str) -> Any:
        response = await self._client.get(path)
        if not response.is_success:
            raise LoadFailure(operation, status_code=response.status_code)
        return self._decode(LoadFailure, operation, response)

    async def _mutate(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        expect_body: bool = True,
    ) -> Any:
        return await self._request(MutationFailure, operation, method, path, body=body, expect_body=expect_body)

    async def _request(
        self,
        failure: type[LoadFailure] | type[MutationFailure],
        operation: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        expect_body: bool = True,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.HTTPError as ex:
            raise failure(operation, str(ex) or type(ex).__name__) from ex
        if not response.is_success:
            raise failure(operation, status_code=response.status_code)
        if not expect_body:
            return None
        return self._decode(failure, operation, response)

    @staticmethod
    def _decode(failure, operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as ex:
            raise failure(operation, "response was not valid JSON") from ex

    @staticmethod
    def _parse(failure, operation: str, build):
        try:
            return build()
        except (KeyError, TypeError, ValueError) as ex:
            raise failure(operation, f"unexpected response shape: {ex}") from ex
