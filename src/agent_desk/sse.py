from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield the data of each unnamed (or ``message``) server-sent event.

    Follows the EventSource framing rules: ``data:`` lines accumulate and are
    joined by newlines, a blank line dispatches, lines starting with ``:`` are
    comments. Named events other than ``message`` are skipped, matching what a
    browser delivers to ``onmessage``.
    """
    data_lines: list[str] = []
    event_name = ""

    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data_lines and event_name in ("", "message"):
                yield "\n".join(data_lines)
            data_lines = []
            event_name = ""
            continue
        if line.startswith(":"):
            continue

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)
        elif field == "event":
            event_name = value
    # An event still buffered at end of stream was never terminated; drop it.
