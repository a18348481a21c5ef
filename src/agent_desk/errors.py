from __future__ import annotations


class DeskClientError(Exception):
    """Base class for every recoverable failure raised by the desk client."""

    def __init__(self, operation: str, detail: str = "", *, status_code: int | None = None):
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        message = f"{operation} failed"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class LoadFailure(DeskClientError):
    """Listing sessions, fetching history or desktop status did not succeed."""


class MutationFailure(DeskClientError):
    """Creating or deleting a session, or sending a message, did not succeed."""


class StreamTransportFailure(DeskClientError):
    """The live event stream could not be opened or was lost."""


class StreamPayloadFailure(DeskClientError):
    """A single live event could not be decoded."""
