"""Error taxonomy for the media sync layer.

UpstreamError and NotFoundError pass through to the presentation boundary
unchanged. ValidationError marks a data or programmer defect and is never
retried.
"""

from __future__ import annotations

from typing import Any


class MediaSyncError(RuntimeError):
    pass


class UpstreamError(MediaSyncError):
    """
    Any failure talking to the catalog API.

    Attributes:
        status: HTTP status code, or None when no response was received.
        detail: Raw error detail as returned by upstream (errors list, body
            snippet, or the transport error message).
    """

    def __init__(self, message: str, *, status: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class TransportError(UpstreamError):
    """No response: connection refused, DNS failure, timeout."""


class ProtocolError(UpstreamError):
    """Non-2xx response, or a 2xx body that is not a JSON object."""


class QueryError(UpstreamError):
    """200 OK, but the response carries a non-empty `errors` list."""


class NotFoundError(MediaSyncError):
    pass


class ValidationError(MediaSyncError):
    def __init__(self, message: str, errors: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}
