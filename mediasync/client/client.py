"""Thin GraphQL client for the AniList catalog API.

One request kind: POST {query, variables} to one endpoint. Every failure mode
is folded into a single UpstreamError family so callers only handle one type.
No retries happen here.
"""

import logging
import time
from typing import Any

import requests

from mediasync.config.anilist_settings import AnilistHttpSettings
from mediasync.errors import ProtocolError, QueryError, TransportError

logger = logging.getLogger(__name__)

# Keep error bodies in exceptions and logs small.
_BODY_SNIPPET_CHARS = 500


class AnilistClient:
    """Client for executing query documents against AniList.

    Attributes:
        session (requests.Session): Persistent session for HTTP requests.
        base_url (str): The GraphQL endpoint.
        timeout_s (float): Fixed transport timeout applied to every call.
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        session: requests.Session | None = None,
    ):
        """Initializes the AnilistClient.

        Args:
            base_url: The GraphQL endpoint URL.
            timeout_s: Connect/read timeout in seconds.
            session: Optional pre-configured session (tests, connection reuse).
        """

        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

        self.session.headers.update(
            {"Content-Type": "application/json", "Accept": "application/json"}
        )

        logger.info("AnilistClient initialized with base_url=%s timeout_s=%s", self.base_url, self.timeout_s)

    @classmethod
    def from_settings(cls, settings: AnilistHttpSettings) -> "AnilistClient":
        return cls(base_url=settings.anilist_api_url, timeout_s=settings.anilist_timeout_s)

    def execute(
        self,
        document: str,
        variables: dict[str, Any] | None = None,
        label: str = "AnilistQuery",
    ) -> dict[str, Any]:
        """Executes a query document and returns its `data` payload.

        Args:
            document: GraphQL query document.
            variables: Variables for the document. None values are sent as null.
            label: Operation label used in logs.

        Returns:
            dict: The `data` member of the response ({} if upstream sent none).

        Raises:
            TransportError: No response was received.
            ProtocolError: Non-2xx status, or the body is not a JSON object.
            QueryError: 2xx response carrying a non-empty `errors` list.
        """

        start_ts = time.perf_counter()
        body = {"query": document, "variables": variables or {}}

        logger.debug("ANILIST_REQUEST_START label=%s variables=%s", label, variables)

        try:
            response = self.session.post(self.base_url, json=body, timeout=self.timeout_s)
        except requests.exceptions.RequestException as e:
            duration = (time.perf_counter() - start_ts) * 1000
            logger.error(
                "ANILIST_REQUEST_FAILED label=%s kind=transport latency_ms=%.2f error=%s",
                label,
                duration,
                str(e),
            )
            raise TransportError(f"AniList network error: {e}", status=None, detail=str(e)) from e

        duration = (time.perf_counter() - start_ts) * 1000
        payload = _json_or_none(response)

        if not response.ok:
            detail = _error_detail(payload, response)
            logger.error(
                "ANILIST_REQUEST_FAILED label=%s kind=protocol status=%s latency_ms=%.2f",
                label,
                response.status_code,
                duration,
            )
            raise ProtocolError(
                f"AniList request failed: {response.status_code}",
                status=response.status_code,
                detail=detail,
            )

        if not isinstance(payload, dict):
            logger.error(
                "ANILIST_REQUEST_FAILED label=%s kind=payload status=%s latency_ms=%.2f",
                label,
                response.status_code,
                duration,
            )
            raise ProtocolError(
                "AniList returned a non-JSON payload",
                status=response.status_code,
                detail=response.text[:_BODY_SNIPPET_CHARS],
            )

        errors = payload.get("errors")
        if errors:
            status = _first_error_status(errors) or response.status_code
            logger.error(
                "ANILIST_REQUEST_FAILED label=%s kind=query status=%s latency_ms=%.2f errors=%s",
                label,
                status,
                duration,
                errors,
            )
            raise QueryError("AniList API returned errors", status=status, detail=errors)

        logger.info(
            "ANILIST_REQUEST_SUCCESS label=%s status=%s latency_ms=%.2f",
            label,
            response.status_code,
            duration,
        )

        return payload.get("data") or {}


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_detail(payload: Any, response: requests.Response) -> Any:
    """
    Prefer the GraphQL errors list; fall back to a body snippet.
    """
    if isinstance(payload, dict) and payload.get("errors"):
        return payload["errors"]
    if payload is not None:
        return payload
    return response.text[:_BODY_SNIPPET_CHARS]


def _first_error_status(errors: Any) -> int | None:
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        status = errors[0].get("status")
        if isinstance(status, int):
            return status
    return None
