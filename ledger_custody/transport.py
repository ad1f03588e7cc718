"""
HTTP transport seam shared by the ledger and custody gateways.

The gateways depend on the ``HttpTransport`` protocol, not on httpx
directly, so the HTTP layer can be swapped for a fake without editing
parsing or error-mapping logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - Fake transports (tests, return canned responses)

Error contract:
    - HTTP status >= 400 raises ``httpx.HTTPStatusError`` (the response
      is attached, so callers can read the upstream status and body).
    - Connection, TLS and timeout failures raise ``httpx.HTTPError``.
    Gateways map both to their own error types.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx


@runtime_checkable
class HttpTransport(Protocol):
    """Async transport for JSON-over-HTTP requests."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the parsed JSON body.

        An empty body is returned as an empty dict.

        Raises:
            httpx.HTTPStatusError: On HTTP status >= 400.
            httpx.HTTPError: On transport-level failures.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient, one client per call."""

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
    ) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.request(
                method,
                url,
                headers=headers,
                json=json,
                content=content,
            )
            response.raise_for_status()
            if not response.content:
                return {}
            result: dict[str, Any] = response.json()
            return result


def upstream_message(exc: httpx.HTTPStatusError) -> str:
    """Best-effort error text from an upstream error response."""
    response = exc.response
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error_message", "errors", "error"):
            if body.get(key):
                value = body[key]
                return "; ".join(map(str, value)) if isinstance(value, list) else str(value)
    return response.reason_phrase
