"""
Transit secrets engine client — real implementation of CustodyGateway.

Endpoints (relative to ``{base_url}/v1/{mount}``):
    - GET  keys/{name}     read key, public key of the latest version
    - POST keys/{name}     create an ed25519 key
    - LIST keys            list key names
    - POST sign/{name}     sign base64 ``input``, returns "vault:vN:<b64>"

The custody token is a per-request credential: build one client per
authenticated caller.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from ledger_custody.config import Settings
from ledger_custody.errors import CustodyUnavailableError
from ledger_custody.identity import KeyRoute
from ledger_custody.transport import HttpTransport, HttpxTransport, upstream_message

logger = logging.getLogger(__name__)

KEY_TYPE = "ed25519"


class VaultTransitClient:
    """Custody client implementing the CustodyGateway protocol.

    Args:
        base_url: Custody service base URL (e.g. "http://vault:8200").
        token: Custody access token, sent as ``X-Vault-Token``.
        namespace: Optional namespace, sent as ``X-Vault-Namespace``.
        transport: Injectable HTTP transport. Defaults to HttpxTransport.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        namespace: str | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._namespace = namespace
        self._transport = transport or HttpxTransport()

    @classmethod
    def from_settings(cls, settings: Settings, token: str) -> VaultTransitClient:
        """Build a client for one caller's token."""
        return cls(
            settings.vault_base_url,
            token,
            namespace=settings.vault_namespace,
            transport=HttpxTransport(timeout=settings.http_timeout),
        )

    async def get_public_key(self, route: KeyRoute) -> bytes:
        response = await self._request("GET", f"{route.mount}/keys/{route.key_name}")
        return _latest_public_key(route, response)

    async def sign(self, route: KeyRoute, payload: bytes) -> str:
        response = await self._request(
            "POST",
            f"{route.mount}/sign/{route.key_name}",
            json={"input": base64.b64encode(payload).decode("ascii")},
        )
        signature = (response.get("data") or {}).get("signature")
        if not isinstance(signature, str):
            raise CustodyUnavailableError(
                f"sign response for {route} carries no signature",
                details={"route": str(route)},
            )
        return signature

    async def create_key(self, route: KeyRoute) -> bytes:
        await self._request(
            "POST",
            f"{route.mount}/keys/{route.key_name}",
            json={"type": KEY_TYPE, "derived": False, "allow_deletion": False},
        )
        logger.info("created custody key %s", route)
        return await self.get_public_key(route)

    async def list_keys(self, mount: str) -> list[str]:
        try:
            response = await self._request("LIST", f"{mount}/keys")
        except CustodyUnavailableError as exc:
            # An empty mount answers 404.
            if exc.status_code == 404:
                return []
            raise
        keys = (response.get("data") or {}).get("keys") or []
        return [str(key) for key in keys]

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/v1/{path}"
        headers = {"X-Vault-Token": self._token, "Content-Type": "application/json"}
        if self._namespace:
            headers["X-Vault-Namespace"] = self._namespace
        try:
            return await self._transport.request(method, url, headers=headers, json=json)
        except httpx.HTTPStatusError as exc:
            message = upstream_message(exc)
            raise CustodyUnavailableError(
                f"custody returned HTTP {exc.response.status_code}: {message}",
                status_code=exc.response.status_code,
                details={"path": path, "message": message},
            ) from exc
        except httpx.HTTPError as exc:
            raise CustodyUnavailableError(
                f"custody request failed: {exc}",
                details={"path": path},
            ) from exc


def _latest_public_key(route: KeyRoute, response: dict[str, Any]) -> bytes:
    data = response.get("data") or {}
    keys = data.get("keys") or {}
    version = str(data.get("latest_version") or (max(map(int, keys)) if keys else ""))
    entry = keys.get(version)
    if not isinstance(entry, dict) or "public_key" not in entry:
        raise CustodyUnavailableError(
            f"key response for {route} carries no public key",
            details={"route": str(route)},
        )
    return base64.b64decode(entry["public_key"])
