"""
Ledger node REST client — real network implementation of LedgerGateway.

Translates node REST responses into LedgerParameters, AccountSnapshot
and PendingStatus. Uses an injectable transport (HttpTransport) so the
HTTP layer can be swapped for test fakes without changing parsing.

No retry loops. No secrets beyond the node API token header.

Endpoints:
    - GET  v2/transactions/params
    - GET  v2/status
    - GET  v2/status/wait-for-block-after/{round}
    - GET  v2/accounts/{address}
    - GET  v2/accounts/{address}/assets/{asset_id}   (404 → not opted in)
    - POST v2/transactions                           (binary body)
    - GET  v2/transactions/pending/{tx_id}
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from ledger_custody.algorand.client import AccountSnapshot, PendingStatus
from ledger_custody.algorand.tx import LedgerParameters
from ledger_custody.config import Settings
from ledger_custody.errors import LedgerUnavailableError, TransactionRejectedError
from ledger_custody.transport import HttpTransport, HttpxTransport, upstream_message

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Algo-API-Token"
DEFAULT_VALIDITY_WINDOW = 1000


class AlgodClient:
    """Ledger node client implementing the LedgerGateway protocol.

    Args:
        url: Node REST endpoint (e.g. "http://localhost:4001").
        token: API token. Sent on every request.
        transport: Injectable HTTP transport. Defaults to HttpxTransport.
        validity_window: Rounds added to the last round for lastValid.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        *,
        transport: HttpTransport | None = None,
        validity_window: int = DEFAULT_VALIDITY_WINDOW,
    ) -> None:
        self._url = url.rstrip("/")
        self._token = token
        self._transport = transport or HttpxTransport()
        self._validity_window = validity_window

    @classmethod
    def from_settings(cls, settings: Settings) -> AlgodClient:
        return cls(
            settings.node_url,
            settings.node_token,
            transport=HttpxTransport(timeout=settings.http_timeout),
            validity_window=settings.validity_window,
        )

    # -----------------------------------------------------------------
    # LedgerGateway protocol methods
    # -----------------------------------------------------------------

    async def get_parameters(self) -> LedgerParameters:
        response = await self._get("v2/transactions/params")
        return _parse_parameters(response, self._validity_window)

    async def get_last_round(self) -> int:
        response = await self._get("v2/status")
        return int(response["last-round"])

    async def get_account(self, address: str) -> AccountSnapshot:
        response = await self._get(f"v2/accounts/{address}")
        snapshot = _parse_account(address, response)
        logger.debug(
            "account %s balance=%d min_balance=%d assets=%d",
            address,
            snapshot.balance,
            snapshot.min_balance,
            len(snapshot.asset_holdings),
        )
        return snapshot

    async def get_asset_holding(self, address: str, asset_id: int) -> int | None:
        try:
            response = await self._get(f"v2/accounts/{address}/assets/{asset_id}")
        except LedgerUnavailableError as exc:
            if exc.status_code == 404:
                return None
            raise
        holding = response.get("asset-holding") or {}
        return int(holding.get("amount", 0))

    async def submit(self, signed: bytes) -> str:
        try:
            response = await self._request(
                "POST",
                "v2/transactions",
                content=signed,
                content_type="application/x-binary",
            )
        except LedgerUnavailableError as exc:
            # 400 is the node refusing the transaction, not an outage.
            if exc.status_code == 400:
                raise TransactionRejectedError(
                    exc.details.get("message", str(exc))
                ) from exc
            raise
        tx_id = response.get("txId")
        if not isinstance(tx_id, str) or not tx_id:
            raise LedgerUnavailableError("submit response carries no txId")
        return tx_id

    async def get_pending_status(self, tx_id: str) -> PendingStatus:
        response = await self._get(f"v2/transactions/pending/{tx_id}")
        return _parse_pending(response)

    async def wait_for_round(self, round_number: int) -> None:
        await self._get(f"v2/status/wait-for-block-after/{round_number}")

    # -----------------------------------------------------------------
    # HTTP plumbing
    # -----------------------------------------------------------------

    async def _get(self, path: str) -> dict[str, Any]:
        return await self._request("GET", path)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        content_type: str = "application/json; charset=utf-8",
    ) -> dict[str, Any]:
        url = f"{self._url}/{path}"
        headers = {"Content-Type": content_type, TOKEN_HEADER: self._token}
        try:
            return await self._transport.request(
                method, url, headers=headers, content=content
            )
        except httpx.HTTPStatusError as exc:
            message = upstream_message(exc)
            raise LedgerUnavailableError(
                f"node returned HTTP {exc.response.status_code}: {message}",
                status_code=exc.response.status_code,
                details={"url": url, "message": message},
            ) from exc
        except httpx.HTTPError as exc:
            raise LedgerUnavailableError(
                f"node request failed: {exc}",
                details={"url": url},
            ) from exc


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _parse_parameters(response: dict[str, Any], validity_window: int) -> LedgerParameters:
    last_round = int(response["last-round"])
    return LedgerParameters(
        fee=int(response["min-fee"]),
        first_valid_round=last_round,
        last_valid_round=last_round + validity_window,
        genesis_id=str(response["genesis-id"]),
        genesis_hash=base64.b64decode(response["genesis-hash"]),
    )


def _parse_account(address: str, response: dict[str, Any]) -> AccountSnapshot:
    holdings = {
        int(asset["asset-id"]): int(asset.get("amount", 0))
        for asset in response.get("assets") or []
    }
    return AccountSnapshot(
        address=address,
        balance=int(response.get("amount", 0)),
        min_balance=int(response.get("min-balance", 0)),
        asset_holdings=holdings,
    )


def _parse_pending(response: dict[str, Any]) -> PendingStatus:
    confirmed = response.get("confirmed-round")
    pool_error = response.get("pool-error")
    return PendingStatus(
        confirmed_round=int(confirmed) if confirmed else None,
        pool_error=pool_error or None,
    )
