"""
Tests for AlgodClient against mocked node REST responses.

Test plan:
- Parameters: min fee, rounds (last round + validity window), genesis
- Account parsing: balance, min balance, asset holdings
- Asset holding: 404 means not opted in
- Submit: binary body, txId returned, 400 → TransactionRejectedError,
  5xx and transport failures → LedgerUnavailableError with status code
- Pending status: pending, confirmed, pool error
- Token header on every request
"""

from __future__ import annotations

import base64

import httpx
import pytest
from pytest_httpx import HTTPXMock

from ledger_custody.algorand.algod_client import TOKEN_HEADER, AlgodClient
from ledger_custody.config import Settings
from ledger_custody.errors import LedgerUnavailableError, TransactionRejectedError

NODE = "http://node:4001"
TOKEN = "a" * 64
ADDRESS = "A" * 52 + "Y5HFKQ"
GENESIS_HASH = bytes(range(32))


def _client(**kwargs: object) -> AlgodClient:
    return AlgodClient(NODE + "/", TOKEN, **kwargs)  # type: ignore[arg-type]


class TestParameters:
    @pytest.mark.asyncio
    async def test_get_parameters(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET",
            url=f"{NODE}/v2/transactions/params",
            json={
                "consensus-version": "future",
                "fee": 0,
                "genesis-hash": base64.b64encode(GENESIS_HASH).decode("ascii"),
                "genesis-id": "testnet-v1.0",
                "last-round": 12345,
                "min-fee": 1000,
            },
        )

        params = await _client(validity_window=500).get_parameters()

        assert params.fee == 1000
        assert params.first_valid_round == 12345
        assert params.last_valid_round == 12845
        assert params.genesis_id == "testnet-v1.0"
        assert params.genesis_hash == GENESIS_HASH

    @pytest.mark.asyncio
    async def test_token_header(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{NODE}/v2/status", json={"last-round": 7})

        assert await _client().get_last_round() == 7

        request = httpx_mock.get_requests()[0]
        assert request.headers[TOKEN_HEADER] == TOKEN


class TestAccounts:
    @pytest.mark.asyncio
    async def test_get_account(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/accounts/{ADDRESS}",
            json={
                "address": ADDRESS,
                "amount": 350_000,
                "min-balance": 200_000,
                "assets": [
                    {"asset-id": 5, "amount": 10, "is-frozen": False},
                    {"asset-id": 9, "amount": 0, "is-frozen": False},
                ],
            },
        )

        snapshot = await _client().get_account(ADDRESS)

        assert snapshot.balance == 350_000
        assert snapshot.min_balance == 200_000
        assert snapshot.owned_slack == 150_000
        assert snapshot.asset_holdings == {5: 10, 9: 0}
        assert snapshot.holds(9)
        assert not snapshot.holds(1)

    @pytest.mark.asyncio
    async def test_empty_account(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{NODE}/v2/accounts/{ADDRESS}", json={"address": ADDRESS})

        snapshot = await _client().get_account(ADDRESS)

        assert snapshot.balance == 0
        assert snapshot.asset_holdings == {}

    @pytest.mark.asyncio
    async def test_asset_holding(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/accounts/{ADDRESS}/assets/5",
            json={"round": 10, "asset-holding": {"asset-id": 5, "amount": 42}},
        )
        assert await _client().get_asset_holding(ADDRESS, 5) == 42

    @pytest.mark.asyncio
    async def test_asset_holding_absent(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/accounts/{ADDRESS}/assets/5",
            status_code=404,
            json={"message": "account asset info not found"},
        )
        assert await _client().get_asset_holding(ADDRESS, 5) is None

    @pytest.mark.asyncio
    async def test_asset_holding_outage(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/accounts/{ADDRESS}/assets/5",
            status_code=503,
            text="unavailable",
        )
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await _client().get_asset_holding(ADDRESS, 5)
        assert exc_info.value.status_code == 503


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_binary(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{NODE}/v2/transactions", json={"txId": "TXID123"}
        )

        tx_id = await _client().submit(b"\x82\xa3sig")

        assert tx_id == "TXID123"
        request = httpx_mock.get_requests()[0]
        assert request.content == b"\x82\xa3sig"
        assert request.headers["Content-Type"] == "application/x-binary"

    @pytest.mark.asyncio
    async def test_submit_rejected(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{NODE}/v2/transactions",
            status_code=400,
            json={"message": "TransactionPool.Remember: overspend"},
        )

        with pytest.raises(TransactionRejectedError) as exc_info:
            await _client().submit(b"blob")

        error = exc_info.value
        assert error.reason == "TransactionPool.Remember: overspend"
        assert error.submitted is False
        assert isinstance(error.__cause__, LedgerUnavailableError)

    @pytest.mark.asyncio
    async def test_submit_server_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{NODE}/v2/transactions", status_code=500, json={"message": "boom"}
        )

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await _client().submit(b"blob")

        error = exc_info.value
        assert error.status_code == 500
        assert error.details["message"] == "boom"
        assert error.error_code == "LEDGER_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_submit_without_tx_id(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=f"{NODE}/v2/transactions", json={})

        with pytest.raises(LedgerUnavailableError):
            await _client().submit(b"blob")

    @pytest.mark.asyncio
    async def test_connection_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await _client().submit(b"blob")
        assert exc_info.value.status_code is None


class TestPending:
    @pytest.mark.asyncio
    async def test_still_pending(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/transactions/pending/TX1",
            json={"confirmed-round": 0, "pool-error": "", "txn": {}},
        )
        status = await _client().get_pending_status("TX1")
        assert status.confirmed_round is None
        assert status.pool_error is None

    @pytest.mark.asyncio
    async def test_confirmed(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/transactions/pending/TX1",
            json={"confirmed-round": 2001, "pool-error": ""},
        )
        assert (await _client().get_pending_status("TX1")).confirmed_round == 2001

    @pytest.mark.asyncio
    async def test_pool_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/transactions/pending/TX1",
            json={"pool-error": "transaction already in ledger"},
        )
        status = await _client().get_pending_status("TX1")
        assert status.pool_error == "transaction already in ledger"

    @pytest.mark.asyncio
    async def test_not_found(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/transactions/pending/TX1",
            status_code=404,
            json={"message": "txn does not exist"},
        )
        with pytest.raises(LedgerUnavailableError) as exc_info:
            await _client().get_pending_status("TX1")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_wait_for_round(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{NODE}/v2/status/wait-for-block-after/1000", json={"last-round": 1001}
        )
        await _client().wait_for_round(1000)
        assert len(httpx_mock.get_requests()) == 1


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_uses_node_settings(self, httpx_mock: HTTPXMock) -> None:
        settings = Settings(node_url="http://other-node:8080", node_token="tok", validity_window=10)
        httpx_mock.add_response(
            url="http://other-node:8080/v2/transactions/params",
            json={
                "genesis-hash": base64.b64encode(GENESIS_HASH).decode("ascii"),
                "genesis-id": "mainnet-v1.0",
                "last-round": 50,
                "min-fee": 1000,
            },
        )

        params = await AlgodClient.from_settings(settings).get_parameters()

        assert params.last_valid_round == 60
        assert httpx_mock.get_requests()[0].headers[TOKEN_HEADER] == "tok"
