"""
Tests for VaultTransitClient against mocked transit engine responses.

Test plan:
- Public key of the latest key version, with and without latest_version
- Sign: base64 input posted, wrapped signature returned unchanged
- Create: ed25519, non-derived, non-deletable, then public key read back
- List: key names, 404 on an empty mount is an empty list
- Errors: 4xx/5xx and transport failures → CustodyUnavailableError
- Token and namespace headers
"""

from __future__ import annotations

import base64
import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from ledger_custody.config import Settings
from ledger_custody.custody.vault import VaultTransitClient
from ledger_custody.errors import CustodyUnavailableError
from ledger_custody.identity import KeyRoute

VAULT = "http://vault:8200"
ROUTE = KeyRoute("transit/users", "alice")
KEY_V1 = bytes(range(32))
KEY_V2 = bytes(range(32, 64))


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _client(**kwargs: object) -> VaultTransitClient:
    return VaultTransitClient(VAULT, "s.token", **kwargs)  # type: ignore[arg-type]


def _key_response(latest: int | None = 2) -> dict:
    data: dict = {
        "name": "alice",
        "type": "ed25519",
        "keys": {"1": {"public_key": _b64(KEY_V1)}, "2": {"public_key": _b64(KEY_V2)}},
    }
    if latest is not None:
        data["latest_version"] = latest
    return {"data": data}


class TestPublicKey:
    @pytest.mark.asyncio
    async def test_latest_version(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="GET", url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response()
        )
        assert await _client().get_public_key(ROUTE) == KEY_V2

    @pytest.mark.asyncio
    async def test_explicit_older_latest_version(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response(latest=1)
        )
        assert await _client().get_public_key(ROUTE) == KEY_V1

    @pytest.mark.asyncio
    async def test_highest_version_without_latest(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response(latest=None)
        )
        assert await _client().get_public_key(ROUTE) == KEY_V2

    @pytest.mark.asyncio
    async def test_missing_public_key(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{VAULT}/v1/transit/users/keys/alice", json={"data": {}})
        with pytest.raises(CustodyUnavailableError):
            await _client().get_public_key(ROUTE)

    @pytest.mark.asyncio
    async def test_headers(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response())

        await _client(namespace="team-a").get_public_key(ROUTE)

        request = httpx_mock.get_requests()[0]
        assert request.headers["X-Vault-Token"] == "s.token"
        assert request.headers["X-Vault-Namespace"] == "team-a"

    @pytest.mark.asyncio
    async def test_no_namespace_header_by_default(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response())

        await _client().get_public_key(ROUTE)

        assert "X-Vault-Namespace" not in httpx_mock.get_requests()[0].headers


class TestSign:
    @pytest.mark.asyncio
    async def test_sign(self, httpx_mock: HTTPXMock) -> None:
        wrapped = "vault:v2:" + _b64(bytes(64))
        httpx_mock.add_response(
            method="POST",
            url=f"{VAULT}/v1/transit/users/sign/alice",
            json={"data": {"signature": wrapped, "key_version": 2}},
        )

        result = await _client().sign(ROUTE, b"TX\x81\xa3amt\x01")

        assert result == wrapped
        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body == {"input": _b64(b"TX\x81\xa3amt\x01")}

    @pytest.mark.asyncio
    async def test_sign_without_signature(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{VAULT}/v1/transit/users/sign/alice", json={"data": {}}
        )
        with pytest.raises(CustodyUnavailableError):
            await _client().sign(ROUTE, b"payload")

    @pytest.mark.asyncio
    async def test_permission_denied(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{VAULT}/v1/transit/users/sign/alice",
            status_code=403,
            json={"errors": ["permission denied"]},
        )

        with pytest.raises(CustodyUnavailableError) as exc_info:
            await _client().sign(ROUTE, b"payload")

        error = exc_info.value
        assert error.status_code == 403
        assert error.details["message"] == "permission denied"
        assert error.submitted is False

    @pytest.mark.asyncio
    async def test_transport_failure(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(CustodyUnavailableError) as exc_info:
            await _client().sign(ROUTE, b"payload")
        assert exc_info.value.status_code is None


class TestKeyManagement:
    @pytest.mark.asyncio
    async def test_create_key(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{VAULT}/v1/transit/users/keys/alice", status_code=204
        )
        httpx_mock.add_response(
            method="GET", url=f"{VAULT}/v1/transit/users/keys/alice", json=_key_response(latest=1)
        )

        public_key = await _client().create_key(ROUTE)

        assert public_key == KEY_V1
        create_request = httpx_mock.get_requests()[0]
        assert json.loads(create_request.content) == {
            "type": "ed25519",
            "derived": False,
            "allow_deletion": False,
        }

    @pytest.mark.asyncio
    async def test_list_keys(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="LIST",
            url=f"{VAULT}/v1/transit/users/keys",
            json={"data": {"keys": ["alice", "bob"]}},
        )
        assert await _client().list_keys("transit/users") == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_list_empty_mount(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="LIST", url=f"{VAULT}/v1/transit/users/keys", status_code=404, json={"errors": []}
        )
        assert await _client().list_keys("transit/users") == []


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_uses_vault_settings(self, httpx_mock: HTTPXMock) -> None:
        settings = Settings(vault_base_url="https://vault.example/", vault_namespace="ops")
        httpx_mock.add_response(
            url="https://vault.example/v1/transit/users/keys/alice", json=_key_response()
        )

        client = VaultTransitClient.from_settings(settings, "s.caller")
        assert await client.get_public_key(ROUTE) == KEY_V2

        request = httpx_mock.get_requests()[0]
        assert request.headers["X-Vault-Token"] == "s.caller"
        assert request.headers["X-Vault-Namespace"] == "ops"
