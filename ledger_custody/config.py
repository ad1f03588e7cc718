"""
Runtime settings, read from the environment.

All values have development defaults. Numeric values are validated at
load time so a typo fails fast instead of mid-workflow.

The custody token is a per-request credential and is not part of the
settings; pass it to ``VaultTransitClient`` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Connection and protocol settings.

    Attributes:
        node_url: Ledger node REST endpoint.
        node_token: API token sent as ``X-Algo-API-Token``.
        vault_base_url: Custody service base URL.
        vault_namespace: Optional custody namespace header.
        users_path: Transit mount holding per-user keys.
        managers_path: Transit mount holding manager keys.
        manager_key: Name of the default manager key.
        wait_rounds: Confirmation round budget.
        validity_window: Rounds a crafted transaction stays valid.
        http_timeout: Per-request timeout in seconds.
    """

    node_url: str = "http://localhost:4001"
    node_token: str = ""
    vault_base_url: str = "http://localhost:8200"
    vault_namespace: str | None = None
    users_path: str = "transit/users"
    managers_path: str = "transit/managers"
    manager_key: str = "manager"
    wait_rounds: int = 20
    validity_window: int = 1000
    http_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.wait_rounds < 1:
            raise ValueError(f"wait_rounds must be >= 1, got: {self.wait_rounds}")
        if self.validity_window < 1:
            raise ValueError(
                f"validity_window must be >= 1, got: {self.validity_window}"
            )
        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be > 0, got: {self.http_timeout}")
        if not self.manager_key:
            raise ValueError("manager_key must be non-empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            node_url=env.get("LEDGER_NODE_URL", cls.node_url),
            node_token=env.get("LEDGER_NODE_TOKEN", cls.node_token),
            vault_base_url=env.get("VAULT_BASE_URL", cls.vault_base_url),
            vault_namespace=env.get("VAULT_NAMESPACE") or None,
            users_path=env.get("VAULT_TRANSIT_USERS_PATH", cls.users_path),
            managers_path=env.get("VAULT_TRANSIT_MANAGERS_PATH", cls.managers_path),
            manager_key=env.get("VAULT_MANAGER_KEY", cls.manager_key),
            wait_rounds=_int(env, "LEDGER_WAIT_ROUNDS", cls.wait_rounds),
            validity_window=_int(env, "LEDGER_VALIDITY_WINDOW", cls.validity_window),
            http_timeout=_float(env, "HTTP_TIMEOUT_S", cls.http_timeout),
        )


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from None
