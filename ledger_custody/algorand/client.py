"""
Ledger gateway protocol — the network boundary for ledger state.

Defines the interface the workflows depend on, not a concrete
implementation. This keeps resolution, submission and orchestration
testable and keeps HTTP out of business logic.

Concrete implementations:
    - AlgodClient (node REST API)
    - FakeLedger (tests)

Results are frozen dataclasses. Transport failures raise
``LedgerUnavailableError`` with the upstream status code attached.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ledger_custody.algorand.tx import LedgerParameters


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time account state. May be stale by execution time.

    Attributes:
        address: Printable account address.
        balance: Native balance in micro-units.
        min_balance: Current minimum-balance requirement in micro-units.
        asset_holdings: Asset id → held amount.
    """

    address: str
    balance: int
    min_balance: int
    asset_holdings: Mapping[int, int] = field(default_factory=dict)

    @property
    def owned_slack(self) -> int:
        """Spendable balance above the minimum. Negative when underfunded."""
        return self.balance - self.min_balance

    def holds(self, asset_id: int) -> bool:
        return asset_id in self.asset_holdings


@dataclass(frozen=True)
class PendingStatus:
    """Pending-pool view of a submitted transaction.

    Attributes:
        confirmed_round: Round the transaction was committed in, if any.
        pool_error: Non-empty when the node dropped the transaction.
    """

    confirmed_round: int | None = None
    pool_error: str | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerGateway(Protocol):
    """Interface for ledger node operations.

    Every method raises LedgerUnavailableError on transport failure.
    """

    async def get_parameters(self) -> LedgerParameters:
        """Fetch fresh transaction parameters for one workflow run."""
        ...

    async def get_last_round(self) -> int:
        ...

    async def get_account(self, address: str) -> AccountSnapshot:
        ...

    async def get_asset_holding(self, address: str, asset_id: int) -> int | None:
        """Held amount of ``asset_id``, or None if the account has not opted in.

        Single-asset lookup for callers outside the workflows. The resolver
        reads holdings from ``get_account`` so one snapshot covers both
        funding and opt-in decisions.
        """
        ...

    async def submit(self, signed: bytes) -> str:
        """Submit one signed transaction or a concatenated bundle.

        Returns:
            The transaction id reported by the node (first member's id
            for a bundle).

        Raises:
            TransactionRejectedError: The node refused the submission.
            LedgerUnavailableError: Transport failure.
        """
        ...

    async def get_pending_status(self, tx_id: str) -> PendingStatus:
        ...

    async def wait_for_round(self, round_number: int) -> None:
        """Block until the node has seen a round after ``round_number``."""
        ...
