"""
Funding and opt-in resolution for asset transfers.

Before a receiver can hold an asset it must opt in, and opting in raises
its minimum balance and costs a fee. Given the receiver's current
account snapshot, the resolver decides which auxiliary transactions must
precede the primary transfer:

    1. Opt-in required   ⇔ asset absent from the receiver's holdings.
    2. extra_needed      = OPT_IN_RESERVE + fee   (only when opting in)
    3. owned_slack       = balance − min_balance  (may be negative)
    4. Funding required  ⇔ owned_slack < extra_needed,
       funding amount    = extra_needed − owned_slack

Order is always: funding (manager → receiver), opt-in (receiver → self),
primary transfer. Funding comes first because the opt-in consumes the
fee and reserve that funding provides.

Snapshots may be stale. Two concurrent resolutions for the same receiver
may both fund; over-funding is harmless and an underfunded bundle is
rejected atomically by the ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ledger_custody.algorand.client import LedgerGateway
from ledger_custody.algorand.tx import (
    LedgerParameters,
    UnsignedTransaction,
    craft_asset_opt_in,
    craft_payment,
)
from ledger_custody.identity import Identity

logger = logging.getLogger(__name__)

# Minimum-balance increase for holding one more asset, in micro-units.
OPT_IN_RESERVE = 100_000


@dataclass(frozen=True)
class FundingPlan:
    """Outcome of the precondition check for one receiver and asset.

    Attributes:
        opt_in_required: Receiver does not hold the asset yet.
        extra_min_balance_needed: Reserve plus fee the opt-in will consume.
        owned_slack: Balance above minimum at snapshot time. Signed.
        funding_amount: Top-up the manager must send, 0 if none.
    """

    opt_in_required: bool
    extra_min_balance_needed: int
    owned_slack: int
    funding_amount: int

    @property
    def funding_required(self) -> bool:
        return self.funding_amount > 0


def plan_preconditions(
    *,
    holds_asset: bool,
    balance: int,
    min_balance: int,
    fee: int,
    opt_in_reserve: int = OPT_IN_RESERVE,
) -> FundingPlan:
    """Pure funding and opt-in decision. Python ints keep the slack signed."""
    opt_in_required = not holds_asset
    extra_needed = opt_in_reserve + fee if opt_in_required else 0
    owned_slack = balance - min_balance
    funding_amount = extra_needed - owned_slack if owned_slack < extra_needed else 0
    return FundingPlan(
        opt_in_required=opt_in_required,
        extra_min_balance_needed=extra_needed,
        owned_slack=owned_slack,
        funding_amount=funding_amount,
    )


class FundingAndOptInResolver:
    """Builds the auxiliary transactions a primary asset transfer needs.

    Args:
        ledger: Gateway used to read the receiver's account state.
        opt_in_reserve: Reserve per asset holding, in micro-units.
    """

    def __init__(self, ledger: LedgerGateway, *, opt_in_reserve: int = OPT_IN_RESERVE) -> None:
        self._ledger = ledger
        self._opt_in_reserve = opt_in_reserve

    async def plan(
        self, receiver: Identity, asset_id: int, params: LedgerParameters
    ) -> FundingPlan:
        snapshot = await self._ledger.get_account(receiver.encoded_address)
        funding_plan = plan_preconditions(
            holds_asset=snapshot.holds(asset_id),
            balance=snapshot.balance,
            min_balance=snapshot.min_balance,
            fee=params.fee,
            opt_in_reserve=self._opt_in_reserve,
        )
        logger.debug(
            "preconditions for %s asset %d: opt_in=%s slack=%d funding=%d",
            receiver,
            asset_id,
            funding_plan.opt_in_required,
            funding_plan.owned_slack,
            funding_plan.funding_amount,
        )
        return funding_plan

    async def resolve(
        self,
        funder: Identity,
        receiver: Identity,
        asset_id: int,
        params: LedgerParameters,
        *,
        lease: str | None = None,
    ) -> list[UnsignedTransaction]:
        """Return the ordered auxiliary transactions to prepend (0, 1 or 2).

        Args:
            funder: Identity that pays any balance top-up (the manager).
            receiver: Identity that will receive the asset.
            asset_id: Asset about to be transferred.
            params: LedgerParameters of the current workflow run.
            lease: Optional base64 lease carried by the opt-in.
        """
        funding_plan = await self.plan(receiver, asset_id, params)

        auxiliary: list[UnsignedTransaction] = []
        if funding_plan.funding_required:
            auxiliary.append(
                craft_payment(
                    funder,
                    receiver.encoded_address,
                    funding_plan.funding_amount,
                    params,
                )
            )
        if funding_plan.opt_in_required:
            auxiliary.append(craft_asset_opt_in(receiver, asset_id, params, lease=lease))
        return auxiliary
