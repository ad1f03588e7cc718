"""
Submission and confirmation polling.

State machine:

    Submitted ──► Polling ──► Confirmed
                     │  ╰───► Rejected   (pool error observed, terminal)
                     ╰──────► TimedOut   (round budget exhausted)

Polling starts at the node's current round. Each iteration queries the
pending status, then waits for the next round, up to ``wait_rounds``
rounds.

Failure-handling rule:
    - A failed status lookup is "not yet visible" and polling continues.
      A load-balanced node may answer 404 for a transaction submitted
      through a sibling.
    - An observed pool error is terminal and returned immediately.
    - A confirmed round is returned immediately.

Once submitted, a bundle cannot be cancelled. A caller may abandon
polling (cancel the task); the ledger state is unaffected and the
outcome remains queryable by transaction id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ledger_custody.algorand.client import LedgerGateway
from ledger_custody.dispatcher import SignedTransaction
from ledger_custody.errors import (
    ConfirmationTimeoutError,
    LedgerUnavailableError,
    TransactionRejectedError,
)

logger = logging.getLogger(__name__)

DEFAULT_WAIT_ROUNDS = 20


@dataclass(frozen=True)
class ConfirmationResult:
    """Terminal polling outcome other than a timeout.

    Attributes:
        tx_id: Transaction id reported at submission.
        confirmed_round: Round of inclusion, None when rejected.
        rejected: True if the node reported a pool error.
        reason: Pool error text when rejected.
    """

    tx_id: str
    confirmed_round: int | None = None
    rejected: bool = False
    reason: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.confirmed_round is not None and not self.rejected


class SubmissionPipeline:
    """Submits signed transactions and waits for a terminal outcome.

    Args:
        ledger: Gateway used for submission and polling.
        wait_rounds: Default round budget for confirmation.
    """

    def __init__(self, ledger: LedgerGateway, *, wait_rounds: int = DEFAULT_WAIT_ROUNDS) -> None:
        self._ledger = ledger
        self._wait_rounds = wait_rounds

    async def submit(self, signed: list[SignedTransaction]) -> str:
        """Submit one transaction or an ordered bundle in one network call."""
        if not signed:
            raise ValueError("nothing to submit")
        blob = b"".join(tx.encoded for tx in signed)
        tx_id = await self._ledger.submit(blob)
        logger.info("submitted %d transaction(s) as %s", len(signed), tx_id)
        return tx_id

    async def wait_for_confirmation(
        self, tx_id: str, *, wait_rounds: int | None = None
    ) -> ConfirmationResult:
        """Poll until confirmed, rejected, or the round budget runs out.

        Returns:
            ConfirmationResult, confirmed or rejected.

        Raises:
            ConfirmationTimeoutError: No terminal status within the budget.
            LedgerUnavailableError: Waiting for the next round failed.
                Marked submitted, the outcome is unknown.
        """
        budget = self._wait_rounds if wait_rounds is None else wait_rounds
        try:
            start_round = await self._ledger.get_last_round()
        except LedgerUnavailableError as exc:
            raise _after_submission(exc, tx_id) from exc
        stop_round = start_round + budget
        current_round = start_round

        while current_round < stop_round:
            try:
                status = await self._ledger.get_pending_status(tx_id)
            except LedgerUnavailableError as exc:
                logger.warning(
                    "pending lookup for %s failed at round %d, retrying: %s",
                    tx_id,
                    current_round,
                    exc,
                )
            else:
                if status.confirmed_round:
                    logger.info("%s confirmed in round %d", tx_id, status.confirmed_round)
                    return ConfirmationResult(
                        tx_id=tx_id, confirmed_round=status.confirmed_round
                    )
                if status.pool_error:
                    logger.info("%s rejected: %s", tx_id, status.pool_error)
                    return ConfirmationResult(
                        tx_id=tx_id, rejected=True, reason=status.pool_error
                    )
                logger.debug("%s pending at round %d", tx_id, current_round)

            try:
                await self._ledger.wait_for_round(current_round)
            except LedgerUnavailableError as exc:
                raise _after_submission(exc, tx_id) from exc
            current_round += 1

        raise ConfirmationTimeoutError(tx_id, wait_rounds=budget, last_round=current_round)

    async def submit_and_confirm(
        self, signed: list[SignedTransaction], *, wait_rounds: int | None = None
    ) -> ConfirmationResult:
        """Submit, then wait. Rejection and timeout surface as errors.

        Raises:
            TransactionRejectedError: Refused at submission or pool error.
            ConfirmationTimeoutError: No terminal status within the budget.
        """
        tx_id = await self.submit(signed)
        result = await self.wait_for_confirmation(tx_id, wait_rounds=wait_rounds)
        if result.rejected:
            raise TransactionRejectedError(result.reason or "pool error", tx_id=tx_id)
        return result


def _after_submission(exc: LedgerUnavailableError, tx_id: str) -> LedgerUnavailableError:
    return LedgerUnavailableError(
        f"lost contact with the node after submitting {tx_id}: {exc}",
        status_code=exc.status_code,
        submitted=True,
        tx_id=tx_id,
    )
