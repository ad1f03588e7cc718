"""
Error taxonomy for ledger custody workflows.

Every error carries a machine-readable ``error_code``, a ``details`` dict
for diagnostics, and a ``submitted`` flag:

    - submitted=False: nothing reached the ledger. The whole workflow is
      safe to retry.
    - submitted=True: a bundle was accepted for submission and its outcome
      is unknown or negative. Do not blindly retry; a retry may build a
      different, non-idempotent bundle.

Error codes:
    - INVALID_FIELD: malformed input, local, never retried.
    - EMPTY_GROUP: grouping was asked to bundle nothing.
    - ADDRESS_MISMATCH: claimed address differs from the custody-derived one.
    - SIGNING_AUTHORITY_MISMATCH: no custody route for a sender, or the
      custody signature does not verify against the sender key.
    - CUSTODY_UNAVAILABLE: custody transport failure or malformed reply.
    - LEDGER_UNAVAILABLE: node transport failure.
    - REJECTED: the ledger explicitly refused the transaction.
    - TIMEOUT: confirmation not observed within the round budget.
"""

from __future__ import annotations

from typing import Any


class LedgerCustodyError(Exception):
    """Base error for all custody and ledger workflow failures."""

    error_code = "UNKNOWN"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        submitted: bool = False,
    ) -> None:
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code
        self.details: dict[str, Any] = details or {}
        self.submitted = submitted


class InvalidFieldError(LedgerCustodyError):
    """A transaction field failed local validation."""

    error_code = "INVALID_FIELD"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}", details={"field": field})
        self.field = field


class EmptyGroupError(LedgerCustodyError):
    error_code = "EMPTY_GROUP"


class AddressMismatchError(LedgerCustodyError):
    """A declared address does not match the address derived from custody."""

    error_code = "ADDRESS_MISMATCH"

    def __init__(self, identity_id: str, claimed: str, actual: str) -> None:
        super().__init__(
            f"address mismatch for {identity_id!r}: claimed {claimed}, custody resolves {actual}",
            details={"id": identity_id, "claimed": claimed, "actual": actual},
        )


class SigningAuthorityMismatchError(LedgerCustodyError):
    error_code = "SIGNING_AUTHORITY_MISMATCH"


class _UpstreamError(LedgerCustodyError):
    """Transport failure against an external service."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        submitted: bool = False,
        tx_id: str | None = None,
    ) -> None:
        merged = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        if tx_id is not None:
            merged["tx_id"] = tx_id
        super().__init__(message, details=merged, submitted=submitted)
        self.status_code = status_code
        self.tx_id = tx_id


class CustodyUnavailableError(_UpstreamError):
    error_code = "CUSTODY_UNAVAILABLE"


class LedgerUnavailableError(_UpstreamError):
    error_code = "LEDGER_UNAVAILABLE"


class TransactionRejectedError(LedgerCustodyError):
    """The ledger explicitly refused the transaction. Terminal."""

    error_code = "REJECTED"

    def __init__(self, reason: str, *, tx_id: str | None = None) -> None:
        super().__init__(
            f"transaction rejected: {reason}",
            details={"tx_id": tx_id, "reason": reason},
            submitted=tx_id is not None,
        )
        self.reason = reason
        self.tx_id = tx_id


class ConfirmationTimeoutError(LedgerCustodyError):
    """Confirmation was not observed in time. The transaction may still confirm."""

    error_code = "TIMEOUT"

    def __init__(self, tx_id: str, *, wait_rounds: int, last_round: int) -> None:
        super().__init__(
            f"transaction {tx_id} not confirmed after {wait_rounds} rounds",
            details={"tx_id": tx_id, "wait_rounds": wait_rounds, "last_round": last_round},
            submitted=True,
        )
        self.tx_id = tx_id
        self.wait_rounds = wait_rounds
        self.last_round = last_round
