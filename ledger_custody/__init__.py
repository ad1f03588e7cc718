"""
Ledger custody: value transfers on a ledger with externally held keys.

Public API:

    Orchestration:
        - ``TransferOrchestrator`` — transfer_value, transfer_asset,
          clawback_asset, create_asset, submit_group, account queries.

    Building blocks:
        - ``FundingAndOptInResolver`` — auxiliary transactions for transfers.
        - ``SigningDispatcher`` — per-sender custody signing.
        - ``SubmissionPipeline`` — submit and poll for confirmation.

    Protocols (for dependency injection):
        - ``LedgerGateway`` — node state, submission, polling.
        - ``CustodyGateway`` — public keys and signatures.

    Concrete gateways:
        - ``AlgodClient`` — node REST API over httpx.
        - ``VaultTransitClient`` — transit secrets engine over httpx.
"""

from ledger_custody.algorand import AlgodClient, AssetParams, LedgerGateway
from ledger_custody.config import Settings
from ledger_custody.custody import CustodyGateway, VaultTransitClient
from ledger_custody.dispatcher import SignedTransaction, SigningDispatcher
from ledger_custody.errors import (
    AddressMismatchError,
    ConfirmationTimeoutError,
    CustodyUnavailableError,
    EmptyGroupError,
    InvalidFieldError,
    LedgerCustodyError,
    LedgerUnavailableError,
    SigningAuthorityMismatchError,
    TransactionRejectedError,
)
from ledger_custody.identity import Identity, KeyRoute, Role
from ledger_custody.orchestrator import AccountInfo, GroupSubmission, TransferOrchestrator
from ledger_custody.resolver import FundingAndOptInResolver, FundingPlan
from ledger_custody.specs import (
    AssetCreateSpec,
    AssetTransferSpec,
    Participant,
    PaymentSpec,
)
from ledger_custody.submission import ConfirmationResult, SubmissionPipeline

__version__ = "0.1.0"

__all__ = [
    "AccountInfo",
    "AddressMismatchError",
    "AlgodClient",
    "AssetCreateSpec",
    "AssetParams",
    "AssetTransferSpec",
    "ConfirmationResult",
    "ConfirmationTimeoutError",
    "CustodyGateway",
    "CustodyUnavailableError",
    "EmptyGroupError",
    "FundingAndOptInResolver",
    "FundingPlan",
    "GroupSubmission",
    "Identity",
    "InvalidFieldError",
    "KeyRoute",
    "LedgerCustodyError",
    "LedgerGateway",
    "LedgerUnavailableError",
    "Participant",
    "PaymentSpec",
    "Role",
    "Settings",
    "SignedTransaction",
    "SigningAuthorityMismatchError",
    "SigningDispatcher",
    "SubmissionPipeline",
    "TransactionRejectedError",
    "TransferOrchestrator",
    "VaultTransitClient",
]
