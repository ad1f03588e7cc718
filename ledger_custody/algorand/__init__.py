"""
Ledger wire layer.

    Pure layer (no I/O):
        - encoding: canonical msgpack, SHA-512/256, ids, addresses.
        - tx: transaction crafters and LedgerParameters.
        - group: group id assignment and sealing.

    Impure layer (network I/O):
        - LedgerGateway protocol (client.py).
        - AlgodClient, the node REST implementation.
"""

from ledger_custody.algorand.algod_client import AlgodClient
from ledger_custody.algorand.client import AccountSnapshot, LedgerGateway, PendingStatus
from ledger_custody.algorand.encoding import decode_address, encode_address, transaction_id
from ledger_custody.algorand.group import (
    SealedTransaction,
    TransactionBundle,
    assign_group_id,
    seal,
)
from ledger_custody.algorand.tx import (
    AssetParams,
    LedgerParameters,
    TxKind,
    UnsignedTransaction,
    craft_asset_clawback,
    craft_asset_create,
    craft_asset_opt_in,
    craft_asset_transfer,
    craft_payment,
    decode_transaction,
)

__all__ = [
    "AccountSnapshot",
    "AlgodClient",
    "AssetParams",
    "LedgerGateway",
    "LedgerParameters",
    "PendingStatus",
    "SealedTransaction",
    "TransactionBundle",
    "TxKind",
    "UnsignedTransaction",
    "assign_group_id",
    "craft_asset_clawback",
    "craft_asset_create",
    "craft_asset_opt_in",
    "craft_asset_transfer",
    "craft_payment",
    "decode_address",
    "decode_transaction",
    "encode_address",
    "seal",
    "transaction_id",
]
