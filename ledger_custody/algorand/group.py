"""
Group planning — atomic bundles with a deterministic group id.

Grouping must happen after every member is fully built and before any
member is signed: stamping the group id changes the signed bytes.

The type split enforces that ordering:

    UnsignedTransaction  --assign_group_id()-->  TransactionBundle[SealedTransaction]
    UnsignedTransaction  --seal()-------------->  SealedTransaction (standalone)

Only SealedTransaction is accepted by the signing dispatcher, so an
ungrouped encoding can never be signed and then grouped.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ledger_custody.algorand.encoding import (
    TX_PREFIX,
    compute_group_id,
    decode_msgpack,
    encode_msgpack,
    transaction_id,
)
from ledger_custody.algorand.tx import TxKind, UnsignedTransaction
from ledger_custody.errors import EmptyGroupError, InvalidFieldError
from ledger_custody.identity import Identity

GROUP_ID_BYTES = 32
# Protocol limit on bundle size.
MAX_GROUP_SIZE = 16


@dataclass(frozen=True)
class SealedTransaction:
    """A transaction in its final, signable encoding.

    Attributes:
        kind: Semantic transaction kind.
        sender: Identity whose key must sign.
        fields: Final wire fields, including ``grp`` when grouped.
        encoded: Final canonical encoding.
        group_id: 32-byte group id, or None for a standalone transaction.
    """

    kind: TxKind
    sender: Identity
    fields: Mapping[str, Any]
    encoded: bytes
    group_id: bytes | None = None

    @property
    def tx_id(self) -> str:
        return transaction_id(self.encoded)

    @property
    def bytes_to_sign(self) -> bytes:
        return TX_PREFIX + self.encoded


@dataclass(frozen=True)
class TransactionBundle:
    """Ordered members sharing one group id. Order is fixed at creation."""

    group_id: bytes
    members: tuple[SealedTransaction, ...]

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[SealedTransaction]:
        return iter(self.members)


def _check_ungrouped(tx: UnsignedTransaction, index: int) -> None:
    if "grp" in tx.fields:
        raise InvalidFieldError(
            f"transactions[{index}].group_id", "transaction is already grouped"
        )


def seal(tx: UnsignedTransaction) -> SealedTransaction:
    """Finalize a standalone transaction without a group."""
    _check_ungrouped(tx, 0)
    return SealedTransaction(
        kind=tx.kind, sender=tx.sender, fields=tx.fields, encoded=tx.encoded
    )


def assign_group_id(transactions: Sequence[UnsignedTransaction]) -> TransactionBundle:
    """Compute the group id over the ordered members and stamp it into each.

    Args:
        transactions: Ordered, non-empty sequence of ungrouped transactions.

    Returns:
        TransactionBundle preserving input order.

    Raises:
        EmptyGroupError: If ``transactions`` is empty.
        InvalidFieldError: If a member already carries a group id, or the
            bundle exceeds MAX_GROUP_SIZE.
    """
    if not transactions:
        raise EmptyGroupError("cannot group an empty transaction list")
    if len(transactions) > MAX_GROUP_SIZE:
        raise InvalidFieldError(
            "transactions",
            f"a group holds at most {MAX_GROUP_SIZE} transactions, got {len(transactions)}",
        )
    for index, tx in enumerate(transactions):
        _check_ungrouped(tx, index)

    group_id = compute_group_id([tx.encoded for tx in transactions])

    members = []
    for tx in transactions:
        encoded = encode_msgpack({**tx.fields, "grp": group_id})
        members.append(
            SealedTransaction(
                kind=tx.kind,
                sender=tx.sender,
                fields=decode_msgpack(encoded),
                encoded=encoded,
                group_id=group_id,
            )
        )
    return TransactionBundle(group_id=group_id, members=tuple(members))
