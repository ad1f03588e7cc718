"""
Member specs for heterogeneous group submission.

A group request is an ordered list of specs. Each spec names its
participants by custody id, kind, and the address the caller claims for
them. Claimed addresses are never trusted: the orchestrator resolves
every participant through custody and compares before crafting.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_custody.algorand.tx import AssetParams


@dataclass(frozen=True)
class Participant:
    """A caller-declared signer or receiver.

    Attributes:
        id: User id, or manager key name.
        public_address: Address the caller claims for this participant.
        type: "user" or "manager".
    """

    id: str
    public_address: str
    type: str


@dataclass(frozen=True)
class PaymentSpec:
    sender: Participant
    receiver: Participant
    amount: int
    fee: int | None = None
    lease: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class AssetTransferSpec:
    sender: Participant
    receiver: Participant
    asset_id: int
    amount: int
    fee: int | None = None
    lease: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class AssetCreateSpec:
    sender: Participant
    asset: AssetParams
    fee: int | None = None
    note: str | None = None


GroupTransactionSpec = PaymentSpec | AssetTransferSpec | AssetCreateSpec


def participants(spec: GroupTransactionSpec) -> list[Participant]:
    """Sender first, then receiver when the kind has one."""
    if isinstance(spec, AssetCreateSpec):
        return [spec.sender]
    return [spec.sender, spec.receiver]
