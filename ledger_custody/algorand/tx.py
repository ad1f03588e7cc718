"""
Transaction crafting — canonical unsigned transactions from semantic fields.

Pure, deterministic, no secrets, no network calls. Every crafter takes
the sender Identity, the semantic fields, and the LedgerParameters of
the current workflow run, and returns an UnsignedTransaction whose
``encoded`` bytes are the canonical msgpack encoding.

Numeric semantics:
    - Native amounts are integers in micro-units.
    - Asset amounts are integers in the asset's indivisible unit.
      ``decimals`` is display metadata only and is never applied here.

The crafters enforce:
    - Amounts, totals and fees are non-negative uint64 integers.
    - ``decimals`` requires ``total``.
    - A lease is base64 that decodes to exactly 32 bytes.
    - A note is at most MAX_NOTE_BYTES once UTF-8 encoded.
    - Addresses carry a valid checksum.
    - The group field is never set here (see group.py).
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from ledger_custody.algorand.encoding import (
    decode_address,
    decode_msgpack,
    encode_address,
    encode_msgpack,
    transaction_id,
)
from ledger_custody.errors import InvalidFieldError
from ledger_custody.identity import Identity

UINT64_MAX = 2**64 - 1
MAX_NOTE_BYTES = 1024
LEASE_BYTES = 32
MAX_DECIMALS = 19
MAX_UNIT_NAME_BYTES = 8
MAX_ASSET_NAME_BYTES = 32
MAX_URL_BYTES = 96


class TxKind(StrEnum):
    PAYMENT = "payment"
    ASSET_TRANSFER = "asset_transfer"
    ASSET_CREATE = "asset_create"
    ASSET_CLAWBACK = "asset_clawback"


# Wire "type" field per kind. Transfers and clawbacks share "axfer".
_WIRE_TYPE: dict[TxKind, str] = {
    TxKind.PAYMENT: "pay",
    TxKind.ASSET_TRANSFER: "axfer",
    TxKind.ASSET_CREATE: "acfg",
    TxKind.ASSET_CLAWBACK: "axfer",
}


# =========================================================================
# Value types
# =========================================================================


@dataclass(frozen=True)
class LedgerParameters:
    """Transaction parameters for one workflow run. Never cached.

    Attributes:
        fee: Flat fee per transaction, in micro-units.
        first_valid_round: First round the transaction may execute in.
        last_valid_round: Last round the transaction may execute in.
        genesis_id: Network genesis id string.
        genesis_hash: Network genesis hash bytes.
    """

    fee: int
    first_valid_round: int
    last_valid_round: int
    genesis_id: str
    genesis_hash: bytes

    def with_fee(self, fee: int) -> LedgerParameters:
        _check_uint64("fee", fee)
        return replace(self, fee=fee)


@dataclass(frozen=True)
class AssetParams:
    """Semantic asset configuration for asset creation.

    Empty values are normalised to what the wire can carry: a blank text
    field is unset, and a given ``total`` implies ``decimals=0``.
    """

    total: int | None = None
    decimals: int | None = None
    default_frozen: bool = False
    unit_name: str | None = None
    asset_name: str | None = None
    url: str | None = None
    manager_address: str | None = None
    reserve_address: str | None = None
    freeze_address: str | None = None
    clawback_address: str | None = None

    def __post_init__(self) -> None:
        for name in ("unit_name", "asset_name", "url"):
            if getattr(self, name) == "":
                object.__setattr__(self, name, None)
        if self.total is not None and self.decimals is None:
            object.__setattr__(self, "decimals", 0)


@dataclass(frozen=True)
class UnsignedTransaction:
    """A fully built transaction that has not been grouped or signed.

    Attributes:
        kind: Semantic transaction kind.
        sender: Identity whose key must sign this transaction.
        fields: Canonical wire fields (sorted, empty values dropped).
        encoded: Canonical msgpack encoding of ``fields``.
    """

    kind: TxKind
    sender: Identity
    fields: Mapping[str, Any]
    encoded: bytes

    @property
    def tx_id(self) -> str:
        return transaction_id(self.encoded)


# =========================================================================
# Field validation
# =========================================================================


def _check_uint64(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldError(field, f"must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidFieldError(field, f"must be non-negative, got {value}")
    if value > UINT64_MAX:
        raise InvalidFieldError(field, f"exceeds uint64 range: {value}")
    return value


def _check_text(field: str, value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    if len(value.encode("utf-8")) > limit:
        raise InvalidFieldError(field, f"must be at most {limit} bytes")
    return value


def parse_lease(lease: str | None) -> bytes | None:
    """Decode a base64 lease. It must decode to exactly 32 bytes."""
    if lease is None:
        return None
    try:
        raw = base64.b64decode(lease, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidFieldError("lease", "not valid base64") from None
    if len(raw) != LEASE_BYTES:
        raise InvalidFieldError(
            "lease", f"must decode to exactly {LEASE_BYTES} bytes, got {len(raw)}"
        )
    return raw


def encode_note(note: str | None) -> bytes | None:
    if note is None:
        return None
    raw = note.encode("utf-8")
    if len(raw) > MAX_NOTE_BYTES:
        raise InvalidFieldError(
            "note", f"must be at most {MAX_NOTE_BYTES} bytes, got {len(raw)}"
        )
    return raw


def validate_request_fields(
    *,
    amount: int | None = None,
    asset_id: int | None = None,
    receiver: str | None = None,
    lease: str | None = None,
    note: str | None = None,
    fee: int | None = None,
    asset: AssetParams | None = None,
) -> None:
    """Run the crafters' local checks up front, before any ledger call."""
    if amount is not None:
        _check_uint64("amount", amount)
    if asset_id is not None:
        _check_asset_id(asset_id)
    if receiver is not None:
        decode_address(receiver, field="receiver")
    parse_lease(lease)
    encode_note(note)
    if fee is not None:
        _check_uint64("fee", fee)
    if asset is not None:
        _asset_params_fields(asset)


# =========================================================================
# Crafting
# =========================================================================


def _header(
    kind: TxKind,
    sender: Identity,
    params: LedgerParameters,
    lease: str | None,
    note: str | None,
) -> dict[str, Any]:
    return {
        "type": _WIRE_TYPE[kind],
        "snd": sender.address,
        "fee": _check_uint64("fee", params.fee),
        "fv": params.first_valid_round,
        "lv": params.last_valid_round,
        "gen": params.genesis_id,
        "gh": params.genesis_hash,
        "lx": parse_lease(lease),
        "note": encode_note(note),
    }


def _build(kind: TxKind, sender: Identity, fields: dict[str, Any]) -> UnsignedTransaction:
    encoded = encode_msgpack(fields)
    return UnsignedTransaction(
        kind=kind,
        sender=sender,
        fields=decode_msgpack(encoded),
        encoded=encoded,
    )


def craft_payment(
    sender: Identity,
    receiver: str,
    amount: int,
    params: LedgerParameters,
    *,
    lease: str | None = None,
    note: str | None = None,
) -> UnsignedTransaction:
    """Build a native-unit payment of ``amount`` micro-units."""
    fields = _header(TxKind.PAYMENT, sender, params, lease, note)
    fields["rcv"] = decode_address(receiver, field="receiver")
    fields["amt"] = _check_uint64("amount", amount)
    return _build(TxKind.PAYMENT, sender, fields)


def craft_asset_transfer(
    sender: Identity,
    receiver: str,
    asset_id: int,
    amount: int,
    params: LedgerParameters,
    *,
    lease: str | None = None,
    note: str | None = None,
) -> UnsignedTransaction:
    """Build an asset transfer. A zero-amount self-transfer is an opt-in."""
    fields = _header(TxKind.ASSET_TRANSFER, sender, params, lease, note)
    fields["xaid"] = _check_asset_id(asset_id)
    fields["arcv"] = decode_address(receiver, field="receiver")
    fields["aamt"] = _check_uint64("amount", amount)
    return _build(TxKind.ASSET_TRANSFER, sender, fields)


def craft_asset_opt_in(
    account: Identity,
    asset_id: int,
    params: LedgerParameters,
    *,
    lease: str | None = None,
) -> UnsignedTransaction:
    return craft_asset_transfer(
        account, account.encoded_address, asset_id, 0, params, lease=lease
    )


def craft_asset_clawback(
    sender: Identity,
    revocation_target: str,
    receiver: str,
    asset_id: int,
    amount: int,
    params: LedgerParameters,
    *,
    lease: str | None = None,
    note: str | None = None,
) -> UnsignedTransaction:
    """Build a clawback: ``sender`` (clawback authority) moves ``amount``
    of the asset from ``revocation_target`` to ``receiver``."""
    fields = _header(TxKind.ASSET_CLAWBACK, sender, params, lease, note)
    fields["xaid"] = _check_asset_id(asset_id)
    fields["asnd"] = decode_address(revocation_target, field="revocation_target")
    fields["arcv"] = decode_address(receiver, field="receiver")
    fields["aamt"] = _check_uint64("amount", amount)
    return _build(TxKind.ASSET_CLAWBACK, sender, fields)


def craft_asset_create(
    sender: Identity,
    asset: AssetParams,
    params: LedgerParameters,
    *,
    lease: str | None = None,
    note: str | None = None,
) -> UnsignedTransaction:
    fields = _header(TxKind.ASSET_CREATE, sender, params, lease, note)
    fields["apar"] = _asset_params_fields(asset)
    return _build(TxKind.ASSET_CREATE, sender, fields)


def _check_asset_id(asset_id: int) -> int:
    _check_uint64("asset_id", asset_id)
    if asset_id == 0:
        raise InvalidFieldError("asset_id", "must be positive")
    return asset_id


def _optional_address(field: str, address: str | None) -> bytes | None:
    if address is None:
        return None
    return decode_address(address, field=field)


def _asset_params_fields(asset: AssetParams) -> dict[str, Any]:
    if asset.decimals is not None and asset.total is None:
        raise InvalidFieldError("decimals", "requires total to be specified")
    total = _check_uint64("total", asset.total) if asset.total is not None else None
    decimals = None
    if asset.decimals is not None:
        decimals = _check_uint64("decimals", asset.decimals)
        if decimals > MAX_DECIMALS:
            raise InvalidFieldError("decimals", f"must be at most {MAX_DECIMALS}")
    return {
        "t": total,
        "dc": decimals,
        "df": asset.default_frozen,
        "un": _check_text("unit_name", asset.unit_name, MAX_UNIT_NAME_BYTES),
        "an": _check_text("asset_name", asset.asset_name, MAX_ASSET_NAME_BYTES),
        "au": _check_text("url", asset.url, MAX_URL_BYTES),
        "m": _optional_address("manager_address", asset.manager_address),
        "r": _optional_address("reserve_address", asset.reserve_address),
        "f": _optional_address("freeze_address", asset.freeze_address),
        "c": _optional_address("clawback_address", asset.clawback_address),
    }


# =========================================================================
# Decoding (inverse of crafting)
# =========================================================================

_SEMANTIC_NAMES = {
    "fee": "fee",
    "fv": "first_valid_round",
    "lv": "last_valid_round",
    "gen": "genesis_id",
    "gh": "genesis_hash",
    "xaid": "asset_id",
}

_ASSET_PARAM_NAMES = {
    "t": "total",
    "dc": "decimals",
    "df": "default_frozen",
    "un": "unit_name",
    "an": "asset_name",
    "au": "url",
    "m": "manager_address",
    "r": "reserve_address",
    "f": "freeze_address",
    "c": "clawback_address",
}


def decode_transaction(encoded: bytes) -> dict[str, Any]:
    """Decode canonical bytes back to semantic fields.

    Addresses come back printable, the lease as base64, the note as text.
    An absent note decodes as empty text and an absent amount as 0; other
    fields that were empty at encoding time are absent.
    """
    wire = decode_msgpack(encoded)
    wire_type = wire.get("type")
    result: dict[str, Any] = {}

    if wire_type == "pay":
        result["kind"] = TxKind.PAYMENT
        result["amount"] = wire.get("amt", 0)
        result["receiver"] = encode_address(wire["rcv"])
    elif wire_type == "axfer":
        if "asnd" in wire:
            result["kind"] = TxKind.ASSET_CLAWBACK
            result["revocation_target"] = encode_address(wire["asnd"])
        else:
            result["kind"] = TxKind.ASSET_TRANSFER
        result["amount"] = wire.get("aamt", 0)
        result["receiver"] = encode_address(wire["arcv"])
    elif wire_type == "acfg":
        result["kind"] = TxKind.ASSET_CREATE
        apar = wire.get("apar", {})
        asset: dict[str, Any] = {}
        for key, name in _ASSET_PARAM_NAMES.items():
            if key in apar:
                value = apar[key]
                asset[name] = encode_address(value) if isinstance(value, bytes) else value
        result["asset"] = AssetParams(**asset)
    else:
        raise ValueError(f"unknown transaction type: {wire_type!r}")

    result["sender"] = encode_address(wire["snd"])
    for key, name in _SEMANTIC_NAMES.items():
        if key in wire:
            result[name] = wire[key]
    if "lx" in wire:
        result["lease"] = base64.b64encode(wire["lx"]).decode("ascii")
    result["note"] = wire.get("note", b"").decode("utf-8")
    if "grp" in wire:
        result["group_id"] = wire["grp"]
    return result
