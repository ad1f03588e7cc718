"""
Canonical MessagePack encoding and ledger hashing primitives.

Rules (canonical encoding):
    - Map keys sorted lexicographically, at every level.
    - Empty values omitted: None, 0, False, b"", "", empty map/list.
    - ``str`` packed as msgpack str, ``bytes`` as msgpack bin.
    - Integers packed in their smallest msgpack representation.

Hashing:
    - SHA-512/256 throughout (from ``cryptography``).
    - Transaction id: base32(sha512_256(b"TX" + encoding)), unpadded.
    - Group id: sha512_256(b"TG" + encoding({"txlist": [raw ids...]})).

Addresses:
    base32(public_key + sha512_256(public_key)[-4:]), unpadded, 58 chars.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from typing import Any

import msgpack
from cryptography.hazmat.primitives import hashes

from ledger_custody.errors import InvalidFieldError

TX_PREFIX = b"TX"
GROUP_PREFIX = b"TG"

PUBLIC_KEY_LENGTH = 32
CHECKSUM_LENGTH = 4
ADDRESS_LENGTH = 58
SIGNATURE_LENGTH = 64


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 0
    if isinstance(value, (bytes, str, dict, list, tuple)):
        return len(value) == 0
    return False


def canonicalize(obj: Any) -> Any:
    """Sort keys and drop empty values, recursively."""
    if isinstance(obj, dict):
        result = {}
        for key in sorted(obj):
            value = canonicalize(obj[key])
            if not _is_empty(value):
                result[key] = value
        return result
    if isinstance(obj, (list, tuple)):
        return [canonicalize(item) for item in obj]
    return obj


def encode_msgpack(obj: Any) -> bytes:
    """Serialize to canonical MessagePack bytes."""
    return msgpack.packb(canonicalize(obj), use_bin_type=True)


def decode_msgpack(data: bytes) -> dict[str, Any]:
    """Decode a single MessagePack map."""
    decoded = msgpack.unpackb(data, raw=False, strict_map_key=False)
    if not isinstance(decoded, dict):
        raise ValueError(f"expected a msgpack map, got {type(decoded).__name__}")
    return decoded


def sha512_256(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA512_256())
    digest.update(data)
    return digest.finalize()


def _b32(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").rstrip("=")


def raw_transaction_id(encoded: bytes) -> bytes:
    return sha512_256(TX_PREFIX + encoded)


def transaction_id(encoded: bytes) -> str:
    """Compute the ledger transaction id for an encoded transaction."""
    return _b32(raw_transaction_id(encoded))


def compute_group_id(encoded_transactions: Sequence[bytes]) -> bytes:
    """Hash the ordered member encodings into a 32-byte group id.

    Each member must be encoded with its group field cleared. Order
    matters: any permutation yields a different id.
    """
    txlist = [raw_transaction_id(encoded) for encoded in encoded_transactions]
    return sha512_256(GROUP_PREFIX + encode_msgpack({"txlist": txlist}))


def encode_address(public_key: bytes) -> str:
    """Derive the printable address for a 32-byte public key."""
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise InvalidFieldError(
            "public_key",
            f"must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}",
        )
    checksum = sha512_256(public_key)[-CHECKSUM_LENGTH:]
    return _b32(public_key + checksum)


def decode_address(address: str, *, field: str = "address") -> bytes:
    """Decode and checksum-verify a printable address to its public key."""
    if not isinstance(address, str) or len(address) != ADDRESS_LENGTH:
        raise InvalidFieldError(field, f"not a valid address: {address!r}")
    padding = "=" * (-len(address) % 8)
    try:
        raw = base64.b32decode(address + padding)
    except ValueError:
        raise InvalidFieldError(field, f"not a valid address: {address!r}") from None
    public_key, checksum = raw[:PUBLIC_KEY_LENGTH], raw[PUBLIC_KEY_LENGTH:]
    if len(public_key) != PUBLIC_KEY_LENGTH or sha512_256(public_key)[-CHECKSUM_LENGTH:] != checksum:
        raise InvalidFieldError(field, f"address checksum mismatch: {address!r}")
    return public_key
