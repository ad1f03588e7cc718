"""
Custody gateway protocol — the secrets boundary.

The workflows never see private keys. They ask custody for the public
key behind a KeyRoute, and ask custody to sign a payload under that
route. Custody answers with a transport-wrapped signature string which
``SignatureEnvelope.parse`` unwraps to the raw 64-byte signature.

Wrapped format:
    <scheme>:<version>:<base64 signature>      e.g. "vault:v1:MEUCIQ..."

Concrete implementations:
    - VaultTransitClient (transit secrets engine over HTTP)
    - FakeCustody (tests, real Ed25519 keys in memory)
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ledger_custody.algorand.encoding import SIGNATURE_LENGTH
from ledger_custody.errors import CustodyUnavailableError
from ledger_custody.identity import KeyRoute


@dataclass(frozen=True)
class SignatureEnvelope:
    """A parsed custody signature.

    Attributes:
        scheme: Wrapper scheme tag (e.g. "vault").
        version: Key version that produced the signature (e.g. "v1").
        raw_signature: Raw 64-byte Ed25519 signature.
    """

    scheme: str
    version: str
    raw_signature: bytes

    @classmethod
    def parse(cls, wrapped: str) -> SignatureEnvelope:
        """Unwrap ``<scheme>:<version>:<base64>``.

        Raises:
            CustodyUnavailableError: If the wrapper is malformed or the
                signature is not 64 bytes.
        """
        parts = wrapped.split(":") if isinstance(wrapped, str) else []
        if len(parts) != 3 or not all(parts):
            raise CustodyUnavailableError(
                "malformed signature envelope",
                details={"parts": len(parts)},
            )
        scheme, version, encoded = parts
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise CustodyUnavailableError(
                "signature envelope is not valid base64"
            ) from None
        if len(raw) != SIGNATURE_LENGTH:
            raise CustodyUnavailableError(
                f"signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}",
                details={"scheme": scheme, "version": version},
            )
        return cls(scheme=scheme, version=version, raw_signature=raw)


@runtime_checkable
class CustodyGateway(Protocol):
    """Interface for remote key custody.

    Every method raises CustodyUnavailableError on transport failure,
    with the upstream status code attached when there is one.
    """

    async def get_public_key(self, route: KeyRoute) -> bytes:
        """Return the 32-byte Ed25519 public key behind ``route``."""
        ...

    async def sign(self, route: KeyRoute, payload: bytes) -> str:
        """Sign ``payload`` with the key behind ``route``.

        Returns:
            Wrapped signature string, see SignatureEnvelope.parse().
        """
        ...

    async def create_key(self, route: KeyRoute) -> bytes:
        """Create an Ed25519 key at ``route`` and return its public key."""
        ...

    async def list_keys(self, mount: str) -> list[str]:
        ...
