"""
Signing dispatch — route each sealed transaction to its signer's key.

Routing by role:
    - user     → ``{users_path}/{identity.id}``
    - manager  → ``{managers_path}/{identity.id}`` (the default manager
      identity carries the configured manager key name as its id)
    - anything else → SigningAuthorityMismatchError. An unsigned member
      invalidates the whole bundle, so this is never skipped.

After custody signs ``b"TX" + encoded``, the raw signature is verified
against the transaction's own sender key before it is attached. A
signature produced by the wrong key, or over different bytes, never
leaves this module.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from ledger_custody.algorand.encoding import encode_msgpack, transaction_id
from ledger_custody.algorand.group import SealedTransaction
from ledger_custody.custody.signer import CustodyGateway, SignatureEnvelope
from ledger_custody.errors import SigningAuthorityMismatchError
from ledger_custody.identity import Identity, KeyRoute, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedTransaction:
    """A sealed transaction with its signature attached.

    Attributes:
        transaction: The sealed transaction that was signed.
        signature: Raw 64-byte signature over ``transaction.bytes_to_sign``.
        encoded: Signed wire encoding, ``{"sig": ..., "txn": ...}``.
    """

    transaction: SealedTransaction
    signature: bytes
    encoded: bytes

    @property
    def tx_id(self) -> str:
        return transaction_id(self.transaction.encoded)


class SigningDispatcher:
    """Maps senders to custody routes and signs through custody.

    Args:
        custody: Custody gateway used for signing.
        users_path: Transit mount holding user keys.
        managers_path: Transit mount holding manager keys.
    """

    def __init__(
        self,
        custody: CustodyGateway,
        *,
        users_path: str,
        managers_path: str,
    ) -> None:
        self._custody = custody
        self._mounts: dict[str, str] = {Role.USER: users_path, Role.MANAGER: managers_path}

    def route_for(self, role: str, identity_id: str) -> KeyRoute:
        """Resolve a custody route, or raise SigningAuthorityMismatchError."""
        mount = self._mounts.get(role)
        if mount is None:
            raise SigningAuthorityMismatchError(
                f"no custody route for sender kind {role!r}",
                details={"role": role, "id": identity_id},
            )
        if not identity_id:
            raise SigningAuthorityMismatchError(
                f"sender of kind {role!r} has no id",
                details={"role": role},
            )
        return KeyRoute(mount=mount, key_name=identity_id)

    async def sign(self, tx: SealedTransaction) -> SignedTransaction:
        """Sign one sealed transaction as its declared sender."""
        sender = tx.sender
        route = self.route_for(sender.role, sender.id)
        payload = tx.bytes_to_sign

        wrapped = await self._custody.sign(route, payload)
        envelope = SignatureEnvelope.parse(wrapped)
        _verify(tx, sender, envelope.raw_signature, payload)

        logger.debug("signed %s as %s via %s", tx.tx_id, sender, route)
        encoded = encode_msgpack({"sig": envelope.raw_signature, "txn": dict(tx.fields)})
        return SignedTransaction(
            transaction=tx, signature=envelope.raw_signature, encoded=encoded
        )

    async def sign_all(self, transactions: Iterable[SealedTransaction]) -> list[SignedTransaction]:
        """Sign members one by one, each by its own sender, preserving order."""
        return [await self.sign(tx) for tx in transactions]


def _verify(
    tx: SealedTransaction, sender: Identity, signature: bytes, payload: bytes
) -> None:
    signer_key = tx.fields.get("snd")
    if signer_key != sender.address:
        raise SigningAuthorityMismatchError(
            f"transaction sender does not match identity {sender}",
            details={"tx_id": tx.tx_id},
        )
    try:
        Ed25519PublicKey.from_public_bytes(sender.address).verify(signature, payload)
    except InvalidSignature:
        raise SigningAuthorityMismatchError(
            f"custody signature for {sender} does not verify against the sender key",
            details={"tx_id": tx.tx_id, "id": sender.id},
        ) from None
