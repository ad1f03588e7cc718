"""
Signing identities and their custody routes.

An Identity is a resolved signer: an id, a role, and the 32-byte public
key (the ledger address in raw form) obtained from custody. Identities
are only built from a custody-retrieved public key, never from a
caller-supplied address, so the address is always derivable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ledger_custody.algorand.encoding import PUBLIC_KEY_LENGTH, encode_address


class Role(StrEnum):
    USER = "user"
    MANAGER = "manager"


@dataclass(frozen=True)
class KeyRoute:
    """Where a key lives in custody: transit mount and key name."""

    mount: str
    key_name: str

    def __str__(self) -> str:
        return f"{self.mount}/{self.key_name}"


@dataclass(frozen=True)
class Identity:
    """A signer resolved against custody.

    Attributes:
        id: User id or manager key name.
        role: ``Role.USER`` or ``Role.MANAGER``. Kept as a plain string so
            an unknown kind from a caller survives until routing rejects it.
        address: Raw 32-byte public key.
    """

    id: str
    role: str
    address: bytes

    def __post_init__(self) -> None:
        if len(self.address) != PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"address must be {PUBLIC_KEY_LENGTH} bytes, got {len(self.address)}"
            )

    @property
    def encoded_address(self) -> str:
        return encode_address(self.address)

    def __str__(self) -> str:
        return f"{self.role}:{self.id}"
