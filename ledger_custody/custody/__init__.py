"""Custody boundary: the CustodyGateway protocol and its transit-engine client."""

from ledger_custody.custody.signer import CustodyGateway, SignatureEnvelope
from ledger_custody.custody.vault import VaultTransitClient

__all__ = ["CustodyGateway", "SignatureEnvelope", "VaultTransitClient"]
