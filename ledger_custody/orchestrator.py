"""
Transfer orchestration — end-to-end custody workflows.

Composes the pure crafting and grouping layer (algorand/tx.py,
algorand/group.py) with the network boundaries (LedgerGateway,
CustodyGateway) through the resolver, dispatcher and pipeline.

Workflows:
    - transfer_value()  — one payment, signed by its sender's role.
    - transfer_asset()  — manager → user, with funding and opt-in
      preconditions resolved and bundled atomically.
    - clawback_asset()  — manager moves an asset from a user back to itself.
    - create_asset()    — manager creates an asset.
    - submit_group()    — caller-described heterogeneous group, with every
      participant verified against custody before crafting.

Every workflow fetches fresh LedgerParameters, runs sequentially, and
owns its transactions; nothing is shared between concurrent calls.
Private keys never enter this process.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ledger_custody.algorand.client import LedgerGateway
from ledger_custody.algorand.encoding import PUBLIC_KEY_LENGTH
from ledger_custody.algorand.group import SealedTransaction, assign_group_id, seal
from ledger_custody.algorand.tx import (
    AssetParams,
    LedgerParameters,
    UnsignedTransaction,
    craft_asset_clawback,
    craft_asset_create,
    craft_asset_transfer,
    craft_payment,
    validate_request_fields,
)
from ledger_custody.config import Settings
from ledger_custody.custody.signer import CustodyGateway
from ledger_custody.dispatcher import SigningDispatcher
from ledger_custody.errors import (
    AddressMismatchError,
    CustodyUnavailableError,
    EmptyGroupError,
)
from ledger_custody.identity import Identity, KeyRoute, Role
from ledger_custody.resolver import FundingAndOptInResolver
from ledger_custody.specs import (
    AssetCreateSpec,
    AssetTransferSpec,
    GroupTransactionSpec,
    PaymentSpec,
    participants,
)
from ledger_custody.submission import SubmissionPipeline

logger = logging.getLogger(__name__)

# Sender id that selects the default manager key in transfer_value().
MANAGER_SENDER = "manager"


@dataclass(frozen=True)
class GroupSubmission:
    """Result of submit_group().

    Attributes:
        tx_id: Transaction id reported by the node.
        signed_transactions: Base64 signed encodings, in bundle order.
    """

    tx_id: str
    signed_transactions: list[str]


@dataclass(frozen=True)
class AccountInfo:
    identity: Identity
    balance: int
    min_balance: int
    assets: Mapping[int, int] = field(default_factory=dict)

    @property
    def address(self) -> str:
        return self.identity.encoded_address


class TransferOrchestrator:
    """Runs custody-signed ledger workflows.

    Args:
        ledger: Ledger gateway.
        custody: Custody gateway.
        settings: Custody mounts, manager key and round budget.
        resolver: Override the funding and opt-in resolver.
        pipeline: Override the submission pipeline.
    """

    def __init__(
        self,
        ledger: LedgerGateway,
        custody: CustodyGateway,
        *,
        settings: Settings | None = None,
        resolver: FundingAndOptInResolver | None = None,
        pipeline: SubmissionPipeline | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._ledger = ledger
        self._custody = custody
        self._dispatcher = SigningDispatcher(
            custody,
            users_path=self._settings.users_path,
            managers_path=self._settings.managers_path,
        )
        self._resolver = resolver or FundingAndOptInResolver(ledger)
        self._pipeline = pipeline or SubmissionPipeline(
            ledger, wait_rounds=self._settings.wait_rounds
        )

    # -----------------------------------------------------------------
    # Identities
    # -----------------------------------------------------------------

    async def resolve_identity(self, role: str, identity_id: str) -> Identity:
        """Resolve an identity from custody. The address is always derived
        from the custody public key, never taken from the caller."""
        route = self._dispatcher.route_for(role, identity_id)
        public_key = await self._custody.get_public_key(route)
        return _identity_from_key(identity_id, role, route, public_key)

    async def user_identity(self, user_id: str) -> Identity:
        return await self.resolve_identity(Role.USER, user_id)

    async def manager_identity(self, name: str | None = None) -> Identity:
        return await self.resolve_identity(Role.MANAGER, name or self._settings.manager_key)

    async def _sender_identity(self, sender_id: str) -> Identity:
        if sender_id == MANAGER_SENDER:
            return await self.manager_identity()
        return await self.user_identity(sender_id)

    # -----------------------------------------------------------------
    # Workflows
    # -----------------------------------------------------------------

    async def transfer_value(
        self,
        from_id: str,
        to_address: str,
        amount: int,
        *,
        lease: str | None = None,
        note: str | None = None,
    ) -> str:
        """Send native units from a user, or from the manager when
        ``from_id`` is "manager", to any address."""
        validate_request_fields(amount=amount, receiver=to_address, lease=lease, note=note)
        sender = await self._sender_identity(from_id)
        logger.debug(
            "transferring %d micro-units from %s (%s) to %s",
            amount,
            sender,
            sender.encoded_address,
            to_address,
        )
        params = await self._ledger.get_parameters()
        tx = craft_payment(sender, to_address, amount, params, lease=lease, note=note)
        return await self._sign_and_submit([seal(tx)])

    async def transfer_asset(
        self,
        asset_id: int,
        user_id: str,
        amount: int,
        *,
        lease: str | None = None,
        note: str | None = None,
    ) -> str:
        """Send an asset from the manager to a user.

        Funding and opt-in transactions are prepended as needed and the
        whole bundle is grouped, then each member is signed by its own
        sender: funding by the manager, opt-in by the user, transfer by
        the manager.
        """
        validate_request_fields(amount=amount, asset_id=asset_id, lease=lease, note=note)
        user = await self.user_identity(user_id)
        manager = await self.manager_identity()
        params = await self._ledger.get_parameters()

        auxiliary = await self._resolver.resolve(manager, user, asset_id, params, lease=lease)
        primary = craft_asset_transfer(
            manager,
            user.encoded_address,
            asset_id,
            amount,
            params,
            lease=lease,
            note=note,
        )
        bundle = assign_group_id([*auxiliary, primary])
        logger.info(
            "asset %d transfer to %s bundled with %d auxiliary transaction(s)",
            asset_id,
            user,
            len(auxiliary),
        )
        return await self._sign_and_submit(list(bundle))

    async def clawback_asset(
        self,
        asset_id: int,
        user_id: str,
        amount: int,
        *,
        lease: str | None = None,
        note: str | None = None,
    ) -> str:
        """Move an asset from a user back to the manager, on manager authority."""
        validate_request_fields(amount=amount, asset_id=asset_id, lease=lease, note=note)
        user = await self.user_identity(user_id)
        manager = await self.manager_identity()
        params = await self._ledger.get_parameters()
        tx = craft_asset_clawback(
            manager,
            user.encoded_address,
            manager.encoded_address,
            asset_id,
            amount,
            params,
            lease=lease,
            note=note,
        )
        return await self._sign_and_submit([seal(tx)])

    async def create_asset(self, asset: AssetParams, *, note: str | None = None) -> str:
        validate_request_fields(note=note, asset=asset)
        manager = await self.manager_identity()
        params = await self._ledger.get_parameters()
        tx = craft_asset_create(manager, asset, params, note=note)
        return await self._sign_and_submit([seal(tx)])

    async def submit_group(self, specs: Sequence[GroupTransactionSpec]) -> GroupSubmission:
        """Craft, group, sign and submit a heterogeneous group.

        Every participant's claimed address is checked against custody
        before anything is crafted.

        Raises:
            EmptyGroupError: ``specs`` is empty.
            InvalidFieldError: A member field fails local validation; nothing
                has been sent to custody or the ledger.
            SigningAuthorityMismatchError: A participant kind has no route.
            AddressMismatchError: A claimed address differs from custody.
        """
        if not specs:
            raise EmptyGroupError("cannot submit an empty group")
        for spec in specs:
            _validate_member(spec)
        identities = await self._verify_participants(specs)

        params = await self._ledger.get_parameters()
        unsigned = [_craft_member(spec, identities, params) for spec in specs]
        bundle = assign_group_id(unsigned)

        signed = await self._dispatcher.sign_all(bundle)
        result = await self._pipeline.submit_and_confirm(signed)
        return GroupSubmission(
            tx_id=result.tx_id,
            signed_transactions=[
                base64.b64encode(tx.encoded).decode("ascii") for tx in signed
            ],
        )

    async def _verify_participants(
        self, specs: Sequence[GroupTransactionSpec]
    ) -> dict[tuple[str, str], Identity]:
        identities: dict[tuple[str, str], Identity] = {}
        for spec in specs:
            for participant in participants(spec):
                key = (participant.type, participant.id)
                if key not in identities:
                    identities[key] = await self.resolve_identity(*key)
                actual = identities[key].encoded_address
                if actual != participant.public_address:
                    raise AddressMismatchError(
                        participant.id, participant.public_address, actual
                    )
        return identities

    async def _sign_and_submit(self, transactions: list[SealedTransaction]) -> str:
        signed = await self._dispatcher.sign_all(transactions)
        result = await self._pipeline.submit_and_confirm(signed)
        return result.tx_id

    # -----------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------

    async def create_user(self, user_id: str) -> Identity:
        route = self._dispatcher.route_for(Role.USER, user_id)
        public_key = await self._custody.create_key(route)
        return _identity_from_key(user_id, Role.USER, route, public_key)

    async def list_users(self) -> list[Identity]:
        names = await self._custody.list_keys(self._settings.users_path)
        return [await self.user_identity(name) for name in names]

    async def get_user_info(self, user_id: str) -> AccountInfo:
        return await self._account_info(await self.user_identity(user_id))

    async def get_manager_info(self, name: str | None = None) -> AccountInfo:
        return await self._account_info(await self.manager_identity(name))

    async def get_asset_holdings(self, user_id: str) -> dict[int, int]:
        info = await self.get_user_info(user_id)
        return dict(info.assets)

    async def _account_info(self, identity: Identity) -> AccountInfo:
        snapshot = await self._ledger.get_account(identity.encoded_address)
        return AccountInfo(
            identity=identity,
            balance=snapshot.balance,
            min_balance=snapshot.min_balance,
            assets=dict(snapshot.asset_holdings),
        )


def _identity_from_key(
    identity_id: str, role: str, route: KeyRoute, public_key: bytes
) -> Identity:
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise CustodyUnavailableError(
            f"custody key {route} is not a {PUBLIC_KEY_LENGTH}-byte public key",
            details={"route": str(route), "length": len(public_key)},
        )
    return Identity(id=identity_id, role=role, address=public_key)


def _validate_member(spec: GroupTransactionSpec) -> None:
    if isinstance(spec, PaymentSpec):
        validate_request_fields(
            amount=spec.amount,
            receiver=spec.receiver.public_address,
            lease=spec.lease,
            note=spec.note,
            fee=spec.fee,
        )
    elif isinstance(spec, AssetTransferSpec):
        validate_request_fields(
            amount=spec.amount,
            asset_id=spec.asset_id,
            receiver=spec.receiver.public_address,
            lease=spec.lease,
            note=spec.note,
            fee=spec.fee,
        )
    elif isinstance(spec, AssetCreateSpec):
        validate_request_fields(note=spec.note, fee=spec.fee, asset=spec.asset)


def _craft_member(
    spec: GroupTransactionSpec,
    identities: Mapping[tuple[str, str], Identity],
    params: LedgerParameters,
) -> UnsignedTransaction:
    sender = identities[(spec.sender.type, spec.sender.id)]
    member_params = params.with_fee(spec.fee) if spec.fee is not None else params

    if isinstance(spec, PaymentSpec):
        return craft_payment(
            sender,
            spec.receiver.public_address,
            spec.amount,
            member_params,
            lease=spec.lease,
            note=spec.note,
        )
    if isinstance(spec, AssetTransferSpec):
        return craft_asset_transfer(
            sender,
            spec.receiver.public_address,
            spec.asset_id,
            spec.amount,
            member_params,
            lease=spec.lease,
            note=spec.note,
        )
    if isinstance(spec, AssetCreateSpec):
        return craft_asset_create(sender, spec.asset, member_params, note=spec.note)
    raise TypeError(f"unsupported group member spec: {type(spec).__name__}")
