"""In-memory ledger network for local development and tests.

Implements both LedgerClient and BlockEventBridge. Chaincode state lives in
process memory, every submitted transaction is committed as its own block,
and each block is pushed to the channel's subscribers.
"""

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from gateway.app.errors import LedgerError, RegistrationError
from gateway.app.ledger.events import BlockEventSink
from gateway.app.models.events import BlockEvent, BlockTransaction
from gateway.app.models.operations import OperationRequest

logger = logging.getLogger(__name__)


@dataclass
class ChaincodeState:
    """World state for one chaincode on one channel."""

    assets: dict[str, dict[str, str]] = field(default_factory=dict)
    donations: dict[str, dict[str, str]] = field(default_factory=dict)
    spends: dict[str, dict[str, str]] = field(default_factory=dict)


def _require(args: dict[str, str], key: str) -> str:
    value = args.get(key)
    if not value:
        raise LedgerError(f"Incorrect arguments: '{key}' is required")
    return value


def _create_asset(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    asset_id = _require(args, "id")
    if asset_id in state.assets:
        raise LedgerError(f"The asset {asset_id} already exists")
    state.assets[asset_id] = dict(args)
    return state.assets[asset_id]


def _get_asset(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    asset_id = _require(args, "id")
    if asset_id not in state.assets:
        raise LedgerError(f"The asset {asset_id} does not exist")
    return state.assets[asset_id]


def _update_asset(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    asset = _get_asset(state, args)
    asset.update(args)
    return asset


def _delete_asset(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    asset = _get_asset(state, args)
    del state.assets[asset["id"]]
    return asset


def _transfer_asset(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    asset = _get_asset(state, args)
    old_owner = asset.get("owner", "")
    asset["owner"] = _require(args, "newOwner")
    return {**asset, "previousOwner": old_owner}


def _create_donation(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    donation_id = _require(args, "donationId")
    _require(args, "ngoRegistrationNumber")
    if donation_id in state.donations:
        raise LedgerError(f"The donation {donation_id} already exists")
    state.donations[donation_id] = dict(args)
    return state.donations[donation_id]


def _query_all_donations(state: ChaincodeState, args: dict[str, str]) -> list[dict[str, str]]:
    return [dict(d) for d in state.donations.values()]


def _create_spend(state: ChaincodeState, args: dict[str, str]) -> dict[str, str]:
    spend_id = _require(args, "spendId")
    _require(args, "ngoRegistrationNumber")
    state.spends[spend_id] = dict(args)
    return state.spends[spend_id]


ChaincodeFn = Callable[[ChaincodeState, dict[str, str]], Any]

# function name -> (handler, writes state)
CHAINCODE_FUNCTIONS: dict[str, tuple[ChaincodeFn, bool]] = {
    "createAsset": (_create_asset, True),
    "getAsset": (_get_asset, False),
    "updateAsset": (_update_asset, True),
    "deleteAsset": (_delete_asset, True),
    "transferAsset": (_transfer_asset, True),
    "createDonation": (_create_donation, True),
    "queryAllDonations": (_query_all_donations, False),
    "createSpend": (_create_spend, True),
}


class InMemoryLedgerNetwork:
    """Ledger client and block event bridge backed by process memory."""

    def __init__(self) -> None:
        self._enrolled: set[tuple[str, str]] = set()
        self._state: dict[tuple[str, str], ChaincodeState] = {}
        self._heights: dict[str, int] = {}
        self._subscribers: dict[str, list[BlockEventSink]] = {}

    async def register(
        self, username: str, organization: str, generate_secret: bool = True
    ) -> dict[str, Any]:
        if not username or not organization:
            raise RegistrationError("username and organization are required for enrollment")

        key = (organization, username)
        if key in self._enrolled:
            # Matches a wallet hit: the identity is loaded, no new secret issued
            return {"success": True, "message": f"{username} enrolled Successfully"}

        self._enrolled.add(key)
        response: dict[str, Any] = {
            "success": True,
            "message": f"{username} enrolled Successfully",
        }
        if generate_secret:
            response["secret"] = secrets.token_urlsafe(12)
        return response

    async def query(self, request: OperationRequest) -> Any:
        handler, writes = self._resolve(request)
        if writes:
            raise LedgerError(
                f"{request.function_name} changes ledger state and must be submitted as a transaction"
            )
        return handler(self._chaincode(request), dict(request.args))

    async def invoke(self, request: OperationRequest) -> Any:
        handler, _ = self._resolve(request)
        result = handler(self._chaincode(request), dict(request.args))
        await self._commit(request)
        return result

    async def subscribe(
        self, channel: str, username: str, organization: str, sink: BlockEventSink
    ) -> None:
        if (organization, username) not in self._enrolled:
            raise LedgerError(f"User {username} is not enrolled in {organization}")
        self._subscribers.setdefault(channel, []).append(sink)
        logger.info("Block listener registered on %s for %s@%s", channel, username, organization)

    def seed_donations(
        self, channel: str, contract: str, donations: list[dict[str, str]]
    ) -> None:
        """Load donation records directly into world state, without a block."""
        state = self._state.setdefault((channel, contract), ChaincodeState())
        for donation in donations:
            _create_donation(state, donation)
        logger.info("Seeded %d donation(s) on %s/%s", len(donations), channel, contract)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, []))

    def height(self, channel: str) -> int:
        return self._heights.get(channel, 0)

    def _resolve(self, request: OperationRequest) -> tuple[ChaincodeFn, bool]:
        identity = request.identity
        if (identity.organization, identity.username) not in self._enrolled:
            raise LedgerError(
                f"User {identity.username} is not enrolled in {identity.organization}"
            )
        entry = CHAINCODE_FUNCTIONS.get(request.function_name)
        if entry is None:
            raise LedgerError(
                f"Chaincode {request.contract} has no function {request.function_name}"
            )
        return entry

    def _chaincode(self, request: OperationRequest) -> ChaincodeState:
        return self._state.setdefault((request.channel, request.contract), ChaincodeState())

    async def _commit(self, request: OperationRequest) -> None:
        number = self._heights.get(request.channel, 0)
        self._heights[request.channel] = number + 1

        event = BlockEvent(
            channel=request.channel,
            block_number=number,
            transactions=[
                BlockTransaction(
                    tx_id=uuid.uuid4().hex,
                    function_name=request.function_name,
                    creator=f"{request.identity.username}@{request.identity.organization}",
                )
            ],
            payload={"args": dict(request.args)},
        )

        for sink in list(self._subscribers.get(request.channel, [])):
            try:
                await sink(event)
            except Exception:
                logger.exception("Block event sink failed on %s", request.channel)
