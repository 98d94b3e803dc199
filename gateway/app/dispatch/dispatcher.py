"""Request dispatcher: turns gateway operations into identity-scoped ledger calls.

Reads go through the ledger's query path. Anything that changes ledger state
(create, update, delete, transfer, spends) goes through the submit path so
that it is endorsed, ordered and committed.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gateway.app.config import Settings
from gateway.app.errors import RegistrationError
from gateway.app.ledger.client import LedgerClient
from gateway.app.models.operations import (
    LedgerPath,
    OperationFailure,
    OperationRequest,
    OperationResult,
    OperationSuccess,
)
from gateway.app.session import IdentityContext, IdentityStore
from gateway.app.streaming.broadcast import EventBroadcastGateway
from gateway.app.utils.logging import StructuredOperationLogger
from gateway.app.utils.metrics import PrometheusLedgerMetrics

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Operations the gateway can dispatch."""

    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    transfer = "transfer"
    list_donations = "list_donations"
    create_spend = "create_spend"


@dataclass(frozen=True)
class OperationSpec:
    """Chaincode function and ledger path for an operation."""

    function_name: str
    path: LedgerPath


OPERATIONS: dict[Operation, OperationSpec] = {
    Operation.create: OperationSpec("createAsset", "invoke"),
    Operation.read: OperationSpec("getAsset", "query"),
    Operation.update: OperationSpec("updateAsset", "invoke"),
    Operation.delete: OperationSpec("deleteAsset", "invoke"),
    Operation.transfer: OperationSpec("transferAsset", "invoke"),
    Operation.list_donations: OperationSpec("queryAllDonations", "query"),
    Operation.create_spend: OperationSpec("createSpend", "invoke"),
}


def missing_field_failure(field: str) -> OperationFailure:
    """Failure descriptor for a missing or empty request field."""
    return OperationFailure(message=f"{field} field is missing or Invalid in the request")


class RequestDispatcher:
    """Maps gateway operations onto LedgerClient calls."""

    def __init__(
        self,
        ledger: LedgerClient,
        identities: IdentityStore,
        broadcaster: EventBroadcastGateway,
        settings: Settings,
        metrics: PrometheusLedgerMetrics | None = None,
        op_logger: StructuredOperationLogger | None = None,
    ) -> None:
        self._ledger = ledger
        self._identities = identities
        self._broadcaster = broadcaster
        self._settings = settings
        self._metrics = metrics or PrometheusLedgerMetrics()
        self._op_logger = op_logger or StructuredOperationLogger()

    async def register_user(self, username: str | None, organization: str | None) -> OperationResult:
        """Register and enroll a user, then make it the active identity.

        Args:
            username: User to enroll
            organization: Organization (CA) to enroll with

        Returns:
            OperationSuccess with the registration payload, or OperationFailure
            if a field is missing or enrollment was rejected
        """
        if not username or not username.strip():
            self._metrics.inc_registration("invalid")
            return missing_field_failure("username")
        if not organization or not organization.strip():
            self._metrics.inc_registration("invalid")
            return missing_field_failure("orgName")

        logger.info("Registering user %s for organization %s", username, organization)
        try:
            payload = await self._ledger.register(username, organization, generate_secret=True)
        except RegistrationError as e:
            logger.error(
                "Failed to register the username %s for organization %s: %s",
                username,
                organization,
                e,
            )
            self._metrics.inc_registration("rejected")
            return OperationFailure(message=str(e))

        identity = IdentityContext(username=username, organization=organization)
        self._identities.set(identity)
        self._metrics.inc_registration("success")
        logger.info("Successfully registered the username %s for organization %s", username, organization)

        # Now that there is an identity the block listener can start
        await self._broadcaster.activate(self._settings.channel_name, identity)
        return OperationSuccess(payload=payload)

    def build_request(
        self,
        function_name: str,
        args: dict[str, str],
        identity: IdentityContext | None = None,
    ) -> OperationRequest:
        """Build an OperationRequest against the configured channel and contract.

        Raises:
            IdentityNotSetError: If no identity is given and none is registered
        """
        return OperationRequest(
            function_name=function_name,
            args=args,
            channel=self._settings.channel_name,
            contract=self._settings.chaincode_name,
            peers=tuple(self._settings.peers),
            identity=identity or self._identities.require(),
        )

    async def dispatch_query(
        self,
        function_name: str,
        args: dict[str, str],
        identity: IdentityContext | None = None,
    ) -> Any:
        """Evaluate a read-only chaincode function."""
        request = self.build_request(function_name, args, identity)
        return await self._execute("query", request)

    async def dispatch_invoke(
        self,
        function_name: str,
        args: dict[str, str],
        identity: IdentityContext | None = None,
    ) -> Any:
        """Submit a state-changing chaincode transaction."""
        request = self.build_request(function_name, args, identity)
        return await self._execute("invoke", request)

    async def dispatch(
        self,
        operation: Operation,
        args: dict[str, str],
        identity: IdentityContext | None = None,
    ) -> Any:
        """Route an operation to the ledger path it requires."""
        spec = OPERATIONS[operation]
        if spec.path == "invoke":
            return await self.dispatch_invoke(spec.function_name, args, identity)
        return await self.dispatch_query(spec.function_name, args, identity)

    async def _execute(self, path: LedgerPath, request: OperationRequest) -> Any:
        self._op_logger.log_dispatch(request, path)
        start_time = time.monotonic()

        try:
            if path == "invoke":
                result = await self._ledger.invoke(request)
            else:
                result = await self._ledger.query(request)
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            self._metrics.record_operation(request.function_name, path, "error", elapsed_ms)
            self._op_logger.log_outcome(
                request, path, "error", elapsed_ms, error_reason=type(e).__name__
            )
            raise

        elapsed_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_operation(request.function_name, path, "success", elapsed_ms)
        self._op_logger.log_outcome(request, path, "success", elapsed_ms)
        return result
