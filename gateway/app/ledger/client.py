"""Ledger client contract and its REST bridge implementation.

The gateway never talks to peers directly. Enrollment, proposal endorsement,
ordering and commit all happen behind a ledger bridge; this module only
describes the calls the gateway needs and speaks JSON to that bridge.
"""

import logging
from typing import Any, Protocol

import httpx

from gateway.app.config import Settings
from gateway.app.errors import LedgerError, LedgerUnavailableError, RegistrationError
from gateway.app.models.operations import LedgerPath, OperationRequest

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """Protocol for ledger client implementations."""

    async def register(
        self, username: str, organization: str, generate_secret: bool = True
    ) -> dict[str, Any]:
        """Register and enroll a user with the organization's CA.

        Returns:
            Registration payload (may include a one-time ``secret``)

        Raises:
            RegistrationError: If the user cannot be registered or enrolled
        """
        ...

    async def query(self, request: OperationRequest) -> Any:
        """Evaluate a read-only chaincode function.

        Raises:
            LedgerError: If the query is rejected
        """
        ...

    async def invoke(self, request: OperationRequest) -> Any:
        """Submit a state-changing transaction for endorsement and ordering.

        Raises:
            LedgerError: If endorsement, ordering or commit fails
        """
        ...


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful error text out of a bridge response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        for key in ("message", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


def _decode(response: httpx.Response) -> Any:
    """Decode a chaincode payload; JSON when possible, text otherwise."""
    if not response.content:
        return ""
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpLedgerClient:
    """LedgerClient backed by a ledger REST bridge."""

    def __init__(
        self,
        base_url: str,
        timeout_ms: int = 30000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Ledger bridge base URL
            timeout_ms: Per-call timeout
            client: Optional httpx client (for testing with mocks)
        """
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout_ms / 1000
        )

    async def register(
        self, username: str, organization: str, generate_secret: bool = True
    ) -> dict[str, Any]:
        """Register and enroll a user through the bridge."""
        payload = {"username": username, "orgName": organization, "generateSecret": generate_secret}
        try:
            response = await self._client.post("/users", json=payload)
        except httpx.TransportError as e:
            raise LedgerUnavailableError(f"Ledger bridge unreachable: {e}") from e

        if response.is_error:
            raise RegistrationError(_error_message(response))

        body = _decode(response)
        # The bridge reports enrollment problems as a plain string or success=false
        if not isinstance(body, dict):
            raise RegistrationError(str(body) or "Registration returned no credential")
        if body.get("success") is False:
            raise RegistrationError(str(body.get("message", "Registration failed")))
        return body

    async def query(self, request: OperationRequest) -> Any:
        """Evaluate a chaincode function without submitting a transaction."""
        return await self._call("query", request)

    async def invoke(self, request: OperationRequest) -> Any:
        """Submit a chaincode transaction."""
        return await self._call("invoke", request)

    async def _call(self, path: LedgerPath, request: OperationRequest) -> Any:
        url = f"/channels/{request.channel}/chaincodes/{request.contract}/{path}"
        payload = {
            "fcn": request.function_name,
            "args": request.args,
            "peers": list(request.peers),
            "username": request.identity.username,
            "orgName": request.identity.organization,
        }
        try:
            response = await self._client.post(url, json=payload)
        except httpx.TransportError as e:
            raise LedgerUnavailableError(f"Ledger bridge unreachable: {e}") from e

        if response.is_error:
            raise LedgerError(_error_message(response))
        return _decode(response)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_ledger_client(settings: Settings) -> HttpLedgerClient:
    """Build the REST bridge client from settings."""
    logger.info("Using ledger bridge at %s", settings.ledger_url)
    return HttpLedgerClient(settings.ledger_url, timeout_ms=settings.ledger_timeout_ms)
