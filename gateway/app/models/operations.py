"""Ledger operation request/result models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from gateway.app.session import IdentityContext

LedgerPath = Literal["query", "invoke"]


class OperationRequest(BaseModel):
    """One chaincode call, built per inbound request and never mutated."""

    model_config = ConfigDict(frozen=True)

    function_name: str = Field(..., min_length=1)
    args: dict[str, str] = Field(default_factory=dict)
    channel: str
    contract: str
    peers: tuple[str, ...] = ()
    identity: IdentityContext


class OperationSuccess(BaseModel):
    """Successful result: the contract-defined payload."""

    payload: Any


class OperationFailure(BaseModel):
    """Typed failure descriptor returned to clients with HTTP 200."""

    success: Literal[False] = False
    message: str


OperationResult = OperationSuccess | OperationFailure


class RegistrationRequest(BaseModel):
    """Body of POST /users.

    Fields are optional at parse time so that a missing value can be reported
    as a failure descriptor instead of a 422.
    """

    model_config = ConfigDict(extra="ignore")

    username: str | None = None
    orgName: str | None = None
