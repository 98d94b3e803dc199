"""Asset endpoints.

Arguments come from the query string and/or a JSON body. Reads use the
ledger's query path, every state change is submitted as a transaction.
Errors are left to the application error boundary (HTTP 500).
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from gateway.app.api.deps import get_dispatcher, operation_args, require_identity
from gateway.app.dispatch.dispatcher import Operation, RequestDispatcher
from gateway.app.session import IdentityContext

router = APIRouter()

Dispatcher = Annotated[RequestDispatcher, Depends(get_dispatcher)]
Identity = Annotated[IdentityContext, Depends(require_identity)]
Args = Annotated[dict[str, str], Depends(operation_args)]


@router.post("/asset", response_model=None)
async def create_asset(args: Args, identity: Identity, dispatcher: Dispatcher) -> Any:
    """Create an asset (createAsset, submitted)."""
    return await dispatcher.dispatch(Operation.create, args, identity)


@router.get("/asset", response_model=None)
async def get_asset(args: Args, identity: Identity, dispatcher: Dispatcher) -> Any:
    """Read an asset (getAsset, query)."""
    return await dispatcher.dispatch(Operation.read, args, identity)


@router.put("/asset", response_model=None)
async def update_asset(args: Args, identity: Identity, dispatcher: Dispatcher) -> Any:
    """Update an asset (updateAsset, submitted)."""
    return await dispatcher.dispatch(Operation.update, args, identity)


@router.delete("/asset", response_model=None)
async def delete_asset(args: Args, identity: Identity, dispatcher: Dispatcher) -> Any:
    """Delete an asset (deleteAsset, submitted)."""
    return await dispatcher.dispatch(Operation.delete, args, identity)


@router.post("/transfer", response_model=None)
async def transfer_asset(args: Args, identity: Identity, dispatcher: Dispatcher) -> Any:
    """Transfer an asset to a new owner (transferAsset, submitted)."""
    return await dispatcher.dispatch(Operation.transfer, args, identity)
