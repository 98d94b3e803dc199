"""Request dependencies resolving gateway components and request arguments."""

import json
from typing import Any

from fastapi import Request

from gateway.app.dispatch.dispatcher import RequestDispatcher
from gateway.app.errors import InvalidRequestError
from gateway.app.session import IdentityContext, IdentityStore


def get_dispatcher(request: Request) -> RequestDispatcher:
    """Dispatcher wired into the running application."""
    return request.app.state.dispatcher


def get_identity_store(request: Request) -> IdentityStore:
    return request.app.state.identities


def require_identity(request: Request) -> IdentityContext:
    """Active identity for this request.

    Raises:
        IdentityNotSetError: If no user has registered yet
    """
    return get_identity_store(request).require()


def _as_arg(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Keep JSON spelling for non-strings (true, null, 12, {...})
    return json.dumps(value)


async def read_json_object(request: Request) -> dict[str, Any]:
    """Parse the request body as a JSON object; an empty body is ``{}``.

    Raises:
        InvalidRequestError: If the body is not a JSON object
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise InvalidRequestError(f"Request body is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


async def operation_args(request: Request) -> dict[str, str]:
    """Chaincode arguments: query parameters overlaid with the JSON body."""
    args = {key: value for key, value in request.query_params.items()}
    body = await read_json_object(request)
    args.update({key: _as_arg(value) for key, value in body.items()})
    return args
