"""User registration endpoint.

A user must be registered and enrolled before any query or transaction can
be issued. Registration failures come back as a failure descriptor with
HTTP 200; only unexpected errors reach the 500 error boundary.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from gateway.app.api.deps import get_dispatcher, read_json_object
from gateway.app.dispatch.dispatcher import RequestDispatcher, missing_field_failure
from gateway.app.errors import InvalidRequestError
from gateway.app.models.operations import OperationFailure, RegistrationRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users", response_model=None)
async def register_user(
    request: Request,
    dispatcher: Annotated[RequestDispatcher, Depends(get_dispatcher)],
) -> dict[str, Any]:
    """Register and enroll a user, then start the block listener.

    Body: ``{"username": ..., "orgName": ...}``

    Returns:
        Registration payload on success, ``{success: false, message}`` otherwise
    """
    try:
        body = await read_json_object(request)
    except InvalidRequestError as e:
        return OperationFailure(message=str(e)).model_dump()

    try:
        registration = RegistrationRequest.model_validate(body)
    except ValidationError as e:
        field = str(e.errors()[0]["loc"][0])
        return missing_field_failure(field).model_dump()

    logger.info(
        "POST on Users - username: %s, orgName: %s", registration.username, registration.orgName
    )
    result = await dispatcher.register_user(registration.username, registration.orgName)

    if isinstance(result, OperationFailure):
        return result.model_dump()
    return result.payload
