"""Error taxonomy and the single exception-to-response boundary.

Two failure shapes reach clients and both are part of the API:
- ``200 {"success": false, "message": ...}`` for typed failure descriptors
  produced by the registration path (missing fields, enrollment errors)
- ``500 {"error": ...}`` for anything raised out of a handler

Handlers never catch ledger errors themselves. Gateway errors are converted by
the exception handler, anything else by the request middleware; each is
logged exactly once.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for errors raised by the gateway."""

    pass


class IdentityNotSetError(GatewayError):
    """A ledger operation was issued before any user registered."""

    pass


class InvalidRequestError(GatewayError):
    """Request body could not be turned into chaincode arguments."""

    pass


class LedgerError(GatewayError):
    """Ledger rejected or failed an enrollment, query or invoke."""

    pass


class RegistrationError(LedgerError):
    """Enrollment failed (duplicate user, CA rejected request, ...)."""

    pass


class LedgerUnavailableError(LedgerError):
    """Ledger network could not be reached."""

    pass


def error_response(exc: Exception) -> JSONResponse:
    """Build the fixed-shape 500 response for an error."""
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def gateway_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert a known gateway error into a 500 response."""
    logger.error(
        "Request %s %s failed: %s",
        request.method,
        request.url.path,
        exc,
        extra={"structured": {"path": request.url.path, "error_type": type(exc).__name__}},
    )
    return error_response(exc)


def unhandled_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected error once and convert it into a 500 response.

    Called from the outer request middleware, inside CORS, so the response
    carries the same headers as every other error.
    """
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={"structured": {"path": request.url.path, "error_type": type(exc).__name__}},
    )
    return error_response(exc)


def install_error_handlers(app: FastAPI) -> None:
    """Register the gateway error handler on an application."""
    app.add_exception_handler(GatewayError, gateway_error_handler)
