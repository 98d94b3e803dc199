"""Models package - re-exports for convenience."""

from gateway.app.models.events import BlockEvent, BlockTransaction
from gateway.app.models.operations import (
    LedgerPath,
    OperationFailure,
    OperationRequest,
    OperationResult,
    OperationSuccess,
    RegistrationRequest,
)
from gateway.app.models.spend import SyntheticTransaction

__all__ = [
    # Events
    "BlockEvent",
    "BlockTransaction",
    # Operations
    "LedgerPath",
    "OperationFailure",
    "OperationRequest",
    "OperationResult",
    "OperationSuccess",
    "RegistrationRequest",
    # Generator
    "SyntheticTransaction",
]
