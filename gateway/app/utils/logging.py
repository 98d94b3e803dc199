"""Structured logging for ledger operations."""

import logging
from typing import Any

from gateway.app.models.operations import LedgerPath, OperationRequest

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send gateway logs to stdout at the configured level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("gateway").setLevel(level.upper())


class StructuredOperationLogger:
    """Structured logger for dispatched ledger operations."""

    def log_dispatch(self, request: OperationRequest, path: LedgerPath) -> None:
        """Log operation entry with the resolved identity and target."""
        log_data: dict[str, Any] = {
            "username": request.identity.username,
            "organization": request.identity.organization,
            "channel": request.channel,
            "contract": request.contract,
            "function": request.function_name,
            "args": request.args,
            "peers": list(request.peers),
            "path": path,
        }
        logger.info(
            f"Dispatching {path} {request.function_name} on {request.channel}/{request.contract}",
            extra={"structured": log_data},
        )

    def log_outcome(
        self,
        request: OperationRequest,
        path: LedgerPath,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log operation completion."""
        log_data: dict[str, Any] = {
            "function": request.function_name,
            "path": path,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Ledger {path}: {request.function_name} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
