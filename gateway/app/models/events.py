"""Block event models pushed to WebSocket clients."""

from typing import Any

from pydantic import BaseModel, Field


class BlockTransaction(BaseModel):
    """Summary of one transaction carried in a block."""

    tx_id: str
    function_name: str | None = None
    creator: str | None = None
    valid: bool = True


class BlockEvent(BaseModel):
    """Notification that a block was committed to a channel."""

    channel: str
    block_number: int = Field(..., ge=0)
    transactions: list[BlockTransaction] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> str:
        """Serialize for a WebSocket text frame."""
        return self.model_dump_json()
