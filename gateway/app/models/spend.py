"""Synthetic spend records produced by the background generator."""

from uuid import UUID

from pydantic import BaseModel, Field


class SyntheticTransaction(BaseModel):
    """A spend allocated against the NGO that received a sampled donation."""

    source_record_key: str = Field(..., min_length=1)
    new_id: UUID
    description: str
    timestamp: str  # ISO8601
    amount: int = Field(..., ge=1)

    def to_args(self) -> dict[str, str]:
        """Render as createSpend chaincode arguments."""
        return {
            "ngoRegistrationNumber": self.source_record_key,
            "spendId": str(self.new_id),
            "spendDescription": self.description,
            "spendDate": self.timestamp,
            "spendAmount": str(self.amount),
        }
