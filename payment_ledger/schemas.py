"""
Pydantic schemas for API requests and responses
"""

from pydantic import BaseModel, Field

from .ledger import TransferRecord


class RecordTransferRequest(BaseModel):
    sender: str = Field(..., min_length=1, description="Paying party identity")
    recipient: str = Field(..., min_length=1, description="Receiving party identity")
    amount: str = Field(..., description="Integer amount as string")

    def to_amount(self) -> int:
        return int(self.amount)


class TransferRecordModel(BaseModel):
    sender: str
    recipient: str
    amount: str = Field(..., description="Integer amount as string")
    recorded_at: int = Field(..., description="UNIX seconds assigned at record time")

    @classmethod
    def from_record(cls, record: TransferRecord) -> 'TransferRecordModel':
        return cls(
            sender=record.sender,
            recipient=record.recipient,
            amount=str(record.amount),
            recorded_at=record.recorded_at
        )
