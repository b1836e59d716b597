"""
Pydantic schemas for deposit records and API responses
"""

from decimal import Decimal
from datetime import date as calendar_date
from typing import Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field


class DepositRecord(BaseModel):
    """A validated deposit slip, with values kept exactly as submitted"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    bankName: str
    branchName: str
    date: str = Field(..., description="ISO calendar date (YYYY-MM-DD)")
    name: str
    accountNumber: str
    amountInNumbers: str = Field(..., description="Decimal amount as string")
    amountInWords: str
    denominations: str
    totalAmount: str = Field(..., description="Decimal amount as string")
    panNumber: str
    mailId: str

    @property
    def amount(self) -> Decimal:
        return Decimal(self.amountInNumbers.strip())

    @property
    def deposit_date(self) -> calendar_date:
        return calendar_date.fromisoformat(self.date.strip())

    def to_document(self) -> Dict[str, Any]:
        """Convert to the document body written to storage"""
        return self.model_dump()


class DepositResponse(BaseModel):
    message: str
    deposit: Optional[DepositRecord] = None


class ErrorResponse(BaseModel):
    message: str
