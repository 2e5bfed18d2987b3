from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class AllocationType(str, Enum):
    PRINCIPAL = "principal"
    PENALTY = "penalty"
    CREDIT = "credit"


class Payment(BaseModel):
    unit_id: str
    amount: int = Field(gt=0)  # minor units
    payment_date: date
    period_scope_hint: date | None = None  # only bills due on or before this date
    transaction_id: str = ""  # caller-supplied idempotency key
    notes: str = ""


class Allocation(BaseModel):
    id: int | None = None
    transaction_id: str = ""
    unit_id: str
    bill_id: str | None = None  # None for credit allocations
    allocation_type: AllocationType
    amount: int  # signed only for credit allocations
    created_at: datetime | None = None

    @property
    def applies_to_bill(self) -> bool:
        return self.bill_id is not None and self.allocation_type in (AllocationType.PRINCIPAL, AllocationType.PENALTY)


class PaymentRecord(BaseModel):
    id: int | None = None
    transaction_id: str
    unit_id: str
    amount: int
    payment_date: date
    credit_used: int = 0
    overpayment: int = 0
    notes: str = ""
    allocations: list[Allocation] = []
    created_at: datetime | None = None
