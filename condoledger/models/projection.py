from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from condoledger.models.bill import Bill
from condoledger.models.reconciliation import DiscrepancyReport


class PenaltyWaiver(BaseModel):
    bill_id: str
    amount: int = Field(ge=0)  # minor units
    reason: str = ""


class ProjectionOptions(BaseModel):
    waived_penalties: list[PenaltyWaiver] = []
    excluded_bills: list[str] = []


class ProjectedBill(BaseModel):
    bill: Bill
    penalty_waived: int = 0
    remaining: int


class Projection(BaseModel):
    unit_id: str
    as_of: date
    bills: list[ProjectedBill] = []
    credit_balance: int = 0
    total_remaining: int = 0
    discrepancy: DiscrepancyReport = DiscrepancyReport()

    @property
    def amount_to_clear(self) -> int:
        return max(0, self.total_remaining - self.credit_balance)
