from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class BillDomain(str, Enum):
    RECURRING = "recurring"
    METERED = "metered"


class BillStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Bill(BaseModel):
    bill_id: str
    unit_id: str
    domain: BillDomain
    period_start: date
    due_date: date
    principal_due: int = Field(default=0, ge=0)  # minor units
    penalty_due: int = Field(default=0, ge=0)
    principal_paid: int = Field(default=0, ge=0)
    penalty_paid: int = Field(default=0, ge=0)
    cohort_key: str = ""
    record_id: int | None = None
    version: int = 0

    @property
    def group_key(self) -> str:
        return self.cohort_key or self.due_date.isoformat()

    @property
    def unpaid_principal(self) -> int:
        return self.principal_due - self.principal_paid

    @property
    def unpaid_penalty(self) -> int:
        return self.penalty_due - self.penalty_paid

    @property
    def total_due(self) -> int:
        return self.principal_due + self.penalty_due

    @property
    def total_paid(self) -> int:
        return self.principal_paid + self.penalty_paid

    @property
    def remaining(self) -> int:
        return self.total_due - self.total_paid

    @property
    def status(self) -> BillStatus:
        if self.remaining <= 0:
            return BillStatus.PAID
        if self.total_paid > 0:
            return BillStatus.PARTIAL
        return BillStatus.UNPAID

    def invariant_errors(self) -> list[str]:
        """Describe every broken paid-vs-due invariant; empty when the bill is consistent."""
        errors = []
        for name in ("principal_due", "penalty_due", "principal_paid", "penalty_paid"):
            if getattr(self, name) < 0:
                errors.append(f"{name} is negative")
        if self.principal_paid > self.principal_due:
            errors.append(f"principal_paid {self.principal_paid} exceeds principal_due {self.principal_due}")
        if self.penalty_paid > self.penalty_due:
            errors.append(f"penalty_paid {self.penalty_paid} exceeds penalty_due {self.penalty_due}")
        return errors
