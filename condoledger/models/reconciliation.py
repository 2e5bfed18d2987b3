from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from condoledger.models.bill import BillDomain


class SuspectedCause(str, Enum):
    UNDER_REPORTS = "bill document under-reports paid amount (missing allocation sync)"
    OVER_REPORTS = "bill document over-reports paid amount (orphaned allocation or manual adjustment)"
    NO_ALLOCATIONS = "bill document over-reports paid amount (no transaction allocations found for bill)"


class BillMismatch(BaseModel):
    bill_id: str
    domain: BillDomain
    stored_paid: int
    allocated_paid: int
    delta: int  # stored_paid - allocated_paid
    suspected_cause: SuspectedCause
    related_transaction_ids: list[str] = []


class DiscrepancyReport(BaseModel):
    detected: bool = False
    primary: BillMismatch | None = None
    mismatches: list[BillMismatch] = []
