from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CreditSource:
    """String constants for where a credit ledger entry came from."""

    PAYMENT = "payment"
    ADJUSTMENT = "adjustment"


class CreditLedgerEntry(BaseModel):
    id: int | None = None
    uuid: str = ""
    unit_id: str
    amount: int  # signed minor units
    reason: str = ""
    transaction_id: str = ""
    source: str = ""
    created_at: datetime | None = None


class CreditHistoryLine(BaseModel):
    entry: CreditLedgerEntry
    balance_after: int
