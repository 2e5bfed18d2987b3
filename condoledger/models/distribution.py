from __future__ import annotations

from pydantic import BaseModel

from condoledger.models.bill import BillDomain, BillStatus


class BillPayment(BaseModel):
    bill_id: str
    domain: BillDomain
    cohort_key: str
    principal_paid: int = 0  # applied by this distribution
    penalty_paid: int = 0
    principal_unpaid_before: int = 0
    penalty_unpaid_before: int = 0
    new_status: BillStatus

    @property
    def amount_paid(self) -> int:
        return self.principal_paid + self.penalty_paid

    @property
    def unpaid_before(self) -> int:
        return self.principal_unpaid_before + self.penalty_unpaid_before


class DistributionResult(BaseModel):
    unit_id: str = ""
    payment_amount: int
    credit_balance_before: int
    bill_payments: list[BillPayment] = []
    credit_used: int = 0
    overpayment: int = 0
    new_credit_balance: int = 0
    total_bills_due: int = 0

    @property
    def total_available(self) -> int:
        return self.payment_amount + self.credit_balance_before

    @property
    def total_principal_paid(self) -> int:
        return sum(bp.principal_paid for bp in self.bill_payments)

    @property
    def total_penalty_paid(self) -> int:
        return sum(bp.penalty_paid for bp in self.bill_payments)

    @property
    def total_applied(self) -> int:
        return self.total_principal_paid + self.total_penalty_paid

    @property
    def paid_bill_ids(self) -> list[str]:
        return [bp.bill_id for bp in self.bill_payments if bp.amount_paid > 0]
