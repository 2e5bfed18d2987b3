"""Cohort-based payment distribution.

Bills sharing a cohort key are settled together, oldest cohort first. A cohort
is paid in full or not at all: closing out a partially paid cohort is fine,
opening a new partial is not. Whatever cannot settle the next cohort is kept as
credit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from condoledger.errors import InvariantViolation
from condoledger.models.bill import Bill, BillStatus
from condoledger.models.distribution import BillPayment, DistributionResult

logger = logging.getLogger(__name__)


def group_cohorts(bills: Iterable[Bill]) -> list[tuple[str, list[Bill]]]:
    """Outstanding bills grouped by cohort, ordered by each cohort's earliest due date."""
    cohorts: dict[str, list[Bill]] = {}
    for bill in sorted(bills, key=lambda b: (b.due_date, b.bill_id)):
        if bill.remaining > 0:
            cohorts.setdefault(bill.group_key, []).append(bill)
    return sorted(cohorts.items(), key=lambda item: (item[1][0].due_date, item[0]))


def _check(result: DistributionResult) -> None:
    if result.new_credit_balance < 0:
        raise InvariantViolation(f"Distribution would leave a negative credit balance ({result.new_credit_balance})")
    if result.credit_used > result.credit_balance_before:
        raise InvariantViolation(
            f"Distribution uses {result.credit_used} credit but only {result.credit_balance_before} is available"
        )
    if result.total_available != result.total_applied + result.new_credit_balance:
        raise InvariantViolation(
            f"Distribution does not conserve funds: {result.payment_amount} + {result.credit_balance_before} "
            f"!= {result.total_applied} + {result.new_credit_balance}"
        )


def distribute(bills: Iterable[Bill], payment_amount: int, credit_balance: int, unit_id: str = "") -> DistributionResult:
    if payment_amount < 0:
        raise InvariantViolation(f"Payment amount cannot be negative ({payment_amount})")
    if credit_balance < 0:
        raise InvariantViolation(f"Credit balance cannot be negative ({credit_balance})")

    bills = list(bills)
    for bill in bills:
        errors = bill.invariant_errors()
        if errors:
            raise InvariantViolation(f"Bill {bill.bill_id} is inconsistent: {'; '.join(errors)}")

    cohorts = group_cohorts(bills)
    total_bills_due = sum(bill.remaining for _, cohort in cohorts for bill in cohort)

    payment_left = payment_amount
    credit_left = credit_balance
    bill_payments: list[BillPayment] = []

    for key, cohort in cohorts:
        cohort_total = sum(bill.unpaid_principal + bill.unpaid_penalty for bill in cohort)
        if cohort_total > payment_left + credit_left:
            logger.debug(
                "Cohort %s needs %d, only %d available; stopping",
                key,
                cohort_total,
                payment_left + credit_left,
            )
            break

        from_payment = min(payment_left, cohort_total)
        payment_left -= from_payment
        credit_left -= cohort_total - from_payment

        for bill in cohort:
            bill_payments.append(
                BillPayment(
                    bill_id=bill.bill_id,
                    domain=bill.domain,
                    cohort_key=key,
                    penalty_paid=bill.unpaid_penalty,
                    principal_paid=bill.unpaid_principal,
                    principal_unpaid_before=bill.unpaid_principal,
                    penalty_unpaid_before=bill.unpaid_penalty,
                    new_status=BillStatus.PAID,
                )
            )

    credit_used = credit_balance - credit_left
    result = DistributionResult(
        unit_id=unit_id,
        payment_amount=payment_amount,
        credit_balance_before=credit_balance,
        bill_payments=bill_payments,
        credit_used=credit_used,
        overpayment=payment_left,
        new_credit_balance=credit_balance - credit_used + payment_left,
        total_bills_due=total_bills_due,
    )
    _check(result)
    logger.debug(
        "Distributed %d + %d credit over %d bills: applied=%d new_credit=%d",
        payment_amount,
        credit_balance,
        len(bill_payments),
        result.total_applied,
        result.new_credit_balance,
    )
    return result


def apply_to_bills(bills: Iterable[Bill], result: DistributionResult) -> list[Bill]:
    """Updated copies of the bills a distribution touched, in distribution order."""
    by_id = {bill.bill_id: bill for bill in bills}
    updated = []
    for bp in result.bill_payments:
        if bp.amount_paid == 0:
            continue
        bill = by_id[bp.bill_id]
        new_bill = bill.model_copy(
            update={
                "principal_paid": bill.principal_paid + bp.principal_paid,
                "penalty_paid": bill.penalty_paid + bp.penalty_paid,
            }
        )
        errors = new_bill.invariant_errors()
        if errors:
            raise InvariantViolation(f"Payment would make bill {bill.bill_id} inconsistent: {'; '.join(errors)}")
        updated.append(new_bill)
    return updated
