from __future__ import annotations

from collections.abc import Iterable

from condoledger.errors import InvariantViolation
from condoledger.models.distribution import DistributionResult
from condoledger.models.payment import Allocation, AllocationType


def build_allocations(transaction_id: str, unit_id: str, result: DistributionResult) -> list[Allocation]:
    """Ledger lines for one distribution.

    Each paid bill gets a penalty line and a principal line (zero amounts are
    skipped). A single signed credit line carries ``overpayment - credit_used``
    so the lines always add up to the payment amount.
    """
    allocations: list[Allocation] = []
    for bp in result.bill_payments:
        if bp.penalty_paid:
            allocations.append(
                Allocation(
                    transaction_id=transaction_id,
                    unit_id=unit_id,
                    bill_id=bp.bill_id,
                    allocation_type=AllocationType.PENALTY,
                    amount=bp.penalty_paid,
                )
            )
        if bp.principal_paid:
            allocations.append(
                Allocation(
                    transaction_id=transaction_id,
                    unit_id=unit_id,
                    bill_id=bp.bill_id,
                    allocation_type=AllocationType.PRINCIPAL,
                    amount=bp.principal_paid,
                )
            )

    credit_delta = result.overpayment - result.credit_used
    if credit_delta:
        allocations.append(
            Allocation(
                transaction_id=transaction_id,
                unit_id=unit_id,
                allocation_type=AllocationType.CREDIT,
                amount=credit_delta,
            )
        )
    return allocations


def validate_allocations(allocations: Iterable[Allocation], amount: int) -> None:
    allocations = list(allocations)
    for alloc in allocations:
        if alloc.applies_to_bill and alloc.amount <= 0:
            raise InvariantViolation(f"Bill allocation for {alloc.bill_id} must be positive, got {alloc.amount}")
        if alloc.allocation_type != AllocationType.CREDIT and alloc.bill_id is None:
            raise InvariantViolation(f"{alloc.allocation_type.value} allocation has no bill")
    credit_lines = [a for a in allocations if a.allocation_type == AllocationType.CREDIT]
    if len(credit_lines) > 1:
        raise InvariantViolation(f"Expected at most one credit allocation, got {len(credit_lines)}")
    total = sum(a.amount for a in allocations)
    if total != amount:
        raise InvariantViolation(f"Allocations sum to {total}, expected {amount}")
