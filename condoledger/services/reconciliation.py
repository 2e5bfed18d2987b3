"""Audit bill documents against the transaction ledger.

Bills carry paid amounts as a denormalized cache; the allocations in the
ledger are the source of truth. Nothing here writes: mismatches are reported
for a human to resolve.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from condoledger.constants import DISCREPANCY_TOLERANCE
from condoledger.errors import store_errors
from condoledger.models.bill import Bill
from condoledger.models.payment import Allocation
from condoledger.models.reconciliation import BillMismatch, DiscrepancyReport, SuspectedCause
from condoledger.repositories.base import TransactionLedgerRepository
from condoledger.services.bill_loader import BillLoader

logger = logging.getLogger(__name__)


def reconcile(bills: Iterable[Bill], allocations: Iterable[Allocation]) -> DiscrepancyReport:
    allocated: dict[str, int] = defaultdict(int)
    transactions: dict[str, list[str]] = defaultdict(list)
    for alloc in allocations:
        if not alloc.applies_to_bill:
            continue
        allocated[alloc.bill_id] += alloc.amount
        if alloc.transaction_id and alloc.transaction_id not in transactions[alloc.bill_id]:
            transactions[alloc.bill_id].append(alloc.transaction_id)

    mismatches = []
    for bill in bills:
        stored = bill.total_paid
        from_ledger = allocated.get(bill.bill_id, 0)
        delta = stored - from_ledger
        if abs(delta) <= DISCREPANCY_TOLERANCE:
            continue
        if delta < 0:
            cause = SuspectedCause.UNDER_REPORTS
        elif bill.bill_id not in allocated:
            cause = SuspectedCause.NO_ALLOCATIONS
        else:
            cause = SuspectedCause.OVER_REPORTS
        mismatches.append(
            BillMismatch(
                bill_id=bill.bill_id,
                domain=bill.domain,
                stored_paid=stored,
                allocated_paid=from_ledger,
                delta=delta,
                suspected_cause=cause,
                related_transaction_ids=list(transactions.get(bill.bill_id, [])),
            )
        )

    if not mismatches:
        return DiscrepancyReport()
    return DiscrepancyReport(detected=True, primary=mismatches[0], mismatches=mismatches)


class ReconciliationService:
    def __init__(self, loader: BillLoader, ledger_repo: TransactionLedgerRepository) -> None:
        self.loader = loader
        self.ledger_repo = ledger_repo

    def reconcile_unit(self, unit_id: str) -> DiscrepancyReport:
        return self.reconcile_bills(unit_id, self.loader.load_unit_bills(unit_id))

    def reconcile_bills(self, unit_id: str, bills: list[Bill]) -> DiscrepancyReport:
        """Check already-loaded bills of ``unit_id`` against its ledger allocations."""
        with store_errors(f"Reading allocations for unit {unit_id}"):
            allocations = self.ledger_repo.list_allocations_by_unit(unit_id)
        report = reconcile(bills, allocations)
        if report.detected:
            logger.warning(
                "Unit %s: %d bill(s) disagree with the ledger, first %s (delta %d)",
                unit_id,
                len(report.mismatches),
                report.primary.bill_id,
                report.primary.delta,
            )
        return report
