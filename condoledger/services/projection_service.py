from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from condoledger.errors import InvariantViolation
from condoledger.models.projection import ProjectedBill, Projection, ProjectionOptions
from condoledger.services.bill_loader import BillLoader
from condoledger.services.credit_service import CreditLedgerService
from condoledger.services.penalty_service import PenaltyConfigResolver, refresh_penalties
from condoledger.services.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)


class ProjectionService:
    def __init__(
        self,
        loader: BillLoader,
        penalty_resolver: PenaltyConfigResolver,
        credit_service: CreditLedgerService,
        reconciliation_service: ReconciliationService,
    ) -> None:
        self.loader = loader
        self.penalty_resolver = penalty_resolver
        self.credit_service = credit_service
        self.reconciliation_service = reconciliation_service

    def project(self, unit_id: str, as_of: date, options: ProjectionOptions | None = None) -> Projection:
        """What the unit owes as of ``as_of``, with penalties brought up to date.

        Read-only: calling it twice without writes in between gives the same result.
        """
        options = options or ProjectionOptions()
        stored = self.loader.load_unit_bills(unit_id)
        configs = self.penalty_resolver.configs_for({bill.domain for bill in stored})
        bills = refresh_penalties(stored, as_of, configs)

        excluded = set(options.excluded_bills)
        waivers: dict[str, int] = defaultdict(int)
        for waiver in options.waived_penalties:
            waivers[waiver.bill_id] += waiver.amount

        projected = []
        for bill in bills:
            if bill.bill_id in excluded:
                continue
            penalty_due = max(0, bill.penalty_due - waivers.get(bill.bill_id, 0))
            adjusted = bill.model_copy(update={"penalty_due": penalty_due})
            errors = adjusted.invariant_errors()
            if errors:
                raise InvariantViolation(f"Waivers on bill {bill.bill_id} break it: {'; '.join(errors)}")
            remaining = adjusted.remaining
            if remaining == 0:
                continue
            projected.append(
                ProjectedBill(bill=adjusted, penalty_waived=bill.penalty_due - penalty_due, remaining=remaining)
            )
        projected.sort(key=lambda pb: (pb.bill.due_date, pb.bill.bill_id))

        projection = Projection(
            unit_id=unit_id,
            as_of=as_of,
            bills=projected,
            credit_balance=self.credit_service.get_balance(unit_id),
            total_remaining=sum(pb.remaining for pb in projected),
            discrepancy=self.reconciliation_service.reconcile_bills(unit_id, stored),
        )
        logger.debug(
            "Projection for unit %s as of %s: %d bills, remaining=%d credit=%d",
            unit_id,
            as_of,
            len(projected),
            projection.total_remaining,
            projection.credit_balance,
        )
        return projection
