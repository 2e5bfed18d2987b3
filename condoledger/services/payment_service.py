from __future__ import annotations

import logging
from datetime import date

from pydantic import BaseModel
from ulid import ULID

from condoledger.errors import BillingError, StaleDocument, StoreUnavailable, store_errors
from condoledger.models.audit_log import AuditEventType
from condoledger.models.bill import Bill
from condoledger.models.credit import CreditLedgerEntry, CreditSource
from condoledger.models.distribution import DistributionResult
from condoledger.models.payment import Payment, PaymentRecord
from condoledger.repositories.base import TransactionLedgerRepository
from condoledger.services.allocation import build_allocations, validate_allocations
from condoledger.services.audit_serializers import serialize_bill, serialize_distribution, serialize_payment
from condoledger.services.audit_service import AuditService
from condoledger.services.bill_loader import BillLoader
from condoledger.services.credit_service import CreditLedgerService
from condoledger.services.distribution import apply_to_bills, distribute
from condoledger.services.penalty_service import PenaltyConfigResolver, refresh_penalties

logger = logging.getLogger(__name__)


class PaymentOutcome(BaseModel):
    record: PaymentRecord
    distribution: DistributionResult | None = None  # None when an earlier record was replayed
    bills: list[Bill] = []
    credit_entries: list[CreditLedgerEntry] = []
    replayed: bool = False


class PaymentService:
    def __init__(
        self,
        loader: BillLoader,
        penalty_resolver: PenaltyConfigResolver,
        credit_service: CreditLedgerService,
        ledger_repo: TransactionLedgerRepository,
        audit_service: AuditService | None = None,
    ) -> None:
        self.loader = loader
        self.penalty_resolver = penalty_resolver
        self.credit_service = credit_service
        self.ledger_repo = ledger_repo
        self.audit_service = audit_service

    def _distribute(
        self,
        unit_id: str,
        amount: int,
        as_of: date,
        period_scope_hint: date | None = None,
    ) -> tuple[list[Bill], DistributionResult]:
        bills = self.loader.load_unit_bills(unit_id)
        configs = self.penalty_resolver.configs_for({bill.domain for bill in bills})
        bills = refresh_penalties(bills, as_of, configs)
        if period_scope_hint is not None:
            bills = [bill for bill in bills if bill.due_date <= period_scope_hint]
        credit_balance = self.credit_service.get_balance(unit_id)
        return bills, distribute(bills, amount, credit_balance, unit_id=unit_id)

    def preview_payment(
        self,
        unit_id: str,
        amount: int,
        payment_date: date,
        period_scope_hint: date | None = None,
    ) -> DistributionResult:
        """How ``amount`` would be distributed today. Writes nothing."""
        _, result = self._distribute(unit_id, amount, payment_date, period_scope_hint)
        return result

    def record_payment(self, payment: Payment, *, actor_username: str = "", source: str = "") -> PaymentOutcome:
        transaction_id = payment.transaction_id or str(ULID())
        if payment.transaction_id:
            with store_errors(f"Looking up transaction {transaction_id}"):
                existing = self.ledger_repo.get_by_transaction_id(transaction_id)
            if existing is not None:
                logger.info("Transaction %s already recorded, not applying again", transaction_id)
                return PaymentOutcome(record=existing, replayed=True)

        bills, result = self._distribute(
            payment.unit_id, payment.amount, payment.payment_date, payment.period_scope_hint
        )
        outcome = self._commit(
            transaction_id,
            payment.unit_id,
            payment.amount,
            payment.payment_date,
            payment.notes,
            bills,
            result,
        )
        if self.audit_service is not None:
            self.audit_service.safe_log(
                AuditEventType.PAYMENT_RECORD,
                actor_username=actor_username,
                source=source,
                entity_type="payment",
                entity_id=transaction_id,
                new_state=serialize_payment(outcome.record),
                metadata={**serialize_distribution(result), "bills": [serialize_bill(b) for b in outcome.bills]},
            )
        return outcome

    def apply_credit(
        self,
        unit_id: str,
        as_of: date,
        *,
        actor_username: str = "",
        source: str = "",
    ) -> PaymentOutcome | None:
        """Let existing credit settle whole cohorts. Returns None when it cannot settle any."""
        bills, result = self._distribute(unit_id, 0, as_of)
        if not result.bill_payments:
            logger.info("Credit of %d for unit %s does not cover the next cohort", result.credit_balance_before, unit_id)
            return None

        transaction_id = str(ULID())
        outcome = self._commit(transaction_id, unit_id, 0, as_of, "Credit applied to bills", bills, result)
        if self.audit_service is not None:
            self.audit_service.safe_log(
                AuditEventType.CREDIT_APPLY,
                actor_username=actor_username,
                source=source,
                entity_type="unit",
                entity_id=unit_id,
                previous_state={"credit_balance": result.credit_balance_before},
                new_state={"credit_balance": result.new_credit_balance},
                metadata={"transaction_id": transaction_id, "paid_bill_ids": result.paid_bill_ids},
            )
        return outcome

    def _commit(
        self,
        transaction_id: str,
        unit_id: str,
        amount: int,
        payment_date: date,
        notes: str,
        bills: list[Bill],
        result: DistributionResult,
    ) -> PaymentOutcome:
        allocations = build_allocations(transaction_id, unit_id, result)
        validate_allocations(allocations, amount)
        updated_bills = apply_to_bills(bills, result)
        record = PaymentRecord(
            transaction_id=transaction_id,
            unit_id=unit_id,
            amount=amount,
            payment_date=payment_date,
            credit_used=result.credit_used,
            overpayment=result.overpayment,
            notes=notes,
            allocations=allocations,
        )

        current_balance = self.credit_service.get_balance(unit_id)
        if current_balance != result.credit_balance_before:
            raise StaleDocument(
                f"Credit balance for unit {unit_id} moved from {result.credit_balance_before} "
                f"to {current_balance} during distribution"
            )

        written = False
        try:
            with store_errors(f"Recording transaction {transaction_id}"):
                saved = self.ledger_repo.record(record)
            written = True

            entries = []
            if result.credit_used:
                entries.append(
                    self.credit_service.append(
                        unit_id, -result.credit_used, "Applied to bills", transaction_id, CreditSource.PAYMENT
                    )
                )
            if result.overpayment:
                entries.append(
                    self.credit_service.append(
                        unit_id, result.overpayment, "Overpayment", transaction_id, CreditSource.PAYMENT
                    )
                )
            saved_bills = [self.loader.save_bill(bill) for bill in updated_bills]
        except BillingError as exc:
            if not written:
                raise
            error_type = type(exc) if isinstance(exc, StoreUnavailable) else StoreUnavailable
            logger.error("Transaction %s partially applied: %s", transaction_id, exc)
            raise error_type(
                f"Transaction {transaction_id} was partially applied; re-read state before retrying: {exc}",
                partially_applied=True,
            ) from exc

        logger.info(
            "Recorded transaction %s for unit %s: amount=%d bills=%s credit_used=%d overpayment=%d",
            transaction_id,
            unit_id,
            amount,
            ",".join(b.bill_id for b in saved_bills) or "-",
            result.credit_used,
            result.overpayment,
        )
        return PaymentOutcome(record=saved, distribution=result, bills=saved_bills, credit_entries=entries)
