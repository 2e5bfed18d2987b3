from __future__ import annotations

import logging

from condoledger.errors import InvariantViolation, store_errors
from condoledger.models.audit_log import AuditEventType
from condoledger.models.credit import CreditHistoryLine, CreditLedgerEntry, CreditSource
from condoledger.repositories.base import CreditLedgerRepository
from condoledger.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class CreditLedgerService:
    """Per-unit floating credit, kept as an append-only list of signed entries.

    There is no stored balance: every read sums the entries again.
    """

    def __init__(self, repo: CreditLedgerRepository, audit_service: AuditService | None = None) -> None:
        self.repo = repo
        self.audit_service = audit_service

    def get_balance(self, unit_id: str) -> int:
        with store_errors(f"Reading credit balance for unit {unit_id}"):
            balance = self.repo.balance(unit_id)
        logger.debug("Credit balance for unit %s: %d", unit_id, balance)
        return balance

    def append(
        self,
        unit_id: str,
        amount: int,
        reason: str,
        transaction_id: str = "",
        source: str = "",
    ) -> CreditLedgerEntry:
        if amount == 0:
            raise ValueError("Credit entry amount cannot be zero")
        balance = self.get_balance(unit_id)
        if balance + amount < 0:
            raise InvariantViolation(
                f"Credit entry of {amount} would leave unit {unit_id} with a negative balance ({balance + amount})"
            )
        entry = CreditLedgerEntry(
            unit_id=unit_id,
            amount=amount,
            reason=reason,
            transaction_id=transaction_id,
            source=source,
        )
        with store_errors(f"Appending credit entry for unit {unit_id}"):
            created = self.repo.append(entry)
        logger.info("Credit entry %s for unit %s: %+d (%s)", created.uuid, unit_id, amount, reason)
        return created

    def adjust(
        self,
        unit_id: str,
        amount: int,
        reason: str,
        *,
        actor_username: str = "",
        source: str = "",
    ) -> CreditLedgerEntry:
        """Manual correction of a unit's credit, audited."""
        before = self.get_balance(unit_id)
        entry = self.append(unit_id, amount, reason, source=CreditSource.ADJUSTMENT)
        if self.audit_service is not None:
            self.audit_service.safe_log(
                AuditEventType.CREDIT_ADJUST,
                actor_username=actor_username,
                source=source,
                entity_type="unit",
                entity_id=unit_id,
                previous_state={"credit_balance": before},
                new_state={"credit_balance": before + amount},
                metadata={"entry_uuid": entry.uuid, "reason": reason},
            )
        return entry

    def get_history(self, unit_id: str, limit: int = 50) -> list[CreditHistoryLine]:
        """Newest entries first, each with the balance right after it."""
        with store_errors(f"Reading credit history for unit {unit_id}"):
            entries = self.repo.list_by_unit(unit_id)
        lines = []
        running = 0
        for entry in entries:
            running += entry.amount
            lines.append(CreditHistoryLine(entry=entry, balance_after=running))
        lines.reverse()
        return lines[:limit]
