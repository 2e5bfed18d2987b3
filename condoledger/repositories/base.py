from abc import ABC, abstractmethod
from typing import Any

from condoledger.models.audit_log import AuditLog
from condoledger.models.bill import BillDomain
from condoledger.models.credit import CreditLedgerEntry
from condoledger.models.payment import Allocation, PaymentRecord
from condoledger.models.penalty import PenaltyConfig


class ChargeSource(ABC):
    """Raw period-charge records of one billing domain, in that domain's own field names."""

    domain: BillDomain

    @abstractmethod
    def create(self, record: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    def list_by_unit(self, unit_id: str) -> list[dict[str, Any]]: ...

    @abstractmethod
    def update_payment_fields(self, record_id: int, expected_version: int, fields: dict[str, int]) -> bool:
        """Write paid/penalty columns if the row is still at ``expected_version``.

        Returns False when another writer got there first.
        """


class PenaltyConfigRepository(ABC):
    @abstractmethod
    def get(self, domain: BillDomain) -> PenaltyConfig | None: ...

    @abstractmethod
    def save(self, domain: BillDomain, config: PenaltyConfig) -> None: ...


class TransactionLedgerRepository(ABC):
    @abstractmethod
    def record(self, payment: PaymentRecord) -> PaymentRecord:
        """Append a payment together with its allocations."""

    @abstractmethod
    def get_by_transaction_id(self, transaction_id: str) -> PaymentRecord | None: ...

    @abstractmethod
    def list_by_unit(self, unit_id: str) -> list[PaymentRecord]: ...

    @abstractmethod
    def list_allocations_by_unit(self, unit_id: str) -> list[Allocation]: ...


class CreditLedgerRepository(ABC):
    @abstractmethod
    def append(self, entry: CreditLedgerEntry) -> CreditLedgerEntry: ...

    @abstractmethod
    def balance(self, unit_id: str) -> int: ...

    @abstractmethod
    def list_by_unit(self, unit_id: str) -> list[CreditLedgerEntry]: ...


class AuditLogRepository(ABC):
    @abstractmethod
    def create(self, audit_log: AuditLog) -> AuditLog: ...

    @abstractmethod
    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]: ...

    @abstractmethod
    def list_recent(self, limit: int = 50) -> list[AuditLog]: ...
