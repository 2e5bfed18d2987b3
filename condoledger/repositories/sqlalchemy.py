from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from ulid import ULID

from condoledger.constants import LOCAL_TZ
from condoledger.models.audit_log import AuditLog
from condoledger.models.bill import BillDomain
from condoledger.models.credit import CreditLedgerEntry
from condoledger.models.payment import Allocation, AllocationType, PaymentRecord
from condoledger.models.penalty import PenaltyConfig
from condoledger.repositories.base import (
    AuditLogRepository,
    ChargeSource,
    CreditLedgerRepository,
    PenaltyConfigRepository,
    TransactionLedgerRepository,
)


def _now() -> datetime:
    return datetime.now(LOCAL_TZ)


@contextmanager
def _committing(conn: Connection) -> Iterator[None]:
    """Commit the statements run inside the block, or roll all of them back."""
    try:
        yield
    except SQLAlchemyError:
        conn.rollback()
        raise
    conn.commit()


def _bind(value: Any) -> Any:
    # Dates are stored as ISO strings so every backend compares them the same way.
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


class _SQLAlchemyChargeSource(ChargeSource):
    table: str
    columns: tuple[str, ...]
    payment_columns: tuple[str, ...]
    key_column: str

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, record: dict[str, Any]) -> dict[str, Any]:
        unknown = set(record) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown {self.table} columns: {', '.join(sorted(unknown))}")
        cols = [c for c in self.columns if c in record]
        params = {c: _bind(record[c]) for c in cols}
        params["updated_at"] = _now()
        with _committing(self.conn):
            result = self.conn.execute(
                text(
                    f"INSERT INTO {self.table} ({', '.join(cols)}, updated_at) "
                    f"VALUES ({', '.join(':' + c for c in cols)}, :updated_at)"
                ),
                params,
            )
        row = (
            self.conn.execute(text(f"SELECT * FROM {self.table} WHERE id = :id"), {"id": result.lastrowid})
            .mappings()
            .fetchone()
        )
        if row is None:
            raise RuntimeError(f"Failed to retrieve {self.table} row after create (id={result.lastrowid})")
        return dict(row)

    def list_by_unit(self, unit_id: str) -> list[dict[str, Any]]:
        rows = (
            self.conn.execute(
                text(f"SELECT * FROM {self.table} WHERE unit_id = :unit_id ORDER BY due_date, {self.key_column}"),
                {"unit_id": unit_id},
            )
            .mappings()
            .fetchall()
        )
        return [dict(row) for row in rows]

    def update_payment_fields(self, record_id: int, expected_version: int, fields: dict[str, int]) -> bool:
        unknown = set(fields) - set(self.payment_columns)
        if unknown:
            raise ValueError(f"Not a payment column of {self.table}: {', '.join(sorted(unknown))}")
        assignments = ", ".join(f"{c} = :{c}" for c in fields)
        with _committing(self.conn):
            result = self.conn.execute(
                text(
                    f"UPDATE {self.table} SET {assignments}, version = version + 1, updated_at = :updated_at "
                    "WHERE id = :id AND version = :expected_version"
                ),
                {**fields, "updated_at": _now(), "id": record_id, "expected_version": expected_version},
            )
        return result.rowcount == 1


class SQLAlchemyDuesChargeSource(_SQLAlchemyChargeSource):
    domain = BillDomain.RECURRING
    table = "dues_charges"
    key_column = "period_key"
    columns = (
        "unit_id",
        "period_key",
        "period_start",
        "due_date",
        "scheduled_amount",
        "amount_paid",
        "penalty_amount",
        "penalty_paid",
        "cohort",
    )
    payment_columns = ("amount_paid", "penalty_amount", "penalty_paid")


class SQLAlchemyWaterChargeSource(_SQLAlchemyChargeSource):
    domain = BillDomain.METERED
    table = "water_bills"
    key_column = "bill_key"
    columns = (
        "unit_id",
        "bill_key",
        "reading_start",
        "due_date",
        "consumption",
        "current_charge",
        "base_paid",
        "penalty_amount",
        "penalty_paid",
    )
    payment_columns = ("base_paid", "penalty_amount", "penalty_paid")


class SQLAlchemyPenaltyConfigRepository(PenaltyConfigRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get(self, domain: BillDomain) -> PenaltyConfig | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM penalty_configs WHERE domain = :domain"),
                {"domain": domain.value},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return PenaltyConfig.from_mapping(row, context=f"{domain.value} bills")

    def save(self, domain: BillDomain, config: PenaltyConfig) -> None:
        params = {
            "domain": domain.value,
            "penalty_rate": str(config.rate),
            "grace_days": config.grace_days,
            "updated_at": _now(),
        }
        with _committing(self.conn):
            result = self.conn.execute(
                text(
                    "UPDATE penalty_configs SET penalty_rate = :penalty_rate, grace_days = :grace_days, "
                    "updated_at = :updated_at WHERE domain = :domain"
                ),
                params,
            )
            if result.rowcount == 0:
                self.conn.execute(
                    text(
                        "INSERT INTO penalty_configs (domain, penalty_rate, grace_days, updated_at) "
                        "VALUES (:domain, :penalty_rate, :grace_days, :updated_at)"
                    ),
                    params,
                )


class SQLAlchemyTransactionLedgerRepository(TransactionLedgerRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_allocation(row: RowMapping) -> Allocation:
        return Allocation(
            id=row["id"],
            transaction_id=row["transaction_id"],
            unit_id=row["unit_id"],
            bill_id=row["bill_id"],
            allocation_type=AllocationType(row["allocation_type"]),
            amount=row["amount"],
            created_at=row["created_at"],
        )

    def _build_payment(self, row: RowMapping, allocation_rows: list[RowMapping]) -> PaymentRecord:
        return PaymentRecord(
            id=row["id"],
            transaction_id=row["transaction_id"],
            unit_id=row["unit_id"],
            amount=row["amount"],
            payment_date=row["payment_date"],
            credit_used=row["credit_used"],
            overpayment=row["overpayment"],
            notes=row["notes"],
            allocations=[self._row_to_allocation(a) for a in allocation_rows],
            created_at=row["created_at"],
        )

    def record(self, payment: PaymentRecord) -> PaymentRecord:
        now = _now()
        with _committing(self.conn):
            result = self.conn.execute(
                text(
                    "INSERT INTO payments (transaction_id, unit_id, amount, payment_date, "
                    "credit_used, overpayment, notes, created_at) "
                    "VALUES (:transaction_id, :unit_id, :amount, :payment_date, "
                    ":credit_used, :overpayment, :notes, :created_at)"
                ),
                {
                    "transaction_id": payment.transaction_id,
                    "unit_id": payment.unit_id,
                    "amount": payment.amount,
                    "payment_date": _bind(payment.payment_date),
                    "credit_used": payment.credit_used,
                    "overpayment": payment.overpayment,
                    "notes": payment.notes,
                    "created_at": now,
                },
            )
            payment_id = result.lastrowid
            for alloc in payment.allocations:
                self.conn.execute(
                    text(
                        "INSERT INTO allocations (payment_id, transaction_id, unit_id, bill_id, "
                        "allocation_type, amount, created_at) "
                        "VALUES (:payment_id, :transaction_id, :unit_id, :bill_id, "
                        ":allocation_type, :amount, :created_at)"
                    ),
                    {
                        "payment_id": payment_id,
                        "transaction_id": payment.transaction_id,
                        "unit_id": payment.unit_id,
                        "bill_id": alloc.bill_id,
                        "allocation_type": alloc.allocation_type.value,
                        "amount": alloc.amount,
                        "created_at": now,
                    },
                )
        created = self.get_by_transaction_id(payment.transaction_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve payment after record (transaction_id={payment.transaction_id})")
        return created

    def get_by_transaction_id(self, transaction_id: str) -> PaymentRecord | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM payments WHERE transaction_id = :transaction_id"),
                {"transaction_id": transaction_id},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        allocation_rows = (
            self.conn.execute(
                text("SELECT * FROM allocations WHERE payment_id = :payment_id ORDER BY id"),
                {"payment_id": row["id"]},
            )
            .mappings()
            .fetchall()
        )
        return self._build_payment(row, list(allocation_rows))

    def list_by_unit(self, unit_id: str) -> list[PaymentRecord]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM payments WHERE unit_id = :unit_id ORDER BY payment_date, id"),
                {"unit_id": unit_id},
            )
            .mappings()
            .fetchall()
        )
        if not rows:
            return []
        allocations_by_payment: dict[int, list[RowMapping]] = {}
        allocation_rows = (
            self.conn.execute(
                text("SELECT * FROM allocations WHERE unit_id = :unit_id ORDER BY id"),
                {"unit_id": unit_id},
            )
            .mappings()
            .fetchall()
        )
        for alloc_row in allocation_rows:
            allocations_by_payment.setdefault(alloc_row["payment_id"], []).append(alloc_row)
        return [self._build_payment(row, allocations_by_payment.get(row["id"], [])) for row in rows]

    def list_allocations_by_unit(self, unit_id: str) -> list[Allocation]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM allocations WHERE unit_id = :unit_id ORDER BY id"),
                {"unit_id": unit_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_allocation(row) for row in rows]


class SQLAlchemyCreditLedgerRepository(CreditLedgerRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_entry(row: RowMapping) -> CreditLedgerEntry:
        return CreditLedgerEntry(
            id=row["id"],
            uuid=row["uuid"],
            unit_id=row["unit_id"],
            amount=row["amount"],
            reason=row["reason"],
            transaction_id=row["transaction_id"],
            source=row["source"],
            created_at=row["created_at"],
        )

    def append(self, entry: CreditLedgerEntry) -> CreditLedgerEntry:
        entry_uuid = str(ULID())
        with _committing(self.conn):
            self.conn.execute(
                text(
                    "INSERT INTO credit_entries (uuid, unit_id, amount, reason, transaction_id, source, created_at) "
                    "VALUES (:uuid, :unit_id, :amount, :reason, :transaction_id, :source, :created_at)"
                ),
                {
                    "uuid": entry_uuid,
                    "unit_id": entry.unit_id,
                    "amount": entry.amount,
                    "reason": entry.reason,
                    "transaction_id": entry.transaction_id,
                    "source": entry.source,
                    "created_at": _now(),
                },
            )
        row = (
            self.conn.execute(text("SELECT * FROM credit_entries WHERE uuid = :uuid"), {"uuid": entry_uuid})
            .mappings()
            .fetchone()
        )
        if row is None:
            raise RuntimeError(f"Failed to retrieve credit entry after append (uuid={entry_uuid})")
        return self._row_to_entry(row)

    def balance(self, unit_id: str) -> int:
        total = self.conn.execute(
            text("SELECT COALESCE(SUM(amount), 0) FROM credit_entries WHERE unit_id = :unit_id"),
            {"unit_id": unit_id},
        ).scalar_one()
        return int(total)

    def list_by_unit(self, unit_id: str) -> list[CreditLedgerEntry]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM credit_entries WHERE unit_id = :unit_id ORDER BY id"),
                {"unit_id": unit_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_entry(row) for row in rows]


class SQLAlchemyAuditLogRepository(AuditLogRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_audit_log(row: RowMapping) -> AuditLog:
        previous_state = row["previous_state"]
        if isinstance(previous_state, str):
            previous_state = json.loads(previous_state)
        new_state = row["new_state"]
        if isinstance(new_state, str):
            new_state = json.loads(new_state)
        metadata = row["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        return AuditLog(
            id=row["id"],
            uuid=row["uuid"],
            event_type=row["event_type"],
            actor_username=row["actor_username"],
            source=row["source"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            previous_state=previous_state,
            new_state=new_state,
            metadata=metadata,
            created_at=row["created_at"],
        )

    def create(self, audit_log: AuditLog) -> AuditLog:
        audit_uuid = str(ULID())
        with _committing(self.conn):
            self.conn.execute(
                text(
                    "INSERT INTO audit_logs (uuid, event_type, actor_username, source, entity_type, "
                    "entity_id, previous_state, new_state, metadata, created_at) "
                    "VALUES (:uuid, :event_type, :actor_username, :source, :entity_type, "
                    ":entity_id, :previous_state, :new_state, :metadata, :created_at)"
                ),
                {
                    "uuid": audit_uuid,
                    "event_type": audit_log.event_type,
                    "actor_username": audit_log.actor_username,
                    "source": audit_log.source,
                    "entity_type": audit_log.entity_type,
                    "entity_id": audit_log.entity_id,
                    "previous_state": json.dumps(audit_log.previous_state)
                    if audit_log.previous_state is not None
                    else None,
                    "new_state": json.dumps(audit_log.new_state) if audit_log.new_state is not None else None,
                    "metadata": json.dumps(audit_log.metadata),
                    "created_at": _now(),
                },
            )

        row = (
            self.conn.execute(
                text("SELECT * FROM audit_logs WHERE uuid = :uuid"),
                {"uuid": audit_uuid},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            raise RuntimeError(f"Failed to retrieve audit log after create (uuid={audit_uuid})")
        return self._row_to_audit_log(row)

    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT * FROM audit_logs "
                    "WHERE entity_type = :entity_type AND entity_id = :entity_id "
                    "ORDER BY created_at DESC, id DESC"
                ),
                {"entity_type": entity_type, "entity_id": entity_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_audit_log(row) for row in rows]

    def list_recent(self, limit: int = 50) -> list[AuditLog]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM audit_logs ORDER BY created_at DESC, id DESC LIMIT :limit"),
                {"limit": limit},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_audit_log(row) for row in rows]
