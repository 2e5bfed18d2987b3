"""Read both billing domains and normalize them into ``Bill``.

Dues rows and water rows name the same concepts differently
(``scheduled_amount`` vs ``current_charge``, ``amount_paid`` vs ``base_paid``).
This module is the only place that knows those names; everything downstream
works on ``Bill``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from condoledger.errors import InvalidBillRecord, StaleDocument, store_errors
from condoledger.models.bill import Bill, BillDomain
from condoledger.repositories.base import ChargeSource

logger = logging.getLogger(__name__)


def _require(row: Mapping[str, Any], key: str) -> Any:
    if key not in row or row[key] is None:
        raise InvalidBillRecord(f"Charge record {row.get('id')!r} is missing {key!r}")
    return row[key]


def _money(row: Mapping[str, Any], key: str, default: int | None = None) -> int:
    if default is not None and row.get(key) is None:
        return default
    value = _require(row, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidBillRecord(
            f"Charge record {row.get('id')!r}: {key} must be integer minor units, got {value!r}"
        )
    if value < 0:
        raise InvalidBillRecord(f"Charge record {row.get('id')!r}: {key} is negative ({value})")
    return value


def _date(row: Mapping[str, Any], key: str) -> date:
    value = _require(row, key)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise InvalidBillRecord(f"Charge record {row.get('id')!r}: {key} is not a date ({value!r})")


def _build_bill(row: Mapping[str, Any], **fields: Any) -> Bill:
    try:
        bill = Bill(record_id=row.get("id"), version=row.get("version") or 0, **fields)
    except ValidationError as exc:
        raise InvalidBillRecord(f"Charge record {row.get('id')!r} is invalid: {exc}") from exc
    errors = bill.invariant_errors()
    if errors:
        raise InvalidBillRecord(f"Bill {bill.bill_id} is inconsistent: {'; '.join(errors)}")
    return bill


def normalize_dues_record(row: Mapping[str, Any]) -> Bill:
    period_key = str(_require(row, "period_key"))
    return _build_bill(
        row,
        bill_id=f"{BillDomain.RECURRING.value}:{period_key}",
        unit_id=str(_require(row, "unit_id")),
        domain=BillDomain.RECURRING,
        period_start=_date(row, "period_start"),
        due_date=_date(row, "due_date"),
        principal_due=_money(row, "scheduled_amount"),
        penalty_due=_money(row, "penalty_amount", default=0),
        principal_paid=_money(row, "amount_paid", default=0),
        penalty_paid=_money(row, "penalty_paid", default=0),
        cohort_key=row.get("cohort") or "",
    )


def normalize_water_record(row: Mapping[str, Any]) -> Bill:
    bill_key = str(_require(row, "bill_key"))
    return _build_bill(
        row,
        bill_id=f"{BillDomain.METERED.value}:{bill_key}",
        unit_id=str(_require(row, "unit_id")),
        domain=BillDomain.METERED,
        period_start=_date(row, "reading_start"),
        due_date=_date(row, "due_date"),
        principal_due=_money(row, "current_charge"),
        penalty_due=_money(row, "penalty_amount", default=0),
        principal_paid=_money(row, "base_paid", default=0),
        penalty_paid=_money(row, "penalty_paid", default=0),
    )


NORMALIZERS = {
    BillDomain.RECURRING: normalize_dues_record,
    BillDomain.METERED: normalize_water_record,
}

# Bill field -> stored column, per domain.
PAYMENT_FIELD_MAP = {
    BillDomain.RECURRING: {
        "principal_paid": "amount_paid",
        "penalty_due": "penalty_amount",
        "penalty_paid": "penalty_paid",
    },
    BillDomain.METERED: {
        "principal_paid": "base_paid",
        "penalty_due": "penalty_amount",
        "penalty_paid": "penalty_paid",
    },
}


def payment_fields(bill: Bill) -> dict[str, int]:
    """The domain-specific columns that a payment write touches."""
    return {column: getattr(bill, field) for field, column in PAYMENT_FIELD_MAP[bill.domain].items()}


class BillLoader:
    def __init__(self, sources: Iterable[ChargeSource]) -> None:
        self.sources = {source.domain: source for source in sources}

    def _source_for(self, domain: BillDomain) -> ChargeSource:
        try:
            return self.sources[domain]
        except KeyError:
            raise ValueError(f"No charge source registered for {domain.value} bills") from None

    def load_unit_bills(self, unit_id: str, domains: Iterable[BillDomain] | None = None) -> list[Bill]:
        """All bills of a unit across the requested domains, sorted by due date then bill id."""
        wanted = list(domains) if domains is not None else list(self.sources)
        bills: list[Bill] = []
        for domain in wanted:
            source = self._source_for(domain)
            with store_errors(f"Loading {domain.value} bills for unit {unit_id}"):
                rows = source.list_by_unit(unit_id)
            bills.extend(NORMALIZERS[domain](row) for row in rows)
        bills.sort(key=lambda b: (b.due_date, b.bill_id))
        logger.debug("Loaded %d bills for unit %s", len(bills), unit_id)
        return bills

    def save_bill(self, bill: Bill) -> Bill:
        """Write a bill's paid and penalty amounts back to its domain table.

        Raises ``StaleDocument`` if the row changed since the bill was loaded.
        """
        errors = bill.invariant_errors()
        if errors:
            raise InvalidBillRecord(f"Refusing to save inconsistent bill {bill.bill_id}: {'; '.join(errors)}")
        if bill.record_id is None:
            raise ValueError(f"Cannot save bill {bill.bill_id} without a record id")
        source = self._source_for(bill.domain)
        with store_errors(f"Saving bill {bill.bill_id}"):
            updated = source.update_payment_fields(bill.record_id, bill.version, payment_fields(bill))
        if not updated:
            raise StaleDocument(f"Bill {bill.bill_id} changed since it was read (version {bill.version})")
        logger.info("Saved bill %s for unit %s", bill.bill_id, bill.unit_id)
        return bill.model_copy(update={"version": bill.version + 1})
