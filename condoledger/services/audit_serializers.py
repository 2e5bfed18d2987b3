"""Serializers that convert models to dicts suitable for audit log state fields.

Dates are converted to ISO 8601 strings and Decimals to strings for JSON
compatibility. Money stays in integer minor units.
"""

from __future__ import annotations

from datetime import date

from condoledger.models.bill import Bill
from condoledger.models.distribution import DistributionResult
from condoledger.models.payment import PaymentRecord
from condoledger.models.penalty import PenaltyConfig


def _d(val: date | None) -> str | None:
    """Convert date/datetime to ISO string, or None."""
    if val is None:
        return None
    return val.isoformat()


def serialize_bill(bill: Bill) -> dict:
    return {
        "bill_id": bill.bill_id,
        "unit_id": bill.unit_id,
        "domain": bill.domain.value,
        "due_date": _d(bill.due_date),
        "principal_due": bill.principal_due,
        "penalty_due": bill.penalty_due,
        "principal_paid": bill.principal_paid,
        "penalty_paid": bill.penalty_paid,
        "status": bill.status.value,
    }


def serialize_payment(record: PaymentRecord) -> dict:
    """Serialize a PaymentRecord (with allocations) for audit state."""
    return {
        "transaction_id": record.transaction_id,
        "unit_id": record.unit_id,
        "amount": record.amount,
        "payment_date": _d(record.payment_date),
        "credit_used": record.credit_used,
        "overpayment": record.overpayment,
        "notes": record.notes,
        "allocations": [
            {
                "bill_id": alloc.bill_id,
                "allocation_type": alloc.allocation_type.value,
                "amount": alloc.amount,
            }
            for alloc in record.allocations
        ],
        "created_at": _d(record.created_at),
    }


def serialize_distribution(result: DistributionResult) -> dict:
    return {
        "payment_amount": result.payment_amount,
        "credit_balance_before": result.credit_balance_before,
        "credit_used": result.credit_used,
        "overpayment": result.overpayment,
        "new_credit_balance": result.new_credit_balance,
        "paid_bill_ids": result.paid_bill_ids,
    }


def serialize_penalty_config(config: PenaltyConfig) -> dict:
    return {"penalty_rate": str(config.rate), "grace_days": config.grace_days}
