"""Error taxonomy for the billing engine.

``DiscrepancyReport`` is deliberately absent: mismatches between bill documents
and the ledger are returned as values, never raised.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError


class BillingError(Exception):
    """Base class for every error raised by the engine."""


class MissingConfig(BillingError):
    """Penalty calculation was requested without a rate/grace configuration."""


class InvariantViolation(BillingError):
    """A computed value would break a money invariant; nothing was written."""


class InvalidBillRecord(BillingError, ValueError):
    """A raw charge record failed validation at the loader boundary."""


class StoreUnavailable(BillingError):
    """The underlying store failed. Retry belongs to the caller.

    ``partially_applied`` is True when some writes of a distribution were
    committed before the failure; the caller must re-derive state from the
    store before retrying and must never resume from the stale result.
    """

    def __init__(self, message: str, *, partially_applied: bool = False) -> None:
        super().__init__(message)
        self.partially_applied = partially_applied


class StaleDocument(StoreUnavailable):
    """A document changed between read and write (optimistic check failed)."""


@contextmanager
def store_errors(operation: str, *, partially_applied: bool = False) -> Iterator[None]:
    """Translate driver errors raised inside the block into ``StoreUnavailable``."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreUnavailable(f"{operation} failed: {exc}", partially_applied=partially_applied) from exc
