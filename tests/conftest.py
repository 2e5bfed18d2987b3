"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from condoledger.models.bill import Bill, BillDomain
from condoledger.models.penalty import PenaltyConfig

# Matches Alembic head: 3c1f0a9d2b7e (initial schema)
SCHEMA_DDL = """
CREATE TABLE dues_charges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    unit_id VARCHAR(64) NOT NULL,
    period_key VARCHAR(32) NOT NULL,
    period_start TEXT NOT NULL,
    due_date TEXT NOT NULL,
    scheduled_amount INTEGER NOT NULL,
    amount_paid INTEGER NOT NULL DEFAULT 0,
    penalty_amount INTEGER NOT NULL DEFAULT 0,
    penalty_paid INTEGER NOT NULL DEFAULT 0,
    cohort VARCHAR(64),
    version INTEGER NOT NULL DEFAULT 0,
    updated_at DATETIME NOT NULL,
    UNIQUE(unit_id, period_key)
);

CREATE TABLE water_bills (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    unit_id VARCHAR(64) NOT NULL,
    bill_key VARCHAR(32) NOT NULL,
    reading_start TEXT NOT NULL,
    due_date TEXT NOT NULL,
    consumption INTEGER NOT NULL DEFAULT 0,
    current_charge INTEGER NOT NULL,
    base_paid INTEGER NOT NULL DEFAULT 0,
    penalty_amount INTEGER NOT NULL DEFAULT 0,
    penalty_paid INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0,
    updated_at DATETIME NOT NULL,
    UNIQUE(unit_id, bill_key)
);

CREATE TABLE penalty_configs (
    domain VARCHAR(20) PRIMARY KEY,
    penalty_rate TEXT NOT NULL,
    grace_days INTEGER NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE TABLE payments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_id VARCHAR(64) NOT NULL UNIQUE,
    unit_id VARCHAR(64) NOT NULL,
    amount INTEGER NOT NULL,
    payment_date TEXT NOT NULL,
    credit_used INTEGER NOT NULL DEFAULT 0,
    overpayment INTEGER NOT NULL DEFAULT 0,
    notes TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL
);

CREATE TABLE allocations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    payment_id INTEGER NOT NULL REFERENCES payments(id),
    transaction_id VARCHAR(64) NOT NULL,
    unit_id VARCHAR(64) NOT NULL,
    bill_id VARCHAR(64),
    allocation_type VARCHAR(20) NOT NULL,
    amount INTEGER NOT NULL,
    created_at DATETIME NOT NULL
);

CREATE TABLE credit_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    unit_id VARCHAR(64) NOT NULL,
    amount INTEGER NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    transaction_id VARCHAR(64) NOT NULL DEFAULT '',
    source VARCHAR(20) NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL
);

CREATE TABLE audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    event_type VARCHAR(50) NOT NULL,
    actor_username VARCHAR(255) NOT NULL DEFAULT '',
    source VARCHAR(20) NOT NULL DEFAULT '',
    entity_type VARCHAR(50) NOT NULL DEFAULT '',
    entity_id VARCHAR(64) NOT NULL DEFAULT '',
    previous_state TEXT,
    new_state TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at DATETIME NOT NULL
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


def _sample_bill(**overrides) -> Bill:
    defaults = dict(
        bill_id="recurring:2026-03",
        unit_id="A-101",
        domain=BillDomain.RECURRING,
        period_start=date(2026, 3, 1),
        due_date=date(2026, 3, 10),
        principal_due=95000,
    )
    defaults.update(overrides)
    return Bill(**defaults)


def _dues_row(**overrides) -> dict:
    defaults = dict(
        unit_id="A-101",
        period_key="2026-03",
        period_start="2026-03-01",
        due_date="2026-03-10",
        scheduled_amount=95000,
        amount_paid=0,
        penalty_amount=0,
        penalty_paid=0,
    )
    defaults.update(overrides)
    return defaults


def _water_row(**overrides) -> dict:
    defaults = dict(
        unit_id="A-101",
        bill_key="2026-03",
        reading_start="2026-02-15",
        due_date="2026-03-10",
        consumption=18,
        current_charge=32000,
        base_paid=0,
        penalty_amount=0,
        penalty_paid=0,
    )
    defaults.update(overrides)
    return defaults


@pytest.fixture()
def sample_bill():
    return _sample_bill


@pytest.fixture()
def dues_row():
    return _dues_row


@pytest.fixture()
def water_row():
    return _water_row


@pytest.fixture()
def penalty_config() -> PenaltyConfig:
    return PenaltyConfig(rate="0.05", grace_days=10)
