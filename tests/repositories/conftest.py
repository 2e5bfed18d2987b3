import pytest
from sqlalchemy import Connection

from condoledger.repositories.sqlalchemy import (
    SQLAlchemyAuditLogRepository,
    SQLAlchemyCreditLedgerRepository,
    SQLAlchemyDuesChargeSource,
    SQLAlchemyPenaltyConfigRepository,
    SQLAlchemyTransactionLedgerRepository,
    SQLAlchemyWaterChargeSource,
)


@pytest.fixture()
def dues_source(db_connection: Connection) -> SQLAlchemyDuesChargeSource:
    return SQLAlchemyDuesChargeSource(db_connection)


@pytest.fixture()
def water_source(db_connection: Connection) -> SQLAlchemyWaterChargeSource:
    return SQLAlchemyWaterChargeSource(db_connection)


@pytest.fixture()
def penalty_config_repo(db_connection: Connection) -> SQLAlchemyPenaltyConfigRepository:
    return SQLAlchemyPenaltyConfigRepository(db_connection)


@pytest.fixture()
def ledger_repo(db_connection: Connection) -> SQLAlchemyTransactionLedgerRepository:
    return SQLAlchemyTransactionLedgerRepository(db_connection)


@pytest.fixture()
def credit_repo(db_connection: Connection) -> SQLAlchemyCreditLedgerRepository:
    return SQLAlchemyCreditLedgerRepository(db_connection)


@pytest.fixture()
def audit_repo(db_connection: Connection) -> SQLAlchemyAuditLogRepository:
    return SQLAlchemyAuditLogRepository(db_connection)
