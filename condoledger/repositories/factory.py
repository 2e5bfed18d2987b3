from condoledger.repositories.base import (
    AuditLogRepository,
    ChargeSource,
    CreditLedgerRepository,
    PenaltyConfigRepository,
    TransactionLedgerRepository,
)


def get_charge_sources() -> list[ChargeSource]:
    from condoledger.db import get_connection
    from condoledger.repositories.sqlalchemy import SQLAlchemyDuesChargeSource, SQLAlchemyWaterChargeSource

    conn = get_connection()
    return [SQLAlchemyDuesChargeSource(conn), SQLAlchemyWaterChargeSource(conn)]


def get_penalty_config_repository() -> PenaltyConfigRepository:
    from condoledger.db import get_connection
    from condoledger.repositories.sqlalchemy import SQLAlchemyPenaltyConfigRepository

    return SQLAlchemyPenaltyConfigRepository(get_connection())


def get_transaction_ledger_repository() -> TransactionLedgerRepository:
    from condoledger.db import get_connection
    from condoledger.repositories.sqlalchemy import SQLAlchemyTransactionLedgerRepository

    return SQLAlchemyTransactionLedgerRepository(get_connection())


def get_credit_ledger_repository() -> CreditLedgerRepository:
    from condoledger.db import get_connection
    from condoledger.repositories.sqlalchemy import SQLAlchemyCreditLedgerRepository

    return SQLAlchemyCreditLedgerRepository(get_connection())


def get_audit_log_repository() -> AuditLogRepository:
    from condoledger.db import get_connection
    from condoledger.repositories.sqlalchemy import SQLAlchemyAuditLogRepository

    return SQLAlchemyAuditLogRepository(get_connection())
