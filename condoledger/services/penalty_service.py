from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal

from condoledger.constants import DAYS_PER_PENALTY_MONTH
from condoledger.errors import MissingConfig, store_errors
from condoledger.models.audit_log import AuditEventType
from condoledger.models.bill import Bill, BillDomain
from condoledger.models.penalty import PenaltyConfig
from condoledger.repositories.base import PenaltyConfigRepository
from condoledger.services.audit_serializers import serialize_penalty_config
from condoledger.services.audit_service import AuditService

logger = logging.getLogger(__name__)


def compute_penalty(bill: Bill, as_of: date, config: PenaltyConfig | None) -> int:
    """Late penalty owed on ``bill`` as of ``as_of``, in minor units.

    Any part of a month past the grace period counts as one month; after that
    only whole 30-day months add to the multiplier. Once the principal is fully
    paid the stored penalty is returned untouched.
    """
    if config is None:
        raise MissingConfig(f"No penalty configuration for {bill.domain.value} bills")

    if bill.unpaid_principal <= 0:
        return bill.penalty_due

    grace_end = bill.due_date + timedelta(days=config.grace_days)
    if as_of <= grace_end:
        return 0

    days_past_grace = (as_of - grace_end).days
    months_late = max(1, days_past_grace // DAYS_PER_PENALTY_MONTH)
    penalty = Decimal(bill.unpaid_principal) * config.rate * months_late
    return int(penalty.to_integral_value(rounding=ROUND_FLOOR))


def refresh_penalties(
    bills: Iterable[Bill],
    as_of: date,
    configs: Mapping[BillDomain, PenaltyConfig],
) -> list[Bill]:
    """Copies of ``bills`` with ``penalty_due`` recomputed as of ``as_of``.

    Penalties already paid are never refunded, so the new value is clamped to
    ``penalty_paid``.
    """
    refreshed = []
    for bill in bills:
        penalty = max(compute_penalty(bill, as_of, configs.get(bill.domain)), bill.penalty_paid)
        if penalty != bill.penalty_due:
            logger.debug("Penalty for %s: %d -> %d", bill.bill_id, bill.penalty_due, penalty)
        refreshed.append(bill.model_copy(update={"penalty_due": penalty}))
    return refreshed


class PenaltyConfigResolver:
    def __init__(self, repo: PenaltyConfigRepository, audit_service: AuditService | None = None) -> None:
        self.repo = repo
        self.audit_service = audit_service

    def get(self, domain: BillDomain) -> PenaltyConfig:
        with store_errors(f"Reading penalty configuration for {domain.value} bills"):
            config = self.repo.get(domain)
        if config is None:
            raise MissingConfig(f"No penalty configuration for {domain.value} bills")
        return config

    def configs_for(self, domains: Iterable[BillDomain]) -> dict[BillDomain, PenaltyConfig]:
        return {domain: self.get(domain) for domain in domains}

    def update(
        self,
        domain: BillDomain,
        config: PenaltyConfig,
        *,
        actor_username: str = "",
        source: str = "",
    ) -> PenaltyConfig:
        with store_errors(f"Saving penalty configuration for {domain.value} bills"):
            previous = self.repo.get(domain)
            self.repo.save(domain, config)
        logger.info("Penalty config for %s set to rate=%s grace_days=%d", domain.value, config.rate, config.grace_days)
        if self.audit_service is not None:
            self.audit_service.safe_log(
                AuditEventType.PENALTY_CONFIG_UPDATE,
                actor_username=actor_username,
                source=source,
                entity_type="penalty_config",
                entity_id=domain.value,
                previous_state=serialize_penalty_config(previous) if previous else None,
                new_state=serialize_penalty_config(config),
            )
        return config
