from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AuditEventType:
    """String constants for all audit event types."""

    # Payment events
    PAYMENT_RECORD = "payment.record"

    # Credit events
    CREDIT_APPLY = "credit.apply"
    CREDIT_ADJUST = "credit.adjust"

    # Configuration events
    PENALTY_CONFIG_UPDATE = "penalty_config.update"


class AuditLog(BaseModel):
    id: int | None = None
    uuid: str = ""
    event_type: str
    actor_username: str = ""
    source: str = ""  # 'cli' or the calling service
    entity_type: str = ""
    entity_id: str = ""  # unit id, transaction id, or billing domain
    previous_state: dict | None = None  # JSON (None for creates)
    new_state: dict | None = None
    metadata: dict = {}
    created_at: datetime | None = None
