from __future__ import annotations

import logging

from condoledger.models.audit_log import AuditLog
from condoledger.repositories.base import AuditLogRepository

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, repo: AuditLogRepository) -> None:
        self.repo = repo

    def log(
        self,
        event_type: str,
        *,
        actor_username: str = "",
        source: str = "",
        entity_type: str = "",
        entity_id: str = "",
        previous_state: dict | None = None,
        new_state: dict | None = None,
        metadata: dict | None = None,
    ) -> AuditLog:
        """Create an audit log entry. Raises on failure."""
        audit_log = AuditLog(
            event_type=event_type,
            actor_username=actor_username,
            source=source,
            entity_type=entity_type,
            entity_id=entity_id,
            previous_state=previous_state,
            new_state=new_state,
            metadata=metadata or {},
        )
        result = self.repo.create(audit_log)
        logger.info(
            "Audit logged: event=%s actor=%s entity=%s/%s",
            event_type,
            actor_username or "-",
            entity_type,
            entity_id,
        )
        return result

    def safe_log(self, *args, **kwargs) -> AuditLog | None:
        """Create an audit log entry, swallowing any exceptions."""
        try:
            return self.log(*args, **kwargs)
        except Exception:
            logger.exception("Failed to write audit log")
            return None

    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        return self.repo.list_by_entity(entity_type, entity_id)

    def list_recent(self, limit: int = 50) -> list[AuditLog]:
        return self.repo.list_recent(limit)
