"""
Audit Log Repository.

Responsibilities:
- Append audit entries for detection runs, resolutions and deletions.

Non-Responsibilities:
- No business logic.

Invariant:
Recording is fire-and-forget: a storage failure is logged, never raised.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from casededup.database import AuditEntry
from casededup.logger import StructuredLogger, get_logger


class AuditLog:
    def __init__(self, session, logger: Optional[StructuredLogger] = None):
        self.session = session
        self.logger = logger or get_logger()

    def record(
        self,
        actor_id: Optional[str],
        action: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
        details: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        entry = AuditEntry(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or action,
            payload=metadata,
        )
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.record_error("AuditLogError")
            self.logger.error(
                "Failed to write audit entry",
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
            )
            return None
        return entry

    def list_entries(self, entity_id: Optional[str] = None, action: Optional[str] = None) -> List[AuditEntry]:
        query = self.session.query(AuditEntry)
        if entity_id is not None:
            query = query.filter(AuditEntry.entity_id == entity_id)
        if action is not None:
            query = query.filter(AuditEntry.action == action)
        return query.order_by(AuditEntry.created_at.desc()).all()
