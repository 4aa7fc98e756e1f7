"""
Audit Log Repository.
"""

from typing import Any

from asof.backend.models.audit_log import AuditLog
from asof.backend.models.enums import AuditAction
from asof.backend.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    model = AuditLog

    async def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None,
        user_id: str | None = None,
        changes: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        """Append one audit entry."""
        return await self.create(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            changes=changes,
            ip_address=ip_address,
        )
