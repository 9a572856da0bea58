"""Activity Log Service — records tenant operations in the caller's transaction.

Invariants:
    - log_activity only adds to the session; the route's commit persists it atomically
    - details must be JSON-serializable (ids stringified by the caller)
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenant import TenantContext
from app.models.activity_log import ActivityLog
from app.services.scoping import stamp_tenant

logger = logging.getLogger(__name__)


def log_activity(
    db: AsyncSession,
    tenant: TenantContext,
    action: str,
    entity_type: str,
    entity_id,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        **stamp_tenant(tenant),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details or {},
    )
    db.add(entry)
    logger.info(
        f"Activity {action}",
        extra={
            **tenant.log_extra(), "action": action,
            "entity_type": entity_type, "entity_id": str(entity_id),
        },
    )
    return entry
