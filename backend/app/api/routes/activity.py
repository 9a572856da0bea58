"""Activity Log — read-only, tenant-scoped audit trail of mutating operations."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.security import PageRequest, build_pagination
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.activity_log import ActivityLog
from app.schemas.common import ActivityLogResponse, dump_all
from app.services.scoping import paginate, scoped_select

router = APIRouter(prefix="/api/v1/activity", tags=["activity"])


@router.get("")
async def list_activity(
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    action: str | None = Query(None),
    page: PageRequest = Depends(pagination(default_limit=50)),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(ActivityLog, tenant)
    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
    if entity_id:
        query = query.where(ActivityLog.entity_id == entity_id)
    if action:
        query = query.where(ActivityLog.action == action)
    query = query.order_by(ActivityLog.created_at.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(ActivityLogResponse, rows),
        "pagination": build_pagination(page, total),
    }
