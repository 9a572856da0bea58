"""Tenant Scoping — SQL mirror of core.tenant.can_access plus scoped fetch/paginate helpers.

Invariants:
    - Every tenant-owned query passes through tenant_clause (no unscoped reads)
    - A record outside the caller's scope is indistinguishable from a missing one (404)
    - paginate returns (rows, total) where total ignores limit/offset
    - update_fields never lets an explicit null reach a NOT NULL column

Design Decisions:
    - Fetch helpers raise ResourceNotFoundError directly: routes stay a flat
      sequence of parse -> fetch -> mutate -> respond
"""

from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ResourceNotFoundError, ValidationFailedError
from app.core.security import PageRequest, sanitize_id
from app.core.tenant import TenantContext

M = TypeVar("M")


def tenant_clause(model, tenant: TenantContext):
    if tenant.firm_id:
        return model.firm_id == tenant.firm_id
    return model.lawyer_id == tenant.user_id


def scoped_select(model, tenant: TenantContext) -> Select:
    return select(model).where(tenant_clause(model, tenant))


def require_id(value: Any, label: str) -> str:
    """sanitize_id or 400 'Invalid <label> ID format'."""
    clean = sanitize_id(value)
    if not clean:
        raise ValidationFailedError(
            f"Invalid {label} ID format", field=f"{label.replace(' ', '_')}_id",
        )
    return clean


async def get_scoped_or_404(
    db: AsyncSession, model: type[M], resource_id: Any,
    tenant: TenantContext, label: str,
) -> M:
    """Parse id, fetch inside the tenant scope, or raise 400/404."""
    clean = require_id(resource_id, label.lower())
    result = await db.execute(
        scoped_select(model, tenant).where(model.id == UUID(clean)),
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise ResourceNotFoundError(label, clean)
    return row


async def paginate(
    db: AsyncSession, query: Select, page: PageRequest,
) -> tuple[list, int]:
    total = await db.scalar(
        select(func.count()).select_from(query.order_by(None).subquery()),
    )
    result = await db.execute(query.limit(page.limit).offset(page.offset))
    return list(result.scalars().all()), total or 0


def stamp_tenant(tenant: TenantContext) -> dict:
    """Ownership columns for a new record."""
    return {"firm_id": tenant.firm_id, "lawyer_id": tenant.user_id}


def update_fields(body: BaseModel, model) -> dict:
    """Fields the client actually sent; an explicit null on a NOT NULL column is a 400."""
    changes = body.model_dump(exclude_unset=True)
    columns = model.__table__.columns
    for key, value in changes.items():
        if value is None and key in columns and not columns[key].nullable:
            raise ValidationFailedError(f"{key} cannot be null", field=key)
    return changes
