"""Document Numbering — next per-tenant sequential number for a numbered model.

Invariants:
    - Numbers sharing a stem compare by length first: -10000 sorts above -9999
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.document_numbers import format_number, next_sequence
from app.core.tenant import TenantContext
from app.services.scoping import tenant_clause


async def next_document_number(
    db: AsyncSession, model, column, tenant: TenantContext,
    prefix: str, period: str | None = None,
) -> str:
    """Highest existing PREFIX[-PERIOD]-NNNN in scope, plus one."""
    stem = f"{prefix}-{period}-" if period else f"{prefix}-"
    latest = await db.scalar(
        select(column)
        .where(tenant_clause(model, tenant), column.like(f"{stem}%"))
        .order_by(func.length(column).desc(), column.desc())
        .limit(1),
    )
    return format_number(prefix, next_sequence(latest), period)
