"""SQLAlchemy Declarative Base — shared base class and tenant columns for all ORM models.

Invariants:
    - All models inherit from Base
    - Every tenant-owned table carries firm_id (nullable) and lawyer_id (owner, required)
    - Base is the single source of truth for table metadata

Design Decisions:
    - Separate file for Base: avoids circular imports between models
    - TenantMixin instead of per-model columns: the scoping predicate relies on the same names everywhere
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID


class Base(DeclarativeBase):
    """Base class for all LexDesk ORM models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantMixin:
    """Identity, tenant ownership and creation timestamp."""
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    firm_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    lawyer_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
