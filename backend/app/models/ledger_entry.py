"""Ledger Entry ORM — internal book entry that bank transactions are matched against."""

import uuid
from datetime import date

from sqlalchemy import String, Float, Boolean, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class LedgerEntry(TenantMixin, Base):
    __tablename__ = "ledger_entries"

    account_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    reference: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    source_type: Mapped[str] = mapped_column(String(30), nullable=False, default="manual")
    is_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
