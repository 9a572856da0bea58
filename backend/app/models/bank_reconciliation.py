"""Bank Reconciliation ORM — one statement period being agreed against the books.

Invariants:
    - At most one in_progress reconciliation per account (enforced by the route)
    - closing_balance/difference recomputed on every clear/unclear
    - status transitions: in_progress -> completed | cancelled (both final)
"""

import uuid
from datetime import date, datetime

from sqlalchemy import String, Float, Date, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class BankReconciliation(TenantMixin, Base):
    __tablename__ = "bank_reconciliations"

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    opening_balance: Mapped[float] = mapped_column(Float, nullable=False)
    statement_balance: Mapped[float] = mapped_column(Float, nullable=False)
    closing_balance: Mapped[float] = mapped_column(Float, nullable=False)
    cleared_credits: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cleared_debits: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    difference: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="in_progress", index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
