"""Bank Transaction ORM — one statement line on a bank account.

Invariants:
    - amount is always positive; direction lives in type (credit | debit)
    - is_matched mirrors the existence of a confirmed match
    - reconciliation_id set only while cleared in a reconciliation; is_reconciled once completed
"""

import uuid
from datetime import date

from sqlalchemy import String, Float, Boolean, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class BankTransaction(TenantMixin, Base):
    __tablename__ = "bank_transactions"

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    reference: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(80), nullable=True)
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="manual")
    import_batch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reconciliation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True,
    )
    is_reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
