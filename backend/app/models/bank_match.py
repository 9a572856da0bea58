"""Bank Match ORM — pairing of a bank transaction with one or more ledger entries.

Invariants:
    - Single matches use ledger_entry_id; split matches list splits[{ledger_entry_id, amount}]
    - status transitions: suggested -> confirmed | rejected; confirmed -> unmatched
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Float, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class BankMatch(TenantMixin, Base):
    __tablename__ = "bank_matches"

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    bank_transaction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bank_transactions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    ledger_entry_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("ledger_entries.id", ondelete="SET NULL"),
        nullable=True,
    )
    match_type: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(12), nullable=False, index=True)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reasons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    splits: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    rule_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
