"""Match Rule ORM — user-defined conditions/action applied during auto-matching."""

from sqlalchemy import String, Integer, Boolean, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class MatchRule(TenantMixin, Base):
    __tablename__ = "match_rules"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conditions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    action: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    bank_account_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    apply_to_future_transactions: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    times_applied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
