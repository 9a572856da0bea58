"""Bank Account ORM — a tenant's bank, card or cash account.

Invariants:
    - current_balance starts at opening_balance and moves with every stored transaction
    - last_reconciled_* only written by a completed reconciliation
"""

from datetime import date

from sqlalchemy import String, Float, Boolean, Date
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class BankAccount(TenantMixin, Base):
    __tablename__ = "bank_accounts"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    account_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="checking",
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    opening_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    current_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_reconciled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_reconciled_balance: Mapped[float | None] = mapped_column(Float, nullable=True)
