"""Exchange Rate ORM — manually maintained conversion rates per tenant."""

from datetime import date

from sqlalchemy import String, Float, Date
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class ExchangeRate(TenantMixin, Base):
    __tablename__ = "exchange_rates"

    base_currency: Mapped[str] = mapped_column(String(3), nullable=False, index=True)
    target_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
