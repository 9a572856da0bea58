"""Referral ORM — referral source with fee agreement, conversions and fee payments."""

from datetime import date

from sqlalchemy import String, Float, Integer, Boolean, Date, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class Referral(TenantMixin, Base):
    __tablename__ = "referrals"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="client")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    external_source: Mapped[str | None] = mapped_column(String(200), nullable=True)
    has_fee_agreement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fee_type: Mapped[str] = mapped_column(String(12), nullable=False, default="none")
    fee_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    fee_fixed_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    fee_tiers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    fee_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="normal")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_follow_up_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_referrals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_referrals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leads: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    conversions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    payments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total_fees_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
