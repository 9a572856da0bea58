"""Invoice ORM — client invoice with line items, VAT, payments and status history.

Invariants:
    - invoice_number unique per tenant: INV-YYYYMM-NNNN
    - Totals always derived by core.invoice_math, never accepted from clients
    - items/payments/history are JSON arrays replaced wholesale on change
    - status transitions: draft -> sent -> partial | paid | overdue; void from draft/sent/overdue
    - draft -> pending_approval -> draft (approved or rejected); approval.chain records each decision
"""

from datetime import date, datetime

from sqlalchemy import String, Float, Date, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class Invoice(TenantMixin, Base):
    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    case_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_terms: Mapped[str] = mapped_column(String(20), nullable=False, default="net_30")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_type: Mapped[str | None] = mapped_column(String(12), nullable=True)
    discount_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    taxable_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    vat_rate: Mapped[float] = mapped_column(Float, nullable=False, default=15.0)
    vat_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    amount_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    retainer_applied: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    balance_due: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval: Mapped[dict | None] = mapped_column(JSON, nullable=True)
