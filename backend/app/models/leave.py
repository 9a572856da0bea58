"""Leave ORM — leave requests and per-employee yearly balances.

Invariants:
    - LeaveRequest.total_days = calendar days inclusive of both ends
    - Balance deducted only on approval, restored only when an approved request is cancelled
    - One LeaveBalance row per (employee, year, leave_type), created lazily
    - An extension is its own request starting the day after the original ends
"""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean, String, Float, Integer, Date, DateTime, Text, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class LeaveRequest(TenantMixin, Base):
    __tablename__ = "leave_requests"

    request_number: Mapped[str] = mapped_column(String(20), nullable=False)
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    employee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    balance_before: Mapped[float | None] = mapped_column(Float, nullable=True)
    balance_after: Mapped[float | None] = mapped_column(Float, nullable=True)
    balance_impact: Mapped[float | None] = mapped_column(Float, nullable=True)
    conflicts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    approval_workflow: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    return_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_extension: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_request_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True,
    )
    extension_days: Mapped[int | None] = mapped_column(Integer, nullable=True)


class LeaveBalance(TenantMixin, Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balance"),
    )

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entitled: Mapped[float] = mapped_column(Float, nullable=False)
    used: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    @property
    def remaining(self) -> float:
        return self.entitled - self.used
