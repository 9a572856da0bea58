"""Onboarding ORM — new-hire checklist plus probation tracking.

Invariants:
    - At most one pending/in_progress onboarding per employee (enforced by the route)
    - probation_end_date = start_date + probation_period days
    - tasks: JSON array (see core.probation.build_tasks); reviews: JSON array
"""

import uuid
from datetime import date, datetime

from sqlalchemy import String, Integer, Date, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class Onboarding(TenantMixin, Base):
    __tablename__ = "onboardings"

    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    employee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    job_title: Mapped[str | None] = mapped_column(String(120), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tasks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    probation_period: Mapped[int] = mapped_column(Integer, nullable=False, default=90)
    probation_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    probation_status: Mapped[str] = mapped_column(String(10), nullable=False, default="active")
    probation_reviews: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    confirmation_letter: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    termination: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    completion: Mapped[dict | None] = mapped_column(JSON, nullable=True)
