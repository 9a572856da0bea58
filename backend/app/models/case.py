"""Case ORM — legal matter with notes, hearings, claims and a timeline.

Invariants:
    - lawyer_id is the owning lawyer; client_id (optional) grants read-only access
    - timeline is append-only; every mutating operation adds one event
    - end_date set whenever status becomes completed
    - progress is a percentage in 0..100
"""

from datetime import date

from sqlalchemy import String, Integer, Date, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class Case(TenantMixin, Base):
    __tablename__ = "cases"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    contract_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="external")
    category: Mapped[str | None] = mapped_column(String(60), nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="active", index=True)
    outcome: Mapped[str | None] = mapped_column(String(12), nullable=True)
    court: Mapped[str | None] = mapped_column(String(200), nullable=True)
    case_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    hearings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    claims: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    timeline: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
