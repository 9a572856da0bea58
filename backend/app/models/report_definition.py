"""Report Definition ORM — saved self-serve report (sources, columns, filters, schedule)."""

from datetime import datetime

from sqlalchemy import String, Integer, Boolean, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class ReportDefinition(TenantMixin, Base):
    __tablename__ = "report_definitions"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(12), nullable=False)
    scope: Mapped[str] = mapped_column(String(10), nullable=False, default="personal")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data_sources: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    columns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    filters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    group_by: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    visualization: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    schedule: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    run_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
