"""Quality ORM — inspections, inspection templates, corrective/preventive actions, settings.

Invariants:
    - Every quality record is firm-scoped (firm_id required by the routes)
    - Inspection readings: JSON array of {parameter, min_value, max_value, acceptance_criteria, value, status}
    - A finalized inspection never returns to pending; a completed action never reopens
    - One QualitySettings row per firm, created lazily
"""

import uuid
from datetime import date, datetime

from sqlalchemy import String, Integer, Boolean, Date, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base, TenantMixin


class QualityInspection(TenantMixin, Base):
    __tablename__ = "quality_inspections"

    inspection_number: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_id: Mapped[str] = mapped_column(String(64), nullable=False)
    inspection_type: Mapped[str] = mapped_column(String(12), nullable=False)
    item_code: Mapped[str] = mapped_column(String(64), nullable=False)
    item_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    template_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    readings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    accepted_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejected_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inspected_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)


class QualityTemplate(TenantMixin, Base):
    __tablename__ = "quality_templates"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    item_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    parameters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class QualityAction(TenantMixin, Base):
    __tablename__ = "quality_actions"

    action_type: Mapped[str] = mapped_column(String(12), nullable=False)
    inspection_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True,
    )
    item_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    problem: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    responsible_person: Mapped[str] = mapped_column(String(200), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="open", index=True)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)


class QualitySettings(TenantMixin, Base):
    __tablename__ = "quality_settings"

    auto_create_action: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    require_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
