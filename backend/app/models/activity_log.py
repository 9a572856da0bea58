"""Activity Log ORM — append-only audit trail of tenant operations.

Invariants:
    - Written in the same transaction as the operation it describes
    - Never updated or deleted through the API
"""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class ActivityLog(TenantMixin, Base):
    __tablename__ = "activity_logs"

    action: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
