"""Integration Connection ORM — a user's OAuth link to a third-party provider.

Invariants:
    - One connection per (lawyer_id, provider); reconnecting updates tokens in place
    - Tokens never leave the API (response schemas omit them)
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class IntegrationConnection(TenantMixin, Base):
    __tablename__ = "integration_connections"
    __table_args__ = (
        UniqueConstraint("lawyer_id", "provider", name="uq_integration_user_provider"),
    )

    provider: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="connected")
    external_account_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scopes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
