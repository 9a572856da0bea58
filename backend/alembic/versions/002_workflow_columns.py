"""Add approval, progress, completion and leave extension/return columns.

Revision ID: 002_workflow
Revises: 001_initial
Create Date: 2026-10-19

Widens invoices.status for pending_approval and adds:
invoices.approval, cases.progress, onboardings.completion and the
leave_requests return/extension columns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = "002_workflow"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.alter_column(
        "invoices", "status",
        existing_type=sa.String(12), type_=sa.String(20), existing_nullable=False,
    )
    op.add_column("invoices", sa.Column("approval", sa.JSON, nullable=True))
    op.add_column(
        "cases",
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
    )
    op.add_column("onboardings", sa.Column("completion", sa.JSON, nullable=True))
    op.add_column("leave_requests", sa.Column("return_info", sa.JSON, nullable=True))
    op.add_column(
        "leave_requests",
        sa.Column("is_extension", sa.Boolean, nullable=False, server_default="false"),
    )
    op.add_column(
        "leave_requests",
        sa.Column(
            "original_request_id", UUID(as_uuid=True),
            sa.ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True,
        ),
    )
    op.add_column("leave_requests", sa.Column("extension_days", sa.Integer, nullable=True))


def downgrade() -> None:
    op.drop_column("leave_requests", "extension_days")
    op.drop_column("leave_requests", "original_request_id")
    op.drop_column("leave_requests", "is_extension")
    op.drop_column("leave_requests", "return_info")
    op.drop_column("onboardings", "completion")
    op.drop_column("cases", "progress")
    op.drop_column("invoices", "approval")
    op.alter_column(
        "invoices", "status",
        existing_type=sa.String(20), type_=sa.String(12), existing_nullable=False,
    )
