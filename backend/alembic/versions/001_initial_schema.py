"""Initial schema — banking, billing, HR, practice, quality, reports, integrations.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tenant_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("firm_id", sa.String(64), nullable=True, index=True),
        sa.Column("lawyer_id", sa.String(64), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _fk(table: str, ondelete: str) -> sa.ForeignKey:
    return sa.ForeignKey(f"{table}.id", ondelete=ondelete)


def upgrade() -> None:
    op.create_table(
        "activity_logs",
        *_tenant_columns(),
        sa.Column("action", sa.String(80), nullable=False, index=True),
        sa.Column("entity_type", sa.String(50), nullable=False, index=True),
        sa.Column("entity_id", sa.String(64), nullable=False, index=True),
        sa.Column("details", sa.JSON, nullable=False),
    )

    # ─── Banking ────────────────────────────────────────────────
    op.create_table(
        "bank_accounts",
        *_tenant_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("bank_name", sa.String(200), nullable=True),
        sa.Column("account_number", sa.String(64), nullable=True),
        sa.Column("account_type", sa.String(20), nullable=False, server_default="checking"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="SAR"),
        sa.Column("opening_balance", sa.Float, nullable=False, server_default="0"),
        sa.Column("current_balance", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("last_reconciled_date", sa.Date, nullable=True),
        sa.Column("last_reconciled_balance", sa.Float, nullable=True),
    )

    op.create_table(
        "bank_transactions",
        *_tenant_columns(),
        sa.Column("account_id", UUID(as_uuid=True), _fk("bank_accounts", "CASCADE"), nullable=False, index=True),
        sa.Column("transaction_date", sa.Date, nullable=False, index=True),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("reference", sa.String(120), nullable=False, server_default=""),
        sa.Column("category", sa.String(80), nullable=True),
        sa.Column("source", sa.String(10), nullable=False, server_default="manual"),
        sa.Column("import_batch_id", sa.String(64), nullable=True),
        sa.Column("is_matched", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_flagged", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("reconciliation_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("is_reconciled", sa.Boolean, nullable=False, server_default="false"),
    )

    op.create_table(
        "ledger_entries",
        *_tenant_columns(),
        sa.Column("account_id", UUID(as_uuid=True), _fk("bank_accounts", "SET NULL"), nullable=True, index=True),
        sa.Column("entry_date", sa.Date, nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("reference", sa.String(120), nullable=False, server_default=""),
        sa.Column("source_type", sa.String(30), nullable=False, server_default="manual"),
        sa.Column("is_matched", sa.Boolean, nullable=False, server_default="false"),
    )

    op.create_table(
        "bank_reconciliations",
        *_tenant_columns(),
        sa.Column("account_id", UUID(as_uuid=True), _fk("bank_accounts", "CASCADE"), nullable=False, index=True),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("opening_balance", sa.Float, nullable=False),
        sa.Column("statement_balance", sa.Float, nullable=False),
        sa.Column("closing_balance", sa.Float, nullable=False),
        sa.Column("cleared_credits", sa.Float, nullable=False, server_default="0"),
        sa.Column("cleared_debits", sa.Float, nullable=False, server_default="0"),
        sa.Column("difference", sa.Float, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress", index=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.String(64), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
    )

    op.create_table(
        "bank_matches",
        *_tenant_columns(),
        sa.Column("account_id", UUID(as_uuid=True), _fk("bank_accounts", "CASCADE"), nullable=False, index=True),
        sa.Column("bank_transaction_id", UUID(as_uuid=True), _fk("bank_transactions", "CASCADE"), nullable=False, index=True),
        sa.Column("ledger_entry_id", UUID(as_uuid=True), _fk("ledger_entries", "SET NULL"), nullable=True),
        sa.Column("match_type", sa.String(10), nullable=False),
        sa.Column("status", sa.String(12), nullable=False, index=True),
        sa.Column("score", sa.Float, nullable=False, server_default="0"),
        sa.Column("reasons", sa.JSON, nullable=False),
        sa.Column("splits", sa.JSON, nullable=False),
        sa.Column("rule_id", UUID(as_uuid=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("decided_by", sa.String(64), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "match_rules",
        *_tenant_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("conditions", sa.JSON, nullable=False),
        sa.Column("action", sa.JSON, nullable=False),
        sa.Column("bank_account_ids", sa.JSON, nullable=False),
        sa.Column("apply_to_future_transactions", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("times_applied", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "exchange_rates",
        *_tenant_columns(),
        sa.Column("base_currency", sa.String(3), nullable=False, index=True),
        sa.Column("target_currency", sa.String(3), nullable=False),
        sa.Column("rate", sa.Float, nullable=False),
        sa.Column("effective_date", sa.Date, nullable=False),
        sa.Column("source", sa.String(20), nullable=False, server_default="manual"),
    )

    # ─── Billing ────────────────────────────────────────────────
    op.create_table(
        "invoices",
        *_tenant_columns(),
        sa.Column("invoice_number", sa.String(30), nullable=False, index=True),
        sa.Column("client_id", sa.String(64), nullable=True, index=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("case_id", sa.String(64), nullable=True, index=True),
        sa.Column("status", sa.String(12), nullable=False, server_default="draft", index=True),
        sa.Column("issue_date", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("payment_terms", sa.String(20), nullable=False, server_default="net_30"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="SAR"),
        sa.Column("items", sa.JSON, nullable=False),
        sa.Column("subtotal", sa.Float, nullable=False, server_default="0"),
        sa.Column("discount_type", sa.String(12), nullable=True),
        sa.Column("discount_value", sa.Float, nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Float, nullable=False, server_default="0"),
        sa.Column("taxable_amount", sa.Float, nullable=False, server_default="0"),
        sa.Column("vat_rate", sa.Float, nullable=False, server_default="15"),
        sa.Column("vat_amount", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Float, nullable=False, server_default="0"),
        sa.Column("amount_paid", sa.Float, nullable=False, server_default="0"),
        sa.Column("retainer_applied", sa.Float, nullable=False, server_default="0"),
        sa.Column("balance_due", sa.Float, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("payments", sa.JSON, nullable=False),
        sa.Column("history", sa.JSON, nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text, nullable=True),
    )

    op.create_table(
        "referrals",
        *_tenant_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("name_ar", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="client"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active", index=True),
        sa.Column("external_source", sa.String(200), nullable=True),
        sa.Column("has_fee_agreement", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("fee_type", sa.String(12), nullable=False, server_default="none"),
        sa.Column("fee_percentage", sa.Float, nullable=True),
        sa.Column("fee_fixed_amount", sa.Float, nullable=True),
        sa.Column("fee_tiers", sa.JSON, nullable=False),
        sa.Column("fee_notes", sa.Text, nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="SAR"),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("priority", sa.String(10), nullable=False, server_default="normal"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("next_follow_up_date", sa.Date, nullable=True),
        sa.Column("total_referrals", sa.Integer, nullable=False, server_default="0"),
        sa.Column("successful_referrals", sa.Integer, nullable=False, server_default="0"),
        sa.Column("leads", sa.JSON, nullable=False),
        sa.Column("conversions", sa.JSON, nullable=False),
        sa.Column("payments", sa.JSON, nullable=False),
        sa.Column("total_fees_paid", sa.Float, nullable=False, server_default="0"),
    )

    # ─── HR ─────────────────────────────────────────────────────
    op.create_table(
        "employees",
        *_tenant_columns(),
        sa.Column("employee_number", sa.String(20), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("full_name_ar", sa.String(200), nullable=True),
        sa.Column("id_number", sa.String(20), nullable=False, index=True),
        sa.Column("gender", sa.String(10), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("nationality", sa.String(60), nullable=True),
        sa.Column("job_title", sa.String(120), nullable=False),
        sa.Column("department", sa.String(120), nullable=True, index=True),
        sa.Column("employment_type", sa.String(20), nullable=False, server_default="full_time"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active", index=True),
        sa.Column("hire_date", sa.Date, nullable=False),
        sa.Column("basic_salary", sa.Float, nullable=False),
        sa.Column("allowances", sa.JSON, nullable=False),
    )

    op.create_table(
        "leave_requests",
        *_tenant_columns(),
        sa.Column("request_number", sa.String(20), nullable=False),
        sa.Column("employee_id", UUID(as_uuid=True), _fk("employees", "CASCADE"), nullable=False, index=True),
        sa.Column("employee_name", sa.String(200), nullable=False),
        sa.Column("department", sa.String(120), nullable=True, index=True),
        sa.Column("leave_type", sa.String(20), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("total_days", sa.Integer, nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft", index=True),
        sa.Column("balance_before", sa.Float, nullable=True),
        sa.Column("balance_after", sa.Float, nullable=True),
        sa.Column("balance_impact", sa.Float, nullable=True),
        sa.Column("conflicts", sa.JSON, nullable=False),
        sa.Column("approval_workflow", sa.JSON, nullable=False),
        sa.Column("decided_by", sa.String(64), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("cancellation", sa.JSON, nullable=True),
    )

    op.create_table(
        "leave_balances",
        *_tenant_columns(),
        sa.Column("employee_id", UUID(as_uuid=True), _fk("employees", "CASCADE"), nullable=False, index=True),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("leave_type", sa.String(20), nullable=False),
        sa.Column("entitled", sa.Float, nullable=False),
        sa.Column("used", sa.Float, nullable=False, server_default="0"),
        sa.UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balance"),
    )

    op.create_table(
        "onboardings",
        *_tenant_columns(),
        sa.Column("employee_id", UUID(as_uuid=True), _fk("employees", "CASCADE"), nullable=False, index=True),
        sa.Column("employee_name", sa.String(200), nullable=False),
        sa.Column("job_title", sa.String(120), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tasks", sa.JSON, nullable=False),
        sa.Column("probation_period", sa.Integer, nullable=False, server_default="90"),
        sa.Column("probation_end_date", sa.Date, nullable=False),
        sa.Column("probation_status", sa.String(10), nullable=False, server_default="active"),
        sa.Column("probation_reviews", sa.JSON, nullable=False),
        sa.Column("confirmation_letter", sa.JSON, nullable=True),
        sa.Column("termination", sa.JSON, nullable=True),
    )

    # ─── Practice ───────────────────────────────────────────────
    op.create_table(
        "cases",
        *_tenant_columns(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("contract_id", sa.String(64), nullable=True),
        sa.Column("client_id", sa.String(64), nullable=True, index=True),
        sa.Column("client_name", sa.String(200), nullable=True),
        sa.Column("source", sa.String(10), nullable=False, server_default="external"),
        sa.Column("category", sa.String(60), nullable=True),
        sa.Column("priority", sa.String(10), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(12), nullable=False, server_default="active", index=True),
        sa.Column("outcome", sa.String(12), nullable=True),
        sa.Column("court", sa.String(200), nullable=True),
        sa.Column("case_number", sa.String(64), nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("notes", sa.JSON, nullable=False),
        sa.Column("hearings", sa.JSON, nullable=False),
        sa.Column("claims", sa.JSON, nullable=False),
        sa.Column("timeline", sa.JSON, nullable=False),
    )

    # ─── Quality ────────────────────────────────────────────────
    op.create_table(
        "quality_inspections",
        *_tenant_columns(),
        sa.Column("inspection_number", sa.String(20), nullable=False),
        sa.Column("reference_type", sa.String(20), nullable=False),
        sa.Column("reference_id", sa.String(64), nullable=False),
        sa.Column("inspection_type", sa.String(12), nullable=False),
        sa.Column("item_code", sa.String(64), nullable=False),
        sa.Column("item_name", sa.String(200), nullable=True),
        sa.Column("sample_size", sa.Integer, nullable=False, server_default="0"),
        sa.Column("template_id", UUID(as_uuid=True), nullable=True),
        sa.Column("readings", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("accepted_qty", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rejected_qty", sa.Integer, nullable=False, server_default="0"),
        sa.Column("inspected_by", sa.String(64), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remarks", sa.Text, nullable=True),
    )

    op.create_table(
        "quality_templates",
        *_tenant_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("item_code", sa.String(64), nullable=True),
        sa.Column("parameters", sa.JSON, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
    )

    op.create_table(
        "quality_actions",
        *_tenant_columns(),
        sa.Column("action_type", sa.String(12), nullable=False),
        sa.Column("inspection_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("item_code", sa.String(64), nullable=True),
        sa.Column("problem", sa.Text, nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("responsible_person", sa.String(200), nullable=False),
        sa.Column("target_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(12), nullable=False, server_default="open", index=True),
        sa.Column("completed_date", sa.Date, nullable=True),
        sa.Column("resolution", sa.Text, nullable=True),
    )

    op.create_table(
        "quality_settings",
        *_tenant_columns(),
        sa.Column("auto_create_action", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("require_approval", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("default_template_id", UUID(as_uuid=True), nullable=True),
    )

    # ─── Reports & integrations ─────────────────────────────────
    op.create_table(
        "report_definitions",
        *_tenant_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", sa.String(12), nullable=False),
        sa.Column("scope", sa.String(10), nullable=False, server_default="personal"),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("data_sources", sa.JSON, nullable=False),
        sa.Column("columns", sa.JSON, nullable=False),
        sa.Column("filters", sa.JSON, nullable=False),
        sa.Column("group_by", sa.JSON, nullable=False),
        sa.Column("visualization", sa.JSON, nullable=False),
        sa.Column("schedule", sa.JSON, nullable=False),
        sa.Column("run_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "integration_connections",
        *_tenant_columns(),
        sa.Column("provider", sa.String(40), nullable=False),
        sa.Column("status", sa.String(12), nullable=False, server_default="connected"),
        sa.Column("external_account_id", sa.String(200), nullable=True),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scopes", sa.JSON, nullable=False),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("lawyer_id", "provider", name="uq_integration_user_provider"),
    )


def downgrade() -> None:
    for table in (
        "integration_connections", "report_definitions",
        "quality_settings", "quality_actions", "quality_templates", "quality_inspections",
        "cases", "onboardings", "leave_balances", "leave_requests", "employees",
        "referrals", "invoices", "exchange_rates", "match_rules", "bank_matches",
        "bank_reconciliations", "ledger_entries", "bank_transactions", "bank_accounts",
        "activity_logs",
    ):
        op.drop_table(table)
