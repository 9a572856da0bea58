"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py) and TenantMixin
    - Every table is tenant-scoped by firm_id / lawyer_id

Design Decisions:
    - One file per aggregate for locality; small satellites share a file (leave, quality)
    - All models imported here so Base.metadata is complete before create_all/alembic
"""

from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.bank_account import BankAccount  # noqa: F401
from app.models.bank_transaction import BankTransaction  # noqa: F401
from app.models.ledger_entry import LedgerEntry  # noqa: F401
from app.models.bank_reconciliation import BankReconciliation  # noqa: F401
from app.models.bank_match import BankMatch  # noqa: F401
from app.models.match_rule import MatchRule  # noqa: F401
from app.models.exchange_rate import ExchangeRate  # noqa: F401
from app.models.invoice import Invoice  # noqa: F401
from app.models.referral import Referral  # noqa: F401
from app.models.employee import Employee  # noqa: F401
from app.models.leave import LeaveRequest, LeaveBalance  # noqa: F401
from app.models.onboarding import Onboarding  # noqa: F401
from app.models.case import Case  # noqa: F401
from app.models.quality import (  # noqa: F401
    QualityInspection, QualityTemplate, QualityAction, QualitySettings,
)
from app.models.report_definition import ReportDefinition  # noqa: F401
from app.models.integration_connection import IntegrationConnection  # noqa: F401
