"""Bank Reconciliations — start, clear/unclear, complete and cancel statement reconciliations.

Invariants:
    - At most one in_progress reconciliation per account
    - Clear/unclear/complete/cancel only while in_progress
    - Totals recomputed from cleared rows after every clear/unclear
    - Complete requires |difference| < 0.01 and flips cleared rows to is_reconciled atomically

Design Decisions:
    - Create takes a raw JSON body: each missing or malformed field gets its own
      message, which a Pydantic model would fold into a generic details list
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.domain_types import ReconciliationStatus
from app.core.errors import BusinessRuleError, ResourceNotFoundError, ValidationFailedError
from app.core.reconciliation_math import is_balanced, next_start_date
from app.core.security import (
    PageRequest, build_pagination, parse_float, parse_iso_date, pick_allowed_fields, sanitize_id,
)
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.bank_reconciliation import BankReconciliation
from app.models.bank_transaction import BankTransaction
from app.schemas.banking import (
    BankTransactionResponse, ReconciliationCancel, ReconciliationResponse,
)
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.reconciliation_service import account_status, recompute
from app.services.scoping import (
    get_scoped_or_404, paginate, require_id, scoped_select, stamp_tenant, tenant_clause,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bank-reconciliations", tags=["bank-reconciliations"])

CREATE_FIELDS = ("account_id", "end_date", "statement_balance", "opening_balance")
IN_PROGRESS = ReconciliationStatus.IN_PROGRESS.value


def _require_in_progress(reconciliation: BankReconciliation) -> None:
    if reconciliation.status != IN_PROGRESS:
        raise BusinessRuleError("Cannot modify a reconciliation that is not in progress")


async def _scoped_account(db: AsyncSession, tenant: TenantContext, account_id: str) -> BankAccount:
    result = await db.execute(
        scoped_select(BankAccount, tenant).where(BankAccount.id == UUID(account_id)),
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise ResourceNotFoundError("Bank account", str(account_id))
    return account


@router.post("", status_code=status.HTTP_201_CREATED)
async def start_reconciliation(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = pick_allowed_fields(payload, CREATE_FIELDS)

    if not fields.get("account_id"):
        raise ValidationFailedError("Account ID is required", field="account_id")
    account_id = sanitize_id(fields["account_id"])
    if not account_id:
        raise ValidationFailedError("Invalid account ID format", field="account_id")

    if not fields.get("end_date"):
        raise ValidationFailedError("End date is required", field="end_date")
    end_date = parse_iso_date(fields["end_date"])
    if end_date is None:
        raise ValidationFailedError("Invalid end date format", field="end_date")

    if fields.get("statement_balance") is None:
        raise ValidationFailedError("Statement balance is required", field="statement_balance")
    statement_balance = parse_float(fields["statement_balance"])
    if statement_balance is None:
        raise ValidationFailedError(
            "Statement balance must be a valid number", field="statement_balance",
        )

    opening_balance = None
    if fields.get("opening_balance") is not None:
        opening_balance = parse_float(fields["opening_balance"])
        if opening_balance is None:
            raise ValidationFailedError(
                "Opening balance must be a valid number", field="opening_balance",
            )

    account = await _scoped_account(db, tenant, account_id)

    existing = await db.scalar(
        select(func.count()).select_from(BankReconciliation).where(
            BankReconciliation.account_id == account.id,
            BankReconciliation.status == IN_PROGRESS,
        ),
    )
    if existing:
        raise BusinessRuleError(
            "There is already an in-progress reconciliation for this account",
            code="RECONCILIATION_IN_PROGRESS",
        )

    if opening_balance is None:
        opening_balance = (
            account.last_reconciled_balance
            if account.last_reconciled_balance is not None
            else account.opening_balance
        )
    last_end = await db.scalar(
        select(func.max(BankReconciliation.end_date)).where(
            BankReconciliation.account_id == account.id,
            BankReconciliation.status == ReconciliationStatus.COMPLETED.value,
        ),
    )
    earliest = await db.scalar(
        select(func.min(BankTransaction.transaction_date)).where(
            BankTransaction.account_id == account.id,
        ),
    )

    reconciliation = BankReconciliation(
        **stamp_tenant(tenant),
        account_id=account.id,
        start_date=next_start_date(last_end, earliest, end_date),
        end_date=end_date,
        opening_balance=round(opening_balance, 2),
        statement_balance=round(statement_balance, 2),
        closing_balance=round(opening_balance, 2),
        status=IN_PROGRESS,
    )
    db.add(reconciliation)
    await recompute(db, reconciliation)
    log_activity(db, tenant, "bank_reconciliation_started", "bank_reconciliation", reconciliation.id, {
        "account_id": str(account.id), "end_date": end_date.isoformat(),
    })
    await db.commit()
    return {
        "message": "Reconciliation started successfully",
        "data": dump(ReconciliationResponse, reconciliation),
    }


@router.get("")
async def list_reconciliations(
    account_id: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(BankReconciliation, tenant)
    if account_id:
        clean = require_id(account_id, "account")
        account = await _scoped_account(db, tenant, clean)
        query = query.where(BankReconciliation.account_id == account.id)
    if status_filter:
        query = query.where(BankReconciliation.status == status_filter)
    query = query.order_by(BankReconciliation.created_at.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(ReconciliationResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/status/{account_id}")
async def get_reconciliation_status(
    account_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    summary = await account_status(db, account)
    last = summary["last_reconciliation"]
    return {
        "data": {
            **summary,
            "recent_unmatched": dump_all(BankTransactionResponse, summary["recent_unmatched"]),
            "last_reconciliation": dump(ReconciliationResponse, last) if last else None,
        },
    }


@router.get("/{reconciliation_id}")
async def get_reconciliation(
    reconciliation_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    reconciliation = await get_scoped_or_404(
        db, BankReconciliation, reconciliation_id, tenant, "Reconciliation",
    )
    cleared = await db.execute(
        select(BankTransaction)
        .where(BankTransaction.reconciliation_id == reconciliation.id)
        .order_by(BankTransaction.transaction_date),
    )
    return {
        "data": {
            **dump(ReconciliationResponse, reconciliation),
            "transactions": dump_all(BankTransactionResponse, cleared.scalars().all()),
        },
    }


async def _load_for_clearing(
    db: AsyncSession, tenant: TenantContext, reconciliation_id: str, payload: dict,
) -> tuple[BankReconciliation, BankTransaction]:
    fields = pick_allowed_fields(payload, ("transaction_id",))
    if not fields.get("transaction_id"):
        raise ValidationFailedError("Transaction ID is required", field="transaction_id")
    transaction_id = require_id(fields["transaction_id"], "transaction")

    reconciliation = await get_scoped_or_404(
        db, BankReconciliation, reconciliation_id, tenant, "Reconciliation",
    )
    _require_in_progress(reconciliation)

    result = await db.execute(
        select(BankTransaction).where(
            tenant_clause(BankTransaction, tenant),
            BankTransaction.id == UUID(transaction_id),
        ),
    )
    tx = result.scalar_one_or_none()
    if tx is None:
        raise ResourceNotFoundError("Transaction", transaction_id)
    if tx.account_id != reconciliation.account_id:
        raise BusinessRuleError("Transaction does not belong to the reconciled account")
    return reconciliation, tx


@router.post("/{reconciliation_id}/clear")
async def clear_transaction(
    reconciliation_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    reconciliation, tx = await _load_for_clearing(db, tenant, reconciliation_id, payload)
    if tx.is_reconciled:
        raise BusinessRuleError("Transaction is already reconciled")
    if tx.reconciliation_id is not None and tx.reconciliation_id != reconciliation.id:
        raise BusinessRuleError("Transaction is cleared in another reconciliation")
    tx.reconciliation_id = reconciliation.id
    totals = await recompute(db, reconciliation)
    await db.commit()
    return {
        "message": "Transaction cleared",
        "data": {"id": str(reconciliation.id), **totals.as_dict()},
    }


@router.post("/{reconciliation_id}/unclear")
async def unclear_transaction(
    reconciliation_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    reconciliation, tx = await _load_for_clearing(db, tenant, reconciliation_id, payload)
    if tx.reconciliation_id != reconciliation.id:
        raise BusinessRuleError("Transaction is not cleared in this reconciliation")
    tx.reconciliation_id = None
    totals = await recompute(db, reconciliation)
    await db.commit()
    return {
        "message": "Transaction uncleared",
        "data": {"id": str(reconciliation.id), **totals.as_dict()},
    }


@router.post("/{reconciliation_id}/complete")
async def complete_reconciliation(
    reconciliation_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    reconciliation = await get_scoped_or_404(
        db, BankReconciliation, reconciliation_id, tenant, "Reconciliation",
    )
    _require_in_progress(reconciliation)
    totals = await recompute(db, reconciliation)
    if not is_balanced(totals.difference):
        raise BusinessRuleError(
            f"Reconciliation is not balanced. Difference: {totals.difference:.2f}",
            code="RECONCILIATION_UNBALANCED",
            details=[{"difference": totals.difference}],
        )

    await db.execute(
        update(BankTransaction)
        .where(BankTransaction.reconciliation_id == reconciliation.id)
        .values(is_reconciled=True)
        .execution_options(synchronize_session="fetch"),
    )
    account = await db.get(BankAccount, reconciliation.account_id)
    account.last_reconciled_date = reconciliation.end_date
    account.last_reconciled_balance = reconciliation.statement_balance

    reconciliation.status = ReconciliationStatus.COMPLETED.value
    reconciliation.completed_at = datetime.now(timezone.utc)
    reconciliation.completed_by = tenant.user_id
    log_activity(db, tenant, "bank_reconciliation_completed", "bank_reconciliation", reconciliation.id, {
        "account_id": str(account.id), "statement_balance": reconciliation.statement_balance,
    })
    await db.commit()
    return {
        "message": "Reconciliation completed successfully",
        "data": dump(ReconciliationResponse, reconciliation),
    }


@router.post("/{reconciliation_id}/cancel")
async def cancel_reconciliation(
    reconciliation_id: str,
    body: ReconciliationCancel | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    reconciliation = await get_scoped_or_404(
        db, BankReconciliation, reconciliation_id, tenant, "Reconciliation",
    )
    _require_in_progress(reconciliation)
    await db.execute(
        update(BankTransaction)
        .where(BankTransaction.reconciliation_id == reconciliation.id)
        .values(reconciliation_id=None)
        .execution_options(synchronize_session="fetch"),
    )
    reason = body.reason if body else None
    reconciliation.status = ReconciliationStatus.CANCELLED.value
    reconciliation.cancelled_at = datetime.now(timezone.utc)
    reconciliation.cancellation_reason = reason
    log_activity(db, tenant, "bank_reconciliation_cancelled", "bank_reconciliation", reconciliation.id, {
        "reason": reason,
    })
    await db.commit()
    return {
        "message": "Reconciliation cancelled",
        "data": dump(ReconciliationResponse, reconciliation),
    }
