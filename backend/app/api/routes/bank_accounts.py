"""Bank Accounts — CRUD and balance summary for a tenant's bank accounts.

Invariants:
    - Every read/write goes through the tenant scope (cross-tenant ids -> 404)
    - current_balance is never client-writable (moves only with transactions)
    - Delete refused while a reconciliation is in progress
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.errors import BusinessRuleError
from app.core.security import PageRequest, build_pagination, pick_allowed_fields
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.bank_reconciliation import BankReconciliation
from app.models.bank_transaction import BankTransaction
from app.schemas.banking import (
    BankAccountCreate, BankAccountResponse, BankAccountUpdate, ReconciliationResponse,
)
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.scoping import (
    get_scoped_or_404, paginate, scoped_select, stamp_tenant, update_fields,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bank-accounts", tags=["bank-accounts"])

UPDATABLE_FIELDS = ("name", "bank_name", "account_number", "account_type", "is_active")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bank_account(
    body: BankAccountCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = BankAccount(
        **stamp_tenant(tenant),
        **body.model_dump(),
        current_balance=body.opening_balance,
    )
    db.add(account)
    await db.flush()
    log_activity(db, tenant, "bank_account_created", "bank_account", account.id, {
        "name": account.name, "currency": account.currency,
    })
    await db.commit()
    return {"message": "Bank account created", "data": dump(BankAccountResponse, account)}


@router.get("")
async def list_bank_accounts(
    is_active: bool | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(BankAccount, tenant).order_by(BankAccount.created_at.desc())
    if is_active is not None:
        query = query.where(BankAccount.is_active.is_(is_active))
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(BankAccountResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/{account_id}")
async def get_bank_account(
    account_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    return {"data": dump(BankAccountResponse, account)}


@router.patch("/{account_id}")
async def update_bank_account(
    account_id: str,
    body: BankAccountUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    changes = pick_allowed_fields(update_fields(body, BankAccount), UPDATABLE_FIELDS)
    for key, value in changes.items():
        setattr(account, key, value)
    log_activity(db, tenant, "bank_account_updated", "bank_account", account.id, {
        "fields": sorted(changes),
    })
    await db.commit()
    return {"message": "Bank account updated", "data": dump(BankAccountResponse, account)}


@router.delete("/{account_id}")
async def delete_bank_account(
    account_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    in_progress = await db.scalar(
        select(func.count()).select_from(BankReconciliation).where(
            BankReconciliation.account_id == account.id,
            BankReconciliation.status == "in_progress",
        ),
    )
    if in_progress:
        raise BusinessRuleError(
            "Cannot delete an account with a reconciliation in progress",
        )
    log_activity(db, tenant, "bank_account_deleted", "bank_account", account.id, {
        "name": account.name,
    })
    await db.delete(account)
    await db.commit()
    return {"message": "Bank account deleted"}


@router.get("/{account_id}/summary")
async def get_bank_account_summary(
    account_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    counts = await db.execute(
        select(
            func.count(),
            func.count().filter(BankTransaction.is_matched.is_(False)),
        ).where(BankTransaction.account_id == account.id),
    )
    total, unmatched = counts.one()
    last = await db.execute(
        select(BankReconciliation)
        .where(
            BankReconciliation.account_id == account.id,
            BankReconciliation.status == "completed",
        )
        .order_by(BankReconciliation.end_date.desc())
        .limit(1),
    )
    last_rec = last.scalar_one_or_none()
    return {
        "data": {
            "account": dump(BankAccountResponse, account),
            "transaction_count": total,
            "unmatched_count": unmatched,
            "last_reconciliation": (
                dump(ReconciliationResponse, last_rec) if last_rec else None
            ),
        },
    }
