"""Ledger Entries — the book side that bank transactions are matched against."""

import logging

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.security import PageRequest, build_pagination, sanitize_id
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.ledger_entry import LedgerEntry
from app.schemas.banking import LedgerEntryCreate, LedgerEntryResponse
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/ledger-entries", tags=["ledger-entries"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ledger_entry(
    body: LedgerEntryCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account_id = None
    if body.account_id is not None:
        account = await get_scoped_or_404(db, BankAccount, body.account_id, tenant, "Bank account")
        account_id = account.id
    entry = LedgerEntry(
        **stamp_tenant(tenant),
        account_id=account_id,
        entry_date=body.date,
        amount=round(body.amount, 2),
        type=body.type,
        description=body.description,
        reference=body.reference,
        source_type=body.source_type,
    )
    db.add(entry)
    await db.flush()
    log_activity(db, tenant, "ledger_entry_created", "ledger_entry", entry.id, {
        "amount": entry.amount, "type": entry.type,
    })
    await db.commit()
    return {"message": "Ledger entry created", "data": dump(LedgerEntryResponse, entry)}


@router.get("")
async def list_ledger_entries(
    account_id: str | None = Query(None),
    is_matched: bool | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(LedgerEntry, tenant)
    if (clean := sanitize_id(account_id)):
        query = query.where(LedgerEntry.account_id == UUID(clean))
    if is_matched is not None:
        query = query.where(LedgerEntry.is_matched.is_(is_matched))
    query = query.order_by(LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(LedgerEntryResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/{entry_id}")
async def get_ledger_entry(
    entry_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_scoped_or_404(db, LedgerEntry, entry_id, tenant, "Ledger entry")
    return {"data": dump(LedgerEntryResponse, entry)}
