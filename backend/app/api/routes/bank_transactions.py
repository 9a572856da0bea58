"""Bank Transactions — manual entry, listing, statement import (CSV/OFX) and unmatched queue.

Invariants:
    - Every transaction belongs to an account in the caller's scope
    - Creating a transaction moves the account's current_balance (credit +, debit -)
    - Imports skip duplicates (same amount/type within ±1 day) and never abort on bad rows

Design Decisions:
    - Imports take multipart uploads (UploadFile); options arrive as form fields,
      column_mapping as a JSON string
    - Format is the explicit `format` field, else inferred from the file extension
"""

import json
import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.errors import ValidationFailedError
from app.core.security import (
    PageRequest, build_pagination, clamp, page_request, parse_float, parse_int,
)
from app.core.statement_parsing import (
    CSV_TEMPLATE, DATE_FORMATS, CsvImportOptions, parse_csv_statement, parse_ofx_statement,
)
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.bank_transaction import BankTransaction
from app.schemas.banking import BankTransactionCreate, BankTransactionResponse
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.bank_ledger import apply_to_balance, import_statement
from app.services.scoping import get_scoped_or_404, paginate, stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bank-transactions", tags=["bank-transactions"])

MAX_IMPORT_BYTES = 5 * 1024 * 1024
TX_TYPES = ("credit", "debit")


def _optional_date(value: str | None, field: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationFailedError(f"Invalid {field}", field=field)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bank_transaction(
    body: BankTransactionCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, body.account_id, tenant, "Bank account")
    tx = BankTransaction(
        **stamp_tenant(tenant),
        account_id=account.id,
        transaction_date=body.date,
        amount=round(body.amount, 2),
        type=body.type,
        description=body.description,
        reference=body.reference,
        category=body.category,
        source="manual",
    )
    db.add(tx)
    apply_to_balance(account, tx.amount, tx.type)
    await db.flush()
    log_activity(db, tenant, "bank_transaction_created", "bank_transaction", tx.id, {
        "account_id": str(account.id), "amount": tx.amount, "type": tx.type,
    })
    await db.commit()
    return {"message": "Transaction created", "data": dump(BankTransactionResponse, tx)}


@router.get("")
async def list_bank_transactions(
    account_id: str | None = Query(None),
    type: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    is_matched: bool | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    query = select(BankTransaction).where(BankTransaction.account_id == account.id)
    if type in TX_TYPES:
        query = query.where(BankTransaction.type == type)
    if (start := _optional_date(start_date, "start_date")):
        query = query.where(BankTransaction.transaction_date >= start)
    if (end := _optional_date(end_date, "end_date")):
        query = query.where(BankTransaction.transaction_date <= end)
    if is_matched is not None:
        query = query.where(BankTransaction.is_matched.is_(is_matched))
    query = query.order_by(
        BankTransaction.transaction_date.desc(), BankTransaction.created_at.desc(),
    )
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(BankTransactionResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/import/template")
async def download_import_template(tenant: TenantContext = Depends(get_tenant)):
    return Response(
        content=CSV_TEMPLATE,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="bank-statement-template.csv"'},
    )


@router.post("/import")
async def import_bank_statement(
    file: UploadFile = File(...),
    account_id: str = Form(...),
    format: str | None = Form(None),
    delimiter: str = Form(","),
    has_header: bool = Form(True),
    skip_rows: str | None = Form(None),
    date_format: str = Form("YYYY-MM-DD"),
    column_mapping: str | None = Form(None),
    debit_column: str | None = Form(None),
    credit_column: str | None = Form(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")

    raw = await file.read()
    if not raw:
        raise ValidationFailedError("Uploaded file is empty", field="file")
    if len(raw) > MAX_IMPORT_BYTES:
        raise ValidationFailedError("File too large (max 5MB)", field="file")
    content = raw.decode("utf-8-sig", errors="replace")

    filename = (file.filename or "").lower()
    fmt = (format or ("ofx" if filename.endswith((".ofx", ".qfx")) else "csv")).lower()
    if fmt == "ofx":
        parsed = parse_ofx_statement(content)
    elif fmt == "csv":
        if date_format not in DATE_FORMATS:
            raise ValidationFailedError(
                f"date_format must be one of: {', '.join(DATE_FORMATS)}", field="date_format",
            )
        mapping = {}
        if column_mapping:
            try:
                mapping = json.loads(column_mapping)
            except json.JSONDecodeError:
                raise ValidationFailedError("column_mapping must be valid JSON", field="column_mapping")
            if not isinstance(mapping, dict):
                raise ValidationFailedError("column_mapping must be an object", field="column_mapping")
        parsed = parse_csv_statement(content, CsvImportOptions(
            delimiter=delimiter[:1] or ",",
            has_header=has_header,
            skip_rows=max(0, parse_int(skip_rows, 0)),
            date_format=date_format,
            column_mapping={str(k): str(v) for k, v in mapping.items()},
            debit_column=debit_column or None,
            credit_column=credit_column or None,
        ))
    else:
        raise ValidationFailedError("format must be csv or ofx", field="format")

    summary = await import_statement(db, tenant, account, parsed, source=f"import_{fmt}")
    log_activity(db, tenant, "bank_statement_imported", "bank_account", account.id, {
        "format": fmt, "imported": summary["imported"],
        "duplicates": summary["duplicates"], "batch_id": summary["batch_id"],
    })
    await db.commit()
    return {
        "message": f"Imported {summary['imported']} transactions",
        "data": summary,
    }


@router.get("/unmatched")
async def list_unmatched_transactions(
    account_id: str | None = Query(None),
    limit: str | None = Query(None),
    skip: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    min_amount: str | None = Query(None),
    max_amount: str | None = Query(None),
    type: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    size = clamp(parse_int(limit, 50), 1, 200)
    offset = max(0, parse_int(skip, 0))

    query = select(BankTransaction).where(
        BankTransaction.account_id == account.id,
        BankTransaction.is_matched.is_(False),
    )
    if (start := _optional_date(start_date, "start_date")):
        query = query.where(BankTransaction.transaction_date >= start)
    if (end := _optional_date(end_date, "end_date")):
        query = query.where(BankTransaction.transaction_date <= end)
    if (low := parse_float(min_amount)) is not None:
        query = query.where(BankTransaction.amount >= low)
    if (high := parse_float(max_amount)) is not None:
        query = query.where(BankTransaction.amount <= high)
    if type in TX_TYPES:
        query = query.where(BankTransaction.type == type)

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(BankTransaction.transaction_date.desc()).limit(size).offset(offset),
    )
    page = page_request(offset // size + 1, size, max_limit=200)
    meta = build_pagination(page, total)
    return {
        "data": {
            "transactions": dump_all(BankTransactionResponse, result.scalars().all()),
            "total": total,
            "page": meta["page"],
            "pages": meta["pages"],
        },
    }


@router.get("/{transaction_id}")
async def get_bank_transaction(
    transaction_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    tx = await get_scoped_or_404(db, BankTransaction, transaction_id, tenant, "Transaction")
    return {"data": dump(BankTransactionResponse, tx)}
