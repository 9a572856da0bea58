"""Invoices — numbering, totals, sending, payments, voiding and the overdue sweep.

Invariants:
    - Totals are always recomputed server-side from items (client totals ignored)
    - Only draft invoices can be edited or deleted; send moves draft -> sent
    - Payments refused on draft/paid/void invoices and when amount > balance_due
    - Payment, status change and activity log commit together
    - history is append-only (list reassigned, never mutated in place)
    - Only the creating lawyer submits for approval; the creator or an admin decides
    - A retainer applied to an invoice never exceeds its balance_due

Design Decisions:
    - INV-YYYYMM-NNNN sequence derived from the highest number in scope for the month
    - The overdue sweep runs on read (GET /overdue) rather than on a scheduler
"""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.config import get_settings
from app.core.document_numbers import invoice_period
from app.core.domain_types import InvoiceStatus, TenantRole
from app.core.errors import AccessDeniedError, BusinessRuleError
from app.core.invoice_math import (
    OVERDUE_CANDIDATE_STATUSES, balance_due, compute_due_date, compute_totals,
    is_overdue, status_after_payment,
)
from app.core.security import PageRequest, build_pagination, escape_like, parse_iso_date
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.invoice import Invoice
from app.schemas.billing import (
    InvoiceApprove, InvoiceCreate, InvoiceReject, InvoiceResponse, InvoiceUpdate, InvoiceVoid,
    PaymentCreate, RetainerApply,
)
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.numbering import next_document_number
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant, tenant_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"])

SORT_COLUMNS = {
    "issue_date": Invoice.issue_date,
    "due_date": Invoice.due_date,
    "total_amount": Invoice.total_amount,
    "invoice_number": Invoice.invoice_number,
    "created_at": Invoice.created_at,
}
DRAFT = InvoiceStatus.DRAFT.value
PENDING = InvoiceStatus.PENDING_APPROVAL.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _append_history(invoice: Invoice, action: str, tenant: TenantContext, **details) -> None:
    invoice.history = [
        *(invoice.history or []),
        {"action": action, "at": _now().isoformat(), "by": tenant.user_id, **details},
    ]


def _apply_totals(invoice: Invoice) -> None:
    totals = compute_totals(
        invoice.items, invoice.vat_rate, invoice.discount_type,
        invoice.discount_value or 0.0, invoice.retainer_applied or 0.0,
        invoice.amount_paid or 0.0,
    )
    for key, value in totals.as_dict().items():
        setattr(invoice, key, value)


def _require_draft(invoice: Invoice, verb: str) -> None:
    if invoice.status != DRAFT:
        raise BusinessRuleError(f"Only draft invoices can be {verb} (status: {invoice.status})")


async def _new_number(db: AsyncSession, tenant: TenantContext, issue: date) -> str:
    return await next_document_number(
        db, Invoice, Invoice.invoice_number, tenant, "INV", invoice_period(issue),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    issue = body.issue_date or date.today()
    invoice = Invoice(
        **stamp_tenant(tenant),
        invoice_number=await _new_number(db, tenant, issue),
        client_id=body.client_id,
        client_name=body.client_name,
        case_id=body.case_id,
        status=DRAFT,
        issue_date=issue,
        due_date=compute_due_date(issue, body.payment_terms),
        payment_terms=body.payment_terms,
        currency=body.currency,
        items=[item.model_dump() for item in body.items],
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        vat_rate=(body.vat_rate if body.vat_rate is not None else get_settings().default_vat_rate),
        retainer_applied=body.retainer_applied,
        amount_paid=0.0,
        notes=body.notes,
        payments=[],
        history=[],
    )
    _apply_totals(invoice)
    _append_history(invoice, "created", tenant)
    db.add(invoice)
    await db.flush()
    log_activity(db, tenant, "invoice_created", "invoice", invoice.id, {
        "invoice_number": invoice.invoice_number, "total_amount": invoice.total_amount,
    })
    await db.commit()
    return {"message": "Invoice created", "data": dump(InvoiceResponse, invoice)}


@router.get("")
async def list_invoices(
    status_filter: str | None = Query(None, alias="status"),
    client_id: str | None = Query(None),
    case_id: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(Invoice, tenant)
    if status_filter:
        query = query.where(Invoice.status == status_filter)
    if client_id:
        query = query.where(Invoice.client_id == client_id)
    if case_id:
        query = query.where(Invoice.case_id == case_id)
    if (start := parse_iso_date(start_date)):
        query = query.where(Invoice.issue_date >= start)
    if (end := parse_iso_date(end_date)):
        query = query.where(Invoice.issue_date <= end)
    if search and search.strip():
        term = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            Invoice.invoice_number.ilike(term, escape="\\"),
            Invoice.client_name.ilike(term, escape="\\"),
        ))
    column = SORT_COLUMNS.get(sort_by, Invoice.created_at)
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(InvoiceResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/overdue")
async def sweep_overdue_invoices(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    today = date.today()
    candidates = await db.execute(
        scoped_select(Invoice, tenant).where(
            Invoice.status.in_(OVERDUE_CANDIDATE_STATUSES), Invoice.due_date < today,
        ),
    )
    marked = 0
    for invoice in candidates.scalars().all():
        if is_overdue(invoice.status, invoice.due_date, today):
            invoice.status = InvoiceStatus.OVERDUE.value
            _append_history(invoice, "marked_overdue", tenant)
            marked += 1
    if marked:
        logger.info(
            f"Marked {marked} invoices overdue",
            extra={**tenant.log_extra(), "count": marked},
        )
    await db.commit()

    result = await db.execute(
        scoped_select(Invoice, tenant)
        .where(Invoice.status == InvoiceStatus.OVERDUE.value)
        .order_by(Invoice.due_date),
    )
    return {
        "data": dump_all(InvoiceResponse, result.scalars().all()),
        "marked_overdue": marked,
    }


@router.get("/stats")
async def get_invoice_stats(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(
            Invoice.status,
            func.count(),
            func.coalesce(func.sum(Invoice.total_amount), 0.0),
            func.coalesce(func.sum(Invoice.amount_paid), 0.0),
            func.coalesce(func.sum(Invoice.balance_due), 0.0),
        )
        .where(tenant_clause(Invoice, tenant))
        .group_by(Invoice.status),
    )
    by_status = {}
    total_invoiced = total_paid = total_outstanding = 0.0
    for status_value, count, invoiced, paid, outstanding in result.all():
        by_status[status_value] = {"count": count, "amount": round(invoiced, 2)}
        if status_value in (DRAFT, InvoiceStatus.VOID.value):
            continue
        total_invoiced += invoiced
        total_paid += paid
        total_outstanding += outstanding
    return {
        "data": {
            "by_status": by_status,
            "total_invoiced": round(total_invoiced, 2),
            "total_paid": round(total_paid, 2),
            "total_outstanding": round(total_outstanding, 2),
            "overdue_count": by_status.get(InvoiceStatus.OVERDUE.value, {}).get("count", 0),
        },
    }


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    return {"data": dump(InvoiceResponse, invoice)}


@router.patch("/{invoice_id}")
async def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    _require_draft(invoice, "edited")
    changes = body.model_dump(exclude_unset=True)
    if "items" in changes:
        changes["items"] = [item.model_dump() for item in body.items]
    for key, value in changes.items():
        if value is not None or key in ("case_id", "notes", "discount_type"):
            setattr(invoice, key, value)
    if "issue_date" in changes or "payment_terms" in changes:
        invoice.due_date = compute_due_date(invoice.issue_date, invoice.payment_terms)
    _apply_totals(invoice)
    _append_history(invoice, "updated", tenant, fields=sorted(changes))
    log_activity(db, tenant, "invoice_updated", "invoice", invoice.id, {"fields": sorted(changes)})
    await db.commit()
    return {"message": "Invoice updated", "data": dump(InvoiceResponse, invoice)}


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    _require_draft(invoice, "deleted")
    log_activity(db, tenant, "invoice_deleted", "invoice", invoice.id, {
        "invoice_number": invoice.invoice_number,
    })
    await db.delete(invoice)
    await db.commit()
    return {"message": "Invoice deleted"}


@router.post("/{invoice_id}/send")
async def send_invoice(
    invoice_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    _require_draft(invoice, "sent")
    invoice.status = InvoiceStatus.SENT.value
    invoice.sent_at = _now()
    _append_history(invoice, "sent", tenant)
    log_activity(db, tenant, "invoice_sent", "invoice", invoice.id, {
        "invoice_number": invoice.invoice_number,
    })
    await db.commit()
    return {"message": "Invoice sent", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/payments")
async def record_payment(
    invoice_id: str,
    body: PaymentCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    if invoice.status in (DRAFT, PENDING, InvoiceStatus.PAID.value, InvoiceStatus.VOID.value):
        raise BusinessRuleError(f"Cannot record a payment on a {invoice.status} invoice")
    amount = round(body.amount, 2)
    if amount > invoice.balance_due + 0.001:
        raise BusinessRuleError(
            f"Payment amount ({amount}) exceeds balance due ({invoice.balance_due})",
            code="PAYMENT_EXCEEDS_BALANCE",
        )

    invoice.amount_paid = round(invoice.amount_paid + amount, 2)
    invoice.balance_due = balance_due(
        invoice.total_amount, invoice.amount_paid, invoice.retainer_applied,
    )
    invoice.status = status_after_payment(invoice.balance_due)
    if invoice.status == InvoiceStatus.PAID.value:
        invoice.paid_at = _now()
    paid_on = body.paid_on or date.today()
    invoice.payments = [
        *(invoice.payments or []),
        {
            "amount": amount, "method": body.method, "reference": body.reference,
            "date": paid_on.isoformat(), "recorded_by": tenant.user_id,
        },
    ]
    _append_history(invoice, "payment_recorded", tenant, amount=amount)
    log_activity(db, tenant, "invoice_payment_recorded", "invoice", invoice.id, {
        "amount": amount, "balance_due": invoice.balance_due, "status": invoice.status,
    })
    await db.commit()
    return {"message": "Payment recorded", "data": dump(InvoiceResponse, invoice)}


def _require_decider(invoice: Invoice, tenant: TenantContext, verb: str) -> None:
    if tenant.role != TenantRole.ADMIN.value and invoice.lawyer_id != tenant.user_id:
        raise AccessDeniedError(f"You do not have permission to {verb} this invoice")
    if invoice.status != PENDING:
        raise BusinessRuleError("Invoice is not pending approval")


def _record_decision(invoice: Invoice, tenant: TenantContext, decision: str, notes: str | None) -> None:
    approval = dict(invoice.approval or {})
    approval["chain"] = [
        *approval.get("chain", []),
        {"approver_id": tenant.user_id, "status": decision, "at": _now().isoformat(), "notes": notes},
    ]
    if decision == "approved":
        approval["approved_by"] = tenant.user_id
        approval["approved_at"] = _now().isoformat()
    invoice.approval = approval


@router.post("/{invoice_id}/submit-for-approval")
async def submit_invoice_for_approval(
    invoice_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    if invoice.lawyer_id != tenant.user_id:
        raise AccessDeniedError("Only the creator can submit an invoice for approval")
    _require_draft(invoice, "submitted for approval")
    invoice.status = PENDING
    _append_history(invoice, "submitted_for_approval", tenant)
    log_activity(db, tenant, "invoice_submitted_for_approval", "invoice", invoice.id, {
        "invoice_number": invoice.invoice_number,
    })
    await db.commit()
    return {"message": "Invoice submitted for approval", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/approve")
async def approve_invoice(
    invoice_id: str,
    body: InvoiceApprove,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    _require_decider(invoice, tenant, "approve")
    _record_decision(invoice, tenant, "approved", body.notes)
    if body.send:
        invoice.status = InvoiceStatus.SENT.value
        invoice.sent_at = _now()
    else:
        invoice.status = DRAFT
    _append_history(invoice, "approved", tenant, note=body.notes or "Invoice approved")
    log_activity(db, tenant, "invoice_approved", "invoice", invoice.id, {
        "invoice_number": invoice.invoice_number, "status": invoice.status,
    })
    await db.commit()
    return {"message": "Invoice approved", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/reject")
async def reject_invoice(
    invoice_id: str,
    body: InvoiceReject,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    _require_decider(invoice, tenant, "reject")
    _record_decision(invoice, tenant, "rejected", body.reason)
    invoice.status = DRAFT
    _append_history(invoice, "rejected", tenant, reason=body.reason)
    log_activity(db, tenant, "invoice_rejected", "invoice", invoice.id, {"reason": body.reason})
    await db.commit()
    return {"message": "Invoice rejected", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/apply-retainer")
async def apply_retainer(
    invoice_id: str,
    body: RetainerApply,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.VOID.value):
        raise BusinessRuleError(f"Cannot apply a retainer to a {invoice.status} invoice")
    amount = round(body.amount, 2)
    if amount > invoice.balance_due + 0.001:
        raise BusinessRuleError(
            f"Retainer amount ({amount}) exceeds balance due ({invoice.balance_due})",
            code="RETAINER_EXCEEDS_BALANCE",
        )
    invoice.retainer_applied = round(invoice.retainer_applied + amount, 2)
    _apply_totals(invoice)
    if invoice.balance_due <= 0 and invoice.status not in (DRAFT, PENDING):
        invoice.status = InvoiceStatus.PAID.value
        invoice.paid_at = _now()
    _append_history(invoice, "retainer_applied", tenant, amount=amount, retainer_id=body.retainer_id)
    log_activity(db, tenant, "invoice_retainer_applied", "invoice", invoice.id, {
        "amount": amount, "retainer_id": body.retainer_id, "balance_due": invoice.balance_due,
    })
    await db.commit()
    return {"message": "Retainer applied", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/void")
async def void_invoice(
    invoice_id: str,
    body: InvoiceVoid,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    invoice = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    if invoice.status == InvoiceStatus.VOID.value:
        raise BusinessRuleError("Invoice is already void")
    if invoice.amount_paid > 0:
        raise BusinessRuleError("Cannot void an invoice with recorded payments")
    invoice.status = InvoiceStatus.VOID.value
    invoice.voided_at = _now()
    invoice.void_reason = body.reason
    _append_history(invoice, "voided", tenant, reason=body.reason)
    log_activity(db, tenant, "invoice_voided", "invoice", invoice.id, {"reason": body.reason})
    await db.commit()
    return {"message": "Invoice voided", "data": dump(InvoiceResponse, invoice)}


@router.post("/{invoice_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_invoice(
    invoice_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    source = await get_scoped_or_404(db, Invoice, invoice_id, tenant, "Invoice")
    issue = date.today()
    copy = Invoice(
        **stamp_tenant(tenant),
        invoice_number=await _new_number(db, tenant, issue),
        client_id=source.client_id,
        client_name=source.client_name,
        case_id=source.case_id,
        status=DRAFT,
        issue_date=issue,
        due_date=compute_due_date(issue, source.payment_terms),
        payment_terms=source.payment_terms,
        currency=source.currency,
        items=[dict(item) for item in source.items],
        discount_type=source.discount_type,
        discount_value=source.discount_value,
        vat_rate=source.vat_rate,
        retainer_applied=0.0,
        amount_paid=0.0,
        notes=source.notes,
        payments=[],
        history=[],
    )
    _apply_totals(copy)
    _append_history(copy, "created", tenant, duplicated_from=source.invoice_number)
    db.add(copy)
    await db.flush()
    log_activity(db, tenant, "invoice_duplicated", "invoice", copy.id, {
        "source_invoice_id": str(source.id),
    })
    await db.commit()
    return {"message": "Invoice duplicated", "data": dump(InvoiceResponse, copy)}
