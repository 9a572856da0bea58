"""Leave Requests — drafting, conflict checks, approval workflow and leave balances.

Invariants:
    - Referenced employee must belong to the caller's tenant (403 otherwise)
    - draft -> pending_approval (submit) -> approved | rejected; cancel restores approved days
    - Submit blocked by any high/critical conflict; conflicts returned in error details
    - Approval deducts from the balance in the same commit as the status change
    - Unpaid leave never touches a balance
    - Return is confirmed once, on an approved request, and completes it
    - An extension is a new pending request linked by original_request_id

Design Decisions:
    - Balances created lazily per (employee, year, type) on first read or check
"""

import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.document_numbers import year_period
from app.core.domain_types import LeaveStatus
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.leave_rules import (
    CALENDAR_STATUSES, DECIDABLE_STATUSES, EDITABLE_STATUSES, ENTITLEMENTS, LEAVE_TYPE_LABELS,
    MAX_CALENDAR_DAYS, NON_CANCELLABLE_STATUSES, calendar_days, has_blocking_conflict,
    is_balance_tracked, return_assessment,
)
from app.core.security import PageRequest, build_pagination, escape_like, parse_int, parse_iso_date
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.leave import LeaveRequest
from app.schemas.common import dump, dump_all
from app.schemas.hr import (
    ConflictCheck, LeaveCancel, LeaveDecisionComment, LeaveExtensionCreate, LeaveReject,
    LeaveRequestCreate, LeaveRequestResponse, LeaveRequestUpdate, LeaveReturnConfirm,
)
from app.services.activity_log import log_activity
from app.services.leave_balances import (
    balances_for_year, check_conflicts, employee_for_tenant, get_balance,
)
from app.services.numbering import next_document_number
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant, tenant_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/leave-requests", tags=["leave-requests"])

SORT_COLUMNS = {
    "start_date": LeaveRequest.start_date,
    "created_at": LeaveRequest.created_at,
    "total_days": LeaveRequest.total_days,
    "request_number": LeaveRequest.request_number,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _workflow_step(request: LeaveRequest, action: str, tenant: TenantContext, comments=None) -> None:
    steps = list(request.approval_workflow or [])
    steps.append({
        "step": len(steps) + 1,
        "action": action,
        "by": tenant.user_id,
        "at": _now().isoformat(),
        "comments": comments,
    })
    request.approval_workflow = steps


async def _get_request(db: AsyncSession, request_id: str, tenant: TenantContext) -> LeaveRequest:
    return await get_scoped_or_404(db, LeaveRequest, request_id, tenant, "Leave request")


@router.get("/types")
async def list_leave_types(tenant: TenantContext = Depends(get_tenant)):
    return {
        "data": [
            {
                "leave_type": leave_type,
                "name": LEAVE_TYPE_LABELS[leave_type][0],
                "name_ar": LEAVE_TYPE_LABELS[leave_type][1],
                "annual_entitlement": entitled,
                "balance_tracked": entitled is not None,
            }
            for leave_type, entitled in ENTITLEMENTS.items()
        ],
    }


@router.post("/check-conflicts")
async def check_leave_conflicts(
    body: ConflictCheck,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_for_tenant(db, tenant, body.employee_id)
    days, remaining, conflicts = await check_conflicts(
        db, tenant, employee, body.leave_type, body.start_date, body.end_date,
        exclude_request_id=str(body.exclude_request_id) if body.exclude_request_id else None,
    )
    await db.commit()
    return {
        "data": {
            "total_days": days,
            "available_balance": remaining,
            "has_conflicts": bool(conflicts),
            "blocking": has_blocking_conflict(conflicts),
            "conflicts": conflicts,
        },
    }


@router.get("/balance/{employee_id}")
async def get_leave_balance(
    employee_id: str,
    year: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_for_tenant(db, tenant, employee_id)
    target_year = parse_int(year, date.today().year)
    balances = await balances_for_year(db, tenant, employee, target_year)
    await db.commit()
    return {
        "data": {
            "employee_id": str(employee.id),
            "employee_name": employee.full_name,
            "year": target_year,
            "balances": balances,
        },
    }


@router.get("/pending-approvals")
async def list_pending_approvals(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        scoped_select(LeaveRequest, tenant)
        .where(LeaveRequest.status.in_(DECIDABLE_STATUSES))
        .order_by(LeaveRequest.start_date),
    )
    rows = dump_all(LeaveRequestResponse, result.scalars().all())
    return {"data": rows, "count": len(rows)}


@router.get("/team-calendar")
async def get_team_calendar(
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    department: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    range_start = parse_iso_date(start_date) or date.today()
    range_end = parse_iso_date(end_date) or range_start + timedelta(days=30)
    if range_end < range_start:
        raise ValidationFailedError("end_date must be on or after start_date", field="end_date")
    if (range_end - range_start).days >= MAX_CALENDAR_DAYS:
        raise ValidationFailedError(
            f"Calendar range cannot exceed {MAX_CALENDAR_DAYS} days", field="end_date",
        )
    query = scoped_select(LeaveRequest, tenant).where(
        LeaveRequest.status.in_(CALENDAR_STATUSES),
        LeaveRequest.start_date <= range_end,
        LeaveRequest.end_date >= range_start,
    )
    if department:
        query = query.where(LeaveRequest.department == department)
    result = await db.execute(query.order_by(LeaveRequest.start_date))
    leaves = result.scalars().all()
    return {
        "data": {
            "start_date": range_start.isoformat(),
            "end_date": range_end.isoformat(),
            "calendar": calendar_days(leaves, range_start, range_end),
            "leaves": dump_all(LeaveRequestResponse, leaves),
        },
    }


@router.get("/stats")
async def get_leave_stats(
    year: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    scope = [tenant_clause(LeaveRequest, tenant)]
    if year:
        target = parse_int(year, date.today().year)
        scope += [
            LeaveRequest.start_date >= date(target, 1, 1),
            LeaveRequest.start_date <= date(target, 12, 31),
        ]
    by_status = await db.execute(
        select(LeaveRequest.status, func.count()).where(*scope).group_by(LeaveRequest.status),
    )
    by_type = await db.execute(
        select(LeaveRequest.leave_type, func.count()).where(*scope).group_by(LeaveRequest.leave_type),
    )
    approved_days = await db.scalar(
        select(func.coalesce(func.sum(LeaveRequest.total_days), 0)).where(
            *scope, LeaveRequest.status == LeaveStatus.APPROVED.value,
        ),
    )
    status_counts = dict(by_status.all())
    return {
        "data": {
            "total": sum(status_counts.values()),
            "by_status": status_counts,
            "by_type": dict(by_type.all()),
            "total_approved_days": int(approved_days or 0),
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    body: LeaveRequestCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_for_tenant(db, tenant, body.employee_id)
    days, remaining, conflicts = await check_conflicts(
        db, tenant, employee, body.leave_type, body.start_date, body.end_date,
    )
    request = LeaveRequest(
        **stamp_tenant(tenant),
        request_number=await next_document_number(
            db, LeaveRequest, LeaveRequest.request_number, tenant, "LR",
            year_period(date.today()),
        ),
        employee_id=employee.id,
        employee_name=employee.full_name,
        department=employee.department,
        leave_type=body.leave_type,
        start_date=body.start_date,
        end_date=body.end_date,
        total_days=days,
        reason=body.reason,
        status=LeaveStatus.DRAFT.value,
        balance_before=remaining,
        conflicts=conflicts,
        approval_workflow=[],
    )
    db.add(request)
    await db.flush()
    log_activity(db, tenant, "leave_request_created", "leave_request", request.id, {
        "employee_id": str(employee.id), "leave_type": request.leave_type, "days": days,
    })
    await db.commit()
    return {
        "message": "Leave request created",
        "data": dump(LeaveRequestResponse, request),
        "conflicts": conflicts,
    }


@router.get("")
async def list_leave_requests(
    status_filter: str | None = Query(None, alias="status"),
    leave_type: str | None = Query(None),
    employee_id: str | None = Query(None),
    department: str | None = Query(None),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(LeaveRequest, tenant)
    if status_filter:
        query = query.where(LeaveRequest.status == status_filter)
    if leave_type:
        query = query.where(LeaveRequest.leave_type == leave_type)
    if employee_id:
        employee = await employee_for_tenant(db, tenant, employee_id)
        query = query.where(LeaveRequest.employee_id == employee.id)
    if department:
        query = query.where(LeaveRequest.department == department)
    if (start := parse_iso_date(start_date)):
        query = query.where(LeaveRequest.end_date >= start)
    if (end := parse_iso_date(end_date)):
        query = query.where(LeaveRequest.start_date <= end)
    if search and search.strip():
        term = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            LeaveRequest.employee_name.ilike(term, escape="\\"),
            LeaveRequest.request_number.ilike(term, escape="\\"),
        ))
    column = SORT_COLUMNS.get(sort_by, LeaveRequest.created_at)
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(LeaveRequestResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/{request_id}")
async def get_leave_request(
    request_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    return {"data": dump(LeaveRequestResponse, request)}


@router.patch("/{request_id}")
async def update_leave_request(
    request_id: str,
    body: LeaveRequestUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status not in EDITABLE_STATUSES:
        raise BusinessRuleError(f"Cannot update a leave request in status: {request.status}")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(request, key, value)
    if {"leave_type", "start_date", "end_date"} & changes.keys():
        employee = await employee_for_tenant(db, tenant, request.employee_id)
        days, remaining, conflicts = await check_conflicts(
            db, tenant, employee, request.leave_type, request.start_date, request.end_date,
            exclude_request_id=str(request.id),
        )
        request.total_days = days
        request.balance_before = remaining
        request.conflicts = conflicts
    log_activity(db, tenant, "leave_request_updated", "leave_request", request.id, {
        "fields": sorted(changes),
    })
    await db.commit()
    return {"message": "Leave request updated", "data": dump(LeaveRequestResponse, request)}


@router.delete("/{request_id}")
async def delete_leave_request(
    request_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status != LeaveStatus.DRAFT.value:
        raise BusinessRuleError("Only draft leave requests can be deleted")
    log_activity(db, tenant, "leave_request_deleted", "leave_request", request.id, {
        "request_number": request.request_number,
    })
    await db.delete(request)
    await db.commit()
    return {"message": "Leave request deleted"}


@router.post("/{request_id}/submit")
async def submit_leave_request(
    request_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status != LeaveStatus.DRAFT.value:
        raise BusinessRuleError("Only draft leave requests can be submitted")
    employee = await employee_for_tenant(db, tenant, request.employee_id)
    _, remaining, conflicts = await check_conflicts(
        db, tenant, employee, request.leave_type, request.start_date, request.end_date,
        exclude_request_id=str(request.id),
    )
    if has_blocking_conflict(conflicts):
        raise BusinessRuleError(
            "Leave request has blocking conflicts",
            code="LEAVE_CONFLICT",
            details=conflicts,
        )
    request.conflicts = conflicts
    request.balance_before = remaining
    request.status = LeaveStatus.PENDING_APPROVAL.value
    _workflow_step(request, "submitted", tenant)
    log_activity(db, tenant, "leave_request_submitted", "leave_request", request.id)
    await db.commit()
    return {"message": "Leave request submitted", "data": dump(LeaveRequestResponse, request)}


@router.post("/{request_id}/approve")
async def approve_leave_request(
    request_id: str,
    body: LeaveDecisionComment | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status not in DECIDABLE_STATUSES:
        raise BusinessRuleError(f"Cannot approve a leave request in status: {request.status}")
    if is_balance_tracked(request.leave_type):
        employee = await employee_for_tenant(db, tenant, request.employee_id)
        balance = await get_balance(
            db, tenant, employee, request.leave_type, request.start_date.year,
        )
        before = balance.remaining
        if request.total_days > before:
            raise BusinessRuleError(
                f"Insufficient leave balance: requested {request.total_days}, available {before}",
                code="INSUFFICIENT_LEAVE_BALANCE",
            )
        balance.used = balance.used + request.total_days
        request.balance_before = before
        request.balance_after = balance.remaining
        request.balance_impact = float(request.total_days)
    request.status = LeaveStatus.APPROVED.value
    request.decided_by = tenant.user_id
    request.decided_at = _now()
    _workflow_step(request, "approved", tenant, body.comments if body else None)
    log_activity(db, tenant, "leave_request_approved", "leave_request", request.id, {
        "days": request.total_days, "balance_after": request.balance_after,
    })
    await db.commit()
    return {"message": "Leave request approved", "data": dump(LeaveRequestResponse, request)}


@router.post("/{request_id}/reject")
async def reject_leave_request(
    request_id: str,
    body: LeaveReject,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status not in DECIDABLE_STATUSES:
        raise BusinessRuleError(f"Cannot reject a leave request in status: {request.status}")
    request.status = LeaveStatus.REJECTED.value
    request.rejection_reason = body.reason
    request.decided_by = tenant.user_id
    request.decided_at = _now()
    _workflow_step(request, "rejected", tenant, body.reason)
    log_activity(db, tenant, "leave_request_rejected", "leave_request", request.id, {
        "reason": body.reason,
    })
    await db.commit()
    return {"message": "Leave request rejected", "data": dump(LeaveRequestResponse, request)}


@router.post("/{request_id}/cancel")
async def cancel_leave_request(
    request_id: str,
    body: LeaveCancel | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status in NON_CANCELLABLE_STATUSES:
        raise BusinessRuleError(f"Cannot cancel a leave request in status: {request.status}")
    restored = False
    if request.status == LeaveStatus.APPROVED.value and is_balance_tracked(request.leave_type):
        employee = await employee_for_tenant(db, tenant, request.employee_id)
        balance = await get_balance(
            db, tenant, employee, request.leave_type, request.start_date.year,
        )
        balance.used = max(balance.used - request.total_days, 0.0)
        restored = True
    reason = body.reason if body else None
    request.status = LeaveStatus.CANCELLED.value
    request.cancellation = {
        "reason": reason,
        "cancelled_by": tenant.user_id,
        "cancelled_at": _now().isoformat(),
        "balance_restored": restored,
    }
    log_activity(db, tenant, "leave_request_cancelled", "leave_request", request.id, {
        "balance_restored": restored,
    })
    await db.commit()
    return {"message": "Leave request cancelled", "data": dump(LeaveRequestResponse, request)}


@router.post("/{request_id}/confirm-return")
async def confirm_return(
    request_id: str,
    body: LeaveReturnConfirm | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    request = await _get_request(db, request_id, tenant)
    if request.status != LeaveStatus.APPROVED.value:
        raise BusinessRuleError(f"Cannot confirm return for a leave request in status: {request.status}")
    body = body or LeaveReturnConfirm()
    returned_on = body.actual_return_date or date.today()
    request.return_info = {
        **return_assessment(request.end_date, returned_on),
        "confirmed_by": tenant.user_id,
        "confirmed_at": _now().isoformat(),
        "notes": body.notes,
    }
    request.status = LeaveStatus.COMPLETED.value
    _workflow_step(request, "return_confirmed", tenant, body.notes)
    log_activity(db, tenant, "leave_return_confirmed", "leave_request", request.id, {
        "late_days": request.return_info["late_days"],
    })
    await db.commit()
    return {"message": "Return from leave confirmed", "data": dump(LeaveRequestResponse, request)}


@router.post("/{request_id}/request-extension", status_code=status.HTTP_201_CREATED)
async def request_extension(
    request_id: str,
    body: LeaveExtensionCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    original = await _get_request(db, request_id, tenant)
    if original.status != LeaveStatus.APPROVED.value:
        raise BusinessRuleError("Only approved leave requests can be extended")
    if body.new_end_date <= original.end_date:
        raise ValidationFailedError(
            "New end date must be after current end date", field="new_end_date",
        )
    employee = await employee_for_tenant(db, tenant, original.employee_id)
    start = original.end_date + timedelta(days=1)
    days, remaining, conflicts = await check_conflicts(
        db, tenant, employee, original.leave_type, start, body.new_end_date,
        exclude_request_id=str(original.id),
    )
    if has_blocking_conflict(conflicts):
        raise BusinessRuleError(
            "Leave extension has blocking conflicts",
            code="LEAVE_CONFLICT",
            details=conflicts,
        )
    extension = LeaveRequest(
        **stamp_tenant(tenant),
        request_number=await next_document_number(
            db, LeaveRequest, LeaveRequest.request_number, tenant, "LR",
            year_period(date.today()),
        ),
        employee_id=employee.id,
        employee_name=employee.full_name,
        department=employee.department,
        leave_type=original.leave_type,
        start_date=start,
        end_date=body.new_end_date,
        total_days=days,
        reason=body.reason,
        status=LeaveStatus.PENDING_APPROVAL.value,
        balance_before=remaining,
        conflicts=conflicts,
        approval_workflow=[],
        is_extension=True,
        original_request_id=original.id,
        extension_days=days,
    )
    _workflow_step(extension, "submitted", tenant, body.reason)
    db.add(extension)
    await db.flush()
    log_activity(db, tenant, "leave_extension_requested", "leave_request", extension.id, {
        "original_request_id": str(original.id), "extension_days": days,
    })
    await db.commit()
    return {"message": "Extension request created", "data": dump(LeaveRequestResponse, extension)}
