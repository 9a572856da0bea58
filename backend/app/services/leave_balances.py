"""Leave Balance Service — lazy per-year balances and conflict checks against the DB.

Invariants:
    - One LeaveBalance row per (employee, year, leave_type), created on first use
    - Unpaid leave never gets a balance row (no entitlement)
    - Conflict checks see only the caller's tenant
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.leave_rules import (
    ACTIVE_STATUSES, ENTITLEMENTS, LEAVE_TYPE_LABELS, BookedLeave, detect_conflicts,
    entitlement_for, total_days,
)
from app.core.domain_types import LeaveStatus
from app.core.errors import AccessDeniedError, ResourceNotFoundError, ValidationFailedError
from app.core.tenant import TenantContext, can_access
from app.models.employee import Employee
from app.models.leave import LeaveBalance, LeaveRequest
from app.services.scoping import require_id, stamp_tenant, tenant_clause


def _entitlement_date(year: int) -> date:
    return min(date.today(), date(year, 12, 31))


async def get_balance(
    db: AsyncSession, tenant: TenantContext, employee: Employee, leave_type: str, year: int,
) -> LeaveBalance | None:
    entitled = entitlement_for(leave_type, employee.hire_date, _entitlement_date(year))
    if entitled is None:
        return None
    result = await db.execute(
        select(LeaveBalance).where(
            LeaveBalance.employee_id == employee.id,
            LeaveBalance.year == year,
            LeaveBalance.leave_type == leave_type,
        ),
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        balance = LeaveBalance(
            **stamp_tenant(tenant),
            employee_id=employee.id, year=year, leave_type=leave_type,
            entitled=float(entitled), used=0.0,
        )
        db.add(balance)
        await db.flush()
    return balance


async def balances_for_year(
    db: AsyncSession, tenant: TenantContext, employee: Employee, year: int,
) -> list[dict]:
    rows = []
    for leave_type in ENTITLEMENTS:
        balance = await get_balance(db, tenant, employee, leave_type, year)
        label_en, label_ar = LEAVE_TYPE_LABELS[leave_type]
        rows.append({
            "leave_type": leave_type,
            "name": label_en,
            "name_ar": label_ar,
            "entitled": balance.entitled if balance else None,
            "used": balance.used if balance else 0.0,
            "remaining": balance.remaining if balance else None,
        })
    return rows


def _booked(request: LeaveRequest) -> BookedLeave:
    return BookedLeave(
        request_id=str(request.id),
        employee_id=str(request.employee_id),
        employee_name=request.employee_name,
        start_date=request.start_date,
        end_date=request.end_date,
        status=request.status,
    )


async def check_conflicts(
    db: AsyncSession,
    tenant: TenantContext,
    employee: Employee,
    leave_type: str,
    start_date: date,
    end_date: date,
    exclude_request_id: str | None = None,
) -> tuple[int, float | None, list[dict]]:
    """(days, remaining balance or None, conflicts) for a prospective request."""
    try:
        days = total_days(start_date, end_date)
    except ValueError as e:
        raise ValidationFailedError(str(e), field="end_date")

    balance = await get_balance(db, tenant, employee, leave_type, start_date.year)
    remaining = balance.remaining if balance else None

    own = await db.execute(
        select(LeaveRequest).where(
            tenant_clause(LeaveRequest, tenant),
            LeaveRequest.employee_id == employee.id,
            LeaveRequest.status.in_(ACTIVE_STATUSES),
        ),
    )
    team: list[LeaveRequest] = []
    if employee.department:
        team_result = await db.execute(
            select(LeaveRequest).where(
                tenant_clause(LeaveRequest, tenant),
                LeaveRequest.department == employee.department,
                LeaveRequest.employee_id != employee.id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= end_date,
                LeaveRequest.end_date >= start_date,
            ),
        )
        team = list(team_result.scalars().all())

    conflicts = detect_conflicts(
        str(employee.id), start_date, end_date, days, remaining,
        [_booked(r) for r in own.scalars().all()],
        [_booked(r) for r in team],
        exclude_request_id=exclude_request_id,
    )
    return days, remaining, conflicts


async def employee_for_tenant(
    db: AsyncSession, tenant: TenantContext, employee_id: UUID | str,
) -> Employee:
    """Referenced employee: 404 when missing, 403 when owned by another tenant."""
    clean = require_id(employee_id, "employee")
    employee = await db.get(Employee, UUID(clean))
    if employee is None:
        raise ResourceNotFoundError("Employee", clean)
    if not can_access(employee.firm_id, employee.lawyer_id, tenant):
        raise AccessDeniedError("Access denied to this employee")
    return employee
