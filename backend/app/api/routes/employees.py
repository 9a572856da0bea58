"""Employees — HR records, allowances and headcount statistics.

Invariants:
    - id_number is unique within a tenant (duplicate -> 400)
    - employee_number EMP-NNNN is a per-tenant sequence, never client-supplied
    - allowances list reassigned on every change
"""

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.errors import BusinessRuleError, ResourceNotFoundError
from app.core.security import PageRequest, build_pagination, escape_like
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.employee import Employee
from app.schemas.common import dump, dump_all
from app.schemas.hr import AllowanceCreate, EmployeeCreate, EmployeeResponse, EmployeeUpdate
from app.services.activity_log import log_activity
from app.services.numbering import next_document_number
from app.services.scoping import (
    get_scoped_or_404, paginate, require_id, scoped_select, stamp_tenant, tenant_clause,
    update_fields,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/employees", tags=["employees"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_employee(
    body: EmployeeCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    duplicate = await db.scalar(
        select(func.count()).select_from(Employee).where(
            tenant_clause(Employee, tenant), Employee.id_number == body.id_number,
        ),
    )
    if duplicate:
        raise BusinessRuleError(
            "An employee with this ID number already exists", code="DUPLICATE_ID_NUMBER",
        )
    employee = Employee(
        **stamp_tenant(tenant),
        **body.model_dump(),
        employee_number=await next_document_number(
            db, Employee, Employee.employee_number, tenant, "EMP",
        ),
        status="active",
        allowances=[],
    )
    db.add(employee)
    await db.flush()
    log_activity(db, tenant, "employee_created", "employee", employee.id, {
        "employee_number": employee.employee_number,
    })
    await db.commit()
    return {"message": "Employee created", "data": dump(EmployeeResponse, employee)}


@router.get("")
async def list_employees(
    status_filter: str | None = Query(None, alias="status"),
    department: str | None = Query(None),
    employment_type: str | None = Query(None),
    search: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(Employee, tenant)
    if status_filter:
        query = query.where(Employee.status == status_filter)
    if department:
        query = query.where(Employee.department == department)
    if employment_type:
        query = query.where(Employee.employment_type == employment_type)
    if search and search.strip():
        term = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            Employee.first_name.ilike(term, escape="\\"),
            Employee.last_name.ilike(term, escape="\\"),
            Employee.full_name_ar.ilike(term, escape="\\"),
            Employee.employee_number.ilike(term, escape="\\"),
            Employee.email.ilike(term, escape="\\"),
        ))
    query = query.order_by(Employee.employee_number)
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(EmployeeResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/stats")
async def get_employee_stats(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    scope = tenant_clause(Employee, tenant)

    async def _grouped(column) -> dict:
        result = await db.execute(
            select(column, func.count()).where(scope).group_by(column),
        )
        return {key or "unassigned": count for key, count in result.all()}

    totals = await db.execute(
        select(func.count(), func.avg(Employee.basic_salary), func.sum(Employee.basic_salary))
        .where(scope),
    )
    total, average, payroll = totals.one()
    return {
        "data": {
            "total": total,
            "by_status": await _grouped(Employee.status),
            "by_department": await _grouped(Employee.department),
            "by_employment_type": await _grouped(Employee.employment_type),
            "total_basic_salary": round(payroll or 0.0, 2),
            "average_basic_salary": round(average or 0.0, 2),
        },
    }


@router.get("/{employee_id}")
async def get_employee(
    employee_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await get_scoped_or_404(db, Employee, employee_id, tenant, "Employee")
    return {"data": dump(EmployeeResponse, employee)}


@router.patch("/{employee_id}")
async def update_employee(
    employee_id: str,
    body: EmployeeUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await get_scoped_or_404(db, Employee, employee_id, tenant, "Employee")
    changes = update_fields(body, Employee)
    for key, value in changes.items():
        setattr(employee, key, value)
    log_activity(db, tenant, "employee_updated", "employee", employee.id, {"fields": sorted(changes)})
    await db.commit()
    return {"message": "Employee updated", "data": dump(EmployeeResponse, employee)}


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await get_scoped_or_404(db, Employee, employee_id, tenant, "Employee")
    log_activity(db, tenant, "employee_deleted", "employee", employee.id, {
        "employee_number": employee.employee_number,
    })
    await db.delete(employee)
    await db.commit()
    return {"message": "Employee deleted"}


@router.post("/{employee_id}/allowances", status_code=status.HTTP_201_CREATED)
async def add_allowance(
    employee_id: str,
    body: AllowanceCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await get_scoped_or_404(db, Employee, employee_id, tenant, "Employee")
    allowance = {"allowance_id": str(uuid4()), **body.model_dump(), "amount": round(body.amount, 2)}
    employee.allowances = [*(employee.allowances or []), allowance]
    log_activity(db, tenant, "employee_allowance_added", "employee", employee.id, {
        "name": body.name, "amount": allowance["amount"],
    })
    await db.commit()
    return {"message": "Allowance added", "data": dump(EmployeeResponse, employee)}


@router.delete("/{employee_id}/allowances/{allowance_id}")
async def remove_allowance(
    employee_id: str,
    allowance_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await get_scoped_or_404(db, Employee, employee_id, tenant, "Employee")
    clean = require_id(allowance_id, "allowance")
    remaining = [a for a in employee.allowances or [] if a.get("allowance_id") != clean]
    if len(remaining) == len(employee.allowances or []):
        raise ResourceNotFoundError("Allowance", clean)
    employee.allowances = remaining
    log_activity(db, tenant, "employee_allowance_removed", "employee", employee.id, {
        "allowance_id": clean,
    })
    await db.commit()
    return {"message": "Allowance removed", "data": dump(EmployeeResponse, employee)}
