"""Onboarding — new-hire task checklists and the probation lifecycle.

Invariants:
    - One open (pending / in_progress) onboarding per employee
    - probation_period <= 180 days; probation_end_date derived, never client-set
    - started_at set once on first entry to in_progress; completed onboardings cannot be deleted
    - Probation decided once: active -> passed | failed; failed cancels the onboarding
    - Only an open onboarding can be completed; the completion record is written once
"""

import logging
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.domain_types import OnboardingStatus, ProbationStatus
from app.core.errors import BusinessRuleError, ResourceNotFoundError, ValidationFailedError
from app.core.probation import (
    MAX_PROBATION_DAYS, OPEN_STATUSES, build_tasks, completion_record, decide_probation,
    make_task, onboarding_stats, probation_end_date, task_progress,
)
from app.core.security import PageRequest, build_pagination
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.onboarding import Onboarding
from app.schemas.common import dump, dump_all
from app.schemas.hr import (
    ChecklistTaskCreate, OnboardingComplete, OnboardingCreate, OnboardingResponse,
    OnboardingStatusUpdate, ProbationDecision, ProbationReviewCreate, TaskComplete,
)
from app.services.activity_log import log_activity
from app.services.leave_balances import employee_for_tenant
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/onboarding", tags=["onboarding"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _get_onboarding(db: AsyncSession, onboarding_id: str, tenant: TenantContext) -> Onboarding:
    return await get_scoped_or_404(db, Onboarding, onboarding_id, tenant, "Onboarding")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_onboarding(
    body: OnboardingCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    if body.probation_period > MAX_PROBATION_DAYS:
        raise ValidationFailedError(
            f"Probation period cannot exceed {MAX_PROBATION_DAYS} days", field="probation_period",
        )
    employee = await employee_for_tenant(db, tenant, body.employee_id)
    open_count = await db.scalar(
        select(func.count()).select_from(Onboarding).where(
            Onboarding.employee_id == employee.id, Onboarding.status.in_(OPEN_STATUSES),
        ),
    )
    if open_count:
        raise BusinessRuleError(
            "Employee already has an active onboarding", code="ONBOARDING_EXISTS",
        )
    onboarding = Onboarding(
        **stamp_tenant(tenant),
        employee_id=employee.id,
        employee_name=employee.full_name,
        job_title=employee.job_title,
        status=OnboardingStatus.PENDING.value,
        start_date=body.start_date,
        tasks=build_tasks(
            [t.model_dump(mode="json") for t in body.tasks] if body.tasks else None,
        ),
        probation_period=body.probation_period,
        probation_end_date=probation_end_date(body.start_date, body.probation_period),
        probation_status=ProbationStatus.ACTIVE.value,
        probation_reviews=[],
    )
    db.add(onboarding)
    await db.flush()
    log_activity(db, tenant, "onboarding_created", "onboarding", onboarding.id, {
        "employee_id": str(employee.id),
    })
    await db.commit()
    return {"message": "Onboarding created", "data": dump(OnboardingResponse, onboarding)}


@router.get("")
async def list_onboardings(
    status_filter: str | None = Query(None, alias="status"),
    employee_id: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(Onboarding, tenant)
    if status_filter:
        query = query.where(Onboarding.status == status_filter)
    if employee_id:
        employee = await employee_for_tenant(db, tenant, employee_id)
        query = query.where(Onboarding.employee_id == employee.id)
    query = query.order_by(Onboarding.start_date.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(OnboardingResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/stats")
async def get_onboarding_stats(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(scoped_select(Onboarding, tenant))
    return {"data": onboarding_stats(result.scalars().all(), date.today())}


@router.get("/upcoming-reviews")
async def get_upcoming_reviews(
    days: int = Query(30, ge=1, le=365),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    today = date.today()
    result = await db.execute(
        scoped_select(Onboarding, tenant)
        .where(
            Onboarding.probation_status == ProbationStatus.ACTIVE.value,
            Onboarding.probation_end_date >= today,
            Onboarding.probation_end_date <= today + timedelta(days=days),
        )
        .order_by(Onboarding.probation_end_date),
    )
    rows = result.scalars().all()
    return {
        "data": [
            {
                **dump(OnboardingResponse, o),
                "days_remaining": (o.probation_end_date - today).days,
            }
            for o in rows
        ],
        "total": len(rows),
    }


@router.get("/employee/{employee_id}")
async def get_employee_onboardings(
    employee_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    employee = await employee_for_tenant(db, tenant, employee_id)
    result = await db.execute(
        scoped_select(Onboarding, tenant)
        .where(Onboarding.employee_id == employee.id)
        .order_by(Onboarding.created_at.desc()),
    )
    return {"data": dump_all(OnboardingResponse, result.scalars().all())}


@router.get("/{onboarding_id}")
async def get_onboarding(
    onboarding_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    return {
        "data": {
            **dump(OnboardingResponse, onboarding),
            "progress": task_progress(onboarding.tasks),
        },
    }


@router.delete("/{onboarding_id}")
async def delete_onboarding(
    onboarding_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    if onboarding.status == OnboardingStatus.COMPLETED.value:
        raise BusinessRuleError("Cannot delete a completed onboarding")
    log_activity(db, tenant, "onboarding_deleted", "onboarding", onboarding.id)
    await db.delete(onboarding)
    await db.commit()
    return {"message": "Onboarding deleted"}


@router.patch("/{onboarding_id}/status")
async def update_onboarding_status(
    onboarding_id: str,
    body: OnboardingStatusUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    previous = onboarding.status
    onboarding.status = body.status
    if body.status == OnboardingStatus.IN_PROGRESS.value and onboarding.started_at is None:
        onboarding.started_at = _now()
    if body.status == OnboardingStatus.COMPLETED.value:
        onboarding.completed_at = _now()
    log_activity(db, tenant, "onboarding_status_changed", "onboarding", onboarding.id, {
        "from": previous, "to": body.status,
    })
    await db.commit()
    return {"message": "Onboarding status updated", "data": dump(OnboardingResponse, onboarding)}


@router.post("/{onboarding_id}/tasks/{task_id}/complete")
async def complete_onboarding_task(
    onboarding_id: str,
    task_id: str,
    body: TaskComplete | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    tasks = [dict(t) for t in onboarding.tasks or []]
    task = next((t for t in tasks if t.get("task_id") == task_id), None)
    if task is None:
        raise ResourceNotFoundError("Task", task_id)
    task.update(
        completed=True,
        completed_at=_now().isoformat(),
        completed_by=tenant.user_id,
        notes=body.notes if body else task.get("notes"),
    )
    onboarding.tasks = tasks
    progress = task_progress(tasks)
    log_activity(db, tenant, "onboarding_task_completed", "onboarding", onboarding.id, {
        "task_id": task_id, **progress,
    })
    await db.commit()
    return {"message": "Task completed", "data": {"task": task, "progress": progress}}


@router.post("/{onboarding_id}/tasks", status_code=status.HTTP_201_CREATED)
async def add_checklist_task(
    onboarding_id: str,
    body: ChecklistTaskCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    if onboarding.status not in OPEN_STATUSES:
        raise BusinessRuleError(f"Cannot add tasks to a {onboarding.status} onboarding")
    task = make_task(
        body.name,
        body.category,
        body.due_date.isoformat() if body.due_date else None,
        description=body.description,
        responsible=body.responsible,
        priority=body.priority,
    )
    onboarding.tasks = [*(onboarding.tasks or []), task]
    log_activity(db, tenant, "onboarding_task_added", "onboarding", onboarding.id, {
        "task_id": task["task_id"],
    })
    await db.commit()
    return {"message": "Task added", "data": {"task": task, "progress": task_progress(onboarding.tasks)}}


@router.post("/{onboarding_id}/complete")
async def complete_onboarding(
    onboarding_id: str,
    body: OnboardingComplete | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    if onboarding.status not in OPEN_STATUSES:
        raise BusinessRuleError(f"Cannot complete a {onboarding.status} onboarding")
    body = body or OnboardingComplete()
    now = _now()
    onboarding.completion = completion_record(
        onboarding.start_date,
        now.date(),
        tenant.user_id,
        body.final_review.model_dump(mode="json") if body.final_review else None,
        body.outstanding_items,
    )
    onboarding.status = OnboardingStatus.COMPLETED.value
    onboarding.completed_at = now
    if onboarding.started_at is None:
        onboarding.started_at = now
    log_activity(db, tenant, "onboarding_completed", "onboarding", onboarding.id, {
        "total_duration_days": onboarding.completion["total_duration_days"],
        **task_progress(onboarding.tasks or []),
    })
    await db.commit()
    return {"message": "Onboarding completed", "data": dump(OnboardingResponse, onboarding)}


@router.post("/{onboarding_id}/probation/reviews", status_code=status.HTTP_201_CREATED)
async def add_probation_review(
    onboarding_id: str,
    body: ProbationReviewCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    review = {
        "review_id": str(uuid4()),
        **body.model_dump(mode="json"),
        "reviewed_by": tenant.user_id,
        "created_at": _now().isoformat(),
    }
    onboarding.probation_reviews = [*(onboarding.probation_reviews or []), review]
    log_activity(db, tenant, "probation_review_added", "onboarding", onboarding.id, {
        "review_type": body.review_type, "recommendation": body.recommendation,
    })
    await db.commit()
    return {"message": "Probation review added", "data": review}


@router.post("/{onboarding_id}/probation/complete")
async def complete_probation(
    onboarding_id: str,
    body: ProbationDecision,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    onboarding = await _get_onboarding(db, onboarding_id, tenant)
    if onboarding.probation_status != ProbationStatus.ACTIVE.value:
        raise BusinessRuleError(
            f"Probation is not active (status: {onboarding.probation_status})",
        )
    outcome = decide_probation(body.decision, body.decision_date or date.today(), body.reason)
    onboarding.probation_status = outcome["probation_status"]
    onboarding.confirmation_letter = outcome["confirmation_letter"]
    onboarding.termination = outcome["termination"]
    if outcome["onboarding_status"]:
        onboarding.status = outcome["onboarding_status"]
    action = "probation_confirmed" if body.decision == "confirm" else "probation_terminated"
    log_activity(db, tenant, action, "onboarding", onboarding.id, {
        "decision": body.decision,
    })
    await db.commit()
    return {
        "message": f"Probation {onboarding.probation_status}",
        "data": dump(OnboardingResponse, onboarding),
    }
