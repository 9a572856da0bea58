"""Quality — inspections, inspection templates, corrective/preventive actions, settings.

Invariants:
    - Firm-only: every endpoint depends on require_firm
    - A finalized inspection never returns to pending; readings change only while pending
    - A completed action is never reopened or deleted
    - Settings row created lazily on first read or write
"""

import logging
from datetime import date, datetime, timedelta, timezone
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import pagination, require_firm
from app.core.document_numbers import year_period
from app.core.domain_types import ActionStatus, InspectionStatus
from app.core.errors import BusinessRuleError, ValidationFailedError
from app.core.quality_rules import (
    ACTION_TYPES, AUTO_ACTION_TARGET_DAYS, FINAL_STATUSES, action_text_error,
    evaluate_inspection, needs_corrective_action, pass_fail_rates, readings_from_template,
)
from app.core.security import PageRequest, build_pagination, parse_iso_date, pick_allowed_fields
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.quality import QualityAction, QualityInspection, QualitySettings, QualityTemplate
from app.schemas.common import dump, dump_all
from app.schemas.practice import (
    ActionResponse, InspectionCreate, InspectionResponse, InspectionUpdate,
    SettingsResponse, SettingsUpdate, TemplateCreate, TemplateResponse, TemplateUpdate,
)
from app.services.activity_log import log_activity
from app.services.numbering import next_document_number
from app.services.scoping import (
    get_scoped_or_404, paginate, require_id, scoped_select, stamp_tenant, tenant_clause,
    update_fields,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/quality", tags=["quality"])

ACTION_CREATE_FIELDS = (
    "action_type", "inspection_id", "item_code", "problem", "action",
    "responsible_person", "target_date",
)
ACTION_UPDATE_FIELDS = (
    "problem", "action", "responsible_person", "target_date", "status", "resolution",
)
ACTION_STATUSES = tuple(s.value for s in ActionStatus)


async def _settings(db: AsyncSession, tenant: TenantContext) -> QualitySettings:
    result = await db.execute(scoped_select(QualitySettings, tenant))
    settings = result.scalars().first()
    if settings is None:
        settings = QualitySettings(
            **stamp_tenant(tenant), auto_create_action=False, require_approval=False,
        )
        db.add(settings)
        await db.flush()
    return settings


# ─── Inspections ────────────────────────────────────────────────

@router.post("/inspections", status_code=status.HTTP_201_CREATED)
async def create_inspection(
    body: InspectionCreate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    template_id = body.template_id
    if template_id is None and body.readings is None:
        template_id = (await _settings(db, tenant)).default_template_id
    readings = [r.model_dump() for r in body.readings or []]
    if template_id is not None:
        template = await get_scoped_or_404(db, QualityTemplate, template_id, tenant, "Template")
        if not readings:
            readings = readings_from_template(template.parameters or [])

    today = date.today()
    inspection = QualityInspection(
        **stamp_tenant(tenant),
        inspection_number=await next_document_number(
            db, QualityInspection, QualityInspection.inspection_number, tenant,
            "QI", year_period(today),
        ),
        reference_type=body.reference_type,
        reference_id=body.reference_id,
        inspection_type=body.inspection_type,
        item_code=body.item_code,
        item_name=body.item_name,
        sample_size=body.sample_size,
        template_id=template_id,
        readings=readings,
        status=InspectionStatus.PENDING.value,
        accepted_qty=0,
        rejected_qty=0,
        remarks=body.remarks,
    )
    db.add(inspection)
    await db.flush()
    log_activity(
        db, tenant, "quality_inspection_created", "quality_inspection", inspection.id,
        {"inspection_number": inspection.inspection_number},
    )
    await db.commit()
    return {"message": "Inspection created", "data": dump(InspectionResponse, inspection)}


@router.get("/inspections")
async def list_inspections(
    status_filter: str | None = Query(None, alias="status"),
    inspection_type: str | None = Query(None),
    reference_type: str | None = Query(None),
    item_code: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(QualityInspection, tenant)
    if status_filter:
        query = query.where(QualityInspection.status == status_filter)
    if inspection_type:
        query = query.where(QualityInspection.inspection_type == inspection_type)
    if reference_type:
        query = query.where(QualityInspection.reference_type == reference_type)
    if item_code:
        query = query.where(QualityInspection.item_code == item_code)
    rows, total = await paginate(db, query.order_by(QualityInspection.created_at.desc()), page)
    return {
        "data": dump_all(InspectionResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/inspections/{inspection_id}")
async def get_inspection(
    inspection_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    inspection = await get_scoped_or_404(db, QualityInspection, inspection_id, tenant, "Inspection")
    return {"data": dump(InspectionResponse, inspection)}


@router.patch("/inspections/{inspection_id}")
async def update_inspection(
    inspection_id: str,
    body: InspectionUpdate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    inspection = await get_scoped_or_404(db, QualityInspection, inspection_id, tenant, "Inspection")
    changes = update_fields(body, QualityInspection)
    finalized = inspection.status in FINAL_STATUSES
    if changes.get("status") == InspectionStatus.PENDING.value and finalized:
        raise BusinessRuleError("A finalized inspection cannot return to pending")
    if "readings" in changes and inspection.status != InspectionStatus.PENDING.value:
        raise BusinessRuleError("Readings can only be changed while the inspection is pending")
    for key, value in changes.items():
        setattr(inspection, key, value)
    log_activity(
        db, tenant, "quality_inspection_updated", "quality_inspection", inspection.id,
        {"fields": sorted(changes)},
    )
    await db.commit()
    return {"message": "Inspection updated", "data": dump(InspectionResponse, inspection)}


@router.post("/inspections/{inspection_id}/submit")
async def submit_inspection(
    inspection_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    inspection = await get_scoped_or_404(db, QualityInspection, inspection_id, tenant, "Inspection")
    if inspection.status != InspectionStatus.PENDING.value:
        raise BusinessRuleError("Only pending inspections can be submitted")
    if not inspection.readings:
        raise BusinessRuleError("Inspection has no readings to evaluate")

    result = evaluate_inspection(inspection.readings)
    inspection.status = result["status"]
    inspection.accepted_qty = result["accepted_qty"]
    inspection.rejected_qty = result["rejected_qty"]
    inspection.inspected_by = tenant.user_id
    inspection.submitted_at = datetime.now(timezone.utc)

    action = None
    settings = await _settings(db, tenant)
    if settings.auto_create_action and needs_corrective_action(inspection.status):
        action = QualityAction(
            **stamp_tenant(tenant),
            action_type="corrective",
            inspection_id=inspection.id,
            item_code=inspection.item_code,
            problem=(
                f"Inspection {inspection.inspection_number} {inspection.status}: "
                f"{inspection.rejected_qty} rejected reading(s)"
            ),
            action="Investigate the rejected readings and correct the root cause",
            responsible_person=tenant.user_id,
            target_date=date.today() + timedelta(days=AUTO_ACTION_TARGET_DAYS),
            status=ActionStatus.OPEN.value,
        )
        db.add(action)
        await db.flush()
        logger.info(
            f"Corrective action auto-created for {inspection.inspection_number}",
            extra=tenant.log_extra(),
        )

    log_activity(
        db, tenant, "quality_inspection_submitted", "quality_inspection", inspection.id,
        {"status": inspection.status},
    )
    await db.commit()
    return {
        "message": f"Inspection {inspection.status}",
        "data": dump(InspectionResponse, inspection),
        "corrective_action": dump(ActionResponse, action) if action else None,
    }


@router.delete("/inspections/{inspection_id}")
async def delete_inspection(
    inspection_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    inspection = await get_scoped_or_404(db, QualityInspection, inspection_id, tenant, "Inspection")
    if inspection.status != InspectionStatus.PENDING.value:
        raise BusinessRuleError("Only pending inspections can be deleted")
    log_activity(
        db, tenant, "quality_inspection_deleted", "quality_inspection", inspection.id,
        {"inspection_number": inspection.inspection_number},
    )
    await db.delete(inspection)
    await db.commit()
    return {"message": "Inspection deleted"}


# ─── Templates ──────────────────────────────────────────────────

@router.post("/templates", status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    template = QualityTemplate(**stamp_tenant(tenant), **body.model_dump())
    db.add(template)
    await db.flush()
    log_activity(db, tenant, "quality_template_created", "quality_template", template.id, {"name": template.name})
    await db.commit()
    return {"message": "Template created", "data": dump(TemplateResponse, template)}


@router.get("/templates")
async def list_templates(
    is_active: bool | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(QualityTemplate, tenant)
    if is_active is not None:
        query = query.where(QualityTemplate.is_active.is_(is_active))
    rows, total = await paginate(db, query.order_by(QualityTemplate.name), page)
    return {
        "data": dump_all(TemplateResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/templates/{template_id}")
async def get_template(
    template_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    template = await get_scoped_or_404(db, QualityTemplate, template_id, tenant, "Template")
    return {"data": dump(TemplateResponse, template)}


@router.patch("/templates/{template_id}")
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    template = await get_scoped_or_404(db, QualityTemplate, template_id, tenant, "Template")
    changes = update_fields(body, QualityTemplate)
    for key, value in changes.items():
        setattr(template, key, value)
    log_activity(
        db, tenant, "quality_template_updated", "quality_template", template.id,
        {"fields": sorted(changes)},
    )
    await db.commit()
    return {"message": "Template updated", "data": dump(TemplateResponse, template)}


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    template = await get_scoped_or_404(db, QualityTemplate, template_id, tenant, "Template")
    in_use = await db.scalar(
        select(func.count()).select_from(QualityInspection).where(
            QualityInspection.template_id == template.id,
            QualityInspection.status == InspectionStatus.PENDING.value,
        ),
    )
    if in_use:
        raise BusinessRuleError(
            f"Template is used by {in_use} pending inspection(s)", code="TEMPLATE_IN_USE",
        )
    log_activity(db, tenant, "quality_template_deleted", "quality_template", template.id, {"name": template.name})
    await db.delete(template)
    await db.commit()
    return {"message": "Template deleted"}


# ─── Actions ────────────────────────────────────────────────────

def _check_action_text(data: dict, required: bool) -> None:
    for key, label in (("problem", "Problem"), ("action", "Action")):
        if key not in data and not required:
            continue
        value = data.get(key)
        error = action_text_error(label, value if isinstance(value, str) else None)
        if error:
            raise ValidationFailedError(error, field=key)
        data[key] = value.strip()


def _parse_target_date(value) -> date:
    parsed = parse_iso_date(value)
    if parsed is None:
        raise ValidationFailedError("Valid target date is required", field="target_date")
    return parsed


@router.post("/actions", status_code=status.HTTP_201_CREATED)
async def create_action(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    data = pick_allowed_fields(payload, ACTION_CREATE_FIELDS)
    if data.get("action_type") not in ACTION_TYPES:
        raise ValidationFailedError(
            f"Action type must be one of: {', '.join(ACTION_TYPES)}", field="action_type",
        )
    _check_action_text(data, required=True)
    person = str(data.get("responsible_person") or "").strip()
    if not person:
        raise ValidationFailedError("Responsible person is required", field="responsible_person")
    target = _parse_target_date(data.get("target_date"))

    inspection_id = None
    if data.get("inspection_id"):
        inspection = await get_scoped_or_404(
            db, QualityInspection, data["inspection_id"], tenant, "Inspection",
        )
        inspection_id = inspection.id

    action = QualityAction(
        **stamp_tenant(tenant),
        action_type=data["action_type"],
        inspection_id=inspection_id,
        item_code=data.get("item_code"),
        problem=data["problem"],
        action=data["action"],
        responsible_person=person[:200],
        target_date=target,
        status=ActionStatus.OPEN.value,
    )
    db.add(action)
    await db.flush()
    log_activity(db, tenant, "quality_action_created", "quality_action", action.id, {"action_type": action.action_type})
    await db.commit()
    return {"message": "Action created", "data": dump(ActionResponse, action)}


@router.get("/actions")
async def list_actions(
    status_filter: str | None = Query(None, alias="status"),
    action_type: str | None = Query(None),
    inspection_id: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(QualityAction, tenant)
    if status_filter:
        query = query.where(QualityAction.status == status_filter)
    if action_type:
        query = query.where(QualityAction.action_type == action_type)
    if inspection_id:
        query = query.where(QualityAction.inspection_id == UUID(require_id(inspection_id, "inspection")))
    rows, total = await paginate(db, query.order_by(QualityAction.target_date), page)
    return {
        "data": dump_all(ActionResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/actions/{action_id}")
async def get_action(
    action_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    action = await get_scoped_or_404(db, QualityAction, action_id, tenant, "Action")
    return {"data": dump(ActionResponse, action)}


@router.patch("/actions/{action_id}")
async def update_action(
    action_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    action = await get_scoped_or_404(db, QualityAction, action_id, tenant, "Action")
    data = pick_allowed_fields(payload, ACTION_UPDATE_FIELDS)
    if action.status == ActionStatus.COMPLETED.value and data.get("status") not in (
        None, ActionStatus.COMPLETED.value,
    ):
        raise BusinessRuleError("A completed action cannot be reopened")
    if "status" in data and data["status"] not in ACTION_STATUSES:
        raise ValidationFailedError(
            f"Status must be one of: {', '.join(ACTION_STATUSES)}", field="status",
        )
    _check_action_text(data, required=False)
    if "target_date" in data:
        data["target_date"] = _parse_target_date(data["target_date"])
    if "responsible_person" in data:
        person = str(data["responsible_person"] or "").strip()
        if not person:
            raise ValidationFailedError("Responsible person is required", field="responsible_person")
        data["responsible_person"] = person[:200]

    completing = (
        data.get("status") == ActionStatus.COMPLETED.value
        and action.status != ActionStatus.COMPLETED.value
    )
    for key, value in data.items():
        setattr(action, key, value)
    if completing:
        action.completed_date = date.today()
    log_activity(
        db, tenant, "quality_action_updated", "quality_action", action.id,
        {"fields": sorted(data)},
    )
    await db.commit()
    return {"message": "Action updated", "data": dump(ActionResponse, action)}


@router.delete("/actions/{action_id}")
async def delete_action(
    action_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    action = await get_scoped_or_404(db, QualityAction, action_id, tenant, "Action")
    if action.status == ActionStatus.COMPLETED.value:
        raise BusinessRuleError("A completed action cannot be deleted")
    log_activity(db, tenant, "quality_action_deleted", "quality_action", action.id, {})
    await db.delete(action)
    await db.commit()
    return {"message": "Action deleted"}


# ─── Stats & settings ───────────────────────────────────────────

@router.get("/stats")
async def get_quality_stats(
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(QualityInspection.status, func.count())
        .where(tenant_clause(QualityInspection, tenant))
        .group_by(QualityInspection.status),
    )
    by_status = {s: c for s, c in result.all()}
    pass_rate, fail_rate = pass_fail_rates(
        by_status.get(InspectionStatus.ACCEPTED.value, 0),
        by_status.get(InspectionStatus.REJECTED.value, 0),
        by_status.get(InspectionStatus.PARTIALLY_ACCEPTED.value, 0),
    )
    open_actions = await db.scalar(
        select(func.count()).select_from(QualityAction).where(
            tenant_clause(QualityAction, tenant),
            QualityAction.status.in_((ActionStatus.OPEN.value, ActionStatus.IN_PROGRESS.value)),
        ),
    )
    return {
        "data": {
            "total_inspections": sum(by_status.values()),
            "by_status": by_status,
            "pass_rate": pass_rate,
            "fail_rate": fail_rate,
            "open_actions": open_actions or 0,
        },
    }


@router.get("/settings")
async def get_quality_settings(
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    settings = await _settings(db, tenant)
    await db.commit()
    return {"data": dump(SettingsResponse, settings)}


@router.put("/settings")
async def update_quality_settings(
    body: SettingsUpdate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    settings = await _settings(db, tenant)
    changes = update_fields(body, QualitySettings)
    if changes.get("default_template_id") is not None:
        await get_scoped_or_404(
            db, QualityTemplate, changes["default_template_id"], tenant, "Template",
        )
    for key, value in changes.items():
        setattr(settings, key, value)
    log_activity(db, tenant, "quality_settings_updated", "quality_settings", settings.id, {"fields": sorted(changes)})
    await db.commit()
    return {"message": "Settings updated", "data": dump(SettingsResponse, settings)}
