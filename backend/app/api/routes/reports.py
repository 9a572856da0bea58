"""Reports — self-serve report builder: definitions, execution, export, schedules.

Invariants:
    - Firm-only; every query is tenant-scoped
    - Visible to the caller: their own reports plus public, team and global ones
    - Only the owner updates, deletes or schedules a report (403 otherwise)
    - Execution row limit: default 10000, above 50000 is a 400
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import pagination, require_firm
from app.core.errors import AccessDeniedError, BusinessRuleError, ValidationFailedError
from app.core.report_definition import (
    DEFAULT_ROW_LIMIT, EXPORT_FORMATS, MAX_NAME_LENGTH, MAX_ROW_LIMIT, REPORT_SCOPES,
    REPORT_TYPES, source_names, validate_report_definition,
)
from app.core.security import (
    PageRequest, build_pagination, escape_like, is_valid_email, parse_int, pick_allowed_fields,
)
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.report_definition import ReportDefinition
from app.schemas.common import dump, dump_all
from app.schemas.practice import ReportResponse, ScheduleUpdate
from app.services.activity_log import log_activity
from app.services.report_runner import run_report, runtime_filters, to_csv, to_json
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

REPORT_FIELDS = (
    "name", "description", "type", "data_sources", "columns", "filters",
    "group_by", "visualization", "schedule", "is_public", "scope",
)
DEFINITION_FIELDS = ("type", "data_sources", "columns", "filters", "group_by")


def _visible_clause(tenant: TenantContext):
    return or_(
        ReportDefinition.lawyer_id == tenant.user_id,
        ReportDefinition.is_public.is_(True),
        ReportDefinition.scope.in_(("team", "global")),
    )


async def _get_visible(db: AsyncSession, report_id: str, tenant: TenantContext) -> ReportDefinition:
    report = await get_scoped_or_404(db, ReportDefinition, report_id, tenant, "Report")
    if report.lawyer_id != tenant.user_id and not (
        report.is_public or report.scope in ("team", "global")
    ):
        raise AccessDeniedError("Access denied to this report")
    return report


async def _get_owned(db: AsyncSession, report_id: str, tenant: TenantContext) -> ReportDefinition:
    report = await get_scoped_or_404(db, ReportDefinition, report_id, tenant, "Report")
    if report.lawyer_id != tenant.user_id:
        raise AccessDeniedError("Only the report owner can modify this report")
    return report


def _clean_report_fields(data: dict, creating: bool) -> dict:
    if creating or "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailedError("Report name is required", field="name")
        if len(name.strip()) > MAX_NAME_LENGTH:
            raise ValidationFailedError(
                f"Report name must be at most {MAX_NAME_LENGTH} characters", field="name",
            )
        data["name"] = name.strip()
    if creating and not data.get("type"):
        raise ValidationFailedError("Report type is required", field="type")
    if "type" in data and data["type"] not in REPORT_TYPES:
        raise ValidationFailedError(
            f"Report type must be one of: {', '.join(REPORT_TYPES)}", field="type",
        )
    if "scope" in data and data["scope"] not in REPORT_SCOPES:
        raise ValidationFailedError(
            f"Scope must be one of: {', '.join(REPORT_SCOPES)}", field="scope",
        )
    if "is_public" in data and not isinstance(data["is_public"], bool):
        raise ValidationFailedError("is_public must be a boolean", field="is_public")
    for key in ("visualization", "schedule"):
        if key in data and not isinstance(data[key], dict):
            raise ValidationFailedError(f"{key} must be an object", field=key)
    return data


def _check_definition(definition: dict) -> None:
    errors = validate_report_definition(definition)
    if errors:
        raise BusinessRuleError(
            "Invalid report definition", code="INVALID_REPORT_DEFINITION",
            details=[{"message": e} for e in errors],
        )


@router.post("/validate")
async def validate_report(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(require_firm),
):
    errors = validate_report_definition(pick_allowed_fields(payload, DEFINITION_FIELDS))
    return {"valid": not errors, "errors": errors}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    data = _clean_report_fields(pick_allowed_fields(payload, REPORT_FIELDS), creating=True)
    _check_definition(data)
    report = ReportDefinition(
        **stamp_tenant(tenant),
        name=data["name"],
        description=data.get("description"),
        type=data["type"],
        scope=data.get("scope", "personal"),
        is_public=data.get("is_public", False),
        data_sources=data["data_sources"],
        columns=data.get("columns") or [],
        filters=data.get("filters") or [],
        group_by=data.get("group_by") or [],
        visualization=data.get("visualization") or {},
        schedule=data.get("schedule") or {},
        run_count=0,
    )
    db.add(report)
    await db.flush()
    log_activity(db, tenant, "report_created", "report", report.id, {"name": report.name})
    await db.commit()
    return {"message": "Report created", "data": dump(ReportResponse, report)}


@router.get("")
async def list_reports(
    type: str | None = Query(None),
    scope: str | None = Query(None),
    search: str | None = Query(None),
    page: PageRequest = Depends(pagination(default_limit=50)),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(ReportDefinition, tenant).where(_visible_clause(tenant))
    if type:
        query = query.where(ReportDefinition.type == type)
    if scope:
        query = query.where(ReportDefinition.scope == scope)
    if search and search.strip():
        query = query.where(
            ReportDefinition.name.ilike(f"%{escape_like(search.strip())}%", escape="\\"),
        )
    rows, total = await paginate(db, query.order_by(ReportDefinition.created_at.desc()), page)
    return {
        "data": dump_all(ReportResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_visible(db, report_id, tenant)
    return {"data": dump(ReportResponse, report)}


@router.patch("/{report_id}")
async def update_report(
    report_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_owned(db, report_id, tenant)
    data = _clean_report_fields(pick_allowed_fields(payload, REPORT_FIELDS), creating=False)
    if any(k in data for k in DEFINITION_FIELDS):
        merged = {k: data.get(k, getattr(report, k)) for k in DEFINITION_FIELDS}
        _check_definition(merged)
    for key, value in data.items():
        setattr(report, key, value)
    log_activity(db, tenant, "report_updated", "report", report.id, {"fields": sorted(data)})
    await db.commit()
    return {"message": "Report updated", "data": dump(ReportResponse, report)}


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_owned(db, report_id, tenant)
    log_activity(db, tenant, "report_deleted", "report", report.id, {"name": report.name})
    await db.delete(report)
    await db.commit()
    return {"message": "Report deleted"}


async def _execute(
    db: AsyncSession, report: ReportDefinition, tenant: TenantContext, request: Request,
) -> dict:
    raw_limit = request.query_params.get("_limit")
    limit = DEFAULT_ROW_LIMIT if raw_limit is None else parse_int(raw_limit, 0)
    if not 1 <= limit <= MAX_ROW_LIMIT:
        raise ValidationFailedError(
            f"_limit must be between 1 and {MAX_ROW_LIMIT}", field="_limit",
        )
    names = source_names(report.data_sources)
    params = {k: v for k, v in request.query_params.items() if not k.startswith("_")}
    extra = runtime_filters(names[0], params) if names else []
    result = await run_report(db, tenant, report, extra, limit)
    report.run_count = (report.run_count or 0) + 1
    report.last_run_at = datetime.now(timezone.utc)
    log_activity(
        db, tenant, "report_executed", "report", report.id, {"row_count": result["row_count"]},
    )
    await db.commit()
    return result


@router.get("/{report_id}/execute")
async def execute_report(
    report_id: str,
    request: Request,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_visible(db, report_id, tenant)
    return {"data": await _execute(db, report, tenant, request)}


@router.get("/{report_id}/export/{export_format}")
async def export_report(
    report_id: str,
    export_format: str,
    request: Request,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    if export_format not in EXPORT_FORMATS:
        raise ValidationFailedError(
            f"Unsupported export format: {export_format} (supported: {', '.join(EXPORT_FORMATS)})",
            field="format",
        )
    report = await _get_visible(db, report_id, tenant)
    result = await _execute(db, report, tenant, request)
    filename = f"report-{report.id}.{export_format}"
    if export_format == "csv":
        content, media_type = to_csv(result), "text/csv"
    else:
        content, media_type = to_json(result), "application/json"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{report_id}/clone", status_code=status.HTTP_201_CREATED)
async def clone_report(
    report_id: str,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    source = await _get_visible(db, report_id, tenant)
    clone = ReportDefinition(
        **stamp_tenant(tenant),
        name=f"{source.name} (Copy)"[:MAX_NAME_LENGTH],
        description=source.description,
        type=source.type,
        scope="personal",
        is_public=False,
        data_sources=list(source.data_sources or []),
        columns=list(source.columns or []),
        filters=list(source.filters or []),
        group_by=list(source.group_by or []),
        visualization=dict(source.visualization or {}),
        schedule={},
        run_count=0,
    )
    db.add(clone)
    await db.flush()
    log_activity(db, tenant, "report_cloned", "report", clone.id, {"source_id": str(source.id)})
    await db.commit()
    return {"message": "Report cloned", "data": dump(ReportResponse, clone)}


@router.put("/{report_id}/schedule")
async def update_report_schedule(
    report_id: str,
    body: ScheduleUpdate,
    tenant: TenantContext = Depends(require_firm),
    db: AsyncSession = Depends(get_db),
):
    report = await _get_owned(db, report_id, tenant)
    invalid = [r for r in body.recipients if not is_valid_email(r)]
    if invalid:
        raise ValidationFailedError(
            f"Invalid recipient email(s): {', '.join(invalid)}", field="recipients",
        )
    if body.enabled and not body.recipients:
        raise ValidationFailedError(
            "At least one recipient is required to enable a schedule", field="recipients",
        )
    report.schedule = body.model_dump()
    log_activity(
        db, tenant, "report_schedule_updated", "report", report.id,
        {"enabled": body.enabled, "frequency": body.frequency},
    )
    await db.commit()
    return {"message": "Schedule updated", "data": dump(ReportResponse, report)}
