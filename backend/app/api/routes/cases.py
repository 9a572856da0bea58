"""Cases — legal matters with notes, hearings, claims and an automatic timeline.

Invariants:
    - Tenant members (firm or owning lawyer) can read and modify a case
    - A client token whose sub equals case.client_id can read, never modify (403)
    - Anyone else sees 404, so case ids cannot be enumerated
    - Every mutation appends one timeline event in the same commit
    - Removing a hearing or claim that is not on the case is a 404
"""

import logging
from datetime import date, datetime, timezone
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.errors import AccessDeniedError, ResourceNotFoundError
from app.core.security import PageRequest, build_pagination, escape_like
from app.core.tenant import TenantContext, can_access
from app.infrastructure.database import get_db
from app.models.case import Case
from app.schemas.common import dump, dump_all
from app.schemas.practice import (
    CaseCreate, CaseNoteCreate, CaseOutcomeUpdate, CaseProgressUpdate, CaseResponse,
    CaseStatusUpdate, CaseUpdate, ClaimCreate, HearingCreate, HearingUpdate,
)
from app.services.activity_log import log_activity
from app.services.scoping import paginate, require_id, stamp_tenant, tenant_clause, update_fields

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cases", tags=["cases"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _add_event(case: Case, event: str, tenant: TenantContext, **details) -> None:
    case.timeline = [
        *(case.timeline or []),
        {"event": event, "at": _now_iso(), "by": tenant.user_id, **details},
    ]


async def _load_case(
    db: AsyncSession, case_id: str, tenant: TenantContext, modify: bool = False,
) -> Case:
    clean = require_id(case_id, "case")
    case = await db.get(Case, UUID(clean))
    if case is None:
        raise ResourceNotFoundError("Case", clean)
    if tenant.is_client:
        if case.client_id != tenant.user_id:
            raise ResourceNotFoundError("Case", clean)
        if modify:
            raise AccessDeniedError("Only the lawyer can modify this case")
        return case
    if not can_access(case.firm_id, case.lawyer_id, tenant):
        raise ResourceNotFoundError("Case", clean)
    return case


def _visible_clause(tenant: TenantContext):
    if tenant.is_client:
        return Case.client_id == tenant.user_id
    return tenant_clause(Case, tenant)


def _respond(message: str, case: Case) -> dict:
    return {"message": message, "data": dump(CaseResponse, case)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_case(
    body: CaseCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    if tenant.is_client:
        raise AccessDeniedError("Only the lawyer can modify this case")
    case = Case(
        **stamp_tenant(tenant),
        **body.model_dump(),
        status="active",
        notes=[], hearings=[], claims=[], timeline=[],
    )
    _add_event(case, "case_created", tenant, title=case.title)
    db.add(case)
    await db.flush()
    log_activity(db, tenant, "case_created", "case", case.id, {"title": case.title})
    await db.commit()
    return _respond("Case created", case)


@router.get("")
async def list_cases(
    status_filter: str | None = Query(None, alias="status"),
    priority: str | None = Query(None),
    category: str | None = Query(None),
    search: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = select(Case).where(_visible_clause(tenant))
    if status_filter:
        query = query.where(Case.status == status_filter)
    if priority:
        query = query.where(Case.priority == priority)
    if category:
        query = query.where(Case.category == category)
    if search and search.strip():
        term = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            Case.title.ilike(term, escape="\\"),
            Case.client_name.ilike(term, escape="\\"),
            Case.case_number.ilike(term, escape="\\"),
        ))
    query = query.order_by(Case.created_at.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(CaseResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/statistics")
async def get_case_statistics(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    scope = _visible_clause(tenant)

    async def _grouped(column) -> dict:
        result = await db.execute(select(column, func.count()).where(scope).group_by(column))
        return {key or "unspecified": count for key, count in result.all()}

    by_status = await _grouped(Case.status)
    return {
        "data": {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_outcome": await _grouped(Case.outcome),
            "by_priority": await _grouped(Case.priority),
            "by_category": await _grouped(Case.category),
        },
    }


@router.get("/{case_id}")
async def get_case(
    case_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant)
    return {"data": dump(CaseResponse, case)}


@router.patch("/{case_id}")
async def update_case(
    case_id: str,
    body: CaseUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    changes = update_fields(body, Case)
    for key, value in changes.items():
        setattr(case, key, value)
    _add_event(case, "case_updated", tenant, fields=sorted(changes))
    log_activity(db, tenant, "case_updated", "case", case.id, {"fields": sorted(changes)})
    await db.commit()
    return _respond("Case updated", case)


@router.delete("/{case_id}")
async def delete_case(
    case_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    log_activity(db, tenant, "case_deleted", "case", case.id, {"title": case.title})
    await db.delete(case)
    await db.commit()
    return {"message": "Case deleted"}


@router.post("/{case_id}/notes", status_code=status.HTTP_201_CREATED)
async def add_case_note(
    case_id: str,
    body: CaseNoteCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    note = {"note_id": str(uuid4()), "text": body.text, "created_by": tenant.user_id, "created_at": _now_iso()}
    case.notes = [*(case.notes or []), note]
    _add_event(case, "note_added", tenant, note_id=note["note_id"])
    await db.commit()
    return _respond("Note added", case)


@router.delete("/{case_id}/notes/{note_id}")
async def delete_case_note(
    case_id: str,
    note_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    remaining = [n for n in case.notes or [] if n.get("note_id") != note_id]
    if len(remaining) == len(case.notes or []):
        raise ResourceNotFoundError("Note", note_id)
    case.notes = remaining
    _add_event(case, "note_deleted", tenant, note_id=note_id)
    await db.commit()
    return _respond("Note deleted", case)


@router.post("/{case_id}/hearings", status_code=status.HTTP_201_CREATED)
async def add_hearing(
    case_id: str,
    body: HearingCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    hearing = {
        "hearing_id": str(uuid4()),
        "date": body.hearing_date.isoformat(),
        "location": body.location,
        "notes": body.notes,
        "attended": False,
        "outcome": None,
    }
    case.hearings = [*(case.hearings or []), hearing]
    _add_event(case, "hearing_scheduled", tenant, hearing_id=hearing["hearing_id"], date=hearing["date"])
    await db.commit()
    return _respond("Hearing added", case)


@router.patch("/{case_id}/hearings/{hearing_id}")
async def update_hearing(
    case_id: str,
    hearing_id: str,
    body: HearingUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    hearings = [dict(h) for h in case.hearings or []]
    hearing = next((h for h in hearings if h.get("hearing_id") == hearing_id), None)
    if hearing is None:
        raise ResourceNotFoundError("Hearing", hearing_id)
    hearing.update(body.model_dump(exclude_unset=True))
    case.hearings = hearings
    _add_event(case, "hearing_updated", tenant, hearing_id=hearing_id)
    await db.commit()
    return _respond("Hearing updated", case)


@router.delete("/{case_id}/hearings/{hearing_id}")
async def delete_hearing(
    case_id: str,
    hearing_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    remaining = [h for h in case.hearings or [] if h.get("hearing_id") != hearing_id]
    if len(remaining) == len(case.hearings or []):
        raise ResourceNotFoundError("Hearing", hearing_id)
    case.hearings = remaining
    _add_event(case, "hearing_deleted", tenant, hearing_id=hearing_id)
    await db.commit()
    return _respond("Hearing deleted", case)


@router.post("/{case_id}/claims", status_code=status.HTTP_201_CREATED)
async def add_claim(
    case_id: str,
    body: ClaimCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    claim = {"claim_id": str(uuid4()), **body.model_dump(), "amount": round(body.amount, 2)}
    case.claims = [*(case.claims or []), claim]
    _add_event(case, "claim_added", tenant, claim_id=claim["claim_id"], amount=claim["amount"])
    await db.commit()
    return _respond("Claim added", case)


@router.delete("/{case_id}/claims/{claim_id}")
async def delete_claim(
    case_id: str,
    claim_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    removed = [c for c in case.claims or [] if c.get("claim_id") == claim_id]
    if not removed:
        raise ResourceNotFoundError("Claim", claim_id)
    case.claims = [c for c in case.claims if c.get("claim_id") != claim_id]
    _add_event(case, "claim_deleted", tenant, claim_id=claim_id, amount=removed[0].get("amount"))
    await db.commit()
    return _respond("Claim deleted", case)


@router.get("/{case_id}/timeline")
async def get_case_timeline(
    case_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant)
    return {"data": sorted(case.timeline or [], key=lambda e: e["at"], reverse=True)}


@router.patch("/{case_id}/status")
async def update_case_status(
    case_id: str,
    body: CaseStatusUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    previous = case.status
    case.status = body.status
    if body.status == "completed":
        case.end_date = date.today()
    _add_event(case, "status_changed", tenant, **{"from": previous, "to": body.status})
    log_activity(db, tenant, "case_status_changed", "case", case.id, {"from": previous, "to": body.status})
    await db.commit()
    return _respond("Case status updated", case)


@router.patch("/{case_id}/progress")
async def update_case_progress(
    case_id: str,
    body: CaseProgressUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    previous = case.progress
    case.progress = body.progress
    _add_event(case, "progress_updated", tenant, **{"from": previous, "to": body.progress})
    log_activity(db, tenant, "case_progress_updated", "case", case.id, {"progress": body.progress})
    await db.commit()
    return _respond("Case progress updated", case)


@router.patch("/{case_id}/outcome")
async def update_case_outcome(
    case_id: str,
    body: CaseOutcomeUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    case = await _load_case(db, case_id, tenant, modify=True)
    case.outcome = body.outcome
    case.status = "completed"
    case.end_date = date.today()
    _add_event(case, "outcome_recorded", tenant, outcome=body.outcome)
    log_activity(db, tenant, "case_outcome_recorded", "case", case.id, {"outcome": body.outcome})
    await db.commit()
    return _respond("Case outcome recorded", case)
