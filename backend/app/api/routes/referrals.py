"""Referrals — referral sources, their leads, conversions, fee agreements and payouts.

Invariants:
    - Writes pass through the field allow-list; fee terms validated before persist
    - Lead, client and linked ids must be well-formed before anything is stored
    - A source with referral history is archived instead of deleted
    - leads / conversions / payments lists are reassigned, never mutated in place
"""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.domain_types import FeeType
from app.core.errors import ValidationFailedError
from app.core.referral_fees import calculate_fee, validate_fee_terms
from app.core.security import (
    PageRequest, build_pagination, escape_like, is_valid_currency_code, parse_float,
    parse_int, parse_iso_date, pick_allowed_fields, sanitize_id,
)
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.referral import Referral
from app.schemas.billing import FeeCalculationRequest, ReferralResponse
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant, tenant_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/referrals", tags=["referrals"])

REFERRAL_FIELDS = (
    "name", "name_ar", "description", "type", "status", "external_source",
    "has_fee_agreement", "fee_type", "fee_percentage", "fee_fixed_amount", "fee_tiers",
    "fee_notes", "tags", "rating", "priority", "notes", "next_follow_up_date",
)
PAYMENT_FIELDS = (
    "amount", "date", "method", "reference_number", "notes", "currency",
    "linked_lead_id", "linked_client_id",
)
REFERRAL_TYPES = ("client", "lawyer", "law_firm", "contact", "employee", "partner", "organization", "other")
REFERRAL_STATUSES = ("active", "inactive", "archived")
PRIORITIES = ("low", "normal", "high", "vip")
FEE_TYPES = tuple(t.value for t in FeeType)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_referral_fields(fields: dict, creating: bool) -> dict:
    if creating or "name" in fields:
        name = str(fields.get("name") or "").strip()
        if not name:
            raise ValidationFailedError("Referral name is required", field="name")
        fields["name"] = name[:200]
    for key, allowed in (
        ("type", REFERRAL_TYPES), ("status", REFERRAL_STATUSES),
        ("priority", PRIORITIES), ("fee_type", FEE_TYPES),
    ):
        if key in fields and fields[key] not in allowed:
            raise ValidationFailedError(f"{key} must be one of: {', '.join(allowed)}", field=key)

    errors = validate_fee_terms(
        fields.get("fee_percentage"), fields.get("fee_fixed_amount"), fields.get("fee_tiers"),
    )
    if errors:
        raise ValidationFailedError(errors[0], field="fee_terms")
    for key in ("fee_percentage", "fee_fixed_amount"):
        if fields.get(key) is not None:
            fields[key] = parse_float(fields[key])
    if "fee_tiers" in fields:
        fields["fee_tiers"] = [
            {
                "min_value": parse_float(t.get("min_value")),
                "max_value": parse_float(t.get("max_value")) if t.get("max_value") is not None else None,
                "percentage": parse_float(t.get("percentage")),
            }
            for t in fields["fee_tiers"] or []
        ]
    if "has_fee_agreement" in fields and not isinstance(fields["has_fee_agreement"], bool):
        raise ValidationFailedError("has_fee_agreement must be a boolean", field="has_fee_agreement")
    if "rating" in fields and fields["rating"] is not None:
        rating = parse_int(fields["rating"], 0)
        if not 1 <= rating <= 5:
            raise ValidationFailedError("Rating must be between 1 and 5", field="rating")
        fields["rating"] = rating
    if "tags" in fields:
        if not isinstance(fields["tags"], list):
            raise ValidationFailedError("tags must be a list", field="tags")
        fields["tags"] = [str(t).strip()[:50] for t in fields["tags"] if str(t).strip()]
    if "next_follow_up_date" in fields and fields["next_follow_up_date"] is not None:
        follow_up = parse_iso_date(fields["next_follow_up_date"])
        if follow_up is None:
            raise ValidationFailedError("Invalid follow-up date", field="next_follow_up_date")
        fields["next_follow_up_date"] = follow_up
    return fields


async def _get_referral(db: AsyncSession, referral_id: str, tenant: TenantContext) -> Referral:
    return await get_scoped_or_404(db, Referral, referral_id, tenant, "Referral")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_referral(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = _clean_referral_fields(pick_allowed_fields(payload, REFERRAL_FIELDS), creating=True)
    referral = Referral(
        **stamp_tenant(tenant),
        **{"fee_tiers": [], "tags": [], "leads": [], "conversions": [], "payments": [], **fields},
    )
    db.add(referral)
    await db.flush()
    log_activity(db, tenant, "referral_created", "referral", referral.id, {"name": referral.name})
    await db.commit()
    return {"message": "Referral source created successfully", "data": dump(ReferralResponse, referral)}


@router.get("")
async def list_referrals(
    type: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None),
    page: PageRequest = Depends(pagination()),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(Referral, tenant)
    if type:
        query = query.where(Referral.type == type)
    if status_filter:
        query = query.where(Referral.status == status_filter)
    if search and search.strip():
        term = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            Referral.name.ilike(term, escape="\\"),
            Referral.name_ar.ilike(term, escape="\\"),
            Referral.external_source.ilike(term, escape="\\"),
        ))
    query = query.order_by(Referral.created_at.desc())
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(ReferralResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/stats")
async def get_referral_stats(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    scope = tenant_clause(Referral, tenant)
    by_type = await db.execute(
        select(Referral.type, func.count()).where(scope).group_by(Referral.type),
    )
    by_status = await db.execute(
        select(Referral.status, func.count()).where(scope).group_by(Referral.status),
    )
    totals = await db.execute(
        select(
            func.count(),
            func.coalesce(func.sum(Referral.total_referrals), 0),
            func.coalesce(func.sum(Referral.successful_referrals), 0),
            func.coalesce(func.sum(Referral.total_fees_paid), 0.0),
        ).where(scope),
    )
    sources, referred, converted, fees = totals.one()
    return {
        "data": {
            "total_sources": sources,
            "by_type": dict(by_type.all()),
            "by_status": dict(by_status.all()),
            "total_referrals": int(referred),
            "successful_referrals": int(converted),
            "conversion_rate": round(converted / referred * 100, 2) if referred else 0.0,
            "total_fees_paid": round(fees, 2),
        },
    }


@router.get("/top")
async def get_top_referrers(
    limit: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    size = 10
    if limit is not None:
        size = parse_int(limit, -1)
        if not 1 <= size <= 100:
            raise ValidationFailedError("Invalid limit (must be between 1 and 100)", field="limit")
    result = await db.execute(
        scoped_select(Referral, tenant)
        .where(Referral.status != "archived")
        .order_by(Referral.successful_referrals.desc(), Referral.total_referrals.desc())
        .limit(size),
    )
    return {"data": dump_all(ReferralResponse, result.scalars().all())}


@router.get("/{referral_id}")
async def get_referral(
    referral_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    referral = await _get_referral(db, referral_id, tenant)
    return {"data": dump(ReferralResponse, referral)}


@router.patch("/{referral_id}")
async def update_referral(
    referral_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    referral = await _get_referral(db, referral_id, tenant)
    fields = _clean_referral_fields(pick_allowed_fields(payload, REFERRAL_FIELDS), creating=False)
    for key, value in fields.items():
        setattr(referral, key, value)
    log_activity(db, tenant, "referral_updated", "referral", referral.id, {"fields": sorted(fields)})
    await db.commit()
    return {"message": "Referral updated successfully", "data": dump(ReferralResponse, referral)}


@router.delete("/{referral_id}")
async def delete_referral(
    referral_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    referral = await _get_referral(db, referral_id, tenant)
    if referral.total_referrals > 0:
        referral.status = "archived"
        log_activity(db, tenant, "referral_archived", "referral", referral.id)
        await db.commit()
        return {"message": "Referral archived (has referral history)"}
    log_activity(db, tenant, "referral_deleted", "referral", referral.id, {"name": referral.name})
    await db.delete(referral)
    await db.commit()
    return {"message": "Referral deleted successfully"}


@router.post("/{referral_id}/leads")
async def add_lead_referral(
    referral_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = pick_allowed_fields(payload, ("lead_id", "case_value"))
    lead_id = sanitize_id(fields.get("lead_id"))
    if not lead_id:
        raise ValidationFailedError("Invalid lead ID", field="lead_id")
    case_value = None
    if fields.get("case_value") is not None:
        case_value = parse_float(fields["case_value"])
        if case_value is None or case_value < 0:
            raise ValidationFailedError("Case value must be a positive number", field="case_value")

    referral = await _get_referral(db, referral_id, tenant)
    referral.leads = [
        *(referral.leads or []),
        {"lead_id": lead_id, "case_value": case_value, "referred_at": _now_iso()},
    ]
    referral.total_referrals += 1
    log_activity(db, tenant, "referral_lead_added", "referral", referral.id, {"lead_id": lead_id})
    await db.commit()
    return {"message": "Lead referral added", "data": dump(ReferralResponse, referral)}


@router.post("/{referral_id}/convert")
async def mark_referral_converted(
    referral_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = pick_allowed_fields(payload, ("lead_id", "client_id"))
    lead_id = sanitize_id(fields.get("lead_id"))
    if not lead_id:
        raise ValidationFailedError("Invalid lead ID", field="lead_id")
    client_id = sanitize_id(fields.get("client_id"))
    if not client_id:
        raise ValidationFailedError("Invalid client ID", field="client_id")

    referral = await _get_referral(db, referral_id, tenant)
    referral.conversions = [
        *(referral.conversions or []),
        {"lead_id": lead_id, "client_id": client_id, "converted_at": _now_iso()},
    ]
    referral.successful_referrals += 1
    log_activity(db, tenant, "referral_converted", "referral", referral.id, {
        "lead_id": lead_id, "client_id": client_id,
    })
    await db.commit()
    return {"message": "Referral marked as converted", "data": dump(ReferralResponse, referral)}


@router.post("/{referral_id}/payments")
async def record_referral_payment(
    referral_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = pick_allowed_fields(payload, PAYMENT_FIELDS)
    if fields.get("amount") is None:
        raise ValidationFailedError("Payment amount is required", field="amount")
    amount = parse_float(fields["amount"])
    if amount is None or amount <= 0:
        raise ValidationFailedError("Payment amount must be a positive number", field="amount")
    linked = {}
    for key, label in (("linked_lead_id", "linked lead"), ("linked_client_id", "linked client")):
        if fields.get(key):
            clean = sanitize_id(fields[key])
            if not clean:
                raise ValidationFailedError(f"Invalid {label} ID", field=key)
            linked[key] = clean
    currency = fields.get("currency")
    if currency is not None and not is_valid_currency_code(currency):
        raise ValidationFailedError("Invalid currency code", field="currency")
    paid_on = parse_iso_date(fields.get("date")) or date.today()

    referral = await _get_referral(db, referral_id, tenant)
    referral.payments = [
        *(referral.payments or []),
        {
            "amount": round(amount, 2),
            "date": paid_on.isoformat(),
            "method": fields.get("method"),
            "reference_number": fields.get("reference_number"),
            "notes": fields.get("notes"),
            "currency": currency or referral.currency,
            **linked,
        },
    ]
    referral.total_fees_paid = round(referral.total_fees_paid + amount, 2)
    log_activity(db, tenant, "referral_payment_recorded", "referral", referral.id, {"amount": amount})
    await db.commit()
    return {"message": "Payment recorded successfully", "data": dump(ReferralResponse, referral)}


@router.post("/{referral_id}/calculate-fee")
async def calculate_referral_fee(
    referral_id: str,
    body: FeeCalculationRequest,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    referral = await _get_referral(db, referral_id, tenant)
    fee = calculate_fee(
        body.case_value, referral.has_fee_agreement, referral.fee_type,
        referral.fee_percentage, referral.fee_fixed_amount, referral.fee_tiers,
    )
    return {
        "data": {
            "case_value": body.case_value,
            "fee_amount": fee,
            "fee_type": referral.fee_type,
            "currency": referral.currency,
        },
    }
