"""Match Rules — CRUD, dry-run test and usage stats for bank matching rules.

Invariants:
    - Writes pass through the field allow-list; conditions and action validated before persist
    - Listing order is priority descending, then oldest first
    - bank_account_ids are sanitized and must reference accounts in the caller's scope
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_tenant, pagination
from app.core.errors import ValidationFailedError
from app.core.match_rules import rule_matches, validate_action, validate_conditions
from app.core.security import PageRequest, build_pagination, parse_int, pick_allowed_fields, sanitize_id
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.match_rule import MatchRule
from app.schemas.banking import MatchRuleResponse, RuleTestRequest
from app.schemas.common import dump, dump_all
from app.services.activity_log import log_activity
from app.services.scoping import get_scoped_or_404, paginate, scoped_select, stamp_tenant, tenant_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/match-rules", tags=["match-rules"])

RULE_FIELDS = (
    "name", "description", "is_active", "priority", "conditions", "action",
    "bank_account_ids", "apply_to_future_transactions",
)


async def _clean_rule_fields(
    db: AsyncSession, tenant: TenantContext, fields: dict, creating: bool,
) -> dict:
    if creating or "name" in fields:
        name = str(fields.get("name") or "").strip()
        if not name:
            raise ValidationFailedError("Rule name is required", field="name")
        fields["name"] = name[:200]
    if creating or "conditions" in fields:
        errors = validate_conditions(fields.get("conditions"))
        if errors:
            raise ValidationFailedError(errors[0], field="conditions")
    if creating or "action" in fields:
        errors = validate_action(fields.get("action"))
        if errors:
            raise ValidationFailedError(errors[0], field="action")
    if "priority" in fields:
        fields["priority"] = parse_int(fields["priority"], 0)
    for flag in ("is_active", "apply_to_future_transactions"):
        if flag in fields and not isinstance(fields[flag], bool):
            raise ValidationFailedError(f"{flag} must be a boolean", field=flag)
    if "bank_account_ids" in fields:
        raw_ids = fields["bank_account_ids"] or []
        if not isinstance(raw_ids, list):
            raise ValidationFailedError("bank_account_ids must be a list", field="bank_account_ids")
        ids = [sanitize_id(i) for i in raw_ids]
        if any(i is None for i in ids):
            raise ValidationFailedError("Invalid bank account ID format", field="bank_account_ids")
        if ids:
            owned = await db.scalar(
                select(func.count()).select_from(BankAccount).where(
                    tenant_clause(BankAccount, tenant),
                    BankAccount.id.in_([UUID(i) for i in ids]),
                ),
            )
            if owned != len(set(ids)):
                raise ValidationFailedError(
                    "One or more bank accounts were not found", field="bank_account_ids",
                )
        fields["bank_account_ids"] = sorted(set(ids))
    return fields


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_match_rule(
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    fields = await _clean_rule_fields(
        db, tenant, pick_allowed_fields(payload, RULE_FIELDS), creating=True,
    )
    rule = MatchRule(**stamp_tenant(tenant), **fields)
    db.add(rule)
    await db.flush()
    log_activity(db, tenant, "match_rule_created", "match_rule", rule.id, {"name": rule.name})
    await db.commit()
    return {"message": "Match rule created successfully", "data": dump(MatchRuleResponse, rule)}


@router.get("")
async def list_match_rules(
    is_active: bool | None = Query(None),
    page: PageRequest = Depends(pagination(default_limit=50)),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    query = scoped_select(MatchRule, tenant)
    if is_active is not None:
        query = query.where(MatchRule.is_active.is_(is_active))
    query = query.order_by(MatchRule.priority.desc(), MatchRule.created_at)
    rows, total = await paginate(db, query, page)
    return {
        "data": dump_all(MatchRuleResponse, rows),
        "pagination": build_pagination(page, total),
    }


@router.get("/stats")
async def get_match_rule_stats(
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(
            func.count(),
            func.count().filter(MatchRule.is_active.is_(True)),
            func.coalesce(func.sum(MatchRule.times_applied), 0),
        ).where(tenant_clause(MatchRule, tenant)),
    )
    total, active, applied = result.one()
    return {"data": {"total": total, "active": active, "total_applied": int(applied)}}


@router.get("/{rule_id}")
async def get_match_rule(
    rule_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    rule = await get_scoped_or_404(db, MatchRule, rule_id, tenant, "Rule")
    return {"data": dump(MatchRuleResponse, rule)}


@router.patch("/{rule_id}")
async def update_match_rule(
    rule_id: str,
    payload: dict = Body(...),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    rule = await get_scoped_or_404(db, MatchRule, rule_id, tenant, "Rule")
    fields = await _clean_rule_fields(
        db, tenant, pick_allowed_fields(payload, RULE_FIELDS), creating=False,
    )
    for key, value in fields.items():
        setattr(rule, key, value)
    log_activity(db, tenant, "match_rule_updated", "match_rule", rule.id, {"fields": sorted(fields)})
    await db.commit()
    return {"message": "Rule updated successfully", "data": dump(MatchRuleResponse, rule)}


@router.delete("/{rule_id}")
async def delete_match_rule(
    rule_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    rule = await get_scoped_or_404(db, MatchRule, rule_id, tenant, "Rule")
    log_activity(db, tenant, "match_rule_deleted", "match_rule", rule.id, {"name": rule.name})
    await db.delete(rule)
    await db.commit()
    return {"message": "Rule deleted successfully"}


@router.post("/{rule_id}/test")
async def test_match_rule(
    rule_id: str,
    body: RuleTestRequest,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    rule = await get_scoped_or_404(db, MatchRule, rule_id, tenant, "Rule")
    matches = rule_matches(rule.conditions, body.model_dump())
    return {
        "data": {
            "matches": matches,
            "action": rule.action if matches else None,
        },
    }
