"""Bank Matches — suggestions, auto-matching, manual decisions and split matches.

Invariants:
    - Only suggested matches can be confirmed or rejected; only confirmed ones unmatched
    - Auto-match limits are clamped (limit 1..500, min_score 0..100), never rejected
    - The matcher is injected through get_matcher so callers can swap the heuristic
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_matcher, get_tenant
from app.core.boundary_protocols import TransactionMatcher
from app.core.domain_types import MatchStatus
from app.core.security import clamp, parse_int
from app.core.tenant import TenantContext
from app.infrastructure.database import get_db
from app.models.bank_account import BankAccount
from app.models.bank_match import BankMatch
from app.models.bank_transaction import BankTransaction
from app.schemas.banking import BankMatchResponse, MatchReject, SplitMatchCreate
from app.schemas.common import dump, dump_all
from app.services import matching_service
from app.services.activity_log import log_activity
from app.services.scoping import get_scoped_or_404, scoped_select, tenant_clause

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bank-matches", tags=["bank-matches"])


@router.get("/suggestions/{account_id}")
async def get_match_suggestions(
    account_id: str,
    limit: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    result = await db.execute(
        scoped_select(BankMatch, tenant)
        .where(
            BankMatch.account_id == account.id,
            BankMatch.status == MatchStatus.SUGGESTED.value,
        )
        .order_by(BankMatch.score.desc())
        .limit(clamp(parse_int(limit, 20), 1, 100)),
    )
    suggestions = dump_all(BankMatchResponse, result.scalars().all())
    return {"data": suggestions, "count": len(suggestions)}


@router.post("/auto/{account_id}")
async def auto_match_account(
    account_id: str,
    limit: str | None = Query(None),
    min_score: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
    matcher: TransactionMatcher = Depends(get_matcher),
):
    account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
    score_floor = 0 if (min_score or "").strip() == "0" else parse_int(min_score, 70)
    results = await matching_service.auto_match(
        db, tenant, account, matcher,
        limit=clamp(parse_int(limit, 100), 1, 500),
        min_score=clamp(score_floor, 0, 100),
    )
    log_activity(db, tenant, "bank_auto_match_run", "bank_account", account.id, {
        key: results[key] for key in ("processed", "matched", "suggested")
    })
    await db.commit()
    return {
        "message": (
            f"Processed {results['processed']} transactions. "
            f"Matched: {results['matched']}, Suggested: {results['suggested']}"
        ),
        "data": results,
    }


@router.get("/stats")
async def get_match_stats(
    account_id: str | None = Query(None),
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    clauses = [tenant_clause(BankMatch, tenant)]
    if account_id:
        account = await get_scoped_or_404(db, BankAccount, account_id, tenant, "Bank account")
        clauses.append(BankMatch.account_id == account.id)

    by_status = await db.execute(
        select(BankMatch.status, func.count()).where(*clauses).group_by(BankMatch.status),
    )
    by_type = await db.execute(
        select(BankMatch.match_type, func.count()).where(*clauses).group_by(BankMatch.match_type),
    )
    average = await db.scalar(select(func.avg(BankMatch.score)).where(*clauses))
    status_counts = dict(by_status.all())
    return {
        "data": {
            "total": sum(status_counts.values()),
            "by_status": status_counts,
            "by_type": dict(by_type.all()),
            "average_score": round(average or 0.0, 2),
        },
    }


@router.post("/split", status_code=status.HTTP_201_CREATED)
async def create_split_match(
    body: SplitMatchCreate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    tx = await get_scoped_or_404(db, BankTransaction, body.bank_transaction_id, tenant, "Transaction")
    match = await matching_service.create_split_match(
        db, tenant, tx,
        [(str(line.ledger_entry_id), line.amount) for line in body.splits],
    )
    await db.flush()
    log_activity(db, tenant, "bank_split_match_created", "bank_match", match.id, {
        "bank_transaction_id": str(tx.id), "parts": len(body.splits),
    })
    await db.commit()
    return {
        "message": "Split match created successfully",
        "data": dump(BankMatchResponse, match),
    }


@router.post("/{match_id}/confirm")
async def confirm_match(
    match_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    match = await get_scoped_or_404(db, BankMatch, match_id, tenant, "Match")
    await matching_service.confirm_match(db, match, tenant)
    log_activity(db, tenant, "bank_match_confirmed", "bank_match", match.id)
    await db.commit()
    return {"message": "Match confirmed successfully", "data": dump(BankMatchResponse, match)}


@router.post("/{match_id}/reject")
async def reject_match(
    match_id: str,
    body: MatchReject | None = None,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    match = await get_scoped_or_404(db, BankMatch, match_id, tenant, "Match")
    reason = body.reason if body else None
    matching_service.reject_match(match, tenant, reason)
    log_activity(db, tenant, "bank_match_rejected", "bank_match", match.id, {"reason": reason})
    await db.commit()
    return {"message": "Match rejected successfully", "data": dump(BankMatchResponse, match)}


@router.post("/{match_id}/unmatch")
async def unmatch(
    match_id: str,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    match = await get_scoped_or_404(db, BankMatch, match_id, tenant, "Match")
    await matching_service.unmatch(db, match, tenant)
    log_activity(db, tenant, "bank_match_unmatched", "bank_match", match.id)
    await db.commit()
    return {"message": "Transaction unmatched successfully", "data": dump(BankMatchResponse, match)}
