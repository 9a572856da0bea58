"""Matching Service — auto-match, confirm, reject, unmatch and split bank matches.

Invariants:
    - Match rules run before the matcher; the first active rule (priority desc) that matches wins
    - Confirmed matches require an exact amount; anything else is at most a suggestion
    - A ledger entry is used by at most one match per auto-match run
    - Matched flags on both sides change only together with a confirmed match

Design Decisions:
    - The matcher is a Protocol collaborator (core.boundary_protocols): scoring heuristics
      live outside this service, which only orchestrates and persists
    - Per-transaction matcher failures (exceptions, unknown entry ids) are reported in
      results["errors"], the run continues
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.boundary_protocols import MatchCandidate, TransactionMatcher
from app.core.domain_types import MatchStatus, MatchType
from app.core.errors import BusinessRuleError
from app.core.match_rules import rule_applies_to_account, rule_matches
from app.core.tenant import TenantContext
from app.models.bank_account import BankAccount
from app.models.bank_match import BankMatch
from app.models.bank_transaction import BankTransaction
from app.models.ledger_entry import LedgerEntry
from app.models.match_rule import MatchRule
from app.services.scoping import stamp_tenant, tenant_clause

logger = logging.getLogger(__name__)

SUGGESTION_FLOOR = 50.0


def _tx_candidate(tx: BankTransaction) -> MatchCandidate:
    return MatchCandidate(
        id=str(tx.id), date=tx.transaction_date, amount=tx.amount,
        type=tx.type, description=tx.description, reference=tx.reference,
    )


def _entry_candidate(entry: LedgerEntry) -> MatchCandidate:
    return MatchCandidate(
        id=str(entry.id), date=entry.entry_date, amount=entry.amount,
        type=entry.type, description=entry.description, reference=entry.reference,
    )


def _tx_payload(tx: BankTransaction) -> dict:
    return {
        "description": tx.description, "reference": tx.reference,
        "amount": tx.amount, "type": tx.type,
    }


def _apply_rule(rule: MatchRule, tx: BankTransaction) -> None:
    action = rule.action or {}
    if action.get("type") == "categorize":
        tx.category = action.get("category")
    elif action.get("type") == "flag":
        tx.is_flagged = True
    rule.times_applied = (rule.times_applied or 0) + 1


async def active_rules(db: AsyncSession, tenant: TenantContext, account_id: str) -> list[MatchRule]:
    result = await db.execute(
        select(MatchRule)
        .where(tenant_clause(MatchRule, tenant), MatchRule.is_active.is_(True))
        .order_by(MatchRule.priority.desc(), MatchRule.created_at),
    )
    return [
        r for r in result.scalars().all()
        if rule_applies_to_account(r.bank_account_ids, account_id)
    ]


async def auto_match(
    db: AsyncSession,
    tenant: TenantContext,
    account: BankAccount,
    matcher: TransactionMatcher,
    limit: int,
    min_score: int,
) -> dict:
    pending = select(BankMatch.bank_transaction_id).where(
        BankMatch.status == MatchStatus.SUGGESTED.value,
    )
    tx_result = await db.execute(
        select(BankTransaction)
        .where(
            BankTransaction.account_id == account.id,
            BankTransaction.is_matched.is_(False),
            BankTransaction.id.not_in(pending),
        )
        .order_by(BankTransaction.transaction_date)
        .limit(limit),
    )
    transactions = list(tx_result.scalars().all())

    entry_result = await db.execute(
        select(LedgerEntry).where(
            tenant_clause(LedgerEntry, tenant),
            LedgerEntry.is_matched.is_(False),
            or_(LedgerEntry.account_id == account.id, LedgerEntry.account_id.is_(None)),
        ),
    )
    entries = {str(e.id): e for e in entry_result.scalars().all()}
    rules = await active_rules(db, tenant, str(account.id))

    results = {"processed": 0, "matched": 0, "suggested": 0, "errors": []}
    used: set[str] = set()
    for tx in transactions:
        results["processed"] += 1
        rule = next((r for r in rules if rule_matches(r.conditions, _tx_payload(tx))), None)
        if rule:
            _apply_rule(rule, tx)
        force_match = bool(rule and (rule.action or {}).get("type") == "auto_match")

        available = [_entry_candidate(e) for k, e in entries.items() if k not in used]
        try:
            scored = matcher.candidates(_tx_candidate(tx), available)
        except Exception as e:
            logger.warning(
                f"Matcher failed for transaction {tx.id}: {e}",
                extra=tenant.log_extra(), exc_info=True,
            )
            results["errors"].append({"transaction_id": str(tx.id), "error": str(e)})
            continue
        known = [s for s in scored if s.entry_id in entries and s.entry_id not in used]
        if len(known) < len(scored):
            results["errors"].append({
                "transaction_id": str(tx.id),
                "error": "Matcher returned unknown or already used ledger entries",
            })
        if not known:
            continue

        best = known[0]
        entry = entries[best.entry_id]
        if best.amount_exact and (best.score >= min_score or force_match):
            status = MatchStatus.CONFIRMED.value
            tx.is_matched = True
            entry.is_matched = True
            results["matched"] += 1
        elif best.score >= SUGGESTION_FLOOR:
            status = MatchStatus.SUGGESTED.value
            results["suggested"] += 1
        else:
            continue
        used.add(best.entry_id)
        db.add(BankMatch(
            **stamp_tenant(tenant),
            account_id=account.id,
            bank_transaction_id=tx.id,
            ledger_entry_id=entry.id,
            match_type=(MatchType.RULE.value if rule else MatchType.AUTO.value),
            status=status,
            score=best.score,
            reasons=list(best.reasons),
            rule_id=rule.id if rule else None,
            decided_by=("system" if status == MatchStatus.CONFIRMED.value else None),
            decided_at=(
                datetime.now(timezone.utc) if status == MatchStatus.CONFIRMED.value else None
            ),
        ))
    return results


async def _match_sides(
    db: AsyncSession, match: BankMatch,
) -> tuple[BankTransaction, list[LedgerEntry]]:
    tx = await db.get(BankTransaction, match.bank_transaction_id)
    entry_ids = (
        [s["ledger_entry_id"] for s in match.splits]
        if match.splits else [match.ledger_entry_id]
    )
    entries = []
    for entry_id in entry_ids:
        if entry_id is None:
            continue
        entry = await db.get(LedgerEntry, UUID(str(entry_id)))
        if entry is not None:
            entries.append(entry)
    return tx, entries


async def confirm_match(db: AsyncSession, match: BankMatch, tenant: TenantContext) -> None:
    if match.status != MatchStatus.SUGGESTED.value:
        raise BusinessRuleError(f"Only suggested matches can be confirmed (status: {match.status})")
    tx, entries = await _match_sides(db, match)
    if tx.is_matched or any(e.is_matched for e in entries):
        raise BusinessRuleError("Transaction or ledger entry is already matched")
    tx.is_matched = True
    for entry in entries:
        entry.is_matched = True
    match.status = MatchStatus.CONFIRMED.value
    match.decided_by = tenant.user_id
    match.decided_at = datetime.now(timezone.utc)


def reject_match(match: BankMatch, tenant: TenantContext, reason: str | None) -> None:
    if match.status != MatchStatus.SUGGESTED.value:
        raise BusinessRuleError(f"Only suggested matches can be rejected (status: {match.status})")
    match.status = MatchStatus.REJECTED.value
    match.rejection_reason = reason
    match.decided_by = tenant.user_id
    match.decided_at = datetime.now(timezone.utc)


async def unmatch(db: AsyncSession, match: BankMatch, tenant: TenantContext) -> None:
    if match.status != MatchStatus.CONFIRMED.value:
        raise BusinessRuleError("Only confirmed matches can be unmatched")
    tx, entries = await _match_sides(db, match)
    if tx.is_reconciled:
        raise BusinessRuleError("Cannot unmatch a reconciled transaction")
    tx.is_matched = False
    for entry in entries:
        entry.is_matched = False
    match.status = MatchStatus.UNMATCHED.value
    match.decided_by = tenant.user_id
    match.decided_at = datetime.now(timezone.utc)


async def create_split_match(
    db: AsyncSession, tenant: TenantContext, tx: BankTransaction,
    splits: list[tuple[str, float]],
) -> BankMatch:
    """One bank transaction against several ledger entries whose amounts add up."""
    if tx.is_matched:
        raise BusinessRuleError("Transaction is already matched")
    total = round(sum(amount for _, amount in splits), 2)
    if abs(total - tx.amount) >= 0.01:
        raise BusinessRuleError(
            f"Split amounts ({total}) must equal the transaction amount ({tx.amount})",
        )
    entry_ids = [entry_id for entry_id, _ in splits]
    if len(set(entry_ids)) != len(entry_ids):
        raise BusinessRuleError("Each ledger entry may appear only once in a split")

    result = await db.execute(
        select(LedgerEntry).where(
            tenant_clause(LedgerEntry, tenant),
            LedgerEntry.id.in_([UUID(i) for i in entry_ids]),
        ),
    )
    entries = list(result.scalars().all())
    if len(entries) != len(entry_ids):
        raise BusinessRuleError("One or more ledger entries were not found")
    if any(e.is_matched for e in entries):
        raise BusinessRuleError("One or more ledger entries are already matched")

    tx.is_matched = True
    for entry in entries:
        entry.is_matched = True
    match = BankMatch(
        **stamp_tenant(tenant),
        account_id=tx.account_id,
        bank_transaction_id=tx.id,
        match_type=MatchType.SPLIT.value,
        status=MatchStatus.CONFIRMED.value,
        score=100.0,
        reasons=["manual_split"],
        splits=[{"ledger_entry_id": i, "amount": round(a, 2)} for i, a in splits],
        decided_by=tenant.user_id,
        decided_at=datetime.now(timezone.utc),
    )
    db.add(match)
    return match
