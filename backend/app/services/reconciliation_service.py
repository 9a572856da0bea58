"""Reconciliation Service — recompute totals and account status for reconciliations.

Invariants:
    - Totals always recomputed from the cleared rows in the DB (never incrementally)
    - Rates are whole-number percentages
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.reconciliation_math import ReconciliationTotals, compute_totals, rate
from app.models.bank_account import BankAccount
from app.models.bank_reconciliation import BankReconciliation
from app.models.bank_transaction import BankTransaction


async def recompute(db: AsyncSession, reconciliation: BankReconciliation) -> ReconciliationTotals:
    await db.flush()
    result = await db.execute(
        select(BankTransaction.amount, BankTransaction.type).where(
            BankTransaction.reconciliation_id == reconciliation.id,
        ),
    )
    totals = compute_totals(
        reconciliation.opening_balance, reconciliation.statement_balance,
        [tuple(row) for row in result.all()],
    )
    reconciliation.cleared_credits = totals.cleared_credits
    reconciliation.cleared_debits = totals.cleared_debits
    reconciliation.closing_balance = totals.closing_balance
    reconciliation.difference = totals.difference
    return totals


async def account_status(db: AsyncSession, account: BankAccount) -> dict:
    base = BankTransaction.account_id == account.id

    async def _count(*clauses) -> int:
        return await db.scalar(
            select(func.count()).select_from(BankTransaction).where(base, *clauses),
        ) or 0

    total = await _count()
    matched = await _count(BankTransaction.is_matched.is_(True))
    reconciled = await _count(BankTransaction.is_reconciled.is_(True))

    recent = await db.execute(
        select(BankTransaction)
        .where(base, BankTransaction.is_matched.is_(False))
        .order_by(BankTransaction.transaction_date.desc())
        .limit(10),
    )
    last = await db.execute(
        select(BankReconciliation)
        .where(
            BankReconciliation.account_id == account.id,
            BankReconciliation.status == "completed",
        )
        .order_by(BankReconciliation.end_date.desc())
        .limit(1),
    )
    return {
        "total_transactions": total,
        "matched_transactions": matched,
        "reconciled_transactions": reconciled,
        "unmatched_count": total - matched,
        "match_rate": rate(matched, total),
        "reconciliation_rate": rate(reconciled, total),
        "recent_unmatched": list(recent.scalars().all()),
        "last_reconciliation": last.scalar_one_or_none(),
    }
