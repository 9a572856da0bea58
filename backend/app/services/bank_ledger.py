"""Bank Ledger Service — balance movements and statement imports for one account.

Invariants:
    - current_balance moves by +amount for credits and -amount for debits, nothing else writes it
    - Imported rows that duplicate an existing row (±1 day, same amount/type) are skipped
    - All rows of one import share an import_batch_id
"""

import logging
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.reconciliation_math import signed_amount
from app.core.statement_parsing import ParseResult, is_duplicate
from app.core.tenant import TenantContext
from app.models.bank_account import BankAccount
from app.models.bank_transaction import BankTransaction
from app.services.scoping import stamp_tenant

logger = logging.getLogger(__name__)


def apply_to_balance(account: BankAccount, amount: float, tx_type: str) -> None:
    account.current_balance = round(
        account.current_balance + signed_amount(amount, tx_type), 2,
    )


async def import_statement(
    db: AsyncSession, tenant: TenantContext, account: BankAccount,
    parsed: ParseResult, source: str,
) -> dict:
    """Store unique parsed rows; returns counts for the response."""
    batch_id = str(uuid4())
    if not parsed.transactions:
        return {
            "imported": 0, "duplicates": 0,
            "errors": parsed.errors, "batch_id": batch_id,
        }

    low = min(t.date for t in parsed.transactions) - timedelta(days=1)
    high = max(t.date for t in parsed.transactions) + timedelta(days=1)
    result = await db.execute(
        select(
            BankTransaction.transaction_date, BankTransaction.amount, BankTransaction.type,
        ).where(
            BankTransaction.account_id == account.id,
            BankTransaction.transaction_date >= low,
            BankTransaction.transaction_date <= high,
        ),
    )
    existing = [tuple(row) for row in result.all()]

    imported = 0
    duplicates = 0
    for parsed_tx in parsed.transactions:
        if is_duplicate(parsed_tx, existing):
            duplicates += 1
            continue
        db.add(BankTransaction(
            **stamp_tenant(tenant),
            account_id=account.id,
            transaction_date=parsed_tx.date,
            amount=parsed_tx.amount,
            type=parsed_tx.type,
            description=parsed_tx.description[:500],
            reference=parsed_tx.reference[:120],
            source=source,
            import_batch_id=batch_id,
        ))
        apply_to_balance(account, parsed_tx.amount, parsed_tx.type)
        imported += 1

    logger.info(
        f"Statement import: {imported} imported, {duplicates} duplicates",
        extra={**tenant.log_extra(), "entity_id": str(account.id), "count": imported},
    )
    return {
        "imported": imported, "duplicates": duplicates,
        "errors": parsed.errors, "batch_id": batch_id,
    }
