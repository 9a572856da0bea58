"""Reconciliation Math — running balance and difference for a reconciliation.

Invariants:
    - closing = opening + cleared credits - cleared debits
    - difference = statement balance - closing
    - All monetary outputs rounded to 2 decimals
    - A reconciliation balances when |difference| < BALANCE_TOLERANCE

Design Decisions:
    - Takes (amount, type) pairs, not ORM rows: callers pass whatever they loaded
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from app.core.domain_types import TransactionType

BALANCE_TOLERANCE = 0.01


@dataclass(frozen=True)
class ReconciliationTotals:
    cleared_credits: float
    cleared_debits: float
    closing_balance: float
    difference: float

    def as_dict(self) -> dict:
        return {
            "cleared_credits": self.cleared_credits,
            "cleared_debits": self.cleared_debits,
            "closing_balance": self.closing_balance,
            "difference": self.difference,
        }


def compute_totals(
    opening_balance: float, statement_balance: float,
    cleared: Iterable[tuple[float, str]],
) -> ReconciliationTotals:
    credits = 0.0
    debits = 0.0
    for amount, tx_type in cleared:
        if tx_type == TransactionType.CREDIT.value:
            credits += amount
        else:
            debits += amount
    closing = opening_balance + credits - debits
    return ReconciliationTotals(
        cleared_credits=round(credits, 2),
        cleared_debits=round(debits, 2),
        closing_balance=round(closing, 2),
        difference=round(statement_balance - closing, 2),
    )


def is_balanced(difference: float) -> bool:
    return abs(difference) < BALANCE_TOLERANCE


def next_start_date(
    last_completed_end: date | None, earliest_transaction: date | None,
    end_date: date,
) -> date:
    """Period starts the day after the last completed reconciliation."""
    if last_completed_end:
        return last_completed_end + timedelta(days=1)
    return earliest_transaction or end_date


def signed_amount(amount: float, tx_type: str) -> float:
    return amount if tx_type == TransactionType.CREDIT.value else -amount


def rate(part: int, total: int) -> int:
    """Whole-number percentage, 0 when total is 0."""
    return round(part / total * 100) if total else 0
