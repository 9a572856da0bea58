"""Reconciliation Math — tests for closing balance, difference and period start."""

from datetime import date

from app.core.reconciliation_math import (
    compute_totals, is_balanced, next_start_date, rate, signed_amount,
)


def test_compute_totals_balances_against_statement():
    totals = compute_totals(1000.0, 1400.0, [(500.0, "credit"), (100.0, "debit")])
    assert totals.cleared_credits == 500.0
    assert totals.cleared_debits == 100.0
    assert totals.closing_balance == 1400.0
    assert totals.difference == 0.0
    assert is_balanced(totals.difference)


def test_compute_totals_reports_difference():
    totals = compute_totals(1000.0, 1500.0, [(250.25, "credit")])
    assert totals.closing_balance == 1250.25
    assert totals.difference == 249.75
    assert not is_balanced(totals.difference)


def test_compute_totals_with_nothing_cleared():
    totals = compute_totals(200.0, 200.0, [])
    assert totals.as_dict() == {
        "cleared_credits": 0.0, "cleared_debits": 0.0,
        "closing_balance": 200.0, "difference": 0.0,
    }


def test_is_balanced_tolerance():
    assert is_balanced(0.009)
    assert not is_balanced(0.01)


def test_next_start_date_follows_last_completed():
    assert next_start_date(date(2024, 1, 31), date(2023, 12, 1), date(2024, 2, 29)) == date(2024, 2, 1)


def test_next_start_date_without_history():
    assert next_start_date(None, date(2024, 1, 5), date(2024, 1, 31)) == date(2024, 1, 5)
    assert next_start_date(None, None, date(2024, 1, 31)) == date(2024, 1, 31)


def test_signed_amount_and_rate():
    assert signed_amount(10.0, "debit") == -10.0
    assert signed_amount(10.0, "credit") == 10.0
    assert rate(1, 3) == 33
    assert rate(1, 0) == 0
