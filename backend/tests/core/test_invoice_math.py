"""Invoice Math — tests for due dates, totals and payment application.

Tests cover:
    - Discount applied before VAT, fixed discount capped at subtotal
    - Retainer capped at the total, balance never negative
    - Payment terms including end-of-month
    - Overdue detection only for open statuses
"""

from datetime import date

from app.core.invoice_math import (
    balance_due, compute_due_date, compute_totals, is_overdue, status_after_payment,
)

ITEMS = [
    {"description": "Consultation", "quantity": 2, "unit_price": 500},
    {"description": "Filing", "quantity": 1, "unit_price": 250},
]


def test_percentage_discount_applied_before_vat():
    totals = compute_totals(ITEMS, 15, "percentage", 10)
    assert totals.subtotal == 1250.0
    assert totals.discount_amount == 125.0
    assert totals.taxable_amount == 1125.0
    assert totals.vat_amount == 168.75
    assert totals.total_amount == 1293.75
    assert totals.balance_due == 1293.75


def test_fixed_discount_capped_at_subtotal():
    totals = compute_totals(ITEMS, 15, "fixed", 5000)
    assert totals.discount_amount == 1250.0
    assert totals.total_amount == 0.0


def test_retainer_capped_at_total():
    totals = compute_totals(ITEMS, 0, retainer_applied=9999)
    assert totals.retainer_applied == 1250.0
    assert totals.balance_due == 0.0


def test_amount_paid_reduces_balance():
    totals = compute_totals(ITEMS, 0, amount_paid=250)
    assert totals.balance_due == 1000.0


def test_balance_due_never_negative():
    assert balance_due(100.0, 150.0, 0.0) == 0.0


def test_due_date_terms():
    issued = date(2024, 2, 10)
    assert compute_due_date(issued, "net_30") == date(2024, 3, 11)
    assert compute_due_date(issued, "due_on_receipt") == issued
    assert compute_due_date(issued, "eom") == date(2024, 2, 29)
    assert compute_due_date(issued, None) == date(2024, 3, 11)


def test_status_after_payment():
    assert status_after_payment(0.0) == "paid"
    assert status_after_payment(-1.0) == "paid"
    assert status_after_payment(10.0) == "partial"


def test_is_overdue_only_for_open_statuses():
    today = date(2024, 3, 1)
    past = date(2024, 2, 1)
    assert is_overdue("sent", past, today)
    assert is_overdue("partial", past, today)
    assert not is_overdue("draft", past, today)
    assert not is_overdue("paid", past, today)
    assert not is_overdue("sent", today, today)
    assert not is_overdue("sent", None, today)
