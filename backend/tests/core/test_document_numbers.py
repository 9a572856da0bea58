"""Document Numbers — tests for number formatting and sequence derivation."""

from datetime import date

from app.core.document_numbers import (
    format_number, invoice_period, next_sequence, year_period,
)


def test_format_number_with_period():
    assert format_number("INV", 7, "202401") == "INV-202401-0007"


def test_format_number_without_period():
    assert format_number("EMP", 12) == "EMP-0012"


def test_periods():
    assert invoice_period(date(2024, 1, 31)) == "202401"
    assert year_period(date(2024, 1, 31)) == "2024"


def test_next_sequence():
    assert next_sequence("INV-202401-0041") == 42
    assert next_sequence(None) == 1
    assert next_sequence("INV-202401-XYZ") == 1
