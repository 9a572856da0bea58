"""Currency Conversion — tests for rate resolution and conversion rounding."""

from datetime import date

from app.core.currency import StoredRate, convert, latest_by_target, resolve_rate

RATES = [
    StoredRate("USD", "SAR", 3.75, date(2024, 1, 1)),
    StoredRate("USD", "SAR", 3.76, date(2024, 2, 1)),
    StoredRate("SAR", "EUR", 0.25, date(2024, 1, 1)),
    StoredRate("EUR", "SAR", 4.1, date(2024, 1, 1)),
]


def test_same_currency_is_identity():
    assert resolve_rate([], "SAR", "SAR", date(2024, 1, 1)) == 1.0


def test_latest_rate_on_or_before_date_wins():
    assert resolve_rate(RATES, "USD", "SAR", date(2024, 1, 15)) == 3.75
    assert resolve_rate(RATES, "USD", "SAR", date(2024, 3, 1)) == 3.76


def test_future_rates_ignored():
    assert resolve_rate(RATES, "USD", "SAR", date(2023, 12, 31)) is None


def test_direct_rate_beats_inverse():
    assert resolve_rate(RATES, "EUR", "SAR", date(2024, 2, 1)) == 4.1


def test_inverse_rate_used_when_no_direct():
    assert resolve_rate(RATES, "SAR", "USD", date(2024, 3, 1)) == 1 / 3.76


def test_missing_rate_returns_none():
    assert resolve_rate(RATES, "GBP", "SAR", date(2024, 3, 1)) is None


def test_convert_rounds_to_cents():
    assert convert(100, 3.756) == 375.6
    assert convert(10, 1 / 3) == 3.33


def test_latest_by_target():
    latest = latest_by_target(RATES, "USD")
    assert list(latest) == ["SAR"]
    assert latest["SAR"].rate == 3.76
