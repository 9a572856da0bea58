"""Currency Conversion — resolve a stored manual rate and convert an amount.

Invariants:
    - Same-currency conversion always uses rate 1.0
    - A direct rate wins over an inverted one; the latest effective_date <= on_date wins
    - converted_amount is rounded to 2 decimals, the rate is kept at full precision
    - Returns None when no usable rate exists (caller maps to a 400)
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class StoredRate:
    base_currency: str
    target_currency: str
    rate: float
    effective_date: date


def resolve_rate(
    rates: list[StoredRate], from_currency: str, to_currency: str, on_date: date,
) -> float | None:
    if from_currency == to_currency:
        return 1.0
    usable = [r for r in rates if r.effective_date <= on_date and r.rate > 0]

    direct = [
        r for r in usable
        if r.base_currency == from_currency and r.target_currency == to_currency
    ]
    if direct:
        return max(direct, key=lambda r: r.effective_date).rate

    inverse = [
        r for r in usable
        if r.base_currency == to_currency and r.target_currency == from_currency
    ]
    if inverse:
        return 1 / max(inverse, key=lambda r: r.effective_date).rate
    return None


def convert(amount: float, rate: float) -> float:
    return round(amount * rate, 2)


def latest_by_target(rates: list[StoredRate], base_currency: str) -> dict[str, StoredRate]:
    """Latest rate per target currency for one base."""
    latest: dict[str, StoredRate] = {}
    for r in rates:
        if r.base_currency != base_currency:
            continue
        current = latest.get(r.target_currency)
        if current is None or r.effective_date > current.effective_date:
            latest[r.target_currency] = r
    return latest
