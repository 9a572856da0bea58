"""Referral Fees — fee agreement validation and fee calculation.

Invariants:
    - fee_percentage in 0..100, fee_fixed_amount >= 0
    - Tiers: min_value >= 0, max_value > min_value or None (open-ended), percentage 0..100
    - calculate_fee never returns a negative amount
    - Without a fee agreement the fee is 0
"""

from app.core.domain_types import FeeType
from app.core.security import parse_float


def validate_fee_terms(
    fee_percentage=None, fee_fixed_amount=None, fee_tiers=None,
) -> list[str]:
    errors = []
    if fee_percentage is not None:
        pct = parse_float(fee_percentage)
        if pct is None or not 0 <= pct <= 100:
            errors.append("Fee percentage must be between 0 and 100")
    if fee_fixed_amount is not None:
        fixed = parse_float(fee_fixed_amount)
        if fixed is None or fixed < 0:
            errors.append("Fixed fee amount must be a non-negative number")
    if fee_tiers is not None:
        if not isinstance(fee_tiers, list):
            return errors + ["Fee tiers must be an array"]
        for i, tier in enumerate(fee_tiers, start=1):
            errors.extend(_validate_tier(i, tier))
    return errors


def _validate_tier(index: int, tier) -> list[str]:
    if not isinstance(tier, dict):
        return [f"Tier {index} must be an object"]
    errors = []
    low = parse_float(tier.get("min_value"))
    high = tier.get("max_value")
    pct = parse_float(tier.get("percentage"))
    if low is None or low < 0:
        errors.append(f"Tier {index}: min_value must be a non-negative number")
    if high is not None:
        high_f = parse_float(high)
        if high_f is None or (low is not None and high_f <= low):
            errors.append(f"Tier {index}: max_value must be greater than min_value")
    if pct is None or not 0 <= pct <= 100:
        errors.append(f"Tier {index}: percentage must be between 0 and 100")
    return errors


def _tier_percentage(tiers: list[dict], case_value: float) -> float:
    for tier in sorted(tiers, key=lambda t: float(t.get("min_value", 0))):
        low = float(tier.get("min_value", 0))
        high = tier.get("max_value")
        if case_value >= low and (high is None or case_value <= float(high)):
            return float(tier.get("percentage", 0))
    return 0.0


def calculate_fee(
    case_value: float,
    has_fee_agreement: bool,
    fee_type: str | None,
    fee_percentage: float | None = None,
    fee_fixed_amount: float | None = None,
    fee_tiers: list[dict] | None = None,
) -> float:
    if not has_fee_agreement or not fee_type or fee_type == FeeType.NONE.value:
        return 0.0
    if fee_type == FeeType.PERCENTAGE.value:
        return round(case_value * (fee_percentage or 0) / 100, 2)
    if fee_type == FeeType.FIXED.value:
        return round(max(fee_fixed_amount or 0, 0), 2)
    if fee_type == FeeType.TIERED.value:
        return round(case_value * _tier_percentage(fee_tiers or [], case_value) / 100, 2)
    return 0.0
