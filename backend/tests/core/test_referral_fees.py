"""Referral Fees — tests for fee term validation and fee calculation."""

from app.core.referral_fees import calculate_fee, validate_fee_terms

TIERS = [
    {"min_value": 100000, "max_value": None, "percentage": 5},
    {"min_value": 0, "max_value": 99999.99, "percentage": 10},
]


def test_no_agreement_means_no_fee():
    assert calculate_fee(50000, False, "percentage", 10) == 0.0
    assert calculate_fee(50000, True, "none") == 0.0


def test_percentage_fee():
    assert calculate_fee(50000, True, "percentage", fee_percentage=7.5) == 3750.0


def test_fixed_fee_ignores_case_value():
    assert calculate_fee(1, True, "fixed", fee_fixed_amount=2500) == 2500.0


def test_tiered_fee_picks_matching_tier():
    assert calculate_fee(50000, True, "tiered", fee_tiers=TIERS) == 5000.0
    assert calculate_fee(200000, True, "tiered", fee_tiers=TIERS) == 10000.0


def test_tiered_fee_without_matching_tier_is_zero():
    assert calculate_fee(50, True, "tiered", fee_tiers=[{"min_value": 100, "percentage": 5}]) == 0.0


def test_validate_fee_terms_accepts_valid_terms():
    assert validate_fee_terms(10, 0, TIERS) == []


def test_validate_fee_terms_collects_errors():
    errors = validate_fee_terms(
        150, -5, [{"min_value": 100, "max_value": 50, "percentage": 5}],
    )
    assert "Fee percentage must be between 0 and 100" in errors
    assert "Fixed fee amount must be a non-negative number" in errors
    assert "Tier 1: max_value must be greater than min_value" in errors


def test_validate_fee_terms_rejects_non_list_tiers():
    assert validate_fee_terms(fee_tiers="bad") == ["Fee tiers must be an array"]
