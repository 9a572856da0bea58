"""Match Rules — tests for condition validation and AND-semantics evaluation."""

from app.core.match_rules import (
    rule_applies_to_account, rule_matches, validate_action, validate_conditions,
)

TX = {"description": "STC Monthly Bill", "reference": "INV-88", "amount": 250.0, "type": "debit"}


def test_empty_conditions_rejected():
    assert validate_conditions([]) == ["At least one condition is required"]
    assert validate_conditions(None) == ["At least one condition is required"]


def test_unknown_field_and_operator_rejected():
    errors = validate_conditions([
        {"field": "iban", "operator": "equals", "value": "x"},
        {"field": "amount", "operator": "contains", "value": "1"},
    ])
    assert errors == [
        "Condition 1: unknown field 'iban'",
        "Condition 2: operator 'contains' not valid for amount",
    ]


def test_between_requires_value2():
    errors = validate_conditions([{"field": "amount", "operator": "between", "value": 1}])
    assert errors == ["Condition 1: between requires numeric value2"]


def test_text_comparisons_case_insensitive():
    assert rule_matches([{"field": "description", "operator": "contains", "value": "stc"}], TX)
    assert rule_matches([{"field": "reference", "operator": "starts_with", "value": "inv"}], TX)


def test_all_conditions_must_hold():
    conditions = [
        {"field": "description", "operator": "contains", "value": "stc"},
        {"field": "amount", "operator": "greater_than", "value": 300},
    ]
    assert not rule_matches(conditions, TX)


def test_amount_between():
    cond = [{"field": "amount", "operator": "between", "value": 200, "value2": 300}]
    assert rule_matches(cond, TX)


def test_no_conditions_never_match():
    assert not rule_matches([], TX)


def test_validate_action():
    assert validate_action({"type": "flag"}) == []
    assert validate_action({"type": "categorize"}) == ["Categorize action requires a category"]
    assert validate_action({"type": "delete"})[0].startswith("Action type must be one of")


def test_rule_applies_to_account():
    assert rule_applies_to_account([], "acc-1")
    assert rule_applies_to_account(None, "acc-1")
    assert rule_applies_to_account(["acc-1"], "acc-1")
    assert not rule_applies_to_account(["acc-2"], "acc-1")
