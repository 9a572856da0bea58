"""Match Rules — validation and evaluation of user-defined bank transaction rules.

Invariants:
    - A rule matches only when ALL of its conditions hold (AND semantics)
    - Unknown fields/operators are rejected at write time, never silently ignored at run time
    - Text comparisons are case-insensitive
"""

from typing import Any

from app.core.security import parse_float

CONDITION_FIELDS = ("description", "reference", "amount", "type")
TEXT_OPERATORS = ("equals", "contains", "starts_with", "ends_with")
NUMERIC_OPERATORS = ("equals", "greater_than", "less_than", "between")
ACTION_TYPES = ("categorize", "auto_match", "flag")


def validate_conditions(conditions: Any) -> list[str]:
    """Return a list of human-readable problems; empty means valid."""
    if not isinstance(conditions, list) or not conditions:
        return ["At least one condition is required"]
    errors = []
    for i, cond in enumerate(conditions):
        if not isinstance(cond, dict):
            errors.append(f"Condition {i + 1} must be an object")
            continue
        field = cond.get("field")
        operator = cond.get("operator")
        if field not in CONDITION_FIELDS:
            errors.append(f"Condition {i + 1}: unknown field '{field}'")
            continue
        allowed = NUMERIC_OPERATORS if field == "amount" else TEXT_OPERATORS
        if operator not in allowed:
            errors.append(f"Condition {i + 1}: operator '{operator}' not valid for {field}")
            continue
        if field == "amount":
            if parse_float(cond.get("value")) is None:
                errors.append(f"Condition {i + 1}: value must be numeric")
            elif operator == "between" and parse_float(cond.get("value2")) is None:
                errors.append(f"Condition {i + 1}: between requires numeric value2")
        elif not isinstance(cond.get("value"), str) or not cond["value"]:
            errors.append(f"Condition {i + 1}: value is required")
    return errors


def validate_action(action: Any) -> list[str]:
    if not isinstance(action, dict) or action.get("type") not in ACTION_TYPES:
        return [f"Action type must be one of: {', '.join(ACTION_TYPES)}"]
    if action["type"] == "categorize" and not action.get("category"):
        return ["Categorize action requires a category"]
    return []


def _condition_holds(cond: dict, transaction: dict) -> bool:
    field = cond["field"]
    operator = cond["operator"]
    if field == "amount":
        amount = parse_float(transaction.get("amount"))
        value = parse_float(cond.get("value"))
        if amount is None or value is None:
            return False
        if operator == "equals":
            return abs(amount - value) < 0.005
        if operator == "greater_than":
            return amount > value
        if operator == "less_than":
            return amount < value
        upper = parse_float(cond.get("value2"))
        return upper is not None and value <= amount <= upper

    actual = str(transaction.get(field) or "").lower()
    expected = str(cond.get("value") or "").lower()
    if operator == "equals":
        return actual == expected
    if operator == "contains":
        return expected in actual
    if operator == "starts_with":
        return actual.startswith(expected)
    return actual.endswith(expected)


def rule_matches(conditions: list[dict], transaction: dict) -> bool:
    return bool(conditions) and all(_condition_holds(c, transaction) for c in conditions)


def rule_applies_to_account(bank_account_ids: list[str] | None, account_id: str) -> bool:
    """An empty account list means the rule applies to every account."""
    return not bank_account_ids or account_id in bank_account_ids
