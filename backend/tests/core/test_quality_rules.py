"""Quality Rules — tests for inspection evaluation and corrective action text."""

from app.core.quality_rules import (
    action_text_error, evaluate_inspection, needs_corrective_action,
    pass_fail_rates, readings_from_template,
)


def _readings(*statuses):
    return [{"parameter": f"p{i}", "status": s} for i, s in enumerate(statuses)]


def test_all_accepted():
    assert evaluate_inspection(_readings("accepted", "accepted")) == {
        "status": "accepted", "accepted_qty": 2, "rejected_qty": 0,
    }


def test_all_rejected():
    assert evaluate_inspection(_readings("rejected"))["status"] == "rejected"


def test_mixed_is_partially_accepted():
    result = evaluate_inspection(_readings("accepted", "rejected", "pending"))
    assert result == {"status": "partially_accepted", "accepted_qty": 1, "rejected_qty": 1}


def test_nothing_decided_stays_pending():
    assert evaluate_inspection(_readings("pending"))["status"] == "pending"


def test_needs_corrective_action():
    assert needs_corrective_action("rejected")
    assert needs_corrective_action("partially_accepted")
    assert not needs_corrective_action("accepted")


def test_readings_from_template_start_pending():
    readings = readings_from_template([{"parameter": "Signature present", "min_value": 1}])
    assert readings == [{
        "parameter": "Signature present", "min_value": 1, "max_value": None,
        "acceptance_criteria": None, "value": None, "status": "pending",
    }]


def test_action_text_limits():
    assert action_text_error("Problem", "short") == "Problem must be between 10 and 5000 characters"
    assert action_text_error("Problem", "   padded   ") is not None
    assert action_text_error("Problem", None) is not None
    assert action_text_error("Action", "Re-file the missing exhibit") is None


def test_pass_fail_rates():
    assert pass_fail_rates(3, 1, 0) == (75.0, 25.0)
    assert pass_fail_rates(0, 0, 0) == (0.0, 0.0)
    assert pass_fail_rates(1, 1, 1) == (33.33, 33.33)
