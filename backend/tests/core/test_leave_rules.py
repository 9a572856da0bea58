"""Leave Rules — tests for entitlements, day counting and conflict detection.

Tests cover:
    - Annual entitlement rises to 30 days after five years of service
    - total_days is inclusive and rejects inverted ranges
    - Overlap (high), insufficient balance (critical), team coverage (medium/low)
"""

from datetime import date

import pytest

from app.core.leave_rules import (
    BookedLeave, detect_conflicts, entitlement_for, has_blocking_conflict,
    is_balance_tracked, total_days, years_of_service,
)


def _booking(request_id, employee_id, start, end, status="approved", name="Colleague"):
    return BookedLeave(request_id, employee_id, name, start, end, status)


def test_annual_entitlement_by_seniority():
    on = date(2024, 6, 1)
    assert entitlement_for("annual", date(2022, 1, 1), on) == 21
    assert entitlement_for("annual", date(2019, 1, 1), on) == 30
    assert entitlement_for("unpaid", date(2019, 1, 1), on) is None


def test_years_of_service_counts_anniversaries():
    assert years_of_service(date(2019, 6, 2), date(2024, 6, 1)) == 4
    assert years_of_service(date(2019, 6, 1), date(2024, 6, 1)) == 5


def test_total_days_inclusive():
    assert total_days(date(2024, 3, 1), date(2024, 3, 1)) == 1
    assert total_days(date(2024, 3, 1), date(2024, 3, 5)) == 5


def test_total_days_rejects_inverted_range():
    with pytest.raises(ValueError):
        total_days(date(2024, 3, 5), date(2024, 3, 1))


def test_unpaid_leave_not_balance_tracked():
    assert not is_balance_tracked("unpaid")
    assert is_balance_tracked("sick")


def test_overlap_with_own_active_request_is_high():
    own = [_booking("r1", "e1", date(2024, 3, 3), date(2024, 3, 6), status="submitted")]
    conflicts = detect_conflicts("e1", date(2024, 3, 1), date(2024, 3, 4), 4, 21, own, [])
    assert [c["type"] for c in conflicts] == ["overlap"]
    assert conflicts[0]["severity"] == "high"
    assert has_blocking_conflict(conflicts)


def test_overlap_ignores_excluded_and_inactive_requests():
    own = [
        _booking("r1", "e1", date(2024, 3, 1), date(2024, 3, 4), status="submitted"),
        _booking("r2", "e1", date(2024, 3, 1), date(2024, 3, 4), status="rejected"),
    ]
    conflicts = detect_conflicts(
        "e1", date(2024, 3, 1), date(2024, 3, 4), 4, 21, own, [], exclude_request_id="r1",
    )
    assert conflicts == []


def test_insufficient_balance_is_critical():
    conflicts = detect_conflicts("e1", date(2024, 3, 1), date(2024, 3, 10), 10, 5, [], [])
    assert conflicts[0]["type"] == "insufficient_balance"
    assert conflicts[0]["severity"] == "critical"


def test_unlimited_balance_never_insufficient():
    assert detect_conflicts("e1", date(2024, 3, 1), date(2024, 5, 1), 62, None, [], []) == []


def test_team_coverage_severity_scales_with_colleagues():
    team = [_booking("t1", "e2", date(2024, 3, 2), date(2024, 3, 3), name="Ali")]
    low = detect_conflicts("e1", date(2024, 3, 1), date(2024, 3, 4), 4, 21, [], team)
    assert low[0]["severity"] == "low"
    assert not has_blocking_conflict(low)

    team.append(_booking("t2", "e3", date(2024, 3, 4), date(2024, 3, 8), name="Huda"))
    medium = detect_conflicts("e1", date(2024, 3, 1), date(2024, 3, 4), 4, 21, [], team)
    assert medium[0]["severity"] == "medium"
    assert medium[0]["employees"] == ["Ali", "Huda"]
