"""Leave Rules — entitlements, day counting, conflict detection and status transitions.

Invariants:
    - total_days counts calendar days inclusive of both ends; end_date >= start_date
    - Unpaid leave has no balance: never deducted, never blocks on insufficiency
    - Conflicts with severity high/critical block submission; medium/low are advisory
    - Allowed transitions encoded once here; routes ask, never hardcode statuses
    - Expected return is the day after end_date; late_days never negative

Design Decisions:
    - Entitlements follow the Saudi labor law defaults (annual 21 -> 30 after 5 years of service)
    - Conflicts are plain dicts: returned verbatim to clients in the 400 details
"""

from dataclasses import dataclass
from datetime import date, timedelta

from app.core.domain_types import LeaveStatus, LeaveType

ENTITLEMENTS: dict[str, float | None] = {
    LeaveType.ANNUAL.value: 21,
    LeaveType.SICK.value: 30,
    LeaveType.HAJJ.value: 15,
    LeaveType.MARRIAGE.value: 5,
    LeaveType.BIRTH.value: 3,
    LeaveType.DEATH.value: 5,
    LeaveType.MATERNITY.value: 70,
    LeaveType.PATERNITY.value: 3,
    LeaveType.UNPAID.value: None,
}
SENIOR_ANNUAL_ENTITLEMENT = 30
SENIORITY_YEARS = 5

LEAVE_TYPE_LABELS = {
    LeaveType.ANNUAL.value: ("Annual Leave", "إجازة سنوية"),
    LeaveType.SICK.value: ("Sick Leave", "إجازة مرضية"),
    LeaveType.HAJJ.value: ("Hajj Leave", "إجازة حج"),
    LeaveType.MARRIAGE.value: ("Marriage Leave", "إجازة زواج"),
    LeaveType.BIRTH.value: ("Birth Leave", "إجازة ولادة مولود"),
    LeaveType.DEATH.value: ("Bereavement Leave", "إجازة وفاة"),
    LeaveType.MATERNITY.value: ("Maternity Leave", "إجازة وضع"),
    LeaveType.PATERNITY.value: ("Paternity Leave", "إجازة أبوة"),
    LeaveType.UNPAID.value: ("Unpaid Leave", "إجازة بدون راتب"),
}

ACTIVE_STATUSES = (
    LeaveStatus.SUBMITTED.value,
    LeaveStatus.PENDING_APPROVAL.value,
    LeaveStatus.APPROVED.value,
)
EDITABLE_STATUSES = (LeaveStatus.DRAFT.value, LeaveStatus.SUBMITTED.value)
DECIDABLE_STATUSES = (LeaveStatus.SUBMITTED.value, LeaveStatus.PENDING_APPROVAL.value)
CALENDAR_STATUSES = (LeaveStatus.APPROVED.value, LeaveStatus.COMPLETED.value)
MAX_CALENDAR_DAYS = 366
NON_CANCELLABLE_STATUSES = (
    LeaveStatus.COMPLETED.value, LeaveStatus.CANCELLED.value, LeaveStatus.REJECTED.value,
)
BLOCKING_SEVERITIES = ("high", "critical")


def entitlement_for(leave_type: str, hire_date: date | None, on: date) -> float | None:
    base = ENTITLEMENTS.get(leave_type)
    if leave_type == LeaveType.ANNUAL.value and hire_date is not None:
        if years_of_service(hire_date, on) >= SENIORITY_YEARS:
            return SENIOR_ANNUAL_ENTITLEMENT
    return base


def years_of_service(hire_date: date, on: date) -> int:
    years = on.year - hire_date.year
    if (on.month, on.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def total_days(start_date: date, end_date: date) -> int:
    if end_date < start_date:
        raise ValueError("End date must be on or after start date")
    return (end_date - start_date).days + 1


def is_balance_tracked(leave_type: str) -> bool:
    return ENTITLEMENTS.get(leave_type) is not None


@dataclass(frozen=True)
class BookedLeave:
    """A leave window already on the books, for overlap checks."""
    request_id: str
    employee_id: str
    employee_name: str
    start_date: date
    end_date: date
    status: str


def _overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def detect_conflicts(
    employee_id: str,
    start_date: date,
    end_date: date,
    days: int,
    remaining_balance: float | None,
    own_bookings: list[BookedLeave],
    team_bookings: list[BookedLeave],
    exclude_request_id: str | None = None,
) -> list[dict]:
    """Overlap (high), insufficient balance (critical), team coverage (medium/low)."""
    conflicts = []
    for booking in own_bookings:
        if booking.request_id == exclude_request_id:
            continue
        if booking.status not in ACTIVE_STATUSES:
            continue
        if _overlaps(start_date, end_date, booking.start_date, booking.end_date):
            conflicts.append({
                "type": "overlap",
                "severity": "high",
                "message": "Overlaps an existing leave request",
                "request_id": booking.request_id,
                "start_date": booking.start_date.isoformat(),
                "end_date": booking.end_date.isoformat(),
            })

    if remaining_balance is not None and days > remaining_balance:
        conflicts.append({
            "type": "insufficient_balance",
            "severity": "critical",
            "message": f"Insufficient balance: requested {days} days, available {remaining_balance}",
            "requested": days,
            "available": remaining_balance,
        })

    colleagues = {
        b.employee_id: b.employee_name for b in team_bookings
        if b.employee_id != employee_id
        and b.status == LeaveStatus.APPROVED.value
        and _overlaps(start_date, end_date, b.start_date, b.end_date)
    }
    if colleagues:
        conflicts.append({
            "type": "team_coverage",
            "severity": "medium" if len(colleagues) >= 2 else "low",
            "message": f"{len(colleagues)} team member(s) on leave during this period",
            "employees": sorted(colleagues.values()),
        })
    return conflicts


def has_blocking_conflict(conflicts: list[dict]) -> bool:
    return any(c["severity"] in BLOCKING_SEVERITIES for c in conflicts)


def return_assessment(end_date: date, actual_return: date) -> dict:
    """Compare the actual return against the first working day after the leave."""
    expected = end_date + timedelta(days=1)
    return {
        "expected_return_date": expected.isoformat(),
        "actual_return_date": actual_return.isoformat(),
        "returned_early": actual_return < expected,
        "returned_late": actual_return > expected,
        "late_days": max((actual_return - expected).days, 0),
    }


def calendar_days(leaves: list, range_start: date, range_end: date) -> dict[str, list[dict]]:
    """Day -> who is away, clipped to the requested range."""
    days: dict[str, list[dict]] = {}
    for leave in leaves:
        day = max(leave.start_date, range_start)
        last = min(leave.end_date, range_end)
        while day <= last:
            days.setdefault(day.isoformat(), []).append({
                "request_id": str(leave.id),
                "employee_id": str(leave.employee_id),
                "employee_name": leave.employee_name,
                "leave_type": leave.leave_type,
                "status": leave.status,
            })
            day += timedelta(days=1)
    return days
