"""Onboarding & Probation — probation window, task progress and the final decision.

Invariants:
    - probation_period in 1..MAX_PROBATION_DAYS (default 90)
    - probation_end_date = start_date + probation_period days
    - Only an active probation can be decided; decision is confirm | terminate
    - terminate cancels the onboarding and records Article 53 termination (no notice period)
    - Overdue means an open onboarding with an unfinished task past its due date
    - Completion keeps a record with total_duration_days measured from start_date
"""

from collections import Counter
from datetime import date, datetime, timedelta
from uuid import uuid4

from app.core.domain_types import OnboardingStatus, ProbationStatus

DEFAULT_PROBATION_DAYS = 90
MAX_PROBATION_DAYS = 180
TERMINATION_ARTICLE = "Article 53"

REVIEW_TYPES = ("30_day", "60_day", "90_day", "probation")
RECOMMENDATIONS = ("on_track", "needs_improvement", "at_risk", "confirm", "extend", "terminate")
DECISIONS = ("confirm", "terminate")

DEFAULT_TASKS = (
    ("Sign employment contract", "documentation"),
    ("Submit national ID / iqama copy", "documentation"),
    ("Register with GOSI", "compliance"),
    ("Set up email and system accounts", "it"),
    ("Issue laptop and access card", "it"),
    ("Introduce to team and assigned mentor", "orientation"),
    ("Review firm policies and code of conduct", "orientation"),
)

OPEN_STATUSES = (OnboardingStatus.PENDING.value, OnboardingStatus.IN_PROGRESS.value)


def probation_end_date(start_date: date, probation_period: int) -> date:
    return start_date + timedelta(days=probation_period)


def build_tasks(tasks: list[dict] | None) -> list[dict]:
    source = tasks if tasks else [
        {"name": name, "category": category} for name, category in DEFAULT_TASKS
    ]
    return [make_task(t["name"], t.get("category", "general"), t.get("due_date")) for t in source]


def make_task(
    name: str,
    category: str = "general",
    due_date: str | None = None,
    **extra,
) -> dict:
    return {
        "task_id": str(uuid4()),
        "name": name,
        "category": category,
        "due_date": due_date,
        **extra,
        "completed": False,
        "completed_at": None,
        "completed_by": None,
        "notes": None,
    }


def task_progress(tasks: list[dict]) -> dict:
    total = len(tasks)
    done = sum(1 for t in tasks if t.get("completed"))
    return {
        "completed": done,
        "total": total,
        "percentage": round(done / total * 100) if total else 0,
    }


def decide_probation(decision: str, on: date, reason: str | None = None) -> dict:
    """Field updates for the probation block and onboarding status."""
    if decision == "confirm":
        return {
            "probation_status": ProbationStatus.PASSED.value,
            "onboarding_status": None,
            "confirmation_letter": {"issued": True, "issued_date": on.isoformat()},
            "termination": None,
        }
    return {
        "probation_status": ProbationStatus.FAILED.value,
        "onboarding_status": OnboardingStatus.CANCELLED.value,
        "confirmation_letter": None,
        "termination": {
            "reason": reason or "Probation not passed",
            "article": TERMINATION_ARTICLE,
            "notice_period_days": 0,
            "termination_date": on.isoformat(),
        },
    }


def _as_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def has_overdue_tasks(tasks: list[dict], today: date) -> bool:
    return any(
        not t.get("completed") and t.get("due_date") and _as_date(t["due_date"]) < today
        for t in tasks
    )


def review_due_within(probation_status: str, end_date: date, today: date, days: int) -> bool:
    return (
        probation_status == ProbationStatus.ACTIVE.value
        and today <= end_date <= today + timedelta(days=days)
    )


def onboarding_stats(onboardings: list, today: date, review_window_days: int = 30) -> dict:
    """Dashboard counters over already-scoped onboarding rows."""
    by_status = Counter(o.status for o in onboardings)
    by_probation = Counter(o.probation_status for o in onboardings)
    percentages = [task_progress(o.tasks or [])["percentage"] for o in onboardings]
    month_start = today.replace(day=1)
    return {
        "total": len(onboardings),
        "by_status": dict(by_status),
        "by_probation_status": dict(by_probation),
        "average_completion": round(sum(percentages) / len(percentages)) if percentages else 0,
        "overdue": sum(
            1 for o in onboardings
            if o.status in OPEN_STATUSES and has_overdue_tasks(o.tasks or [], today)
        ),
        "upcoming_probation_reviews": sum(
            1 for o in onboardings
            if review_due_within(o.probation_status, o.probation_end_date, today, review_window_days)
        ),
        "this_month": {
            "started": sum(1 for o in onboardings if (_as_date(o.created_at) or today) >= month_start),
            "completed": sum(
                1 for o in onboardings
                if o.status == OnboardingStatus.COMPLETED.value
                and o.completed_at is not None and _as_date(o.completed_at) >= month_start
            ),
        },
    }


def completion_record(
    start_date: date,
    completed_on: date,
    closed_by: str,
    final_review: dict | None,
    outstanding_items: list[str],
) -> dict:
    review = {"overall_assessment": None, "ready_for_full_role": True, **(final_review or {})}
    return {
        "completion_date": completed_on.isoformat(),
        "closed_by": closed_by,
        "final_review": review,
        "outstanding_items": outstanding_items,
        "total_duration_days": (completed_on - start_date).days,
    }
