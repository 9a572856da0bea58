"""Onboarding & Probation — tests for probation window, tasks and decisions."""

from datetime import date

from app.core.probation import (
    DEFAULT_TASKS, build_tasks, decide_probation, probation_end_date, task_progress,
)


def test_probation_end_date_adds_period():
    assert probation_end_date(date(2024, 1, 1), 90) == date(2024, 3, 31)


def test_build_tasks_uses_default_checklist():
    tasks = build_tasks(None)
    assert len(tasks) == len(DEFAULT_TASKS) == 7
    assert all(not t["completed"] for t in tasks)
    assert len({t["task_id"] for t in tasks}) == 7


def test_build_tasks_keeps_custom_tasks():
    tasks = build_tasks([{"name": "Bar admission check"}])
    assert tasks[0]["name"] == "Bar admission check"
    assert tasks[0]["category"] == "general"


def test_task_progress_percentage():
    tasks = build_tasks(None)
    tasks[0]["completed"] = True
    tasks[1]["completed"] = True
    assert task_progress(tasks) == {"completed": 2, "total": 7, "percentage": 29}
    assert task_progress([])["percentage"] == 0


def test_confirm_issues_letter():
    result = decide_probation("confirm", date(2024, 4, 1))
    assert result["probation_status"] == "passed"
    assert result["onboarding_status"] is None
    assert result["confirmation_letter"]["issued_date"] == "2024-04-01"


def test_terminate_cancels_onboarding():
    result = decide_probation("terminate", date(2024, 4, 1), "Missed targets")
    assert result["probation_status"] == "failed"
    assert result["onboarding_status"] == "cancelled"
    assert result["termination"]["article"] == "Article 53"
    assert result["termination"]["notice_period_days"] == 0
    assert result["termination"]["reason"] == "Missed targets"
