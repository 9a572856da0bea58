"""HR Schemas — employees, leave requests and onboarding.

Invariants:
    - Employee create requires identity, contact, job and salary fields; salary >= 0
    - Leave request dates are validated for order in the route (total_days owns the rule)
    - Closed vocabularies are Literal types; unknown values are a 400
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.domain_types import LeaveType
from app.core.probation import RECOMMENDATIONS, REVIEW_TYPES
from app.schemas.common import ORMResponse, RequestModel

LeaveTypeName = Literal[tuple(t.value for t in LeaveType)]
EmploymentType = Literal["full_time", "part_time", "contract", "temporary", "intern"]
EmployeeStatus = Literal["active", "on_leave", "suspended", "terminated", "resigned"]


# ─── Employees ──────────────────────────────────────────────────

class EmployeeCreate(RequestModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    full_name_ar: str | None = Field(None, max_length=200)
    id_number: str = Field(min_length=5, max_length=20)
    gender: Literal["male", "female"]
    phone: str = Field(min_length=5, max_length=30)
    email: str | None = Field(None, max_length=200, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    nationality: str | None = Field(None, max_length=60)
    job_title: str = Field(min_length=1, max_length=120)
    department: str | None = Field(None, max_length=120)
    employment_type: EmploymentType = "full_time"
    hire_date: date
    basic_salary: float = Field(ge=0)


class EmployeeUpdate(RequestModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    full_name_ar: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, min_length=5, max_length=30)
    email: str | None = Field(None, max_length=200, pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    nationality: str | None = Field(None, max_length=60)
    job_title: str | None = Field(None, min_length=1, max_length=120)
    department: str | None = Field(None, max_length=120)
    employment_type: EmploymentType | None = None
    status: EmployeeStatus | None = None
    basic_salary: float | None = Field(None, ge=0)


class AllowanceCreate(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    name_ar: str | None = Field(None, max_length=100)
    amount: float = Field(ge=0)


class EmployeeResponse(ORMResponse):
    employee_number: str
    first_name: str
    last_name: str
    full_name: str
    full_name_ar: str | None
    id_number: str
    gender: str
    phone: str
    email: str | None
    nationality: str | None
    job_title: str
    department: str | None
    employment_type: str
    status: str
    hire_date: date
    basic_salary: float
    allowances: list


# ─── Leave ──────────────────────────────────────────────────────

class LeaveRequestCreate(RequestModel):
    employee_id: UUID
    leave_type: LeaveTypeName
    start_date: date
    end_date: date
    reason: str | None = Field(None, max_length=2000)


class LeaveRequestUpdate(RequestModel):
    leave_type: LeaveTypeName | None = None
    start_date: date | None = None
    end_date: date | None = None
    reason: str | None = Field(None, max_length=2000)


class ConflictCheck(RequestModel):
    employee_id: UUID
    leave_type: LeaveTypeName = "annual"
    start_date: date
    end_date: date
    exclude_request_id: UUID | None = None


class LeaveDecisionComment(RequestModel):
    comments: str | None = Field(None, max_length=2000)


class LeaveReject(RequestModel):
    reason: str = Field(min_length=1, max_length=2000)


class LeaveCancel(RequestModel):
    reason: str | None = Field(None, max_length=2000)


class LeaveReturnConfirm(RequestModel):
    actual_return_date: date | None = None
    notes: str | None = Field(None, max_length=2000)


class LeaveExtensionCreate(RequestModel):
    new_end_date: date
    reason: str = Field(min_length=1, max_length=2000)


class LeaveRequestResponse(ORMResponse):
    request_number: str
    employee_id: UUID
    employee_name: str
    department: str | None
    leave_type: str
    start_date: date
    end_date: date
    total_days: int
    reason: str | None
    status: str
    balance_before: float | None
    balance_after: float | None
    balance_impact: float | None
    conflicts: list
    approval_workflow: list
    decided_by: str | None
    decided_at: datetime | None
    rejection_reason: str | None
    cancellation: dict | None
    return_info: dict | None = None
    is_extension: bool = False
    original_request_id: UUID | None = None
    extension_days: int | None = None


# ─── Onboarding ─────────────────────────────────────────────────

class OnboardingTask(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field("general", max_length=50)
    due_date: date | None = None


class OnboardingCreate(RequestModel):
    employee_id: UUID
    start_date: date
    probation_period: int = Field(90, ge=1)
    tasks: list[OnboardingTask] | None = None


class OnboardingStatusUpdate(RequestModel):
    status: Literal["pending", "in_progress", "completed", "on_hold", "cancelled"]


class TaskComplete(RequestModel):
    notes: str | None = Field(None, max_length=2000)


class ProbationReviewCreate(RequestModel):
    review_type: Literal[REVIEW_TYPES]
    scheduled_date: date
    recommendation: Literal[RECOMMENDATIONS] = "on_track"
    notes: str | None = Field(None, max_length=5000)
    rating: int | None = Field(None, ge=1, le=5)


class ChecklistTaskCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: str = Field("general", max_length=50)
    responsible: Literal["hr", "manager", "it", "employee", "finance"] = "hr"
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    due_date: date | None = None


class FinalReview(BaseModel):
    overall_assessment: Literal["excellent", "good", "satisfactory", "needs_improvement"] | None = None
    ready_for_full_role: bool = True
    notes: str | None = Field(None, max_length=5000)


class OnboardingComplete(RequestModel):
    final_review: FinalReview | None = None
    outstanding_items: list[str] = Field(default_factory=list)


class ProbationDecision(RequestModel):
    decision: Literal["confirm", "terminate"]
    reason: str | None = Field(None, max_length=2000)
    decision_date: date | None = None


class OnboardingResponse(ORMResponse):
    employee_id: UUID
    employee_name: str
    job_title: str | None
    status: str
    start_date: date
    started_at: datetime | None
    completed_at: datetime | None
    tasks: list
    probation_period: int
    probation_end_date: date
    probation_status: str
    probation_reviews: list
    confirmation_letter: dict | None
    termination: dict | None
    completion: dict | None = None
