"""Practice Schemas — cases, quality inspections/templates/actions, report definitions.

Invariants:
    - A case needs a title plus at least one of contract_id, client_id, client_name
    - Quality action text (problem/action) length is checked in the route, after trimming
    - Report definitions are validated by core.report_definition, not here
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.quality_rules import INSPECTION_TYPES, REFERENCE_TYPES
from app.schemas.common import ORMResponse, RequestModel

CasePriority = Literal["low", "medium", "high", "critical"]
CaseStatusName = Literal["active", "pending", "on_hold", "completed", "closed", "archived"]
CaseOutcome = Literal["won", "lost", "settled", "dismissed", "ongoing"]


# ─── Cases ──────────────────────────────────────────────────────

class CaseCreate(RequestModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = Field(None, max_length=10000)
    contract_id: str | None = Field(None, max_length=64)
    client_id: str | None = Field(None, max_length=64)
    client_name: str | None = Field(None, max_length=200)
    source: Literal["platform", "external"] = "external"
    category: str | None = Field(None, max_length=60)
    priority: CasePriority = "medium"
    court: str | None = Field(None, max_length=200)
    case_number: str | None = Field(None, max_length=64)
    start_date: date | None = None

    @model_validator(mode="after")
    def has_party(self):
        if not (self.contract_id or self.client_id or self.client_name):
            raise ValueError("One of contract_id, client_id or client_name is required")
        return self


class CaseUpdate(RequestModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, max_length=10000)
    client_name: str | None = Field(None, max_length=200)
    category: str | None = Field(None, max_length=60)
    priority: CasePriority | None = None
    court: str | None = Field(None, max_length=200)
    case_number: str | None = Field(None, max_length=64)
    start_date: date | None = None


class CaseNoteCreate(RequestModel):
    text: str = Field(min_length=1, max_length=10000)


class HearingCreate(RequestModel):
    hearing_date: datetime = Field(alias="date")
    location: str | None = Field(None, max_length=300)
    notes: str | None = Field(None, max_length=5000)


class HearingUpdate(RequestModel):
    attended: bool | None = None
    outcome: str | None = Field(None, max_length=2000)


class ClaimCreate(RequestModel):
    type: str = Field(min_length=1, max_length=60)
    amount: float = Field(ge=0)
    description: str | None = Field(None, max_length=5000)


class CaseStatusUpdate(RequestModel):
    status: CaseStatusName


class CaseProgressUpdate(RequestModel):
    progress: int = Field(ge=0, le=100)


class CaseOutcomeUpdate(RequestModel):
    outcome: CaseOutcome


class CaseResponse(ORMResponse):
    lawyer_id: str
    title: str
    description: str | None
    contract_id: str | None
    client_id: str | None
    client_name: str | None
    source: str
    category: str | None
    priority: str
    status: str
    outcome: str | None
    court: str | None
    case_number: str | None
    start_date: date | None
    end_date: date | None
    notes: list
    hearings: list
    claims: list
    progress: int


# ─── Quality ────────────────────────────────────────────────────

class Reading(BaseModel):
    parameter: str = Field(min_length=1, max_length=200)
    value: str | float | None = None
    min_value: float | None = None
    max_value: float | None = None
    acceptance_criteria: str | None = Field(None, max_length=500)
    status: Literal["pending", "accepted", "rejected"] = "pending"


class InspectionCreate(RequestModel):
    reference_type: Literal[REFERENCE_TYPES]
    reference_id: str = Field(min_length=1, max_length=64)
    inspection_type: Literal[INSPECTION_TYPES]
    item_code: str = Field(min_length=1, max_length=64)
    item_name: str | None = Field(None, max_length=200)
    sample_size: int = Field(0, ge=0)
    template_id: UUID | None = None
    readings: list[Reading] | None = None
    remarks: str | None = Field(None, max_length=5000)


class InspectionUpdate(RequestModel):
    status: Literal["pending", "accepted", "rejected", "partially_accepted"] | None = None
    readings: list[Reading] | None = None
    sample_size: int | None = Field(None, ge=0)
    remarks: str | None = Field(None, max_length=5000)


class InspectionResponse(ORMResponse):
    inspection_number: str
    reference_type: str
    reference_id: str
    inspection_type: str
    item_code: str
    item_name: str | None
    sample_size: int
    template_id: UUID | None
    readings: list
    status: str
    accepted_qty: int
    rejected_qty: int
    inspected_by: str | None
    submitted_at: datetime | None
    remarks: str | None


class TemplateParameter(BaseModel):
    parameter: str = Field(min_length=1, max_length=200)
    min_value: float | None = None
    max_value: float | None = None
    acceptance_criteria: str | None = Field(None, max_length=500)


class TemplateCreate(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    item_code: str | None = Field(None, max_length=64)
    parameters: list[TemplateParameter] = Field(default_factory=list)
    is_active: bool = True


class TemplateUpdate(RequestModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    item_code: str | None = Field(None, max_length=64)
    parameters: list[TemplateParameter] | None = None
    is_active: bool | None = None


class TemplateResponse(ORMResponse):
    name: str
    description: str | None
    item_code: str | None
    parameters: list
    is_active: bool


class ActionResponse(ORMResponse):
    action_type: str
    inspection_id: UUID | None
    item_code: str | None
    problem: str
    action: str
    responsible_person: str
    target_date: date
    status: str
    completed_date: date | None
    resolution: str | None


class SettingsUpdate(RequestModel):
    auto_create_action: bool | None = None
    require_approval: bool | None = None
    default_template_id: UUID | None = None


class SettingsResponse(BaseModel):
    auto_create_action: bool
    require_approval: bool
    default_template_id: UUID | None

    model_config = ConfigDict(from_attributes=True)


# ─── Reports ────────────────────────────────────────────────────

class ScheduleUpdate(RequestModel):
    enabled: bool
    frequency: Literal["daily", "weekly", "monthly"] = "weekly"
    format: Literal["pdf", "excel", "csv"] = "csv"
    recipients: list[str] = Field(default_factory=list)
    time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")


class ReportResponse(ORMResponse):
    lawyer_id: str
    name: str
    description: str | None
    type: str
    scope: str
    is_public: bool
    data_sources: list
    columns: list
    filters: list
    group_by: list
    visualization: dict
    schedule: dict
    run_count: int
    last_run_at: datetime | None
