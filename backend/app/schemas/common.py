"""Common Schemas — shared Pydantic bases for request and response bodies.

Invariants:
    - RequestModel ignores unknown keys: undeclared fields can never reach the ORM
    - ORMResponse reads attributes straight off ORM rows (from_attributes)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class ORMResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime | None = None


def dump(schema: type[BaseModel], row) -> dict:
    """ORM row -> JSON-ready dict through a response schema."""
    return schema.model_validate(row).model_dump(mode="json")


def dump_all(schema: type[BaseModel], rows) -> list[dict]:
    return [dump(schema, r) for r in rows]


class ActivityLogResponse(ORMResponse):
    lawyer_id: str
    action: str
    entity_type: str
    entity_id: str
    details: dict
