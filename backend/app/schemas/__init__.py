"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at the system boundary; unknown request keys are dropped
    - Response schemas never expose secrets (integration tokens, raw credentials)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
