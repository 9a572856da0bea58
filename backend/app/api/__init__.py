"""API Layer — FastAPI routes, auth dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Every resource route resolves a TenantContext before touching the database
    - All endpoints return structured JSON responses; errors use one envelope

Design Decisions:
    - Thin routes delegate rules to core/ and multi-step writes to services/
"""
