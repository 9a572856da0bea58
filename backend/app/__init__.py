"""LexDesk API — multi-tenant practice management backend.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
