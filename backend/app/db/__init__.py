"""Database Base — SQLAlchemy declarative Base and the tenant mixin.

Invariants:
    - Every table carries firm_id / lawyer_id via TenantMixin
    - Sessions come from infrastructure/database.py, never from here
"""
