"""Services Layer — multi-step persistence shared by routes.

Invariants:
    - Services never commit; the calling route owns the transaction
    - Every query goes through services/scoping.py tenant clauses

Design Decisions:
    - One module per workflow (matching, reconciliation, balances, numbering)
"""
