"""Route Modules — one file per resource.

Invariants:
    - Each module defines its own APIRouter with /api/v1/<resource> prefix and tags
    - Pure rules live in core/, multi-step persistence in services/; routes orchestrate

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""
