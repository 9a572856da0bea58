"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - TenantId and UserId wrap the opaque strings carried in the bearer token
    - All valid states encoded as Enums — no raw string matching in core logic
    - Enum values are the exact strings persisted in status columns

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders and compare equal to raw strings
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

FirmId = NewType("FirmId", str)
UserId = NewType("UserId", str)


# ─── Banking ─────────────────────────────────────────────────────

class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class ReconciliationStatus(str, Enum):
    """Bank reconciliation lifecycle: in_progress -> completed | cancelled."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchStatus(str, Enum):
    """suggested -> confirmed | rejected; confirmed -> unmatched."""
    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    UNMATCHED = "unmatched"


class MatchType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"
    RULE = "rule"
    SPLIT = "split"


# ─── Billing ─────────────────────────────────────────────────────

class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    VOID = "void"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class FeeType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    TIERED = "tiered"
    NONE = "none"


# ─── HR ──────────────────────────────────────────────────────────

class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    HAJJ = "hajj"
    MARRIAGE = "marriage"
    BIRTH = "birth"
    DEATH = "death"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    UNPAID = "unpaid"


class LeaveStatus(str, Enum):
    """draft -> pending_approval -> approved | rejected; approved -> cancelled | completed."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class OnboardingStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class ProbationStatus(str, Enum):
    ACTIVE = "active"
    PASSED = "passed"
    FAILED = "failed"


# ─── Quality ─────────────────────────────────────────────────────

class InspectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PARTIALLY_ACCEPTED = "partially_accepted"


class ActionStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ─── Practice ────────────────────────────────────────────────────

class CaseStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CLOSED = "closed"
    ARCHIVED = "archived"


class TenantRole(str, Enum):
    """Role claim in the bearer token. Clients get read-only access to their own cases."""
    ADMIN = "admin"
    LAWYER = "lawyer"
    STAFF = "staff"
    CLIENT = "client"
