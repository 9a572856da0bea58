"""Domain Types — verifies enum vocabularies match the persisted status strings.

Tests:
    - str Enums compare equal to the raw strings stored in status columns
    - Lifecycle enums have the expected members
    - Tenant roles include the read-only client role
"""

from app.core.domain_types import (
    FirmId, UserId,
    TransactionType, ReconciliationStatus, MatchStatus, InvoiceStatus,
    LeaveStatus, LeaveType, TenantRole, InspectionStatus,
)


def test_identity_types_wrap_str():
    assert FirmId("firm-1") == "firm-1"
    assert UserId("user-1") == "user-1"


def test_str_enums_compare_equal_to_raw_strings():
    assert TransactionType.CREDIT == "credit"
    assert InvoiceStatus.PARTIAL == "partial"


def test_reconciliation_status_has_three_states():
    assert {s.value for s in ReconciliationStatus} == {
        "in_progress", "completed", "cancelled",
    }


def test_match_status_lifecycle():
    assert {s.value for s in MatchStatus} == {
        "suggested", "confirmed", "rejected", "unmatched",
    }


def test_leave_status_includes_pending_approval():
    assert LeaveStatus.PENDING_APPROVAL.value == "pending_approval"
    assert len(LeaveType) == 9


def test_client_role_exists():
    assert TenantRole.CLIENT.value == "client"
    assert InspectionStatus.PARTIALLY_ACCEPTED.value == "partially_accepted"
