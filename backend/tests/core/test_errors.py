"""Error Hierarchy — tests for HTTP status mapping and the REST envelope."""

from app.core.errors import (
    AccessDeniedError, AuthenticationError, BusinessRuleError, DatabaseError,
    ExternalServiceError, ResourceNotFoundError, ValidationFailedError,
)


def test_status_codes():
    assert ValidationFailedError("bad").http_status == 400
    assert BusinessRuleError("nope").http_status == 400
    assert AuthenticationError().http_status == 401
    assert AccessDeniedError().http_status == 403
    assert ResourceNotFoundError("Invoice", "x").http_status == 404
    assert DatabaseError("down", "execute").http_status == 503
    assert ExternalServiceError("google", "timeout").http_status == 502


def test_not_found_message_and_context():
    body = ResourceNotFoundError("Bank account", "abc").to_response()["error"]
    assert body["message"] == "Bank account not found"
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert body["context"] == {"resource_type": "Bank account", "resource_id": "abc"}


def test_validation_error_carries_field_details():
    body = ValidationFailedError("Name is required", field="name").to_response()["error"]
    assert body["details"] == [{"field": "name", "message": "Name is required"}]
    assert body["category"] == "validation"


def test_business_rule_custom_code():
    err = BusinessRuleError("Unbalanced", code="RECONCILIATION_UNBALANCED")
    body = err.to_response()["error"]
    assert body["code"] == "RECONCILIATION_UNBALANCED"
    assert "details" not in body
