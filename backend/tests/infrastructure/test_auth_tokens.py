"""Auth Tokens — tests for bearer token verification and OAuth state tokens.

Tests cover:
    - Round trip of tenant claims
    - Expired, tampered and state-purpose tokens rejected as bearer tokens
    - State tokens bound to provider and caller
"""

from datetime import timedelta

import jwt
import pytest

from app.config import get_settings
from app.core.errors import AuthenticationError, ValidationFailedError
from app.core.tenant import TenantContext
from app.infrastructure.auth_tokens import (
    create_access_token, create_state_token, decode_access_token, verify_state_token,
)

TENANT = TenantContext(user_id="lawyer-1", firm_id="firm-1")


def test_access_token_carries_tenant_claims():
    tenant = decode_access_token(create_access_token("lawyer-1", "firm-1", "admin"))
    assert tenant == TenantContext(user_id="lawyer-1", firm_id="firm-1", role="admin")


def test_solo_token_has_no_firm():
    assert decode_access_token(create_access_token("solo")).firm_id is None


def test_expired_token_rejected():
    token = create_access_token("lawyer-1", expires_in=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError, match="Token expired"):
        decode_access_token(token)


def test_wrong_secret_rejected():
    token = jwt.encode({"sub": "x", "exp": 9999999999}, "another-secret-0123456789abcdef012345", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(token)


def test_state_token_not_usable_as_bearer():
    with pytest.raises(AuthenticationError):
        decode_access_token(create_state_token(TENANT, "google"))


def test_state_token_round_trip():
    verify_state_token(create_state_token(TENANT, "google"), TENANT, "google")


def test_state_token_bound_to_provider():
    state = create_state_token(TENANT, "google")
    with pytest.raises(ValidationFailedError) as exc:
        verify_state_token(state, TENANT, "microsoft")
    assert exc.value.details == [{"field": "state", "message": "OAuth state does not match this request"}]


def test_state_token_bound_to_caller():
    state = create_state_token(TENANT, "google")
    with pytest.raises(ValidationFailedError):
        verify_state_token(state, TenantContext(user_id="lawyer-2", firm_id="firm-1"), "google")


def test_garbage_state_rejected():
    with pytest.raises(ValidationFailedError, match="Invalid or expired OAuth state"):
        verify_state_token("not-a-jwt", TENANT, "google")


def test_tokens_signed_with_configured_secret():
    token = create_access_token("lawyer-1")
    settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    assert payload["sub"] == "lawyer-1"
