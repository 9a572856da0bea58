"""Auth Tokens — PyJWT encode/decode for bearer tokens and OAuth state.

Invariants:
    - Bearer tokens are issued by the identity service; this module only verifies them
      (create_access_token exists for service-to-service calls and tests)
    - OAuth state tokens carry purpose="oauth_state" and expire after oauth_state_ttl_seconds
    - Any PyJWT failure surfaces as AuthenticationError / ValidationFailedError, never raw

Design Decisions:
    - HS256 shared secret from settings: single trust domain with the identity service
"""

from datetime import datetime, timedelta, timezone

import jwt

from app.config import get_settings
from app.core.errors import AuthenticationError, ValidationFailedError
from app.core.tenant import TenantContext

_STATE_PURPOSE = "oauth_state"


def create_access_token(
    user_id: str, firm_id: str | None = None, role: str = "lawyer",
    expires_in: timedelta = timedelta(hours=8),
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "role": role, "iat": now, "exp": now + expires_in}
    if firm_id:
        payload["firm_id"] = firm_id
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TenantContext:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    if payload.get("purpose") == _STATE_PURPOSE:
        raise AuthenticationError("Invalid token")
    return TenantContext(
        user_id=str(payload["sub"]),
        firm_id=payload.get("firm_id"),
        role=payload.get("role") or "lawyer",
    )


def create_state_token(tenant: TenantContext, provider: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "purpose": _STATE_PURPOSE,
        "sub": tenant.user_id,
        "firm_id": tenant.firm_id,
        "provider": provider,
        "iat": now,
        "exp": now + timedelta(seconds=settings.oauth_state_ttl_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_state_token(state: str, tenant: TenantContext, provider: str) -> None:
    """Signature, expiry, purpose, provider and caller must all match."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            state, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError:
        raise ValidationFailedError("Invalid or expired OAuth state", field="state")
    if (
        payload.get("purpose") != _STATE_PURPOSE
        or payload.get("provider") != provider
        or payload.get("sub") != tenant.user_id
        or payload.get("firm_id") != tenant.firm_id
    ):
        raise ValidationFailedError("OAuth state does not match this request", field="state")
