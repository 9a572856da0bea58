"""API Dependencies — tenant resolution, firm guard, pagination and collaborator wiring.

Invariants:
    - Every resource route depends on get_tenant (no anonymous access)
    - require_firm rejects solo-lawyer tokens with 403 "Firm ID is required"
    - Pagination query values are clamped, never rejected

Design Decisions:
    - HTTPBearer(auto_error=False): missing credentials become our 401 envelope,
      not FastAPI's default 403
    - Collaborators (matcher, OAuth client) exposed as dependencies so tests override them
"""

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.boundary_protocols import TransactionMatcher
from app.core.errors import AccessDeniedError, AuthenticationError
from app.core.exact_matcher import ExactAmountMatcher
from app.core.security import PageRequest, page_request
from app.core.tenant import TenantContext
from app.infrastructure.auth_tokens import decode_access_token

_bearer = HTTPBearer(auto_error=False)


async def get_tenant(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> TenantContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authentication required")
    return decode_access_token(credentials.credentials)


async def require_firm(tenant: TenantContext = Depends(get_tenant)) -> TenantContext:
    if not tenant.firm_id:
        raise AccessDeniedError("Firm ID is required")
    return tenant


def pagination(default_limit: int = 20, max_limit: int = 100):
    """Dependency factory: raw page/limit query strings -> clamped PageRequest."""
    def _pagination(
        page: str | None = Query(None),
        limit: str | None = Query(None),
    ) -> PageRequest:
        return page_request(page, limit, default_limit, max_limit)
    return _pagination


def get_matcher() -> TransactionMatcher:
    return ExactAmountMatcher()
