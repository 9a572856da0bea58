"""Tenant Context — who is calling and which records they may touch.

Invariants:
    - A firm member is scoped by firm_id; a solo lawyer by their own user_id
    - can_access is the single ownership predicate; scoped queries mirror it in SQL
    - Pure: no IO, no token parsing (that lives in the api layer)
"""

from dataclasses import dataclass

from app.core.domain_types import TenantRole


@dataclass(frozen=True)
class TenantContext:
    user_id: str
    firm_id: str | None = None
    role: str = TenantRole.LAWYER.value

    @property
    def is_client(self) -> bool:
        return self.role == TenantRole.CLIENT.value

    def log_extra(self) -> dict:
        return {"firm_id": self.firm_id, "user_id": self.user_id}


def can_access(
    resource_firm_id: str | None, resource_lawyer_id: str | None,
    tenant: TenantContext,
) -> bool:
    """Ownership check: firm match when the caller has a firm, else lawyer match."""
    if tenant.firm_id:
        return resource_firm_id == tenant.firm_id
    return resource_lawyer_id is not None and resource_lawyer_id == tenant.user_id
