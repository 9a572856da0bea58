"""Tenant Context — tests for the ownership predicate."""

from app.core.tenant import TenantContext, can_access


def test_firm_member_accesses_firm_rows():
    tenant = TenantContext(user_id="u1", firm_id="f1")
    assert can_access("f1", "someone-else", tenant)
    assert not can_access("f2", "u1", tenant)


def test_solo_lawyer_scoped_by_user_id():
    tenant = TenantContext(user_id="u1")
    assert can_access(None, "u1", tenant)
    assert not can_access(None, "u2", tenant)
    assert not can_access(None, None, tenant)


def test_client_role_flag():
    assert TenantContext(user_id="c1", role="client").is_client
    assert not TenantContext(user_id="u1").is_client


def test_log_extra_carries_tenant_ids():
    assert TenantContext(user_id="u1", firm_id="f1").log_extra() == {
        "firm_id": "f1", "user_id": "u1",
    }
