# Overview: Pytest coverage for building the per-request tenant context.

import pytest
from flask import g

from erpcore.tenant_context import (
    TenantContext,
    bind_tenant_context,
    clear_tenant_context,
    context_from_claims,
    current_tenant_context,
    parse_branch_id,
    resolve_branch_header,
)
from erpcore.validation import ValidationError


class TestBranchHeader:
    def test_first_header_wins(self):
        headers = {"company-branch-id": "4", "x-branch-id": "9"}
        assert resolve_branch_header(headers) == "4"

    def test_falls_back_to_x_branch_id(self):
        assert resolve_branch_header({"x-branch-id": "9"}) == "9"

    def test_underscore_variant(self):
        assert resolve_branch_header({"company_branch_id": "5", "x-branch-id": "9"}) == "5"

    def test_blank_header_is_skipped(self):
        headers = {"company-branch-id": "  ", "x-branch-id": "7"}
        assert resolve_branch_header(headers) == "7"

    def test_no_header(self):
        assert resolve_branch_header({}) is None

    def test_parse_branch_id(self):
        assert parse_branch_id("12") == 12
        assert parse_branch_id(None) is None

    @pytest.mark.parametrize("raw", ["abc", "-1", "0", "1.5"])
    def test_parse_branch_id_rejects_non_integers(self, raw):
        with pytest.raises(ValidationError):
            parse_branch_id(raw)


class TestContextFromClaims:
    def test_tenant_and_actor(self):
        ctx = context_from_claims({"tenant_id": 3, "user_id": 8, "role": "admin"}, branch_id=2)
        assert ctx == TenantContext(tenant_id=3, branch_id=2, actor_id=8, role="admin")
        assert ctx.is_admin

    def test_legacy_company_id_claim(self):
        ctx = context_from_claims({"company_id": "7", "sub": "4"})
        assert ctx.tenant_id == 7
        assert ctx.actor_id == 4
        assert not ctx.is_admin

    def test_missing_tenant_claim_is_not_an_error_here(self):
        ctx = context_from_claims({"user_id": 1})
        assert ctx.tenant_id is None
        assert not ctx.has_tenant

    def test_without_branch(self):
        ctx = TenantContext(tenant_id=1, branch_id=5, actor_id=2)
        assert ctx.without_branch() == TenantContext(tenant_id=1, actor_id=2)


class TestContextBinding:
    def test_bind_and_clear(self, app):
        with app.test_request_context():
            ctx = TenantContext(tenant_id=3)
            bind_tenant_context(ctx)
            assert current_tenant_context() is ctx

            clear_tenant_context()
            assert "tenant_context" not in g
            assert current_tenant_context().tenant_id is None

    def test_context_cleared_after_request(self, app, client, db_session, token_a):
        """teardown_request drops the context even though g outlives the request here."""
        response = client.get("/api/clients", headers={"Authorization": f"Bearer {token_a}"})
        assert response.status_code == 200
        assert "tenant_context" not in g
