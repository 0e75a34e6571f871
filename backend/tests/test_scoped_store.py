# Overview: Pytest coverage for tenant isolation in the scoped entity store.

"""
Scoped Entity Store Tests

SECURITY TESTS: Prove that every read is filtered by the caller's tenant and
every write is stamped with it.

Covered:
1. Reads never return another tenant's rows (including by primary key)
2. Creates stamp tenant_id from context, overwriting payload values
3. Updates cannot move a row to another tenant or branch
4. Branch-scoped reads narrow to the selected branch
5. Soft vs hard delete follows the entity definition
6. Missing tenant fails fast; unscoped reads are audited
"""

import pytest

from erpcore.models import Client, GoodsReceiptNote, PurchaseOrder, SecurityEvent
from erpcore.services import scoped_store
from erpcore.services.scoped_store import RecordNotFoundError, store_for
from erpcore.services.tenant_service import CrossTenantAccessError, MissingTenantError
from erpcore.tenant_context import TenantContext
from erpcore.validation import ValidationError


def _client(db_session, tenant_id, name, branch_id=None, status="active"):
    client = Client(tenant_id=tenant_id, branch_id=branch_id, name=name, status=status)
    db_session.add(client)
    db_session.commit()
    return client


class TestScopedReads:
    """Reads are filtered by tenant (and branch when selected)."""

    def test_find_returns_only_own_tenant_rows(self, db_session, company_a, company_b, ctx_a):
        """A tenant with 4 clients among 10 sees exactly those 4."""
        own = [_client(db_session, company_a.id, f"A{i}") for i in range(4)]
        for i in range(6):
            _client(db_session, company_b.id, f"B{i}")

        rows = store_for("Client").find({}, ctx_a)

        assert [r.id for r in rows] == [c.id for c in own]
        assert all(r.tenant_id == company_a.id for r in rows)

    def test_get_foreign_row_is_none(self, db_session, company_a, company_b, ctx_a):
        foreign = _client(db_session, company_b.id, "Beta client")
        assert store_for("Client").get(foreign.id, ctx_a) is None

    def test_require_foreign_row_is_not_found(self, db_session, company_b, ctx_a):
        foreign = _client(db_session, company_b.id, "Beta client")
        with pytest.raises(RecordNotFoundError):
            store_for("Client").require(foreign.id, ctx_a)

    def test_filter_naming_other_tenant_is_rejected(self, db_session, company_a, company_b, ctx_a):
        _client(db_session, company_b.id, "Beta client")

        with pytest.raises(CrossTenantAccessError):
            store_for("Client").find({"tenant_id": company_b.id}, ctx_a)

        event = db_session.query(SecurityEvent).filter_by(
            event_type="CROSS_TENANT_ACCESS_DENIED", tenant_id=company_a.id
        ).one()
        assert event.success is False

    def test_filter_naming_own_tenant_is_allowed(self, db_session, company_a, ctx_a):
        _client(db_session, company_a.id, "Acme client")
        rows = store_for("Client").find({"tenant_id": company_a.id}, ctx_a)
        assert len(rows) == 1

    def test_branch_context_narrows_reads(self, db_session, company_a, branch_a1, branch_a2):
        in_a1 = _client(db_session, company_a.id, "Pune client", branch_id=branch_a1.id)
        _client(db_session, company_a.id, "Mumbai client", branch_id=branch_a2.id)
        ctx = TenantContext(tenant_id=company_a.id, branch_id=branch_a1.id)

        rows = store_for("Client").find({}, ctx)
        assert [r.id for r in rows] == [in_a1.id]

        # A filter naming another branch does not widen the read.
        rows = store_for("Client").find({"branch_id": branch_a2.id}, ctx)
        assert [r.id for r in rows] == [in_a1.id]

    def test_branch_opt_out_stays_inside_tenant(self, db_session, company_a, company_b, branch_a1, branch_a2):
        _client(db_session, company_a.id, "Pune client", branch_id=branch_a1.id)
        _client(db_session, company_a.id, "Mumbai client", branch_id=branch_a2.id)
        _client(db_session, company_b.id, "Beta client")
        ctx = TenantContext(tenant_id=company_a.id, branch_id=branch_a1.id)

        rows = store_for("Client").find({}, ctx, branch_scoped=False)
        assert len(rows) == 2
        assert all(r.tenant_id == company_a.id for r in rows)

    def test_no_branch_context_sees_whole_tenant(self, db_session, company_a, branch_a1, ctx_a):
        _client(db_session, company_a.id, "Pune client", branch_id=branch_a1.id)
        _client(db_session, company_a.id, "Head office client")
        assert store_for("Client").count({}, ctx_a) == 2

    def test_unknown_filter_column(self, db_session, ctx_a):
        with pytest.raises(ValidationError):
            store_for("Client").find({"colour": "red"}, ctx_a)

    def test_paginate(self, db_session, company_a, company_b, ctx_a):
        for i in range(5):
            _client(db_session, company_a.id, f"A{i}")
        _client(db_session, company_b.id, "Beta client")

        rows, total = store_for("Client").paginate({}, ctx_a, limit=2, offset=0)
        assert total == 5
        assert len(rows) == 2
        assert rows[0].id > rows[1].id


class TestMissingTenant:
    def test_find_without_tenant_fails_fast(self, db_session):
        with pytest.raises(MissingTenantError):
            store_for("Client").find({}, TenantContext(tenant_id=None))

    def test_create_without_tenant_fails_fast(self, db_session):
        with pytest.raises(MissingTenantError):
            store_for("Client").create({"name": "Orphan"}, TenantContext(tenant_id=None))
        assert db_session.query(Client).count() == 0

    def test_none_context(self, db_session):
        with pytest.raises(MissingTenantError):
            store_for("Client").find({}, None)


class TestScopedWrites:
    """Writes are stamped with the caller's tenant."""

    def test_create_stamps_tenant(self, db_session, company_a, ctx_a):
        client = store_for("Client").create({"name": "Acme"}, ctx_a)
        assert client.tenant_id == company_a.id
        assert client.branch_id is None

    def test_create_overwrites_payload_tenant(self, db_session, company_a, company_b, ctx_a):
        client = store_for("Client").create({"name": "Sneaky", "tenant_id": company_b.id}, ctx_a)
        assert client.tenant_id == company_a.id

    def test_create_stamps_context_branch(self, db_session, company_a, branch_a1):
        ctx = TenantContext(tenant_id=company_a.id, branch_id=branch_a1.id)
        client = store_for("Client").create({"name": "Pune client"}, ctx)
        assert client.branch_id == branch_a1.id

    def test_create_with_foreign_branch_rejected(self, db_session, company_a, branch_b1, ctx_a):
        with pytest.raises(CrossTenantAccessError):
            store_for("Client").create({"name": "Acme", "branch_id": branch_b1.id}, ctx_a)
        assert db_session.query(Client).count() == 0

    def test_create_with_own_branch_in_payload(self, db_session, company_a, branch_a2, ctx_a):
        client = store_for("Client").create({"name": "Mumbai", "branch_id": branch_a2.id}, ctx_a)
        assert client.branch_id == branch_a2.id

    def test_update_cannot_change_tenant(self, db_session, company_a, company_b, ctx_a):
        client = _client(db_session, company_a.id, "Acme")

        updated = store_for("Client").update(client.id, {"phone": "555", "tenant_id": company_b.id}, ctx_a)

        assert updated.tenant_id == company_a.id
        assert updated.phone == "555"

    def test_update_foreign_row_not_found(self, db_session, company_b, ctx_a):
        foreign = _client(db_session, company_b.id, "Beta client")
        with pytest.raises(RecordNotFoundError):
            store_for("Client").update(foreign.id, {"name": "Hijacked"}, ctx_a)

        db_session.expire_all()
        assert db_session.get(Client, foreign.id).name == "Beta client"

    def test_update_cannot_move_branch(self, db_session, company_a, branch_a1, branch_a2, ctx_a):
        client = _client(db_session, company_a.id, "Pune client", branch_id=branch_a1.id)
        with pytest.raises(ValidationError):
            store_for("Client").update(client.id, {"branch_id": branch_a2.id}, ctx_a)

    def test_update_unknown_field(self, db_session, company_a, ctx_a):
        client = _client(db_session, company_a.id, "Acme")
        with pytest.raises(ValidationError):
            store_for("Client").update(client.id, {"colour": "red"}, ctx_a)


class TestDeleteModes:
    def test_soft_delete_keeps_row(self, db_session, company_a, ctx_a):
        client = _client(db_session, company_a.id, "Acme")

        store_for("Client").delete(client.id, ctx_a)

        db_session.expire_all()
        row = db_session.get(Client, client.id)
        assert row is not None
        assert row.status == "inactive"
        assert store_for("Client").find({}, ctx_a) == []
        assert len(store_for("Client").find({}, ctx_a, include_inactive=True)) == 1

    def test_hard_delete_removes_row(self, db_session, company_a, ctx_a):
        grn = GoodsReceiptNote(tenant_id=company_a.id, grn_number="GRN-001")
        db_session.add(grn)
        db_session.commit()
        grn_id = grn.id

        store_for("GoodsReceiptNote").delete(grn_id, ctx_a)

        db_session.expire_all()
        assert db_session.get(GoodsReceiptNote, grn_id) is None

    def test_cancelled_document_cannot_be_reopened(self, db_session, company_a, ctx_a):
        po = PurchaseOrder(tenant_id=company_a.id, po_number="PO-001", status="cancelled")
        db_session.add(po)
        db_session.commit()

        with pytest.raises(ValidationError):
            store_for("PurchaseOrder").update(po.id, {"status": "draft"}, ctx_a)

        db_session.expire_all()
        assert db_session.get(PurchaseOrder, po.id).status == "cancelled"

    def test_inactive_client_can_be_reactivated(self, db_session, company_a, ctx_a):
        client = _client(db_session, company_a.id, "Acme", status="inactive")

        updated = store_for("Client").update(client.id, {"status": "active"}, ctx_a)
        assert updated.status == "active"

    def test_delete_foreign_row_not_found(self, db_session, company_b, ctx_a):
        foreign = _client(db_session, company_b.id, "Beta client")
        with pytest.raises(RecordNotFoundError):
            store_for("Client").delete(foreign.id, ctx_a)

        db_session.expire_all()
        assert db_session.get(Client, foreign.id).status == "active"


class TestUnscopedRead:
    def test_find_unscoped_spans_tenants_and_is_audited(self, db_session, company_a, company_b):
        _client(db_session, company_a.id, "Acme")
        _client(db_session, company_b.id, "Beta")

        rows = scoped_store.find_unscoped("Client", reason="nightly GST export", actor_id=99)

        assert {r.tenant_id for r in rows} == {company_a.id, company_b.id}
        event = db_session.query(SecurityEvent).filter_by(event_type="UNSCOPED_READ").one()
        assert event.reason == "nightly GST export"
        assert event.resource == "Client"
        assert event.actor_id == 99

    def test_find_unscoped_requires_reason(self, db_session):
        with pytest.raises(ValidationError):
            scoped_store.find_unscoped("Client", reason="")
