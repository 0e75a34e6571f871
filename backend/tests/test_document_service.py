# Overview: Pytest coverage for per-tenant document numbering.

import pytest
from sqlalchemy.exc import IntegrityError

from erpcore.extensions import db
from erpcore.models import DocumentSequence, GoodsReceiptNote, Invoice, PurchaseOrder
from erpcore.services import numbering_service
from erpcore.services.document_service import (
    SequenceConflictError,
    UnknownDocumentTypeError,
    create_numbered_document,
    next_document_number,
    preview_next_number,
)
from erpcore.services.numbering_service import NumberingFormat, get_numbering_format
from erpcore.services.scoped_store import store_for
from erpcore.validation import ValidationError


class TestNumberingFormats:
    def test_defaults(self, db_session, company_a):
        fmt = get_numbering_format(company_a.id, "INVOICE")
        assert (fmt.prefix, fmt.separator, fmt.digit_width) == ("INV", "-", 3)
        assert fmt.is_default

    def test_document_type_is_normalized(self, db_session, company_a):
        assert get_numbering_format(company_a.id, "credit-note").prefix == "CN"

    def test_unknown_type(self, db_session, company_a):
        with pytest.raises(UnknownDocumentTypeError):
            get_numbering_format(company_a.id, "BOGUS")

    def test_tenant_config_overrides_default(self, db_session, company_a, company_b):
        numbering_service.set_numbering_config(
            company_a.id, "INVOICE", prefix="ACME", separator="#", digit_width=5
        )

        assert get_numbering_format(company_a.id, "INVOICE").render(7) == "ACME#00007"
        assert get_numbering_format(company_b.id, "INVOICE").render(7) == "INV-007"

    def test_config_makes_custom_type_known(self, db_session, company_a):
        numbering_service.set_numbering_config(company_a.id, "DELIVERY_CHALLAN", prefix="DC")
        assert next_document_number(company_a.id, "DELIVERY_CHALLAN") == "DC-001"

    def test_set_config_is_an_upsert(self, db_session, company_a):
        numbering_service.set_numbering_config(company_a.id, "PO", prefix="PUR")
        numbering_service.set_numbering_config(company_a.id, "PO", prefix="PORD", digit_width=4)
        fmt = get_numbering_format(company_a.id, "PO")
        assert (fmt.prefix, fmt.separator, fmt.digit_width) == ("PORD", "-", 4)

    @pytest.mark.parametrize("kwargs", [
        {"prefix": ""},
        {"prefix": "INV", "digit_width": 0},
        {"prefix": "INV", "digit_width": "x"},
        {"prefix": "INV", "separator": "-" * 9},
    ])
    def test_invalid_config_rejected(self, db_session, company_a, kwargs):
        with pytest.raises(ValidationError):
            numbering_service.set_numbering_config(company_a.id, "INVOICE", **kwargs)

    def test_list_includes_defaults_and_custom(self, db_session, company_a):
        numbering_service.set_numbering_config(company_a.id, "DELIVERY_CHALLAN", prefix="DC")
        types = {fmt.document_type for fmt in numbering_service.list_numbering_formats(company_a.id)}
        assert {"PO", "GRN", "INVOICE", "DELIVERY_CHALLAN"} <= types

    def test_render_widens_instead_of_truncating(self):
        fmt = NumberingFormat(document_type="GRN", prefix="GRN", separator="-", digit_width=3)
        assert fmt.render(1000) == "GRN-1000"
        assert fmt.render(42) == "GRN-042"


class TestNextDocumentNumber:
    def test_first_number(self, db_session, company_a):
        """Fresh tenant, no config: first GRN is GRN-001."""
        assert next_document_number(company_a.id, "GRN") == "GRN-001"

    def test_numbers_increase(self, db_session, company_a):
        numbers = [next_document_number(company_a.id, "PO") for _ in range(3)]
        assert numbers == ["PO-001", "PO-002", "PO-003"]

    def test_continues_after_existing_documents(self, db_session, company_a):
        """Nine GRNs already on file: the next is GRN-010."""
        for i in range(1, 10):
            db_session.add(GoodsReceiptNote(tenant_id=company_a.id, grn_number=f"GRN-{i:03d}"))
        db_session.commit()

        assert next_document_number(company_a.id, "GRN") == "GRN-010"
        assert next_document_number(company_a.id, "GRN") == "GRN-011"

    def test_continues_after_counter_high_water_mark(self, db_session, company_a):
        db_session.add(DocumentSequence(tenant_id=company_a.id, document_type="GRN", next_number=10))
        db_session.commit()
        assert next_document_number(company_a.id, "GRN") == "GRN-010"

    def test_sequences_are_independent_per_tenant(self, db_session, company_a, company_b):
        a = [next_document_number(company_a.id, "INVOICE") for _ in range(3)]
        b = [next_document_number(company_b.id, "INVOICE") for _ in range(2)]

        assert a == ["INV-001", "INV-002", "INV-003"]
        assert b == ["INV-001", "INV-002"]

    def test_sequences_are_independent_per_type(self, db_session, company_a):
        assert next_document_number(company_a.id, "PO") == "PO-001"
        assert next_document_number(company_a.id, "GRN") == "GRN-001"
        assert next_document_number(company_a.id, "PO") == "PO-002"

    def test_widening_past_digit_width(self, db_session, company_a):
        db_session.add(DocumentSequence(tenant_id=company_a.id, document_type="GRN", next_number=1000))
        db_session.commit()
        assert next_document_number(company_a.id, "GRN") == "GRN-1000"

    def test_unknown_type_allocates_nothing(self, db_session, company_a):
        with pytest.raises(UnknownDocumentTypeError):
            next_document_number(company_a.id, "BOGUS")
        assert db_session.query(DocumentSequence).count() == 0

    def test_preview_does_not_allocate(self, db_session, company_a):
        assert preview_next_number(company_a.id, "PO") == "PO-001"
        assert preview_next_number(company_a.id, "PO") == "PO-001"
        assert next_document_number(company_a.id, "PO") == "PO-001"
        assert preview_next_number(company_a.id, "PO") == "PO-002"


class TestCreateNumberedDocument:
    def test_number_assigned_in_same_transaction(self, db_session, company_a, ctx_a):
        po = create_numbered_document(store_for("PurchaseOrder"), {"notes": "first"}, ctx_a)

        assert po.po_number == "PO-001"
        assert po.tenant_id == company_a.id

    def test_payload_number_is_replaced(self, db_session, company_a, ctx_a):
        invoice = create_numbered_document(
            store_for("Invoice"), {"invoice_number": "INV-999"}, ctx_a
        )
        assert invoice.invoice_number == "INV-001"

    def test_failed_insert_rolls_back_allocation(self, db_session, company_a, ctx_a, monkeypatch):
        store = store_for("GoodsReceiptNote")

        def broken_insert(attrs, *, commit=True):
            db.session.add(GoodsReceiptNote(**attrs))
            db.session.flush()
            raise RuntimeError("line items failed")

        monkeypatch.setattr(store, "insert", broken_insert)
        with pytest.raises(RuntimeError):
            create_numbered_document(store, {}, ctx_a)
        monkeypatch.undo()

        db_session.expire_all()
        assert db_session.query(GoodsReceiptNote).count() == 0
        assert next_document_number(company_a.id, "GRN") == "GRN-001"

    def test_number_collision_skips_taken_number(self, db_session, company_a, ctx_a):
        # Counter says 4 is next but a document already holds GRN-004.
        for i in range(1, 5):
            db_session.add(GoodsReceiptNote(tenant_id=company_a.id, grn_number=f"GRN-{i:03d}"))
        db_session.add(DocumentSequence(tenant_id=company_a.id, document_type="GRN", next_number=4))
        db_session.commit()

        store = store_for("GoodsReceiptNote")
        numbers = [create_numbered_document(store, {}, ctx_a).grn_number for _ in range(3)]

        assert numbers == ["GRN-005", "GRN-006", "GRN-007"]
        db_session.expire_all()
        assert db_session.query(GoodsReceiptNote).count() == 7

    def test_collision_with_one_attempt_recovers_on_next_call(self, app, db_session, company_a, ctx_a, monkeypatch):
        db_session.add(DocumentSequence(tenant_id=company_a.id, document_type="GRN", next_number=1))
        db_session.add(GoodsReceiptNote(tenant_id=company_a.id, grn_number="GRN-001"))
        db_session.commit()
        monkeypatch.setitem(app.config, "SEQUENCE_RETRY_ATTEMPTS", 1)

        store = store_for("GoodsReceiptNote")
        with pytest.raises(SequenceConflictError):
            create_numbered_document(store, {}, ctx_a)

        assert create_numbered_document(store, {}, ctx_a).grn_number == "GRN-002"

    def test_other_constraint_failure_is_not_a_conflict(self, db_session, company_a, ctx_a, monkeypatch):
        store = store_for("GoodsReceiptNote")

        def failing_insert(attrs, *, commit=True):
            raise IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))

        monkeypatch.setattr(store, "insert", failing_insert)
        with pytest.raises(ValidationError):
            create_numbered_document(store, {}, ctx_a)
        monkeypatch.undo()

        assert next_document_number(company_a.id, "GRN") == "GRN-001"

    def test_plain_create_cannot_pick_a_number(self, db_session, company_a, ctx_a):
        store = store_for("GoodsReceiptNote")
        for _ in range(3):
            create_numbered_document(store, {}, ctx_a)

        with pytest.raises(ValidationError):
            store.create({"grn_number": "GRN-004"}, ctx_a)
        assert "grn_number" not in store.stamp_for_create({"grn_number": "GRN-004"}, ctx_a)

        numbers = [create_numbered_document(store, {}, ctx_a).grn_number for _ in range(3)]
        assert numbers == ["GRN-004", "GRN-005", "GRN-006"]

    def test_update_cannot_renumber(self, db_session, ctx_a):
        store = store_for("PurchaseOrder")
        po = create_numbered_document(store, {}, ctx_a)

        updated = store.update(po.id, {"po_number": "PO-999", "notes": "x"}, ctx_a)
        assert updated.po_number == "PO-001"
        assert updated.notes == "x"

    def test_non_numbered_entity(self, db_session, ctx_a):
        with pytest.raises(UnknownDocumentTypeError):
            create_numbered_document(store_for("Client"), {"name": "Acme"}, ctx_a)

    def test_tenants_get_their_own_numbers(self, db_session, company_a, company_b, ctx_a, ctx_b):
        create_numbered_document(store_for("Invoice"), {}, ctx_a)
        create_numbered_document(store_for("Invoice"), {}, ctx_a)
        inv_b = create_numbered_document(store_for("Invoice"), {}, ctx_b)

        assert inv_b.invoice_number == "INV-001"
        numbers_a = [i.invoice_number for i in db_session.query(Invoice).filter_by(tenant_id=company_a.id)]
        assert sorted(numbers_a) == ["INV-001", "INV-002"]
