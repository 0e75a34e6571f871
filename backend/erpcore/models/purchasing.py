from __future__ import annotations

from ..extensions import db
from .base import TenantColumns, BranchColumns, TimestampColumns
from erpcore.time_utils import to_utc_z


class PurchaseOrder(TenantColumns, BranchColumns, TimestampColumns, db.Model):
    """
    Purchase order header.

    po_number is allocated by document_service ("PO" sequence) in the same
    transaction as the insert. Cancelling sets status to "cancelled".
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "po_number", name="uq_purchase_orders_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(64), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True, index=True)
    po_date = db.Column(db.DateTime(timezone=True), nullable=True)
    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="draft")
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True)

    client = db.relationship("Client", backref=db.backref("purchase_orders", lazy=True))

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} po_number={self.po_number!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "branch_id": self.branch_id,
            "po_number": self.po_number,
            "client_id": self.client_id,
            "po_date": to_utc_z(self.po_date),
            "expected_date": to_utc_z(self.expected_date),
            "status": self.status,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class GoodsReceiptNote(TenantColumns, BranchColumns, TimestampColumns, db.Model):
    """
    Goods receipt note (GRN) against a purchase order.

    GRNs are hard-deleted; their numbers are never reissued because the
    sequence row keeps its high-water mark.
    """
    __tablename__ = "goods_receipt_notes"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "grn_number", name="uq_grns_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    grn_number = db.Column(db.String(64), nullable=False)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)
    grn_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True)

    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("grns", lazy=True))

    def __repr__(self) -> str:
        return f"<GoodsReceiptNote id={self.id} grn_number={self.grn_number!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "branch_id": self.branch_id,
            "grn_number": self.grn_number,
            "purchase_order_id": self.purchase_order_id,
            "grn_date": to_utc_z(self.grn_date),
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
