from __future__ import annotations

from ..extensions import db
from erpcore.time_utils import to_utc_z, utcnow


class InvoiceNumberingConfig(db.Model):
    """
    Per-tenant rendering of document numbers: prefix + separator + padded sequence.

    Read-only at generation time. Missing rows fall back to the defaults in
    services.numbering_service.
    """
    __tablename__ = "invoice_numbering_configs"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "document_type", name="uq_numbering_configs_tenant_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    prefix = db.Column(db.String(32), nullable=False)
    separator = db.Column(db.String(8), nullable=False, default="-")
    digit_width = db.Column(db.Integer, nullable=False, default=3)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "document_type": self.document_type,
            "prefix": self.prefix,
            "separator": self.separator,
            "digit_width": self.digit_width,
            "updated_at": to_utc_z(self.updated_at),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-tenant document sequences.

    next_number is the number the next allocation will hand out; the
    high-water mark is next_number - 1. Rows are never deleted, so numbers
    never restart even when documents are removed.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "document_type", name="uq_doc_sequences_tenant_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
