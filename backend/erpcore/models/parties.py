from __future__ import annotations

from ..extensions import db
from .base import TenantColumns, BranchColumns, TimestampColumns
from erpcore.time_utils import to_utc_z


class Client(TenantColumns, BranchColumns, TimestampColumns, db.Model):
    """
    Customer / vendor party of a company.

    Soft delete: status moves to "inactive"; rows are kept for the documents
    that reference them.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(191), nullable=False)
    email = db.Column(db.String(191), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    gst_number = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_by = db.Column(db.Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "branch_id": self.branch_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "gst_number": self.gst_number,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
