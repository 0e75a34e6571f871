from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from erpcore.time_utils import utcnow


class TenantColumns:
    """
    Columns shared by every tenant-owned table.

    Only declares columns. Filtering and stamping happen in
    services.scoped_store, never through model hooks.
    """

    @declared_attr
    def tenant_id(cls):
        return db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)


class BranchColumns:
    """Optional branch sub-scope (null means tenant-wide)."""

    @declared_attr
    def branch_id(cls):
        return db.Column(db.Integer, db.ForeignKey("company_branches.id"), nullable=True, index=True)


class TimestampColumns:
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
