from __future__ import annotations

from ..extensions import db
from .base import TimestampColumns
from erpcore.time_utils import to_utc_z


class Company(TimestampColumns, db.Model):
    """
    Multi-tenant root: every tenant is a Company.

    All branches, clients and documents belong to exactly one company.
    No data may cross company boundaries.

    Display settings (timezone, date_format, time_format) are read by the
    timestamp service when rendering dates for this tenant. They never
    change what is stored.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(191), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    timezone = db.Column(db.String(64), nullable=True)  # IANA name, e.g. "Asia/Kolkata"
    date_format = db.Column(db.String(32), nullable=True)  # moment tokens, e.g. "DD-MM-YYYY"
    time_format = db.Column(db.String(16), nullable=True)  # "12-hour" | "24-hour"

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "timezone": self.timezone,
            "date_format": self.date_format,
            "time_format": self.time_format,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CompanyBranch(TimestampColumns, db.Model):
    """
    Branch (physical location) within a company.

    Branch names and codes are unique within a company, not globally.
    """
    __tablename__ = "company_branches"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_company_branches_tenant_name"),
        db.UniqueConstraint("tenant_id", "code", name="uq_company_branches_tenant_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    company = db.relationship("Company", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<CompanyBranch id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
