from __future__ import annotations

from erpcore.extensions import db
from erpcore.models import Company, CompanyBranch
from erpcore.services.concurrency import lock_for_update, run_with_retry
from erpcore.services.timestamp_service import (
    DisplaySettings,
    FormattingError,
    get_display_settings,
    validate_time_style,
    validate_timezone,
)


class CompanyError(Exception):
    """Raised when company or branch operations fail."""
    pass


def create_company(name: str, code: str | None = None, *, timezone: str | None = None) -> Company:
    def _op():
        if not name:
            raise CompanyError("Company name is required")
        if code and db.session.query(Company).filter_by(code=code).first():
            raise CompanyError(f"Company with code '{code}' already exists")
        if timezone:
            try:
                validate_timezone(timezone)
            except FormattingError as exc:
                raise CompanyError(str(exc)) from exc

        company = Company(name=name, code=code, timezone=timezone, is_active=True)
        db.session.add(company)
        db.session.commit()
        return company

    return run_with_retry(_op)


def list_companies() -> list[Company]:
    return db.session.query(Company).order_by(Company.id.asc()).all()


def add_branch(tenant_id: int, name: str, code: str | None = None) -> CompanyBranch:
    def _op():
        if not name:
            raise CompanyError("Branch name is required")

        company = db.session.get(Company, tenant_id)
        if not company:
            raise CompanyError(f"Company ID {tenant_id} not found")

        existing = db.session.query(CompanyBranch).filter_by(tenant_id=tenant_id, name=name).first()
        if existing:
            raise CompanyError(f"Branch '{name}' already exists in this company")

        branch = CompanyBranch(tenant_id=tenant_id, name=name, code=code, is_active=True)
        db.session.add(branch)
        db.session.commit()
        return branch

    return run_with_retry(_op)


def update_display_settings(
    tenant_id: int,
    *,
    timezone: str | None = None,
    date_format: str | None = None,
    time_format: str | None = None,
) -> DisplaySettings:
    """Change the tenant's display settings. Invalid values are rejected, not stored."""
    try:
        if timezone is not None:
            validate_timezone(timezone)
        if time_format is not None:
            validate_time_style(time_format)
    except FormattingError as exc:
        raise CompanyError(str(exc)) from exc
    if date_format is not None and not date_format.strip():
        raise CompanyError("date_format cannot be empty")

    def _op():
        company = lock_for_update(db.session.query(Company).filter_by(id=tenant_id)).first()
        if not company:
            raise CompanyError("Company not found")

        if timezone is not None:
            company.timezone = timezone
        if date_format is not None:
            company.date_format = date_format.strip()
        if time_format is not None:
            company.time_format = time_format

        db.session.commit()

    run_with_retry(_op)
    return get_display_settings(tenant_id)
