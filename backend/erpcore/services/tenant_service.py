"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

Every scoped operation runs under a TenantContext whose tenant_id is set;
cross-tenant access must be explicitly denied.

SECURITY INVARIANTS:
1. A scoped operation without tenant_id fails fast (MissingTenantError)
2. Branch ids from client input are validated against the tenant
3. A reference to another tenant's row surfaces as "not found", never as
   confirmation that the row exists
4. Cross-tenant access attempts are logged as security events

USAGE:
    from erpcore.services.tenant_service import require_tenant, require_branch_in_company

    tenant_id = require_tenant(context)
    branch = require_branch_in_company(branch_id, tenant_id)
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import CompanyBranch
from ..tenant_context import TenantContext
from .security_service import log_security_event


logger = logging.getLogger(__name__)


class TenantAccessError(Exception):
    """Base class for tenant scoping failures."""
    pass


class MissingTenantError(TenantAccessError):
    """A scoped operation was attempted without a resolved tenant identity."""
    pass


class CrossTenantAccessError(TenantAccessError):
    """A filter, payload or header referenced another tenant's data."""
    pass


def require_tenant(context: TenantContext | None) -> int:
    """
    Return the context's tenant_id or raise MissingTenantError.

    A missing tenant is an authentication-layer bug, never a reason to run
    an unfiltered query.
    """
    if context is None or context.tenant_id is None:
        logger.error("Scoped operation attempted without tenant context")
        raise MissingTenantError("Tenant context not established")
    return context.tenant_id


def require_branch_in_company(branch_id: int, tenant_id: int, *, actor_id: int | None = None) -> CompanyBranch:
    """
    Validate that a branch belongs to the specified company.

    Call this before trusting a branch_id taken from a request header.

    Raises:
        CrossTenantAccessError if the branch doesn't exist, is inactive or
        belongs to another company (same message in every case)
    """
    branch = db.session.query(CompanyBranch).filter_by(id=branch_id).first()

    if not branch or not branch.is_active:
        log_cross_tenant_attempt(
            f"Branch {branch_id} not found",
            tenant_id=tenant_id,
            actor_id=actor_id,
        )
        raise CrossTenantAccessError("Branch not found")

    if branch.tenant_id != tenant_id:
        log_cross_tenant_attempt(
            f"Branch {branch_id} belongs to tenant {branch.tenant_id}, not {tenant_id}",
            tenant_id=tenant_id,
            branch_id=branch_id,
            actor_id=actor_id,
        )
        raise CrossTenantAccessError("Branch not found")

    return branch


def log_cross_tenant_attempt(
    reason: str,
    *,
    tenant_id: int | None = None,
    branch_id: int | None = None,
    actor_id: int | None = None,
    resource: str | None = None,
) -> None:
    """
    Log a cross-tenant access attempt as a security event.

    These events should be monitored and alerted on.
    """
    logger.warning("Cross-tenant access denied: %s (tenant_id=%s)", reason, tenant_id)
    log_security_event(
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        tenant_id=tenant_id,
        branch_id=branch_id,
        actor_id=actor_id,
        resource=resource,
        reason=reason,
    )
