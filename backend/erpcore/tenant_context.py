"""
Per-request tenant context.

A TenantContext is built once per request from verified token claims plus an
optional branch header, stored on flask.g for the lifetime of that request and
passed explicitly into every scoped store call. It is cleared in a
teardown_request handler so a reused worker never sees the previous
request's tenant.

Nothing in this package keeps tenant identity in a module-level variable.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping

from flask import g

from .validation import ValidationError


# Priority order: first non-empty value wins.
BRANCH_HEADERS = ("company-branch-id", "company_branch_id", "x-branch-id")

# Older tokens carry the tenant as company_id.
TENANT_CLAIMS = ("tenant_id", "company_id")


@dataclass(frozen=True)
class TenantContext:
    tenant_id: int | None
    branch_id: int | None = None
    actor_id: int | None = None
    role: str | None = None

    @property
    def has_tenant(self) -> bool:
        return self.tenant_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def without_branch(self) -> "TenantContext":
        return replace(self, branch_id=None)


def resolve_branch_header(headers: Mapping[str, str]) -> str | None:
    for name in BRANCH_HEADERS:
        value = headers.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_branch_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    if not raw.isdigit() or int(raw) <= 0:
        raise ValidationError("Branch header must be a positive integer")
    return int(raw)


def _optional_int(value) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def context_from_claims(claims: Mapping, branch_id: int | None = None) -> TenantContext:
    """
    Build a TenantContext from decoded token claims.

    A missing tenant claim yields tenant_id=None; the scoped store refuses to
    run with such a context.
    """
    tenant_id = None
    for claim in TENANT_CLAIMS:
        tenant_id = _optional_int(claims.get(claim))
        if tenant_id is not None:
            break

    return TenantContext(
        tenant_id=tenant_id,
        branch_id=branch_id,
        actor_id=_optional_int(claims.get("user_id") or claims.get("sub")),
        role=claims.get("role"),
    )


def bind_tenant_context(context: TenantContext) -> None:
    g.tenant_context = context


def current_tenant_context() -> TenantContext:
    """Context for the active request; an empty context when none is bound."""
    return g.get("tenant_context") or TenantContext(tenant_id=None)


def clear_tenant_context() -> None:
    g.pop("tenant_context", None)
