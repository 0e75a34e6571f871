# Overview: Request decorators for API routes; establish the tenant context from the bearer token.

from functools import wraps
from flask import request, jsonify

from .services.security_service import TokenError, decode_access_token, log_security_event
from .services.tenant_service import CrossTenantAccessError, require_branch_in_company
from .tenant_context import (
    bind_tenant_context,
    context_from_claims,
    current_tenant_context,
    parse_branch_id,
    resolve_branch_header,
)
from .validation import ValidationError


def require_auth(f):
    """
    Require a bearer token and establish tenant context.

    MULTI-TENANT: Binds a TenantContext to flask.g with:
    - tenant_id: from the token's tenant_id (or legacy company_id) claim
    - branch_id: from the company-branch-id / company_branch_id / x-branch-id header
    - actor_id: from the token's user_id claim
    - role: from the token's role claim

    Returns 401 for a missing, invalid or expired token, 400 for a malformed
    branch header and 404 for a branch outside the tenant. A token without a
    tenant claim is let through; the scoped store refuses to run without one.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        try:
            claims = decode_access_token(token)
        except TokenError as e:
            log_security_event(
                event_type="TOKEN_REJECTED",
                success=False,
                reason=str(e),
            )
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            branch_id = parse_branch_id(resolve_branch_header(request.headers))
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

        context = context_from_claims(claims, branch_id=branch_id)

        if branch_id is not None and context.has_tenant:
            try:
                require_branch_in_company(branch_id, context.tenant_id, actor_id=context.actor_id)
            except CrossTenantAccessError as e:
                return jsonify({"error": str(e)}), 404

        bind_tenant_context(context)

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated caller to carry the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = current_tenant_context()
        if not context.has_tenant and context.actor_id is None:
            return jsonify({"error": "Authentication required"}), 401

        if not context.is_admin:
            log_security_event(
                event_type="PERMISSION_DENIED",
                success=False,
                tenant_id=context.tenant_id,
                branch_id=context.branch_id,
                actor_id=context.actor_id,
                reason="Admin role required",
            )
            return jsonify({"error": "Admin access required"}), 403

        return f(*args, **kwargs)
    return decorated_function
