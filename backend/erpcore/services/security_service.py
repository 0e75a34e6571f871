# Overview: Bearer token encoding/decoding and the security event audit trail.

"""
Security Service

Tokens are JWTs signed with JWT_SECRET_KEY. Every token issued here carries:
- user_id: the acting user (TenantContext.actor_id)
- tenant_id: the company the user belongs to (tenant isolation)
- role: coarse role used for settings administration

Security events are appended to security_events and committed immediately,
so the error response that follows does not erase them.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from flask import current_app, has_request_context, request
from jose import JWTError, jwt

from ..extensions import db
from ..models import SecurityEvent
from erpcore.time_utils import utcnow


class TokenError(Exception):
    """Raised when a bearer token cannot be verified."""
    pass


def create_access_token(
    *,
    tenant_id: int | None,
    user_id: int | None,
    role: str | None = None,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=current_app.config["JWT_EXPIRE_MINUTES"])

    claims: dict[str, Any] = dict(extra_claims or {})
    if tenant_id is not None:
        claims["tenant_id"] = tenant_id
    if user_id is not None:
        claims["user_id"] = user_id
    if role is not None:
        claims["role"] = role
    claims["exp"] = datetime.now(timezone.utc) + expires_delta

    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a bearer token.

    Raises:
        TokenError if the signature is invalid or the token expired
    """
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError as exc:
        raise TokenError(str(exc)) from exc


def log_security_event(
    *,
    event_type: str,
    success: bool,
    tenant_id: int | None = None,
    branch_id: int | None = None,
    actor_id: int | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - CROSS_TENANT_ACCESS_DENIED
    - TENANT_CONTEXT_MISSING
    - UNSCOPED_READ
    - TOKEN_REJECTED

    Commits the current session. Call sites raise these events before the
    request has written anything.
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")
        if resource is None:
            resource = request.path
        if action is None:
            action = request.method

    event = SecurityEvent(
        tenant_id=tenant_id,
        branch_id=branch_id,
        actor_id=actor_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event
