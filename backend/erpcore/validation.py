from __future__ import annotations
from datetime import datetime
from erpcore.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


# tenant_id / branch_id are never writable from a payload; the store stamps them.
CLIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email", "phone", "gst_number", "status"}),
    required_on_create=frozenset({"name"}),
)

PURCHASE_ORDER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"client_id", "po_date", "expected_date", "status", "notes"}),
)

GRN_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"purchase_order_id", "grn_date", "notes"}),
)

INVOICE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"client_id", "invoice_date", "due_date", "status", "notes"}),
)

CLIENT_STATUSES = {"active", "inactive"}
DOCUMENT_STATUSES = {"draft", "open", "approved", "closed", "cancelled"}


def _columns_by_key(model) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_status(patch: dict, allowed: set[str]) -> None:
    status = patch.get("status")
    if status is not None and status not in allowed:
        raise ValidationError(f"status must be one of: {', '.join(sorted(allowed))}")


def parse_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


# Stamped by the scoped store; passed through rather than rejected so the
# store can overwrite tenant_id and check branch_id against the tenant.
SCOPE_FIELDS = ("tenant_id", "branch_id")


def validate_scoped_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """validate_payload for tenant-scoped models."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    rest = {k: v for k, v in payload.items() if k not in SCOPE_FIELDS}
    patch = validate_payload(model=model, payload=rest, policy=policy, partial=partial)

    for key in SCOPE_FIELDS:
        if payload.get(key) is not None:
            patch[key] = parse_positive_int(payload[key], key)
    return patch


def parse_bool_arg(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def clamp_pagination(limit: int, offset: int, max_limit: int) -> tuple[int, int]:
    return max(1, min(limit, max_limit)), max(0, offset)
