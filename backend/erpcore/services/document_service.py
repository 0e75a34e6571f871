# Overview: Service-layer operations for numbered documents; allocates per-tenant document numbers.

"""
Document Numbering

Numbers are allocated from document_sequences, one row per
(tenant_id, document_type). Allocation is a single atomic
UPDATE ... SET next_number = next_number + 1, so the row lock is held until
the surrounding transaction ends and no two transactions can read the same
value. Numbers never repeat for a tenant/type; a rolled-back transaction
may leave a gap, never a duplicate.

The counter row is created on first use. When two transactions race to
create it, the unique constraint rejects one of them and that one retries
through the UPDATE path.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db
from ..models import DocumentSequence
from ..tenant_context import TenantContext
from ..validation import ValidationError
from .concurrency import run_with_retry
from .entity_registry import numbered_definition_for
from .numbering_service import (
    NumberingFormat,
    UnknownDocumentTypeError,
    get_numbering_format,
    normalize_document_type,
)
from .scoped_store import ScopedEntityStore
from .tenant_service import MissingTenantError, require_tenant


logger = logging.getLogger(__name__)

__all__ = [
    "SequenceConflictError",
    "UnknownDocumentTypeError",
    "create_numbered_document",
    "next_document_number",
    "preview_next_number",
]


class SequenceConflictError(Exception):
    """Raised when a document number could not be allocated after retries."""
    pass


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _existing_high_water_mark(tenant_id: int, fmt: NumberingFormat) -> int:
    """
    Greatest sequence already used by the tenant's documents of this type.

    Only numbers rendered with the current prefix and separator count;
    anything else is not something this counter could collide with.
    """
    definition = numbered_definition_for(fmt.document_type)
    if definition is None:
        return 0

    column = getattr(definition.model, definition.number_field)
    lead = f"{fmt.prefix}{fmt.separator}"
    values = (
        db.session.query(column)
        .filter(
            definition.model.tenant_id == tenant_id,
            column.like(_escape_like(lead) + "%", escape="\\"),
        )
        .all()
    )

    high = 0
    for (value,) in values:
        tail = value[len(lead):]
        if tail.isdigit():
            high = max(high, int(tail))
    return high


def _current_next_number(tenant_id: int, document_type: str) -> int | None:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(tenant_id=tenant_id, document_type=document_type)
        .scalar()
    )


def _allocate_sequence(tenant_id: int, fmt: NumberingFormat) -> int:
    """
    Reserve the next sequence for tenant/type inside the current transaction.

    Must be the first write of the unit of work: the UPDATE takes the row
    lock (on SQLite, the database write lock) and holds it until commit.
    """
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == fmt.document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _current_next_number(tenant_id, fmt.document_type) - 1

    seed = _existing_high_water_mark(tenant_id, fmt)
    if seed:
        logger.info(
            "Seeding %s counter for tenant %s from existing documents (high=%d)",
            fmt.document_type, tenant_id, seed,
        )
    seq = DocumentSequence(
        tenant_id=tenant_id,
        document_type=fmt.document_type,
        next_number=seed + 2,
    )
    db.session.add(seq)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another transaction created the counter first.
        raise SequenceConflictError(
            f"Counter for {fmt.document_type} was created concurrently"
        ) from exc
    return seed + 1


def _number_taken(definition, tenant_id: int, number: str) -> bool:
    column = getattr(definition.model, definition.number_field)
    return (
        db.session.query(definition.model.id)
        .filter(definition.model.tenant_id == tenant_id, column == number)
        .first()
        is not None
    )


def _skip_taken_numbers(tenant_id: int, fmt: NumberingFormat, sequence: int) -> None:
    """
    Move the counter past a number some document already holds.

    Commits on its own so the next attempt allocates a fresh number instead
    of the one the rollback just handed back. Leaves a gap, never a repeat.
    """
    floor = max(sequence, _existing_high_water_mark(tenant_id, fmt)) + 1
    db.session.execute(
        update(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == fmt.document_type,
            DocumentSequence.next_number < floor,
        )
        .values(next_number=floor)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    logger.warning(
        "%s counter for tenant %s collided at %s; advanced to %d",
        fmt.document_type, tenant_id, fmt.render(sequence), floor,
    )


def _retry_settings() -> dict:
    return {
        "attempts": current_app.config["SEQUENCE_RETRY_ATTEMPTS"],
        "backoff_base": current_app.config["SEQUENCE_RETRY_BACKOFF"],
        "retry_on": (SequenceConflictError,),
    }


def _run_allocation(func):
    try:
        return run_with_retry(func, **_retry_settings())
    except OperationalError as exc:
        raise SequenceConflictError("Could not allocate document number; retries exhausted") from exc


def next_document_number(tenant_id: int, document_type: str) -> str:
    """
    Atomically allocate and commit the next document number for a tenant/type.

    The number is consumed even if the caller never stores a document with
    it. Use create_numbered_document() to allocate and insert together.
    """
    if not tenant_id:
        raise MissingTenantError("tenant_id is required")
    fmt = get_numbering_format(tenant_id, document_type)

    def _op() -> str:
        sequence = _allocate_sequence(tenant_id, fmt)
        db.session.commit()
        return fmt.render(sequence)

    return _run_allocation(_op)


def preview_next_number(tenant_id: int, document_type: str) -> str:
    """Number the next allocation would return. Allocates nothing."""
    fmt = get_numbering_format(tenant_id, document_type)
    next_number = _current_next_number(tenant_id, fmt.document_type)
    if next_number is None:
        next_number = _existing_high_water_mark(tenant_id, fmt) + 1
    return fmt.render(next_number)


def create_numbered_document(
    store: ScopedEntityStore,
    attributes: dict[str, Any],
    context: TenantContext,
    *,
    document_type: str | None = None,
    number_field: str | None = None,
):
    """
    Allocate a document number and insert the document in one transaction.

    The payload is stamped and validated before the transaction opens, so
    the sequence UPDATE is its first write. If the insert fails the
    allocation is rolled back with it.
    """
    definition = store.definition
    document_type = normalize_document_type(document_type or definition.document_type)
    number_field = number_field or definition.number_field
    if not number_field:
        raise UnknownDocumentTypeError(f"{definition.name} is not a numbered document")

    tenant_id = require_tenant(context)
    attrs = store.stamp_for_create(attributes, context)
    fmt = get_numbering_format(tenant_id, document_type)

    def _op():
        sequence = None
        try:
            sequence = _allocate_sequence(tenant_id, fmt)
            record = store.insert({**attrs, number_field: fmt.render(sequence)}, commit=False)
            db.session.commit()
        except (SequenceConflictError, OperationalError):
            raise
        except IntegrityError as exc:
            db.session.rollback()
            if sequence is None or not _number_taken(definition, tenant_id, fmt.render(sequence)):
                raise ValidationError(f"{definition.name} violates a database constraint") from exc
            _skip_taken_numbers(tenant_id, fmt, sequence)
            raise SequenceConflictError(
                f"{fmt.render(sequence)} already in use for tenant {tenant_id}"
            ) from exc
        except Exception:
            db.session.rollback()
            raise
        return record

    return _run_allocation(_op)
