# Overview: Tenant- and branch-scoped CRUD over any registered entity type.

"""
Scoped Entity Store

Every read is filtered by the context's tenant_id (and branch_id for
branch-scoped entities when the request named a branch). Every write is
stamped with the context's tenant_id. The only way around the filter is
find_unscoped(), which is logged on every call.

USAGE:
    clients = store_for("Client")
    rows = clients.find({"status": "active"}, context)
    client = clients.create({"name": "Acme"}, context)
    clients.update(client.id, {"phone": "555"}, context)
    clients.delete(client.id, context)

Conflict policy: injected constraints always win.
- A read filter naming another tenant_id is rejected (CrossTenantAccessError).
- A read filter naming another branch_id is replaced by the context's branch.
- A payload tenant_id on create/update is overwritten with the context's.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from ..extensions import db
from ..tenant_context import TenantContext
from ..validation import ValidationError
from .concurrency import lock_for_update, run_with_retry
from .entity_registry import DELETE_SOFT, EntityDefinition, get_entity_definition
from .security_service import log_security_event
from .tenant_service import (
    CrossTenantAccessError,
    log_cross_tenant_attempt,
    require_branch_in_company,
    require_tenant,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Stamped by the store; never copied from a payload.
PROTECTED_FIELDS = {"id", "tenant_id", "created_at", "updated_at"}


class RecordNotFoundError(LookupError):
    """No row with that id is visible to the requesting tenant."""
    pass


class ScopedEntityStore(Generic[T]):
    def __init__(self, definition: EntityDefinition):
        self.definition = definition
        self.model = definition.model
        self._columns = {c.key: c for c in self.model.__mapper__.columns}

    def __repr__(self) -> str:
        return f"<ScopedEntityStore {self.definition.name}>"

    @property
    def protected_fields(self) -> set[str]:
        # Document numbers come from the tenant's counter only.
        if self.definition.is_numbered:
            return PROTECTED_FIELDS | {self.definition.number_field}
        return PROTECTED_FIELDS

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def _column(self, name: str):
        if name not in self._columns:
            raise ValidationError(f"Unknown field for {self.definition.name}: {name}")
        return getattr(self.model, name)

    def _applies_branch(self, context: TenantContext, branch_scoped: bool) -> bool:
        return self.definition.branch_scoped and branch_scoped and context.branch_id is not None

    def _scoped_query(
        self,
        filters: dict[str, Any] | None,
        context: TenantContext,
        *,
        branch_scoped: bool = True,
        include_inactive: bool = False,
    ):
        tenant_id = require_tenant(context)
        filters = dict(filters or {})

        requested_tenant = filters.pop("tenant_id", None)
        if requested_tenant is not None and requested_tenant != tenant_id:
            log_cross_tenant_attempt(
                f"{self.definition.name} filter named tenant {requested_tenant}",
                tenant_id=tenant_id,
                branch_id=context.branch_id,
                actor_id=context.actor_id,
            )
            raise CrossTenantAccessError(f"{self.definition.name} not found")

        query = db.session.query(self.model).filter(self.model.tenant_id == tenant_id)

        if self._applies_branch(context, branch_scoped):
            filters.pop("branch_id", None)
            query = query.filter(self.model.branch_id == context.branch_id)

        status_column = self.definition.status_column
        if (
            self.definition.delete_mode == DELETE_SOFT
            and not include_inactive
            and status_column not in filters
        ):
            query = query.filter(self._column(status_column) != self.definition.inactive_value)

        for key, value in filters.items():
            col = self._column(key)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(col.in_(list(value)))
            elif value is None:
                query = query.filter(col.is_(None))
            else:
                query = query.filter(col == value)

        return query

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(
        self,
        filters: dict[str, Any] | None,
        context: TenantContext,
        *,
        branch_scoped: bool = True,
        include_inactive: bool = False,
    ) -> list[T]:
        """
        Rows matching filters within the context's tenant (and branch).

        branch_scoped=False widens a branch-local request to the whole
        tenant; it never widens past the tenant.
        """
        query = self._scoped_query(
            filters, context, branch_scoped=branch_scoped, include_inactive=include_inactive
        )
        return query.order_by(self.model.id.asc()).all()

    def count(self, filters: dict[str, Any] | None, context: TenantContext, **kwargs) -> int:
        return self._scoped_query(filters, context, **kwargs).count()

    def paginate(
        self,
        filters: dict[str, Any] | None,
        context: TenantContext,
        *,
        limit: int = 50,
        offset: int = 0,
        **kwargs,
    ) -> tuple[list[T], int]:
        query = self._scoped_query(filters, context, **kwargs)
        total = query.count()
        rows = query.order_by(self.model.id.desc()).offset(offset).limit(limit).all()
        return rows, total

    def get(self, record_id: int, context: TenantContext, *, include_inactive: bool = True) -> T | None:
        """
        Single row by primary key, or None.

        Another tenant's row is indistinguishable from a missing one.
        """
        return self._scoped_query(
            {"id": record_id}, context, include_inactive=include_inactive
        ).first()

    def require(self, record_id: int, context: TenantContext, **kwargs) -> T:
        record = self.get(record_id, context, **kwargs)
        if record is None:
            raise RecordNotFoundError(f"{self.definition.name} not found")
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check_writable(self, attrs: dict[str, Any]) -> None:
        for key in attrs:
            if key not in self._columns:
                raise ValidationError(f"Unknown field for {self.definition.name}: {key}")

    def stamp_for_create(self, attributes: dict[str, Any], context: TenantContext) -> dict[str, Any]:
        """
        Copy of attributes with tenant_id (and branch_id) injected from context.

        Runs every check that may reject the payload, so callers can stamp
        before opening a unit of work.
        """
        tenant_id = require_tenant(context)
        attrs = {k: v for k, v in dict(attributes).items() if k not in self.protected_fields - {"tenant_id"}}

        supplied_tenant = attrs.get("tenant_id")
        if supplied_tenant is not None and supplied_tenant != tenant_id:
            logger.warning(
                "Overwriting payload tenant_id=%s with context tenant_id=%s on %s create",
                supplied_tenant, tenant_id, self.definition.name,
            )
        attrs["tenant_id"] = tenant_id

        if self.definition.branch_scoped:
            supplied_branch = attrs.get("branch_id")
            if context.branch_id is not None:
                attrs["branch_id"] = context.branch_id
            elif supplied_branch is not None:
                require_branch_in_company(supplied_branch, tenant_id, actor_id=context.actor_id)
        else:
            attrs.pop("branch_id", None)

        self._check_writable(attrs)
        return attrs

    def insert(self, attrs: dict[str, Any], *, commit: bool = True) -> T:
        """Insert already-stamped attributes (see stamp_for_create)."""
        record = self.model(**attrs)
        db.session.add(record)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return record

    def create(self, attributes: dict[str, Any], context: TenantContext) -> T:
        if self.definition.is_numbered:
            raise ValidationError(
                f"{self.definition.name} is numbered; create it with create_numbered_document"
            )
        attrs = self.stamp_for_create(attributes, context)

        def _op():
            return self.insert(attrs)

        return run_with_retry(_op)

    def update(self, record_id: int, attributes: dict[str, Any], context: TenantContext) -> T:
        """
        Update a row the context's tenant owns.

        tenant_id is re-stamped from context over the payload; a set
        branch_id cannot be moved to another branch.
        """
        tenant_id = require_tenant(context)
        attrs = {k: v for k, v in dict(attributes).items() if k not in self.protected_fields}

        supplied_tenant = dict(attributes).get("tenant_id")
        if supplied_tenant is not None and supplied_tenant != tenant_id:
            logger.warning(
                "Ignoring payload tenant_id=%s on %s %s update by tenant %s",
                supplied_tenant, self.definition.name, record_id, tenant_id,
            )

        if not self.definition.branch_scoped:
            attrs.pop("branch_id", None)
        self._check_writable(attrs)

        def _op():
            record = lock_for_update(
                self._scoped_query({"id": record_id}, context, include_inactive=True)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"{self.definition.name} not found")

            definition = self.definition
            if (
                definition.inactive_is_final
                and getattr(record, definition.status_column) == definition.inactive_value
            ):
                raise ValidationError(
                    f"{definition.name} is {definition.inactive_value} and cannot be changed"
                )

            if "branch_id" in attrs:
                new_branch = attrs["branch_id"]
                if record.branch_id is not None and new_branch != record.branch_id:
                    raise ValidationError("branch_id cannot be changed once set")
                if record.branch_id is None and new_branch is not None:
                    require_branch_in_company(new_branch, tenant_id, actor_id=context.actor_id)

            for key, value in attrs.items():
                setattr(record, key, value)
            record.tenant_id = tenant_id

            db.session.commit()
            return record

        return run_with_retry(_op)

    def delete(self, record_id: int, context: TenantContext) -> T:
        """
        Delete according to the entity's declared mode.

        Soft: status column moves to the inactive value and the row stays.
        Hard: the row is removed.
        """
        require_tenant(context)

        def _op():
            record = lock_for_update(
                self._scoped_query({"id": record_id}, context, include_inactive=True)
            ).first()
            if record is None:
                raise RecordNotFoundError(f"{self.definition.name} not found")

            if self.definition.delete_mode == DELETE_SOFT:
                setattr(record, self.definition.status_column, self.definition.inactive_value)
            else:
                db.session.delete(record)

            db.session.commit()
            return record

        return run_with_retry(_op)


_STORES: dict[str, ScopedEntityStore] = {}


def store_for(entity_type: str) -> ScopedEntityStore:
    """Store for a registered entity type (stores hold no per-request state)."""
    store = _STORES.get(entity_type)
    if store is None:
        store = ScopedEntityStore(get_entity_definition(entity_type))
        _STORES[entity_type] = store
    return store


def find(entity_type: str, filters: dict[str, Any] | None, context: TenantContext, **kwargs) -> list:
    return store_for(entity_type).find(filters, context, **kwargs)


def create(entity_type: str, attributes: dict[str, Any], context: TenantContext):
    return store_for(entity_type).create(attributes, context)


def update(entity_type: str, record_id: int, attributes: dict[str, Any], context: TenantContext):
    return store_for(entity_type).update(record_id, attributes, context)


def delete(entity_type: str, record_id: int, context: TenantContext):
    return store_for(entity_type).delete(record_id, context)


def find_unscoped(
    entity_type: str,
    filters: dict[str, Any] | None = None,
    *,
    reason: str,
    actor_id: int | None = None,
) -> list:
    """
    Cross-tenant administrative read. Bypasses tenant isolation on purpose.

    reason is mandatory and lands in the security event log together with
    the entity type, so every bypass is auditable.
    """
    if not reason:
        raise ValidationError("An unscoped read requires a reason")

    definition = get_entity_definition(entity_type)
    model = definition.model
    columns = {c.key for c in model.__mapper__.columns}

    query = db.session.query(model)
    for key, value in (filters or {}).items():
        if key not in columns:
            raise ValidationError(f"Unknown field for {definition.name}: {key}")
        col = getattr(model, key)
        if isinstance(value, (list, tuple, set)):
            query = query.filter(col.in_(list(value)))
        elif value is None:
            query = query.filter(col.is_(None))
        else:
            query = query.filter(col == value)

    logger.info("Unscoped read of %s (%s)", definition.name, reason)
    log_security_event(
        event_type="UNSCOPED_READ",
        success=True,
        actor_id=actor_id,
        resource=definition.name,
        action="find_unscoped",
        reason=reason,
    )

    return query.order_by(model.id.asc()).all()
