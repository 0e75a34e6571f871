"""
Declared properties of every tenant-scoped entity type.

Branch scoping, delete mode and document numbering are declared here once
per entity type, never chosen by the caller of the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models import Client, CompanyBranch, GoodsReceiptNote, Invoice, PurchaseOrder


DELETE_HARD = "HARD"
DELETE_SOFT = "SOFT"

DEFAULT_DATE_FIELDS = ("created_at", "updated_at")


@dataclass(frozen=True)
class EntityDefinition:
    name: str
    model: type
    branch_scoped: bool
    delete_mode: str
    # Soft delete writes inactive_value into status_column.
    status_column: str | None = None
    inactive_value: Any = None
    # Inactive rows refuse further updates (cancelled documents stay cancelled).
    inactive_is_final: bool = False
    # Numbered documents only.
    document_type: str | None = None
    number_field: str | None = None
    date_fields: tuple[str, ...] = DEFAULT_DATE_FIELDS

    def __post_init__(self):
        if self.delete_mode not in (DELETE_HARD, DELETE_SOFT):
            raise ValueError(f"Unknown delete mode: {self.delete_mode}")
        if self.delete_mode == DELETE_SOFT and not self.status_column:
            raise ValueError(f"{self.name}: soft delete requires a status column")
        if bool(self.document_type) != bool(self.number_field):
            raise ValueError(f"{self.name}: document_type and number_field go together")

    @property
    def is_numbered(self) -> bool:
        return self.document_type is not None


ENTITY_DEFINITIONS: dict[str, EntityDefinition] = {
    "CompanyBranch": EntityDefinition(
        name="CompanyBranch",
        model=CompanyBranch,
        branch_scoped=False,
        delete_mode=DELETE_SOFT,
        status_column="is_active",
        inactive_value=False,
    ),
    "Client": EntityDefinition(
        name="Client",
        model=Client,
        branch_scoped=True,
        delete_mode=DELETE_SOFT,
        status_column="status",
        inactive_value="inactive",
    ),
    "PurchaseOrder": EntityDefinition(
        name="PurchaseOrder",
        model=PurchaseOrder,
        branch_scoped=True,
        delete_mode=DELETE_SOFT,
        status_column="status",
        inactive_value="cancelled",
        inactive_is_final=True,
        document_type="PO",
        number_field="po_number",
        date_fields=("po_date", "expected_date", "created_at", "updated_at"),
    ),
    "GoodsReceiptNote": EntityDefinition(
        name="GoodsReceiptNote",
        model=GoodsReceiptNote,
        branch_scoped=True,
        delete_mode=DELETE_HARD,
        document_type="GRN",
        number_field="grn_number",
        date_fields=("grn_date", "created_at", "updated_at"),
    ),
    "Invoice": EntityDefinition(
        name="Invoice",
        model=Invoice,
        branch_scoped=True,
        delete_mode=DELETE_SOFT,
        status_column="status",
        inactive_value="cancelled",
        inactive_is_final=True,
        document_type="INVOICE",
        number_field="invoice_number",
        date_fields=("invoice_date", "due_date", "created_at", "updated_at"),
    ),
}


def get_entity_definition(entity_type: str) -> EntityDefinition:
    try:
        return ENTITY_DEFINITIONS[entity_type]
    except KeyError:
        raise KeyError(f"Unknown entity type: {entity_type}") from None


def numbered_definition_for(document_type: str) -> EntityDefinition | None:
    """The entity whose rows carry numbers of this document type, if any."""
    for definition in ENTITY_DEFINITIONS.values():
        if definition.document_type == document_type:
            return definition
    return None
