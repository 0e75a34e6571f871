# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, request, jsonify

from ..decorators import require_auth
from ..models import Invoice
from ..services.document_service import create_numbered_document
from ..services.scoped_store import store_for
from ..services.timestamp_service import display_record, get_display_settings
from ..tenant_context import current_tenant_context
from ..validation import (
    DOCUMENT_STATUSES,
    INVOICE_POLICY,
    ValidationError,
    clamp_pagination,
    enforce_status,
    parse_bool_arg,
    validate_scoped_payload,
)


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _serialize(invoice: Invoice, settings) -> dict:
    return display_record(invoice.to_dict(), settings, store_for("Invoice").definition.date_fields)


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    context = current_tenant_context()

    filters = {}
    if request.args.get("status"):
        filters["status"] = request.args["status"]
    client_id = request.args.get("client_id", type=int)
    if client_id:
        filters["client_id"] = client_id

    limit, offset = clamp_pagination(
        request.args.get("limit", 50, type=int),
        request.args.get("offset", 0, type=int),
        current_app.config["PAGE_SIZE_MAX"],
    )

    invoices, total = store_for("Invoice").paginate(
        filters,
        context,
        limit=limit,
        offset=offset,
        branch_scoped=not parse_bool_arg(request.args.get("all_branches")),
        include_inactive=parse_bool_arg(request.args.get("include_inactive")),
    )

    settings = get_display_settings(context.tenant_id)
    return jsonify({
        "items": [_serialize(inv, settings) for inv in invoices],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice with the next INVOICE number (INV-001, INV-002, ...).

    Request body:
    {
        "client_id": 12,                          // optional
        "invoice_date": "2024-06-01T10:00:00Z",   // optional
        "due_date": "2024-07-01T00:00:00Z",       // optional
        "notes": "..."                            // optional
    }
    """
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=Invoice,
        payload=request.get_json(silent=True),
        policy=INVOICE_POLICY,
        partial=False,
    )
    enforce_status(patch, DOCUMENT_STATUSES)
    client_id = patch.get("client_id")
    if client_id is not None and store_for("Client").get(client_id, context.without_branch()) is None:
        raise ValidationError("Client not found")
    patch["created_by"] = context.actor_id

    invoice = create_numbered_document(store_for("Invoice"), patch, context)
    return jsonify(_serialize(invoice, get_display_settings(context.tenant_id))), 201


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    context = current_tenant_context()
    invoice = store_for("Invoice").require(invoice_id, context)
    return jsonify(_serialize(invoice, get_display_settings(context.tenant_id)))


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
def cancel_invoice_route(invoice_id: int):
    """Cancel an invoice. Invoices are never removed."""
    context = current_tenant_context()
    invoice = store_for("Invoice").delete(invoice_id, context)
    return jsonify(_serialize(invoice, get_display_settings(context.tenant_id)))
