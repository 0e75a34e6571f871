# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

"""
Purchase Order Routes

SECURITY: All routes require authentication; purchase orders are scoped to
the caller's company (and branch, when one is selected).

po_number is never accepted from the client. It is allocated from the
company's PO sequence in the same transaction as the insert.
"""

from flask import Blueprint, current_app, request, jsonify

from ..decorators import require_auth
from ..models import PurchaseOrder
from ..services.document_service import create_numbered_document
from ..services.scoped_store import store_for
from ..services.timestamp_service import display_record, get_display_settings
from ..tenant_context import current_tenant_context
from ..validation import (
    DOCUMENT_STATUSES,
    PURCHASE_ORDER_POLICY,
    ValidationError,
    clamp_pagination,
    enforce_status,
    parse_bool_arg,
    validate_scoped_payload,
)


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


def _serialize(po: PurchaseOrder, settings) -> dict:
    return display_record(po.to_dict(), settings, store_for("PurchaseOrder").definition.date_fields)


def _check_client(patch: dict, context) -> None:
    # A client reference must resolve inside the caller's company.
    client_id = patch.get("client_id")
    if client_id is not None and store_for("Client").get(client_id, context.without_branch()) is None:
        raise ValidationError("Client not found")


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """
    List purchase orders.

    Query parameters:
    - status, client_id: optional filters
    - include_inactive: include cancelled orders (default: false)
    - all_branches: ignore the branch header (default: false)
    - limit, offset: pagination
    """
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

    orders, total = store_for("PurchaseOrder").paginate(
        filters,
        context,
        limit=limit,
        offset=offset,
        branch_scoped=not parse_bool_arg(request.args.get("all_branches")),
        include_inactive=parse_bool_arg(request.args.get("include_inactive")),
    )

    settings = get_display_settings(context.tenant_id)
    return jsonify({
        "items": [_serialize(po, settings) for po in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    """
    Create a purchase order with the next PO number.

    Request body:
    {
        "client_id": 12,                          // optional
        "po_date": "2024-06-01T10:00:00Z",        // optional
        "expected_date": "2024-06-10T00:00:00Z",  // optional
        "notes": "..."                            // optional
    }
    """
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=PurchaseOrder,
        payload=request.get_json(silent=True),
        policy=PURCHASE_ORDER_POLICY,
        partial=False,
    )
    enforce_status(patch, DOCUMENT_STATUSES)
    _check_client(patch, context)
    patch["created_by"] = context.actor_id

    po = create_numbered_document(store_for("PurchaseOrder"), patch, context)
    return jsonify(_serialize(po, get_display_settings(context.tenant_id))), 201


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
def get_purchase_order_route(po_id: int):
    context = current_tenant_context()
    po = store_for("PurchaseOrder").require(po_id, context)
    return jsonify(_serialize(po, get_display_settings(context.tenant_id)))


@purchase_orders_bp.put("/<int:po_id>")
@require_auth
def update_purchase_order_route(po_id: int):
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=PurchaseOrder,
        payload=request.get_json(silent=True),
        policy=PURCHASE_ORDER_POLICY,
        partial=True,
    )
    enforce_status(patch, DOCUMENT_STATUSES)
    _check_client(patch, context)

    po = store_for("PurchaseOrder").update(po_id, patch, context)
    return jsonify(_serialize(po, get_display_settings(context.tenant_id)))


@purchase_orders_bp.delete("/<int:po_id>")
@require_auth
def cancel_purchase_order_route(po_id: int):
    """Cancel a purchase order (soft delete; the number stays used)."""
    context = current_tenant_context()
    po = store_for("PurchaseOrder").delete(po_id, context)
    return jsonify(_serialize(po, get_display_settings(context.tenant_id)))
