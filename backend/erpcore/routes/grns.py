# Overview: Flask API routes for goods receipt notes; parses input and returns JSON responses.

"""
GRN Routes

SECURITY: All routes require authentication; GRNs are scoped to the
caller's company (and branch, when one is selected).

GRNs are hard-deleted. A deleted GRN's number is not reissued.
"""

from flask import Blueprint, current_app, request, jsonify

from ..decorators import require_auth
from ..models import GoodsReceiptNote
from ..services.document_service import create_numbered_document
from ..services.scoped_store import store_for
from ..services.timestamp_service import display_record, get_display_settings
from ..tenant_context import current_tenant_context
from ..validation import (
    GRN_POLICY,
    ValidationError,
    clamp_pagination,
    parse_bool_arg,
    validate_scoped_payload,
)


grns_bp = Blueprint("grns", __name__, url_prefix="/api/grns")


def _serialize(grn: GoodsReceiptNote, settings) -> dict:
    return display_record(grn.to_dict(), settings, store_for("GoodsReceiptNote").definition.date_fields)


@grns_bp.get("")
@require_auth
def list_grns_route():
    context = current_tenant_context()

    filters = {}
    purchase_order_id = request.args.get("purchase_order_id", type=int)
    if purchase_order_id:
        filters["purchase_order_id"] = purchase_order_id

    limit, offset = clamp_pagination(
        request.args.get("limit", 50, type=int),
        request.args.get("offset", 0, type=int),
        current_app.config["PAGE_SIZE_MAX"],
    )

    grns, total = store_for("GoodsReceiptNote").paginate(
        filters,
        context,
        limit=limit,
        offset=offset,
        branch_scoped=not parse_bool_arg(request.args.get("all_branches")),
    )

    settings = get_display_settings(context.tenant_id)
    return jsonify({
        "items": [_serialize(grn, settings) for grn in grns],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@grns_bp.post("")
@require_auth
def create_grn_route():
    """
    Create a GRN with the next GRN number.

    Request body:
    {
        "purchase_order_id": 4,              // optional
        "grn_date": "2024-06-01T10:00:00Z",  // optional
        "notes": "..."                       // optional
    }
    """
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=GoodsReceiptNote,
        payload=request.get_json(silent=True),
        policy=GRN_POLICY,
        partial=False,
    )
    po_id = patch.get("purchase_order_id")
    if po_id is not None and store_for("PurchaseOrder").get(po_id, context.without_branch()) is None:
        raise ValidationError("Purchase order not found")
    patch["created_by"] = context.actor_id

    grn = create_numbered_document(store_for("GoodsReceiptNote"), patch, context)
    return jsonify(_serialize(grn, get_display_settings(context.tenant_id))), 201


@grns_bp.get("/<int:grn_id>")
@require_auth
def get_grn_route(grn_id: int):
    context = current_tenant_context()
    grn = store_for("GoodsReceiptNote").require(grn_id, context)
    return jsonify(_serialize(grn, get_display_settings(context.tenant_id)))


@grns_bp.delete("/<int:grn_id>")
@require_auth
def delete_grn_route(grn_id: int):
    context = current_tenant_context()
    store_for("GoodsReceiptNote").delete(grn_id, context)
    return jsonify({"id": grn_id, "deleted": True})
