# Overview: Flask API routes for client operations; parses input and returns JSON responses.

"""
Client Routes

SECURITY: All routes require authentication. Clients are scoped to the
caller's company and, when a branch header is sent, to that branch.
"""

from flask import Blueprint, current_app, request, jsonify

from ..decorators import require_auth
from ..models import Client
from ..services.scoped_store import store_for
from ..services.timestamp_service import display_record, get_display_settings
from ..tenant_context import current_tenant_context
from ..validation import (
    CLIENT_POLICY,
    CLIENT_STATUSES,
    clamp_pagination,
    enforce_status,
    parse_bool_arg,
    validate_scoped_payload,
)


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def _serialize(client: Client, settings) -> dict:
    return display_record(client.to_dict(), settings, store_for("Client").definition.date_fields)


@clients_bp.get("")
@require_auth
def list_clients_route():
    """
    List clients for the current company.

    Query parameters:
    - status: Filter by status (active | inactive)
    - include_inactive: Include inactive clients (default: false)
    - all_branches: Ignore the branch header for this listing (default: false)
    - limit: Maximum results (default: 50)
    - offset: Pagination offset (default: 0)

    Returns:
        {items: Client[], count: int, limit: int, offset: int}
    """
    context = current_tenant_context()

    filters = {}
    status = request.args.get("status")
    if status:
        filters["status"] = status

    limit, offset = clamp_pagination(
        request.args.get("limit", 50, type=int),
        request.args.get("offset", 0, type=int),
        current_app.config["PAGE_SIZE_MAX"],
    )

    clients, total = store_for("Client").paginate(
        filters,
        context,
        limit=limit,
        offset=offset,
        branch_scoped=not parse_bool_arg(request.args.get("all_branches")),
        include_inactive=parse_bool_arg(request.args.get("include_inactive")),
    )

    settings = get_display_settings(context.tenant_id)
    return jsonify({
        "items": [_serialize(c, settings) for c in clients],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@clients_bp.post("")
@require_auth
def create_client_route():
    """
    Create a client.

    Request body:
    {
        "name": "Acme Traders",  // required
        "email": "...",          // optional
        "phone": "...",          // optional
        "gst_number": "..."      // optional
    }
    """
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=False
    )
    enforce_status(patch, CLIENT_STATUSES)
    patch["created_by"] = context.actor_id

    client = store_for("Client").create(patch, context)
    return jsonify(_serialize(client, get_display_settings(context.tenant_id))), 201


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    context = current_tenant_context()
    client = store_for("Client").require(client_id, context)
    return jsonify(_serialize(client, get_display_settings(context.tenant_id)))


@clients_bp.put("/<int:client_id>")
@require_auth
def update_client_route(client_id: int):
    context = current_tenant_context()

    patch = validate_scoped_payload(
        model=Client, payload=request.get_json(silent=True), policy=CLIENT_POLICY, partial=True
    )
    enforce_status(patch, CLIENT_STATUSES)

    client = store_for("Client").update(client_id, patch, context)
    return jsonify(_serialize(client, get_display_settings(context.tenant_id)))


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    """Deactivate a client (soft delete; the row is kept)."""
    context = current_tenant_context()
    client = store_for("Client").delete(client_id, context)
    return jsonify(_serialize(client, get_display_settings(context.tenant_id)))
