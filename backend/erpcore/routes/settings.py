from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..decorators import require_admin, require_auth
from ..services import company_service, numbering_service
from ..services.company_service import CompanyError
from ..services.document_service import preview_next_number
from ..services.tenant_service import require_tenant
from ..services.timestamp_service import get_display_settings
from ..tenant_context import current_tenant_context


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@settings_bp.get("/numbering")
@require_auth
def list_numbering_route():
    """Effective numbering for every document type: stored configs plus defaults."""
    tenant_id = require_tenant(current_tenant_context())
    formats = numbering_service.list_numbering_formats(tenant_id)
    return jsonify({"items": [fmt.to_dict() for fmt in formats]})


@settings_bp.put("/numbering/<document_type>")
@require_auth
@require_admin
def set_numbering_route(document_type: str):
    """
    Request body:
    {
        "prefix": "INV",     // required
        "separator": "#",    // optional, default "-"
        "digit_width": 4     // optional, default 3
    }
    """
    tenant_id = require_tenant(current_tenant_context())
    data = _json_body()

    numbering_service.set_numbering_config(
        tenant_id,
        document_type,
        prefix=data.get("prefix"),
        separator=data.get("separator"),
        digit_width=data.get("digit_width"),
    )
    fmt = numbering_service.get_numbering_format(tenant_id, document_type)
    return jsonify(fmt.to_dict())


@settings_bp.get("/numbering/<document_type>/preview")
@require_auth
def preview_numbering_route(document_type: str):
    """Number the next document of this type would get. Nothing is allocated."""
    tenant_id = require_tenant(current_tenant_context())
    return jsonify({
        "document_type": numbering_service.normalize_document_type(document_type),
        "next_number": preview_next_number(tenant_id, document_type),
    })


@settings_bp.get("/display")
@require_auth
def get_display_route():
    tenant_id = require_tenant(current_tenant_context())
    return jsonify(get_display_settings(tenant_id).to_dict())


@settings_bp.put("/display")
@require_auth
@require_admin
def update_display_route():
    """
    Request body (all optional):
    {
        "timezone": "Asia/Kolkata",
        "date_format": "DD-MM-YYYY",
        "time_format": "24-hour"
    }
    """
    tenant_id = require_tenant(current_tenant_context())
    data = _json_body()

    try:
        settings = company_service.update_display_settings(
            tenant_id,
            timezone=data.get("timezone"),
            date_format=data.get("date_format"),
            time_format=data.get("time_format"),
        )
    except CompanyError as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(settings.to_dict())
