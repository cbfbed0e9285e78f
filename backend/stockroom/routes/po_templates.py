# Overview: Flask API routes for purchase order templates.

"""
Purchase Order Template Routes

Templates are scoped to the actor's business. Anyone may read them and
order from them; owners and managers maintain them.
"""

from flask import Blueprint, g, jsonify, request

from . import arg_int, json_body
from ..decorators import require_actor, require_role
from ..services import po_template_service
from ..services.schemas import CreatePOTemplate, OrderFromTemplate, UpdatePOTemplate
from ..validation import to_bool


po_templates_bp = Blueprint("po_templates", __name__, url_prefix="/api/po-templates")


@po_templates_bp.get("")
@require_actor
def list_templates():
    """
    Query parameters: vendor_id, is_active (true/false; omit for both).
    """
    raw_active = request.args.get("is_active")
    templates = po_template_service.list_po_templates(
        g.actor,
        vendor_id=arg_int("vendor_id"),
        is_active=to_bool(raw_active, "is_active") if raw_active is not None else None,
    )
    return jsonify({"items": [t.to_dict() for t in templates], "count": len(templates)}), 200


@po_templates_bp.get("/<int:template_id>")
@require_actor
def get_template(template_id: int):
    return jsonify(po_template_service.get_po_template(g.actor, template_id).to_dict()), 200


@po_templates_bp.post("")
@require_actor
@require_role("owner", "manager")
def create_template():
    """
    Request body:
    {
        "vendor_id": int,
        "name": str,
        "items": [{"item_id": int, "quantity": number}],
        "notes": str (optional)
    }
    """
    template = po_template_service.create_po_template(g.actor, CreatePOTemplate.from_dict(json_body()))
    return jsonify(template.to_dict()), 201


@po_templates_bp.put("/<int:template_id>")
@require_actor
@require_role("owner", "manager")
def update_template(template_id: int):
    """
    Request body (all optional):
    {
        "name": str,
        "notes": str | null,
        "is_active": bool,
        "items": [{"item_id": int, "quantity": number}]  (replaces all lines)
    }
    """
    template = po_template_service.update_po_template(
        g.actor, template_id, UpdatePOTemplate.from_dict(json_body())
    )
    return jsonify(template.to_dict()), 200


@po_templates_bp.delete("/<int:template_id>")
@require_actor
@require_role("owner", "manager")
def delete_template(template_id: int):
    return jsonify(po_template_service.delete_po_template(g.actor, template_id)), 200


@po_templates_bp.post("/<int:template_id>/orders")
@require_actor
def order_from_template(template_id: int):
    """
    Request body:
    {
        "branch_id": int,
        "expected_date": "YYYY-MM-DD" (optional),
        "notes": str (optional, defaults to the template notes)
    }
    """
    order = po_template_service.create_purchase_order_from_template(
        g.actor, template_id, OrderFromTemplate.from_dict(json_body())
    )
    return jsonify(order.to_dict()), 201
