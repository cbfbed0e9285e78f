# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

Vendors are scoped to the actor's business. A vendor with a branch_id is
visible only to that branch; list with ?branch_id= to get what a branch sees.
"""

from flask import Blueprint, request, jsonify, g

from . import arg_bool, arg_int, json_body
from ..decorators import require_actor, require_role
from ..services import vendor_service
from ..services.schemas import VendorInput, VendorUpdate


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_actor
def list_vendors_route():
    """
    Query parameters:
    - branch_id: vendors visible to this branch (shared + exclusive)
    - include_inactive: include inactive vendors (default: false)
    - search: match on name or code
    """
    vendors = vendor_service.list_vendors(
        g.actor,
        branch_id=arg_int("branch_id"),
        include_inactive=arg_bool("include_inactive"),
        search=request.args.get("search"),
    )
    return jsonify({"items": [v.to_dict() for v in vendors], "count": len(vendors)}), 200


@vendors_bp.post("")
@require_actor
@require_role("owner", "manager")
def create_vendor_route():
    """
    Request body:
    {
        "name": str,
        "code": str (optional, generated as VND-0001 when omitted),
        "branch_id": int (optional, null = shared by all branches),
        "contact_person", "email", "phone", "address", "notes": str (optional)
    }
    """
    vendor = vendor_service.create_vendor(g.actor, VendorInput.from_dict(json_body()))
    return jsonify(vendor.to_dict()), 201


@vendors_bp.get("/<int:vendor_id>")
@require_actor
def get_vendor_route(vendor_id: int):
    return jsonify(vendor_service.get_vendor(g.actor, vendor_id).to_dict()), 200


@vendors_bp.put("/<int:vendor_id>")
@require_actor
@require_role("owner", "manager")
def update_vendor_route(vendor_id: int):
    vendor = vendor_service.update_vendor(g.actor, vendor_id, VendorUpdate.from_dict(json_body()))
    return jsonify(vendor.to_dict()), 200


@vendors_bp.delete("/<int:vendor_id>")
@require_actor
@require_role("owner", "manager")
def delete_vendor_route(vendor_id: int):
    """
    Returns:
        200: {"id", "deleted", "deactivated"}
        409: vendor has open purchase orders
    """
    return jsonify(vendor_service.delete_vendor(g.actor, vendor_id)), 200
