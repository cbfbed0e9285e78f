# Overview: Flask API routes for the purchase order workflow.

"""
Purchase Order Routes

LIFECYCLE: pending -> counted -> received, or pending -> cancelled.
Counting and receiving have their own endpoints; PATCH /status only
cancels (or is a no-op on pending).
"""

from flask import Blueprint, g, jsonify, request

from . import arg_int, json_body
from ..decorators import require_actor, require_role
from ..services import purchase_order_service
from ..services.schemas import CountPurchaseOrder, CreatePurchaseOrder, ReceivePurchaseOrder, UpdatePurchaseOrder
from ..validation import ValidationError


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_actor
def list_orders():
    """
    Query parameters: status, vendor_id, branch_id, page (default 1), limit (default 50).

    Returns:
        {items: PurchaseOrder[], total: int, page: int, limit: int}
    """
    page = arg_int("page") or 1
    limit = arg_int("limit") or 50
    orders, total = purchase_order_service.list_purchase_orders(
        g.actor,
        status=request.args.get("status"),
        vendor_id=arg_int("vendor_id"),
        branch_id=arg_int("branch_id"),
        page=page,
        limit=limit,
    )
    return jsonify({
        "items": [order.to_dict(include_items=False) for order in orders],
        "total": total,
        "page": page,
        "limit": limit,
    }), 200


@purchase_orders_bp.post("")
@require_actor
def create_order():
    """
    Request body:
    {
        "vendor_id": int,
        "branch_id": int,
        "items": [{"item_id": int, "quantity": number}],
        "expected_date": "YYYY-MM-DD" (optional),
        "notes": str (optional)
    }
    """
    order = purchase_order_service.create_purchase_order(g.actor, CreatePurchaseOrder.from_dict(json_body()))
    return jsonify(order.to_dict()), 201


@purchase_orders_bp.get("/<int:order_id>")
@require_actor
def get_order(order_id: int):
    return jsonify(purchase_order_service.get_purchase_order(g.actor, order_id).to_dict()), 200


@purchase_orders_bp.put("/<int:order_id>")
@require_actor
def update_order(order_id: int):
    """
    Request body (all optional):
    {
        "notes": str | null,
        "expected_date": "YYYY-MM-DD" | null,
        "items": [{"item_id": int, "quantity": number}]  (replaces all lines)
    }
    """
    order = purchase_order_service.update_purchase_order(
        g.actor, order_id, UpdatePurchaseOrder.from_dict(json_body())
    )
    return jsonify(order.to_dict()), 200


@purchase_orders_bp.patch("/<int:order_id>/status")
@require_actor
def update_order_status(order_id: int):
    """
    Request body: {"status": "pending" | "cancelled"}
    """
    status = json_body().get("status")
    if not isinstance(status, str):
        raise ValidationError("Missing required field: status")
    order = purchase_order_service.update_purchase_order_status(g.actor, order_id, status)
    return jsonify(order.to_dict()), 200


@purchase_orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order(order_id: int):
    order = purchase_order_service.cancel_purchase_order(g.actor, order_id)
    return jsonify(order.to_dict()), 200


@purchase_orders_bp.post("/<int:order_id>/count")
@require_actor
def count_order(order_id: int):
    """
    Request body:
    {
        "items": [{
            "item_id": int,
            "counted_quantity": number,
            "barcode_scanned": bool,
            "variance_reason": "missing" | "canceled" | "rejected" (when short),
            "variance_note": str (when over)
        }]
    }
    """
    order = purchase_order_service.count_purchase_order(
        g.actor, order_id, CountPurchaseOrder.from_dict(json_body())
    )
    return jsonify(order.to_dict()), 200


@purchase_orders_bp.post("/<int:order_id>/receive")
@require_actor
@require_role("owner", "manager")
def receive_order(order_id: int):
    """
    Request body:
    {
        "invoice_image_url": str,
        "items": [{
            "item_id": int,
            "total_cost": number,
            "received_quantity": number (optional once counted),
            "variance_reason": str (optional),
            "variance_note": str (optional)
        }]
    }

    Returns:
        200: order received, stock increased
        409: order already received or cancelled
    """
    order = purchase_order_service.receive_purchase_order(
        g.actor, order_id, ReceivePurchaseOrder.from_dict(json_body())
    )
    return jsonify(order.to_dict()), 200


@purchase_orders_bp.get("/<int:order_id>/activity")
@require_actor
def order_activity(order_id: int):
    activity = purchase_order_service.get_purchase_order_activity(g.actor, order_id)
    return jsonify({"items": [entry.to_dict() for entry in activity]}), 200
