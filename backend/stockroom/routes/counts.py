# backend/stockroom/routes/counts.py
"""
Inventory count API routes.
"""
from flask import Blueprint, request, jsonify, g

from . import arg_int, json_body
from ..decorators import require_actor, require_role
from ..services import count_service
from ..services.schemas import CreateCount, UpdateCountItem
from ..validation import ValidationError, to_int


counts_bp = Blueprint("counts", __name__, url_prefix="/api/counts")


@counts_bp.get("")
@require_actor
def list_counts():
    counts = count_service.list_counts(
        g.actor,
        status=request.args.get("status"),
        branch_id=arg_int("branch_id"),
    )
    return jsonify({"items": [c.to_dict(include_items=False) for c in counts], "count": len(counts)}), 200


@counts_bp.post("")
@require_actor
def create_count():
    """
    Request body:
    {
        "branch_id": int,
        "count_type": "full" | "partial" | "cycle" (default full),
        "item_ids": [int] (optional, default every active item),
        "notes": str (optional)
    }
    """
    count = count_service.create_count(g.actor, CreateCount.from_dict(json_body()))
    return jsonify(count.to_dict()), 201


@counts_bp.get("/<int:count_id>")
@require_actor
def get_count(count_id: int):
    return jsonify(count_service.get_count(g.actor, count_id).to_dict()), 200


@counts_bp.post("/<int:count_id>/items")
@require_actor
def add_count_items(count_id: int):
    """
    Request body: {"item_ids": [int]}
    """
    raw = json_body().get("item_ids")
    if not isinstance(raw, list) or not raw:
        raise ValidationError("item_ids must be a non-empty list")
    item_ids = [to_int(item_id, "item_id") for item_id in raw]
    count = count_service.add_count_items(g.actor, count_id, item_ids)
    return jsonify(count.to_dict()), 200


@counts_bp.put("/<int:count_id>/items/<int:item_id>")
@require_actor
def update_count_item(count_id: int, item_id: int):
    """
    Request body:
    {
        "counted_quantity": number,
        "variance_reason": str (optional)
    }
    """
    line = count_service.update_count_item(g.actor, count_id, item_id, UpdateCountItem.from_dict(json_body()))
    return jsonify(line.to_dict()), 200


@counts_bp.post("/<int:count_id>/complete")
@require_actor
@require_role("owner", "manager")
def complete_count(count_id: int):
    """
    Reconcile counted quantities against the ledger and lock the count.

    Returns:
        200: Count completed
        400: Items not yet counted
        409: Count already completed
    """
    count = count_service.complete_count(g.actor, count_id)
    return jsonify(count.to_dict()), 200
