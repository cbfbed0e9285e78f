# Overview: Flask API routes for stock levels, manual adjustments and the movement log.

from flask import Blueprint, current_app, g, jsonify, request

from . import arg_bool, arg_int, json_body
from ..decorators import require_actor, require_role
from ..services import movement_service, stock_service
from ..services.schemas import MovementQuery, StockAdjustment, StockLimits
from ..validation import format_quantity


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/levels")
@require_actor
def list_levels():
    """
    Query parameters:
    - branch_id: limit to one branch (default: all branches)
    - low_stock: only levels at or below their min_quantity
    """
    levels = stock_service.list_stock_levels(
        g.actor,
        branch_id=arg_int("branch_id"),
        low_stock_only=arg_bool("low_stock"),
    )
    return jsonify({"items": [level.to_dict() for level in levels], "count": len(levels)}), 200


@stock_bp.get("/levels/<int:branch_id>/<int:item_id>")
@require_actor
def get_level(branch_id: int, item_id: int):
    reading = stock_service.get_stock_level(g.actor, branch_id, item_id)
    return jsonify(reading.to_dict()), 200


@stock_bp.put("/limits")
@require_actor
@require_role("owner", "manager")
def set_limits():
    """
    Request body:
    {
        "branch_id": int,
        "item_id": int,
        "min_quantity": number (optional),
        "max_quantity": number (optional)
    }
    """
    level = stock_service.set_stock_limits(g.actor, StockLimits.from_dict(json_body()))
    return jsonify(level.to_dict()), 200


@stock_bp.post("/adjustments")
@require_actor
def adjust():
    """
    Request body:
    {
        "branch_id": int,
        "item_id": int,
        "quantity": number (positive; signed for admin_correction),
        "transaction_type": "manual_add" | "manual_deduct" | "waste" | "damage"
                            | "expiry" | "others" | "admin_correction",
        "notes": str (optional)
    }

    Returns:
        201: movement created
        409: insufficient inventory (with available/requested)
    """
    movement = stock_service.adjust_stock(g.actor, StockAdjustment.from_dict(json_body()))
    return jsonify(movement.to_dict()), 201


@stock_bp.get("/movements")
@require_actor
def list_movements():
    """
    Query parameters: branch_id, item_id, transaction_type, reference_type,
    reference_id, cause, performed_by, start_date, end_date, page, limit.

    Returns:
        {items: Movement[], total: int, page: int, limit: int}
    """
    filters = MovementQuery.from_args(
        request.args,
        default_limit=current_app.config.get("MOVEMENTS_PAGE_LIMIT_DEFAULT", 50),
    )
    movements, total = movement_service.query_movements(g.actor, filters)
    limit = min(filters.limit, current_app.config.get("MOVEMENTS_PAGE_LIMIT_MAX", 200))
    return jsonify({
        "items": [movement.to_dict() for movement in movements],
        "total": total,
        "page": filters.page,
        "limit": limit,
    }), 200


@stock_bp.get("/movements/stats")
@require_actor
def movement_stats():
    return jsonify(movement_service.movement_stats(g.actor, branch_id=arg_int("branch_id"))), 200


@stock_bp.get("/verify")
@require_actor
@require_role("owner", "manager")
def verify():
    """Report keys whose level disagrees with the sum of their movements."""
    drift = stock_service.verify_ledger(g.actor.business_id)
    return jsonify({
        "consistent": not drift,
        "drift": [
            {
                "branch_id": row["branch_id"],
                "item_id": row["item_id"],
                "level_quantity": format_quantity(row["level_quantity"]),
                "movement_total": format_quantity(row["movement_total"]),
            }
            for row in drift
        ],
    }), 200
