# backend/stockroom/routes/transfers.py
"""
Stock transfer API routes.
"""
from flask import Blueprint, request, jsonify, g

from . import arg_int, json_body
from ..decorators import require_actor
from ..services import transfer_service
from ..services.schemas import CreateTransfer, ReceiveTransfer


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


def _transfer_payload(transfer) -> dict:
    data = transfer.to_dict()
    data["summary"] = transfer_service.get_transfer_summary(transfer)
    return data


@transfers_bp.get("")
@require_actor
def list_transfers():
    """
    Query parameters:
    - direction: outgoing | incoming | all (default)
    - status: pending | received | cancelled
    - branch_id: limit to one branch on the current business's side
    """
    transfers = transfer_service.list_transfers(
        g.actor,
        direction=request.args.get("direction", transfer_service.DIRECTION_ALL),
        status=request.args.get("status"),
        branch_id=arg_int("branch_id"),
    )
    return jsonify({
        "items": [t.to_dict(include_items=False) for t in transfers],
        "count": len(transfers),
    }), 200


@transfers_bp.get("/destinations")
@require_actor
def list_destinations():
    """Businesses and branches the actor may send stock to."""
    return jsonify({"items": transfer_service.list_destinations(g.actor)}), 200


@transfers_bp.post("")
@require_actor
def create_transfer():
    """
    Create a transfer; stock leaves the source immediately.

    Request body:
    {
        "from_business_id": int (optional, defaults to current business),
        "from_branch_id": int,
        "to_business_id": int (optional, defaults to from_business_id),
        "to_branch_id": int,
        "items": [{"item_id": int, "quantity": number}],
        "notes": str (optional)
    }

    Returns:
        201: Transfer created
        403: Cross-business transfer without owner access
        409: Insufficient stock at the source
    """
    data = CreateTransfer.from_dict(json_body(), default_business_id=g.actor.business_id)
    transfer = transfer_service.create_transfer(g.actor, data)
    return jsonify(_transfer_payload(transfer)), 201


@transfers_bp.get("/<int:transfer_id>")
@require_actor
def get_transfer(transfer_id: int):
    transfer = transfer_service.get_transfer(g.actor, transfer_id)
    return jsonify(_transfer_payload(transfer)), 200


@transfers_bp.post("/<int:transfer_id>/receive")
@require_actor
def receive_transfer(transfer_id: int):
    """
    Request body (optional):
    {
        "items": [{"item_id": int, "quantity": number}]  (omit to receive in full)
    }
    """
    data = ReceiveTransfer.from_dict(request.get_json(silent=True) or {})
    transfer = transfer_service.receive_transfer(g.actor, transfer_id, data)
    return jsonify(_transfer_payload(transfer)), 200


@transfers_bp.post("/<int:transfer_id>/cancel")
@require_actor
def cancel_transfer(transfer_id: int):
    transfer = transfer_service.cancel_transfer(g.actor, transfer_id)
    return jsonify(_transfer_payload(transfer)), 200
