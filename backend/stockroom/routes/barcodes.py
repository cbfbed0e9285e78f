# Overview: Flask API routes for barcode lookup and association.

from flask import Blueprint, jsonify, g

from . import json_body
from ..decorators import require_actor
from ..services import barcode_service
from ..validation import NotFound


barcodes_bp = Blueprint("barcodes", __name__, url_prefix="/api/barcodes")


@barcodes_bp.get("/<string:barcode>")
@require_actor
def lookup(barcode: str):
    item = barcode_service.lookup_barcode(g.actor, barcode)
    if item is None:
        raise NotFound(f"No item with barcode '{barcode}'")
    return jsonify(item.to_dict()), 200


@barcodes_bp.put("/items/<int:item_id>")
@require_actor
def associate(item_id: int):
    """
    Request body: {"barcode": str}

    Returns:
        200: barcode bound to the item
        409: barcode already bound to another item in this business
    """
    row = barcode_service.associate_barcode(g.actor, item_id, json_body().get("barcode"))
    return jsonify(row.to_dict()), 200


@barcodes_bp.delete("/items/<int:item_id>")
@require_actor
def dissociate(item_id: int):
    removed = barcode_service.dissociate_barcode(g.actor, item_id)
    return jsonify({"item_id": item_id, "removed": removed}), 200
