# Overview: Barcode to item association, unique per business.

from __future__ import annotations

from ..extensions import db
from ..models import Item, ItemBarcode
from stockroom.validation import Conflict, NotFound, ValidationError
from .authorization_service import ActorContext
from .concurrency import run_in_transaction


MAX_BARCODE_LENGTH = 64


def normalize_barcode(barcode) -> str:
    if not isinstance(barcode, str):
        raise ValidationError("barcode must be a string")
    value = "".join(barcode.split())
    if not value:
        raise ValidationError("barcode is required")
    if len(value) > MAX_BARCODE_LENGTH:
        raise ValidationError(f"barcode must be at most {MAX_BARCODE_LENGTH} characters")
    return value


def _get_item(business_id: int, item_id: int) -> Item:
    item = db.session.query(Item).filter_by(id=item_id).first()
    if not item or item.business_id != business_id:
        raise NotFound(f"Item {item_id} not found")
    return item


def lookup_barcode(actor: ActorContext, barcode: str) -> Item | None:
    """Item bound to the barcode in the actor's business, or None."""
    value = normalize_barcode(barcode)
    row = (
        db.session.query(ItemBarcode)
        .filter_by(business_id=actor.business_id, barcode=value)
        .first()
    )
    if row is None:
        return None
    return row.item


def associate_barcode(actor: ActorContext, item_id: int, barcode: str) -> ItemBarcode:
    """
    Bind a barcode to an item, replacing the item's previous barcode.

    Re-associating the same pair is a no-op.

    Raises:
        NotFound: item outside the actor's business
        Conflict: barcode already bound to another item in this business
    """
    value = normalize_barcode(barcode)

    def _op():
        _get_item(actor.business_id, item_id)

        bound = (
            db.session.query(ItemBarcode)
            .filter_by(business_id=actor.business_id, barcode=value)
            .first()
        )
        if bound is not None:
            if bound.item_id != item_id:
                raise Conflict(f"Barcode '{value}' is already assigned to item {bound.item_id}")
            return bound

        current = (
            db.session.query(ItemBarcode)
            .filter_by(business_id=actor.business_id, item_id=item_id)
            .first()
        )
        if current is not None:
            current.barcode = value
            current.created_by = actor.user_id
            db.session.flush()
            return current

        row = ItemBarcode(
            business_id=actor.business_id,
            item_id=item_id,
            barcode=value,
            created_by=actor.user_id,
        )
        db.session.add(row)
        db.session.flush()
        return row

    return run_in_transaction(_op)


def dissociate_barcode(actor: ActorContext, item_id: int) -> bool:
    """Remove the item's barcode. Returns False when it had none."""
    def _op():
        _get_item(actor.business_id, item_id)
        row = (
            db.session.query(ItemBarcode)
            .filter_by(business_id=actor.business_id, item_id=item_id)
            .first()
        )
        if row is None:
            return False
        db.session.delete(row)
        db.session.flush()
        return True

    return run_in_transaction(_op)
