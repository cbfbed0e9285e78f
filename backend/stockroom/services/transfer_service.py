# backend/stockroom/services/transfer_service.py
"""
Stock transfers between branches, including across businesses for owners.

LIFECYCLE:
1. pending: created; every line already deducted from the source
   (transfer_out). The stock is in flight and counted nowhere.
2. received: credited at the destination (transfer_in). Terminal.
3. cancelled: deduction reversed at the source (transfer_out_reversal). Terminal.

AUTHORIZATION: non-owners move stock inside their current business only;
owners may use any two businesses they can access. The check runs again
against fresh grants on receive and cancel.

ITEMS: catalogs are per business. A cross-business line is matched to the
destination item with the same SKU when the transfer is created, and that
item is credited on receive. Receive payloads always name source item ids.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app

from stockroom.extensions import db
from stockroom.models import Item, Transfer, TransferItem
from stockroom.models.stock import (
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
    MOVEMENT_TRANSFER_OUT_REVERSAL,
    REFERENCE_TRANSFER,
)
from stockroom.services.authorization_service import (
    ActorContext,
    get_accessible_businesses,
    get_business_branches,
    refresh_actor,
    require_branch_in_business,
    require_transfer_access,
)
from stockroom.services.concurrency import lock_for_update, run_in_transaction
from stockroom.services.document_service import DOCUMENT_TRANSFER, next_document_number
from stockroom.services.lifecycle_service import (
    LIFECYCLE_TRANSFER,
    TRANSFER_STATUS_CANCELLED,
    TRANSFER_STATUS_PENDING,
    TRANSFER_STATUS_RECEIVED,
    require_transition,
    valid_statuses,
)
from stockroom.services.schemas import CreateTransfer, ReceiveTransfer
from stockroom.services.stock_service import apply_movement, get_stockable_item
from stockroom.time_utils import utcnow
from stockroom.validation import NotFound, ValidationError


DIRECTION_OUTGOING = "outgoing"
DIRECTION_INCOMING = "incoming"
DIRECTION_ALL = "all"


def _load_transfer(actor: ActorContext, transfer_id: int, *, lock: bool) -> Transfer:
    """
    Raises:
        NotFound: transfer missing, or neither end is visible to the actor
    """
    query = db.session.query(Transfer).filter_by(id=transfer_id)
    if lock:
        query = lock_for_update(query)
    transfer = query.first()
    if not transfer:
        raise NotFound(f"Transfer {transfer_id} not found")
    if not (actor.can_access(transfer.from_business_id) or actor.can_access(transfer.to_business_id)):
        raise NotFound(f"Transfer {transfer_id} not found")
    return transfer


def _destination_item_id(item: Item, to_business_id: int) -> int:
    """
    Item to credit at the destination.

    Inside one business this is the item itself. Across businesses each
    catalog is separate, so the line goes to the destination item carrying
    the same SKU.

    Raises:
        ValidationError: no SKU, no active raw item with that SKU at the destination
    """
    if item.business_id == to_business_id:
        return item.id
    if not item.sku:
        raise ValidationError(
            f"Item {item.id} has no SKU and cannot be matched in business {to_business_id}"
        )
    counterpart = (
        db.session.query(Item)
        .filter_by(business_id=to_business_id, sku=item.sku)
        .first()
    )
    if counterpart is None or not counterpart.is_active or counterpart.is_composite:
        raise ValidationError(
            f"Item {item.id} (SKU {item.sku}) has no stockable counterpart in business {to_business_id}"
        )
    return counterpart.id


def create_transfer(actor: ActorContext, data: CreateTransfer) -> Transfer:
    """
    Create a transfer and deduct every line from the source.

    All-or-nothing: insufficient stock on any line aborts the whole transfer
    and leaves no movements behind.

    Raises:
        AuthorizationDenied: actor may not use one of the businesses
        NotFound: branch or item outside its business
        ValidationError: cross-business item without a destination counterpart
        InsufficientInventory: source stock too low for a line
    """
    def _op():
        current = refresh_actor(actor)
        require_transfer_access(current, data.from_business_id, data.to_business_id)
        require_branch_in_business(data.from_business_id, data.from_branch_id)
        require_branch_in_business(data.to_business_id, data.to_branch_id)

        destination_items = {}
        for line in data.items:
            item = get_stockable_item(data.from_business_id, line.item_id)
            destination_items[line.item_id] = _destination_item_id(item, data.to_business_id)

        transfer = Transfer(
            transfer_number=next_document_number(
                business_id=data.from_business_id,
                document_type=DOCUMENT_TRANSFER,
            ),
            from_business_id=data.from_business_id,
            from_branch_id=data.from_branch_id,
            to_business_id=data.to_business_id,
            to_branch_id=data.to_branch_id,
            status=TRANSFER_STATUS_PENDING,
            notes=data.notes,
            created_by=current.user_id,
        )
        for line in data.items:
            transfer.items.append(TransferItem(
                item_id=line.item_id,
                destination_item_id=destination_items[line.item_id],
                quantity=line.quantity,
            ))

        db.session.add(transfer)
        db.session.flush()  # Get ID

        for line in transfer.items:
            apply_movement(
                business_id=transfer.from_business_id,
                branch_id=transfer.from_branch_id,
                item_id=line.item_id,
                delta=-line.quantity,
                transaction_type=MOVEMENT_TRANSFER_OUT,
                reference_type=REFERENCE_TRANSFER,
                reference_id=transfer.id,
                notes=transfer.transfer_number,
                performed_by=current.user_id,
            )

        current_app.logger.info(
            "Transfer %s created by user %s (%s/%s -> %s/%s)",
            transfer.transfer_number,
            current.user_id,
            transfer.from_business_id,
            transfer.from_branch_id,
            transfer.to_business_id,
            transfer.to_branch_id,
        )
        return transfer

    return run_in_transaction(_op)


def receive_transfer(actor: ActorContext, transfer_id: int, data: ReceiveTransfer | None = None) -> Transfer:
    """
    Credit a pending transfer at its destination.

    Without items every line is received in full. With items, each quantity
    must be between 0 and the sent quantity; shortages stay recorded as
    received_quantity < quantity and are not returned to the source.

    Raises:
        InvalidStateTransition: transfer not pending (already received/cancelled)
        AuthorizationDenied: actor no longer has access to both ends
        ValidationError: unknown item or quantity above the sent quantity
    """
    data = data or ReceiveTransfer()

    def _op():
        current = refresh_actor(actor)
        transfer = _load_transfer(current, transfer_id, lock=True)
        require_transition(LIFECYCLE_TRANSFER, transfer.status, TRANSFER_STATUS_RECEIVED)
        require_transfer_access(current, transfer.from_business_id, transfer.to_business_id)

        received = {line.item_id: line.quantity for line in transfer.items}
        if data.items is not None:
            sent = dict(received)
            for entry in data.items:
                if entry.item_id not in sent:
                    raise ValidationError(f"Item {entry.item_id} is not on this transfer")
                if entry.quantity > sent[entry.item_id]:
                    raise ValidationError(
                        f"Item {entry.item_id}: received quantity {entry.quantity} exceeds "
                        f"sent quantity {sent[entry.item_id]}"
                    )
                received[entry.item_id] = entry.quantity

        for line in transfer.items:
            quantity = received[line.item_id]
            line.received_quantity = quantity
            if quantity > 0:
                apply_movement(
                    business_id=transfer.to_business_id,
                    branch_id=transfer.to_branch_id,
                    item_id=line.destination_item_id,
                    delta=quantity,
                    transaction_type=MOVEMENT_TRANSFER_IN,
                    reference_type=REFERENCE_TRANSFER,
                    reference_id=transfer.id,
                    notes=transfer.transfer_number,
                    performed_by=current.user_id,
                )

        transfer.status = TRANSFER_STATUS_RECEIVED
        transfer.received_by = current.user_id
        transfer.received_at = utcnow()
        db.session.flush()

        current_app.logger.info(
            "Transfer %s received by user %s", transfer.transfer_number, current.user_id
        )
        return transfer

    return run_in_transaction(_op)


def cancel_transfer(actor: ActorContext, transfer_id: int) -> Transfer:
    """
    Cancel a pending transfer and restore the source stock.

    Raises:
        InvalidStateTransition: transfer not pending
        AuthorizationDenied: actor no longer has access to both ends
    """
    def _op():
        current = refresh_actor(actor)
        transfer = _load_transfer(current, transfer_id, lock=True)
        require_transition(LIFECYCLE_TRANSFER, transfer.status, TRANSFER_STATUS_CANCELLED)
        require_transfer_access(current, transfer.from_business_id, transfer.to_business_id)

        for line in transfer.items:
            apply_movement(
                business_id=transfer.from_business_id,
                branch_id=transfer.from_branch_id,
                item_id=line.item_id,
                delta=line.quantity,
                transaction_type=MOVEMENT_TRANSFER_OUT_REVERSAL,
                reference_type=REFERENCE_TRANSFER,
                reference_id=transfer.id,
                notes=transfer.transfer_number,
                performed_by=current.user_id,
            )

        transfer.status = TRANSFER_STATUS_CANCELLED
        transfer.cancelled_by = current.user_id
        transfer.cancelled_at = utcnow()
        db.session.flush()

        current_app.logger.info(
            "Transfer %s cancelled by user %s", transfer.transfer_number, current.user_id
        )
        return transfer

    return run_in_transaction(_op)


def get_transfer(actor: ActorContext, transfer_id: int) -> Transfer:
    return _load_transfer(actor, transfer_id, lock=False)


def list_transfers(
    actor: ActorContext,
    *,
    direction: str = DIRECTION_ALL,
    status: str | None = None,
    branch_id: int | None = None,
) -> list[Transfer]:
    """
    Transfers touching the actor's current business, newest first.

    direction: outgoing (from this business), incoming (to it) or all.
    """
    if direction not in {DIRECTION_OUTGOING, DIRECTION_INCOMING, DIRECTION_ALL}:
        raise ValidationError("direction must be one of: all, incoming, outgoing")
    if status and status not in valid_statuses(LIFECYCLE_TRANSFER):
        raise ValidationError(f"Unknown transfer status '{status}'")

    business_id = actor.business_id
    outgoing = Transfer.from_business_id == business_id
    incoming = Transfer.to_business_id == business_id
    if branch_id is not None:
        outgoing = db.and_(outgoing, Transfer.from_branch_id == branch_id)
        incoming = db.and_(incoming, Transfer.to_branch_id == branch_id)

    query = db.session.query(Transfer)
    if direction == DIRECTION_OUTGOING:
        query = query.filter(outgoing)
    elif direction == DIRECTION_INCOMING:
        query = query.filter(incoming)
    else:
        query = query.filter(db.or_(outgoing, incoming))

    if status:
        query = query.filter(Transfer.status == status)

    return query.order_by(Transfer.created_at.desc(), Transfer.id.desc()).all()


def list_destinations(actor: ActorContext) -> list[dict]:
    """
    Valid transfer targets for the actor.

    Owners get every accessible business with its active branches; everyone
    else gets only the current business.
    """
    destinations = []
    for business in get_accessible_businesses(actor):
        destinations.append({
            "business_id": business.id,
            "business_name": business.name,
            "is_current": business.id == actor.business_id,
            "branches": [
                {"id": branch.id, "name": branch.name}
                for branch in get_business_branches(business.id)
            ],
        })
    return destinations


def get_transfer_summary(transfer: Transfer) -> dict:
    """Totals for display: lines, sent and received quantities, shortage."""
    sent = sum((line.quantity for line in transfer.items), Decimal("0"))
    received = sum(
        (line.received_quantity for line in transfer.items if line.received_quantity is not None),
        Decimal("0"),
    )
    return {
        "transfer_id": transfer.id,
        "line_count": len(transfer.items),
        "total_sent": str(sent),
        "total_received": str(received),
        "shortage": str(sent - received) if transfer.status == TRANSFER_STATUS_RECEIVED else None,
    }
