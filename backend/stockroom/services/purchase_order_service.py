# Overview: Purchase order workflow: create, count, receive, cancel, edit.

"""
Purchase Order Workflow

LIFECYCLE (see lifecycle_service):
    pending -> counted -> received
    pending -> received          (legacy path, full variance re-validation)
    pending -> cancelled

STEPS:
1. create: ordered quantities only; invoice pricing arrives at receipt
2. count: every line barcode-scanned and counted; shortfalls need a
   variance_reason (missing, canceled, rejected), overages a variance_note
3. receive: invoice image + total cost per line; stock increases by the
   received quantity and unit_cost = total_cost / received_quantity
4. cancel: pending orders only, no stock effect

Every call that changes an order appends a PurchaseOrderActivity row.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderActivity, PurchaseOrderItem
from ..models.stock import MOVEMENT_PURCHASE_RECEIPT, REFERENCE_PURCHASE_ORDER
from stockroom.time_utils import to_iso_date, utcnow
from stockroom.validation import (
    InvalidStateTransition,
    NotFound,
    ValidationError,
    format_quantity,
    quantize,
)
from .authorization_service import ActorContext, require_branch_in_business
from .concurrency import lock_for_update, run_in_transaction
from .document_service import DOCUMENT_PURCHASE_ORDER, next_document_number
from .lifecycle_service import (
    LIFECYCLE_PURCHASE_ORDER,
    PO_STATUS_CANCELLED,
    PO_STATUS_COUNTED,
    PO_STATUS_PENDING,
    PO_STATUS_RECEIVED,
    require_editable,
    require_transition,
    valid_statuses,
)
from .schemas import CountPurchaseOrder, CreatePurchaseOrder, ReceivePurchaseOrder, UpdatePurchaseOrder
from .stock_service import apply_movement, get_stockable_item, record_purchase_cost
from .vendor_service import validate_vendor_for_branch


ACTIVITY_CREATED = "created"
ACTIVITY_ITEMS_UPDATED = "items_updated"
ACTIVITY_NOTES_UPDATED = "notes_updated"
ACTIVITY_STATUS_CHANGED = "status_changed"
ACTIVITY_COUNTED = "counted"
ACTIVITY_RECEIVED = "received"
ACTIVITY_CANCELLED = "cancelled"


def _log_activity(
    order: PurchaseOrder,
    action: str,
    actor: ActorContext,
    *,
    old_status: str | None = None,
    new_status: str | None = None,
    changes: dict | None = None,
    notes: str | None = None,
) -> PurchaseOrderActivity:
    activity = PurchaseOrderActivity(
        purchase_order_id=order.id,
        business_id=order.business_id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        changes=changes,
        notes=notes,
        performed_by=actor.user_id,
    )
    db.session.add(activity)
    return activity


def _lines_snapshot(order: PurchaseOrder) -> list[dict]:
    return [
        {"item_id": line.item_id, "quantity": format_quantity(line.ordered_quantity)}
        for line in order.items
    ]


def _load_order(actor: ActorContext, order_id: int, *, lock: bool) -> PurchaseOrder:
    query = db.session.query(PurchaseOrder).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if not order or order.business_id != actor.business_id:
        raise NotFound(f"Purchase order {order_id} not found")
    return order


def _check_variance(item_id: int, actual: Decimal, ordered: Decimal, reason: str | None, note: str | None, label: str) -> None:
    """
    Shortfalls need a reason code, overages need a written justification.

    Raises:
        ValidationError: justification missing
    """
    if actual < ordered and not reason:
        raise ValidationError(
            f"Item {item_id}: {label} quantity {actual} is below ordered quantity {ordered}; "
            "variance_reason (missing, canceled, rejected) is required"
        )
    if actual > ordered and not note:
        raise ValidationError(
            f"Item {item_id}: {label} quantity {actual} is above ordered quantity {ordered}; "
            "variance_note is required"
        )


def _match_lines(order: PurchaseOrder, lines: list, label: str) -> dict:
    """Pair submitted lines with order items; every order item must be covered exactly once."""
    by_item = {line.item_id: line for line in lines}
    order_item_ids = {po_item.item_id for po_item in order.items}

    unknown = set(by_item) - order_item_ids
    if unknown:
        raise ValidationError(
            f"Items not on this purchase order: {', '.join(str(i) for i in sorted(unknown))}"
        )
    missing = order_item_ids - set(by_item)
    if missing:
        raise ValidationError(
            f"Missing {label} data for items: {', '.join(str(i) for i in sorted(missing))}"
        )
    return by_item


def create_purchase_order(actor: ActorContext, data: CreatePurchaseOrder) -> PurchaseOrder:
    """
    Create a pending purchase order.

    Raises:
        NotFound: branch, vendor or item outside the actor's business
        ValidationError: inactive vendor, vendor restricted to another branch,
            composite item
    """
    def _op():
        require_branch_in_business(actor.business_id, data.branch_id)
        validate_vendor_for_branch(actor.business_id, data.vendor_id, data.branch_id)
        for line in data.items:
            get_stockable_item(actor.business_id, line.item_id)

        order = PurchaseOrder(
            business_id=actor.business_id,
            branch_id=data.branch_id,
            vendor_id=data.vendor_id,
            order_number=next_document_number(
                business_id=actor.business_id,
                document_type=DOCUMENT_PURCHASE_ORDER,
            ),
            status=PO_STATUS_PENDING,
            expected_date=data.expected_date,
            notes=data.notes,
            created_by=actor.user_id,
        )
        for line in data.items:
            order.items.append(PurchaseOrderItem(item_id=line.item_id, ordered_quantity=line.quantity))

        db.session.add(order)
        db.session.flush()

        _log_activity(
            order,
            ACTIVITY_CREATED,
            actor,
            new_status=PO_STATUS_PENDING,
            changes={"items": _lines_snapshot(order)},
        )
        return order

    return run_in_transaction(_op)


def get_purchase_order(actor: ActorContext, order_id: int) -> PurchaseOrder:
    return _load_order(actor, order_id, lock=False)


def list_purchase_orders(
    actor: ActorContext,
    *,
    status: str | None = None,
    vendor_id: int | None = None,
    branch_id: int | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[PurchaseOrder], int]:
    """
    Returns:
        Tuple of (orders on the page, total count), newest first
    """
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.business_id == actor.business_id)

    if status:
        if status not in valid_statuses(LIFECYCLE_PURCHASE_ORDER):
            raise ValidationError(f"Unknown purchase order status '{status}'")
        query = query.filter(PurchaseOrder.status == status)
    if vendor_id is not None:
        query = query.filter(PurchaseOrder.vendor_id == vendor_id)
    if branch_id is not None:
        query = query.filter(PurchaseOrder.branch_id == branch_id)

    total = query.count()

    page = max(page, 1)
    limit = min(max(limit, 1), 200)
    orders = (
        query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total


def get_purchase_order_activity(actor: ActorContext, order_id: int) -> list[PurchaseOrderActivity]:
    order = _load_order(actor, order_id, lock=False)
    return (
        db.session.query(PurchaseOrderActivity)
        .filter_by(purchase_order_id=order.id)
        .order_by(PurchaseOrderActivity.id.asc())
        .all()
    )


def update_purchase_order(actor: ActorContext, order_id: int, data: UpdatePurchaseOrder) -> PurchaseOrder:
    """
    Edit a pending order: notes, expected date, and/or a wholesale
    replacement of its line items.

    Raises:
        InvalidStateTransition: order is no longer pending
    """
    def _op():
        order = _load_order(actor, order_id, lock=True)
        require_editable(LIFECYCLE_PURCHASE_ORDER, order.status, {PO_STATUS_PENDING}, "edit")

        if data.is_empty:
            return order

        if data.items is not None:
            for line in data.items:
                get_stockable_item(actor.business_id, line.item_id)
            old_lines = _lines_snapshot(order)
            order.items.clear()
            db.session.flush()
            for line in data.items:
                order.items.append(PurchaseOrderItem(item_id=line.item_id, ordered_quantity=line.quantity))
            db.session.flush()
            _log_activity(
                order,
                ACTIVITY_ITEMS_UPDATED,
                actor,
                changes={"old": old_lines, "new": _lines_snapshot(order)},
            )

        if data.notes is not None or data.clear_notes:
            new_notes = None if data.clear_notes else data.notes
            if new_notes != order.notes:
                _log_activity(
                    order,
                    ACTIVITY_NOTES_UPDATED,
                    actor,
                    changes={"old": order.notes, "new": new_notes},
                )
                order.notes = new_notes

        if data.expected_date is not None or data.clear_expected_date:
            new_date = None if data.clear_expected_date else data.expected_date
            if new_date != order.expected_date:
                _log_activity(
                    order,
                    ACTIVITY_NOTES_UPDATED,
                    actor,
                    changes={
                        "expected_date": {
                            "old": to_iso_date(order.expected_date),
                            "new": to_iso_date(new_date),
                        }
                    },
                )
                order.expected_date = new_date

        db.session.flush()
        return order

    return run_in_transaction(_op)


def update_purchase_order_status(actor: ActorContext, order_id: int, status: str) -> PurchaseOrder:
    """
    Status changes outside the count/receive steps.

    Only pending -> cancelled (and a no-op pending -> pending) are allowed.
    counted and received are reachable only through count/receive.

    Raises:
        ValidationError: unknown status value
        InvalidStateTransition: any other transition
    """
    status = (status or "").strip().lower()
    if status not in valid_statuses(LIFECYCLE_PURCHASE_ORDER):
        raise ValidationError(f"Unknown purchase order status '{status}'")
    if status == PO_STATUS_RECEIVED:
        raise InvalidStateTransition("Purchase orders can only be marked received by receiving them")
    if status == PO_STATUS_COUNTED:
        raise InvalidStateTransition("Purchase orders can only be marked counted by counting them")

    def _op():
        order = _load_order(actor, order_id, lock=True)

        if status == PO_STATUS_PENDING and order.status == PO_STATUS_PENDING:
            return order

        require_transition(LIFECYCLE_PURCHASE_ORDER, order.status, status)

        old_status = order.status
        order.status = status
        if status == PO_STATUS_CANCELLED:
            order.cancelled_at = utcnow()
            order.cancelled_by = actor.user_id
            _log_activity(order, ACTIVITY_CANCELLED, actor, old_status=old_status, new_status=status)
            current_app.logger.info(
                "Purchase order %s cancelled by user %s", order.order_number, actor.user_id
            )
        else:
            _log_activity(order, ACTIVITY_STATUS_CHANGED, actor, old_status=old_status, new_status=status)

        db.session.flush()
        return order

    return run_in_transaction(_op)


def cancel_purchase_order(actor: ActorContext, order_id: int) -> PurchaseOrder:
    return update_purchase_order_status(actor, order_id, PO_STATUS_CANCELLED)


def count_purchase_order(actor: ActorContext, order_id: int, data: CountPurchaseOrder) -> PurchaseOrder:
    """
    Record delivered quantities from a barcode-scanned count.

    Raises:
        InvalidStateTransition: order not pending
        ValidationError: item not scanned, not counted, or variance unjustified
    """
    def _op():
        order = _load_order(actor, order_id, lock=True)
        require_transition(LIFECYCLE_PURCHASE_ORDER, order.status, PO_STATUS_COUNTED)

        by_item = _match_lines(order, data.items, "count")
        now = utcnow()

        for po_item in order.items:
            line = by_item[po_item.item_id]
            if not line.barcode_scanned:
                raise ValidationError(
                    f"Item {po_item.item_id} must be scanned by barcode before it can be counted"
                )
            _check_variance(
                po_item.item_id,
                line.counted_quantity,
                po_item.ordered_quantity,
                line.variance_reason,
                line.variance_note,
                "counted",
            )

        for po_item in order.items:
            line = by_item[po_item.item_id]
            differs = line.counted_quantity != po_item.ordered_quantity
            po_item.counted_quantity = line.counted_quantity
            po_item.barcode_scanned = True
            po_item.counted_at = now
            po_item.variance_reason = line.variance_reason if differs else None
            po_item.variance_note = line.variance_note if differs else None

        order.status = PO_STATUS_COUNTED
        order.counted_by = actor.user_id
        order.counted_at = now

        _log_activity(
            order,
            ACTIVITY_COUNTED,
            actor,
            old_status=PO_STATUS_PENDING,
            new_status=PO_STATUS_COUNTED,
            changes={
                "items": [
                    {
                        "item_id": po_item.item_id,
                        "ordered_quantity": format_quantity(po_item.ordered_quantity),
                        "counted_quantity": format_quantity(po_item.counted_quantity),
                        "variance_reason": po_item.variance_reason,
                    }
                    for po_item in order.items
                ]
            },
        )
        db.session.flush()
        return order

    return run_in_transaction(_op)


def receive_purchase_order(actor: ActorContext, order_id: int, data: ReceivePurchaseOrder) -> PurchaseOrder:
    """
    Receive stock against an order and capture invoice costs.

    From counted, received_quantity may be omitted to reuse the counted value
    and the counted variance justification carries over. From pending (legacy
    path) every line needs an explicit quantity and full variance checks.

    The status check, the transition to received and the stock movements
    commit together, so a repeated call finds the order received and fails
    with InvalidStateTransition instead of adding stock twice.

    Raises:
        InvalidStateTransition: order not pending/counted
        ValidationError: missing receiving data, unjustified variance,
            cost on a zero-quantity line
    """
    def _op():
        order = _load_order(actor, order_id, lock=True)
        old_status = order.status
        require_transition(LIFECYCLE_PURCHASE_ORDER, old_status, PO_STATUS_RECEIVED)

        by_item = _match_lines(order, data.items, "receiving")

        plan = []
        for po_item in order.items:
            line = by_item[po_item.item_id]

            received = line.received_quantity
            if received is None:
                if old_status != PO_STATUS_COUNTED:
                    raise ValidationError(f"received_quantity is required for item {po_item.item_id}")
                received = po_item.counted_quantity

            reason = line.variance_reason or po_item.variance_reason
            note = line.variance_note or po_item.variance_note
            _check_variance(po_item.item_id, received, po_item.ordered_quantity, reason, note, "received")

            if received == 0 and line.total_cost > 0:
                raise ValidationError(
                    f"Item {po_item.item_id}: total_cost must be 0 when nothing was received"
                )
            unit_cost = quantize(line.total_cost / received) if received > 0 else None
            differs = received != po_item.ordered_quantity
            plan.append((po_item, received, line.total_cost, unit_cost,
                         reason if differs else None, note if differs else None))

        for po_item, received, total_cost, unit_cost, reason, note in plan:
            get_stockable_item(order.business_id, po_item.item_id)
            if received > 0:
                record_purchase_cost(order.business_id, po_item.item_id, received, unit_cost)
                apply_movement(
                    business_id=order.business_id,
                    branch_id=order.branch_id,
                    item_id=po_item.item_id,
                    delta=received,
                    transaction_type=MOVEMENT_PURCHASE_RECEIPT,
                    reference_type=REFERENCE_PURCHASE_ORDER,
                    reference_id=order.id,
                    reason=reason,
                    notes=order.order_number,
                    performed_by=actor.user_id,
                )
            po_item.received_quantity = received
            po_item.total_cost = total_cost
            po_item.unit_cost = unit_cost
            po_item.variance_reason = reason
            po_item.variance_note = note

        now = utcnow()
        order.total_amount = quantize(sum((entry[2] for entry in plan), Decimal("0")))
        order.invoice_image_url = data.invoice_image_url
        order.status = PO_STATUS_RECEIVED
        order.received_by = actor.user_id
        order.received_at = now

        _log_activity(
            order,
            ACTIVITY_RECEIVED,
            actor,
            old_status=old_status,
            new_status=PO_STATUS_RECEIVED,
            changes={
                "total_amount": format_quantity(order.total_amount),
                "items": [
                    {
                        "item_id": po_item.item_id,
                        "received_quantity": format_quantity(received),
                        "total_cost": format_quantity(total_cost),
                    }
                    for po_item, received, total_cost, _unit, _reason, _note in plan
                ],
            },
        )
        db.session.flush()
        current_app.logger.info(
            "Purchase order %s received by user %s", order.order_number, actor.user_id
        )
        return order

    return run_in_transaction(_op)
