# backend/stockroom/services/count_service.py
"""
Inventory counts (stocktakes).

LIFECYCLE:
1. draft: items seeded with the ledger quantity as expected_quantity;
   counted quantities entered and edited freely
2. completed: terminal. One count_adjustment movement per item whose counted
   quantity differs from the ledger at completion time, then the count locks.

There is no cancel: an unwanted draft is simply never completed.
"""
from __future__ import annotations

from flask import current_app

from stockroom.extensions import db
from stockroom.models import CountItem, InventoryCount, Item, StockLevel
from stockroom.models.stock import (
    MOVEMENT_COUNT_ADJUSTMENT,
    REASON_COUNT_SHORTAGE,
    REASON_COUNT_SURPLUS,
    REFERENCE_INVENTORY_COUNT,
)
from stockroom.services.authorization_service import ActorContext, require_branch_in_business
from stockroom.services.concurrency import lock_for_update, run_in_transaction
from stockroom.services.document_service import DOCUMENT_COUNT, next_document_number
from stockroom.services.lifecycle_service import (
    COUNT_STATUS_COMPLETED,
    COUNT_STATUS_DRAFT,
    LIFECYCLE_COUNT,
    require_editable,
    require_transition,
    valid_statuses,
)
from stockroom.services.schemas import CreateCount, UpdateCountItem
from stockroom.services.stock_service import ZERO, apply_movement, get_level, get_stockable_item
from stockroom.time_utils import utcnow
from stockroom.validation import NotFound, ValidationError, quantize


def _load_count(actor: ActorContext, count_id: int, *, lock: bool) -> InventoryCount:
    query = db.session.query(InventoryCount).filter_by(id=count_id)
    if lock:
        query = lock_for_update(query)
    count = query.first()
    if not count or count.business_id != actor.business_id:
        raise NotFound(f"Inventory count {count_id} not found")
    return count


def _locked_level(count: InventoryCount, item_id: int) -> StockLevel | None:
    return lock_for_update(
        db.session.query(StockLevel).filter_by(
            business_id=count.business_id,
            branch_id=count.branch_id,
            item_id=item_id,
        )
    ).first()


def _branch_item_ids(business_id: int) -> list[int]:
    """Every active raw item of the business, in catalog order."""
    rows = (
        db.session.query(Item.id)
        .filter(
            Item.business_id == business_id,
            Item.is_active.is_(True),
            Item.is_composite.is_(False),
        )
        .order_by(Item.id.asc())
        .all()
    )
    return [row.id for row in rows]


def _seed_item(count: InventoryCount, item_id: int) -> CountItem:
    expected = get_level(count.business_id, count.branch_id, item_id).quantity
    line = CountItem(item_id=item_id, expected_quantity=expected)
    count.items.append(line)
    return line


def _movement_notes(count: InventoryCount, line: CountItem) -> str:
    if line.variance_reason:
        return f"{count.count_number}: {line.variance_reason}"
    return count.count_number


def create_count(actor: ActorContext, data: CreateCount) -> InventoryCount:
    """
    Create a draft count for a branch.

    With item_ids the count covers just those items; without, every active
    raw item of the business.

    Raises:
        NotFound: branch or item outside the business
        ValidationError: no items to count, composite item
    """
    def _op():
        require_branch_in_business(actor.business_id, data.branch_id)

        if data.item_ids is not None:
            item_ids = data.item_ids
            for item_id in item_ids:
                get_stockable_item(actor.business_id, item_id)
        else:
            item_ids = _branch_item_ids(actor.business_id)
            if not item_ids:
                raise ValidationError("There are no items to count")

        count = InventoryCount(
            business_id=actor.business_id,
            branch_id=data.branch_id,
            count_number=next_document_number(
                business_id=actor.business_id,
                document_type=DOCUMENT_COUNT,
            ),
            count_type=data.count_type,
            status=COUNT_STATUS_DRAFT,
            notes=data.notes,
            created_by=actor.user_id,
        )
        db.session.add(count)

        for item_id in item_ids:
            _seed_item(count, item_id)

        db.session.flush()
        return count

    return run_in_transaction(_op)


def add_count_items(actor: ActorContext, count_id: int, item_ids: list[int]) -> InventoryCount:
    """
    Add items to a draft count. Items already on the count are skipped.

    Raises:
        InvalidStateTransition: count already completed
    """
    def _op():
        count = _load_count(actor, count_id, lock=True)
        require_editable(LIFECYCLE_COUNT, count.status, {COUNT_STATUS_DRAFT}, "add items to")

        existing = {line.item_id for line in count.items}
        for item_id in item_ids:
            if item_id in existing:
                continue
            get_stockable_item(actor.business_id, item_id)
            _seed_item(count, item_id)
            existing.add(item_id)

        db.session.flush()
        return count

    return run_in_transaction(_op)


def update_count_item(actor: ActorContext, count_id: int, item_id: int, data: UpdateCountItem) -> CountItem:
    """
    Enter or correct the counted quantity for one item.

    Raises:
        InvalidStateTransition: count already completed
        NotFound: item not on this count
    """
    def _op():
        count = _load_count(actor, count_id, lock=True)
        require_editable(LIFECYCLE_COUNT, count.status, {COUNT_STATUS_DRAFT}, "edit")

        line = next((entry for entry in count.items if entry.item_id == item_id), None)
        if line is None:
            raise NotFound(f"Item {item_id} is not on inventory count {count_id}")

        line.counted_quantity = data.counted_quantity
        line.variance_reason = data.variance_reason
        line.counted_at = utcnow()
        db.session.flush()
        return line

    return run_in_transaction(_op)


def complete_count(actor: ActorContext, count_id: int) -> InventoryCount:
    """
    Reconcile the count against the ledger and lock it.

    For each item the variance is counted - current ledger quantity (not the
    expected snapshot, so sales or receipts during the count are respected).
    A non-zero variance produces exactly one count_adjustment movement, with
    reason count_shortage or count_surplus and the line's free-text reason
    in its notes.

    Raises:
        InvalidStateTransition: count already completed
        ValidationError: items still without a counted quantity
    """
    def _op():
        count = _load_count(actor, count_id, lock=True)
        require_transition(LIFECYCLE_COUNT, count.status, COUNT_STATUS_COMPLETED)

        uncounted = [line.item_id for line in count.items if line.counted_quantity is None]
        if uncounted:
            raise ValidationError(
                f"{len(uncounted)} item(s) have not been counted: "
                f"{', '.join(str(item_id) for item_id in uncounted)}"
            )

        now = utcnow()
        adjustments = 0
        for line in count.items:
            counted = quantize(line.counted_quantity)
            level = _locked_level(count, line.item_id)
            current = quantize(level.quantity) if level is not None else ZERO
            variance = counted - current
            line.variance = variance

            if variance != 0:
                apply_movement(
                    business_id=count.business_id,
                    branch_id=count.branch_id,
                    item_id=line.item_id,
                    delta=variance,
                    transaction_type=MOVEMENT_COUNT_ADJUSTMENT,
                    reference_type=REFERENCE_INVENTORY_COUNT,
                    reference_id=count.id,
                    reason=REASON_COUNT_SURPLUS if variance > 0 else REASON_COUNT_SHORTAGE,
                    notes=_movement_notes(count, line),
                    performed_by=actor.user_id,
                )
                adjustments += 1
                if level is None:
                    level = _locked_level(count, line.item_id)

            if level is not None:
                level.last_count_date = now
                level.last_count_quantity = counted

        count.status = COUNT_STATUS_COMPLETED
        count.completed_by = actor.user_id
        count.completed_at = now
        db.session.flush()

        current_app.logger.info(
            "Inventory count %s completed by user %s (%d adjustment(s))",
            count.count_number,
            actor.user_id,
            adjustments,
        )
        return count

    return run_in_transaction(_op)


def get_count(actor: ActorContext, count_id: int) -> InventoryCount:
    return _load_count(actor, count_id, lock=False)


def list_counts(
    actor: ActorContext,
    *,
    status: str | None = None,
    branch_id: int | None = None,
) -> list[InventoryCount]:
    if status and status not in valid_statuses(LIFECYCLE_COUNT):
        raise ValidationError(f"Unknown inventory count status '{status}'")

    query = db.session.query(InventoryCount).filter(InventoryCount.business_id == actor.business_id)
    if status:
        query = query.filter(InventoryCount.status == status)
    if branch_id is not None:
        query = query.filter(InventoryCount.branch_id == branch_id)
    return query.order_by(InventoryCount.created_at.desc(), InventoryCount.id.desc()).all()
