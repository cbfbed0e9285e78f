# Overview: Append-only movement log: record, filtered paging, dashboard stats.

"""
Movement Log

INVARIANTS:
- Movements are write-once. This module exposes record/query/stats only;
  nothing in the service layer updates or deletes a Movement.
- record_movement is called by stock_service inside the same transaction
  as the StockLevel update it describes.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Movement
from ..models.stock import DEDUCTION_MOVEMENTS, MOVEMENT_TRANSFER_OUT, MOVEMENT_TYPES
from stockroom.time_utils import days_ago, start_of_day, utcnow
from stockroom.validation import ValidationError, quantize
from .authorization_service import ActorContext, require_branch_in_business
from .schemas import MovementQuery


# Stock lost at the branch (transfer_out only moves it elsewhere)
LOSS_MOVEMENTS = DEDUCTION_MOVEMENTS - {MOVEMENT_TRANSFER_OUT}


def _as_decimal(value) -> Decimal:
    # SQLite hands back aggregate sums as float
    if value is None:
        return quantize(Decimal("0"))
    if isinstance(value, Decimal):
        return quantize(value)
    return quantize(Decimal(str(value)))


def record_movement(
    *,
    business_id: int,
    branch_id: int,
    item_id: int,
    transaction_type: str,
    quantity_delta: Decimal,
    quantity_before: Decimal,
    quantity_after: Decimal,
    reference_type: str | None = None,
    reference_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    performed_by: int | None = None,
) -> Movement:
    """Append one movement row and flush to obtain its id."""
    movement = Movement(
        business_id=business_id,
        branch_id=branch_id,
        item_id=item_id,
        transaction_type=transaction_type,
        quantity_delta=quantity_delta,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
        notes=notes,
        performed_by=performed_by,
        created_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def query_movements(actor: ActorContext, filters: MovementQuery) -> tuple[list[Movement], int]:
    """
    Page through the actor's business movements, newest first.

    Returns:
        Tuple of (movements on the requested page, total matching count)
    """
    if filters.transaction_type and filters.transaction_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Unknown transaction_type '{filters.transaction_type}'")

    query = db.session.query(Movement).filter(Movement.business_id == actor.business_id)

    if filters.branch_id is not None:
        require_branch_in_business(actor.business_id, filters.branch_id, active_only=False)
        query = query.filter(Movement.branch_id == filters.branch_id)
    if filters.item_id is not None:
        query = query.filter(Movement.item_id == filters.item_id)
    if filters.transaction_type:
        query = query.filter(Movement.transaction_type == filters.transaction_type)
    if filters.reference_type:
        query = query.filter(Movement.reference_type == filters.reference_type)
    if filters.reference_id is not None:
        query = query.filter(Movement.reference_id == filters.reference_id)
    if filters.cause:
        query = query.filter(Movement.reason == filters.cause)
    if filters.performed_by is not None:
        query = query.filter(Movement.performed_by == filters.performed_by)
    if filters.start_date:
        query = query.filter(Movement.created_at >= filters.start_date)
    if filters.end_date:
        query = query.filter(Movement.created_at <= filters.end_date)

    total = query.count()

    limit = min(filters.limit, current_app.config.get("MOVEMENTS_PAGE_LIMIT_MAX", 200))
    offset = (filters.page - 1) * limit
    rows = (
        query.order_by(Movement.created_at.desc(), Movement.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def movement_stats(actor: ActorContext, branch_id: int | None = None) -> dict:
    """
    Aggregate counts for dashboards.

    Returns:
        {
            "by_type": {type: {"count": int, "quantity": str}},
            "today_count": int,
            "today_additions": int,
            "today_deductions": int,
            "week_count": int,
            "top_deduction_types": [{"transaction_type", "count", "quantity"}]  (last 30 days, top 5)
        }
    """
    base = db.session.query(Movement).filter(Movement.business_id == actor.business_id)
    if branch_id is not None:
        require_branch_in_business(actor.business_id, branch_id, active_only=False)
        base = base.filter(Movement.branch_id == branch_id)

    now = utcnow()
    today = start_of_day(now)

    by_type = {}
    rows = (
        base.with_entities(
            Movement.transaction_type,
            func.count(Movement.id),
            func.sum(Movement.quantity_delta),
        )
        .group_by(Movement.transaction_type)
        .all()
    )
    for transaction_type, count, quantity in rows:
        by_type[transaction_type] = {"count": count, "quantity": str(_as_decimal(quantity))}

    today_count, today_additions, today_deductions = (
        base.filter(Movement.created_at >= today)
        .with_entities(
            func.count(Movement.id),
            func.sum(case((Movement.quantity_delta > 0, 1), else_=0)),
            func.sum(case((Movement.quantity_delta < 0, 1), else_=0)),
        )
        .one()
    )

    week_count = base.filter(Movement.created_at >= days_ago(7, now=now)).count()

    top_rows = (
        base.filter(
            Movement.created_at >= days_ago(30, now=now),
            Movement.transaction_type.in_(sorted(LOSS_MOVEMENTS)),
        )
        .with_entities(
            Movement.transaction_type,
            func.count(Movement.id).label("count"),
            func.sum(Movement.quantity_delta),
        )
        .group_by(Movement.transaction_type)
        .order_by(func.count(Movement.id).desc(), Movement.transaction_type.asc())
        .limit(5)
        .all()
    )

    return {
        "by_type": by_type,
        "today_count": today_count or 0,
        "today_additions": int(today_additions or 0),
        "today_deductions": int(today_deductions or 0),
        "week_count": week_count,
        "top_deduction_types": [
            {
                "transaction_type": transaction_type,
                "count": count,
                "quantity": str(_as_decimal(abs(_as_decimal(quantity)))),
            }
            for transaction_type, count, quantity in top_rows
        ],
    }
