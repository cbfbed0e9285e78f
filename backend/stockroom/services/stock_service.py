# Overview: Stock ledger: the single writer of on-hand quantities.

"""
Stock Ledger

INVARIANTS:
- StockLevel.quantity == SUM(Movement.quantity_delta) per (business, branch, item).
- apply_movement() is the only code path that changes StockLevel.quantity.
  It locks the StockLevel row, computes before/after, writes the level and
  appends the Movement in the caller's transaction. Nothing commits here;
  the workflow that calls it commits or rolls back everything together.

SIGN RULES:
- Additive causes (purchase_receipt, transfer_in, transfer_out_reversal,
  manual_add) require a positive delta.
- Deduction causes (transfer_out, manual_deduct, waste, damage, expiry,
  others) require a negative delta and may not take the level below zero.
- count_adjustment and admin_correction accept either sign. Only
  admin_correction may leave the level negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Item, Movement, StockLevel
from ..models.stock import (
    ADDITIVE_MOVEMENTS,
    DEDUCTION_MOVEMENTS,
    MOVEMENT_ADMIN_CORRECTION,
    MOVEMENT_TYPES,
    REFERENCE_MANUAL,
)
from ..models.tenancy import ROLE_MANAGER, ROLE_OWNER
from stockroom.time_utils import utcnow
from stockroom.validation import (
    AuthorizationDenied,
    InsufficientInventory,
    NotFound,
    ValidationError,
    format_quantity,
    quantize,
    to_decimal,
)
from .authorization_service import ActorContext, require_branch_in_business
from .concurrency import lock_for_update, run_in_transaction
from .movement_service import _as_decimal, record_movement
from .schemas import StockAdjustment, StockLimits


ZERO = quantize(Decimal("0"))

MANUAL_ADJUSTMENT_TYPES = (ADDITIVE_MOVEMENTS | DEDUCTION_MOVEMENTS | {MOVEMENT_ADMIN_CORRECTION}) - {
    "purchase_receipt",
    "transfer_in",
    "transfer_out",
    "transfer_out_reversal",
}


@dataclass(frozen=True)
class LevelReading:
    """Current on-hand quantity and thresholds for one key (zero/unset when no row exists)."""

    business_id: int
    branch_id: int
    item_id: int
    quantity: Decimal
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.min_quantity is not None and self.quantity <= self.min_quantity

    def to_dict(self) -> dict:
        return {
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "item_id": self.item_id,
            "quantity": format_quantity(self.quantity),
            "min_quantity": format_quantity(self.min_quantity),
            "max_quantity": format_quantity(self.max_quantity),
            "is_low_stock": self.is_low_stock,
        }


def get_stockable_item(business_id: int, item_id: int) -> Item:
    """
    Raises:
        NotFound: item missing, inactive or owned by another business
        ValidationError: composite item (composites carry no stock)
    """
    item = db.session.query(Item).filter_by(id=item_id).first()
    if not item or item.business_id != business_id or not item.is_active:
        raise NotFound(f"Item {item_id} not found")
    if item.is_composite:
        raise ValidationError(f"Item {item_id} is a composite item and cannot be stocked")
    return item


def _locked_level(business_id: int, branch_id: int, item_id: int, *, create: bool) -> StockLevel | None:
    level = lock_for_update(
        db.session.query(StockLevel).filter_by(
            business_id=business_id,
            branch_id=branch_id,
            item_id=item_id,
        )
    ).first()
    if level is None and create:
        level = StockLevel(
            business_id=business_id,
            branch_id=branch_id,
            item_id=item_id,
            quantity=ZERO,
        )
        db.session.add(level)
        # A concurrent insert of the same key raises IntegrityError here;
        # run_in_transaction retries the whole unit of work.
        db.session.flush()
    return level


def _check_sign(transaction_type: str, delta: Decimal) -> None:
    if transaction_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Unknown transaction_type '{transaction_type}'")
    if delta == 0:
        raise ValidationError("Movement quantity must be non-zero")
    if transaction_type in ADDITIVE_MOVEMENTS and delta < 0:
        raise ValidationError(f"{transaction_type} requires a positive quantity")
    if transaction_type in DEDUCTION_MOVEMENTS and delta > 0:
        raise ValidationError(f"{transaction_type} requires a negative quantity")


def _apply(
    *,
    business_id: int,
    branch_id: int,
    item_id: int,
    delta,
    transaction_type: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    performed_by: int | None = None,
) -> tuple[StockLevel, Movement]:
    delta = to_decimal(delta, "quantity_delta")
    _check_sign(transaction_type, delta)

    level = _locked_level(business_id, branch_id, item_id, create=True)
    before = quantize(level.quantity if level.quantity is not None else ZERO)
    after = quantize(before + delta)

    if after < 0 and transaction_type in DEDUCTION_MOVEMENTS:
        raise InsufficientInventory(
            f"Insufficient stock for item {item_id}. Available: {before}, requested: {-delta}",
            item_id=item_id,
            available=before,
            requested=-delta,
        )

    now = utcnow()
    level.quantity = after
    level.last_movement_at = now

    movement = record_movement(
        business_id=business_id,
        branch_id=branch_id,
        item_id=item_id,
        transaction_type=transaction_type,
        quantity_delta=delta,
        quantity_before=before,
        quantity_after=after,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
        notes=notes,
        performed_by=performed_by,
    )
    return level, movement


def apply_movement(
    *,
    business_id: int,
    branch_id: int,
    item_id: int,
    delta,
    transaction_type: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
    reason: str | None = None,
    notes: str | None = None,
    performed_by: int | None = None,
) -> Decimal:
    """
    Change the on-hand quantity of one key and append the matching Movement.

    Must run inside the caller's transaction (run_in_transaction); the level
    row stays locked until that transaction ends.

    Returns:
        The new on-hand quantity

    Raises:
        ValidationError: unknown cause, zero delta, or wrong sign for the cause
        InsufficientInventory: a deduction cause would go below zero
    """
    level, _movement = _apply(
        business_id=business_id,
        branch_id=branch_id,
        item_id=item_id,
        delta=delta,
        transaction_type=transaction_type,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
        notes=notes,
        performed_by=performed_by,
    )
    return level.quantity


def get_level(business_id: int, branch_id: int, item_id: int) -> LevelReading:
    """Read one key without locking; missing rows read as zero with no thresholds."""
    level = (
        db.session.query(StockLevel)
        .filter_by(business_id=business_id, branch_id=branch_id, item_id=item_id)
        .first()
    )
    if level is None:
        return LevelReading(business_id=business_id, branch_id=branch_id, item_id=item_id, quantity=ZERO)
    return LevelReading(
        business_id=business_id,
        branch_id=branch_id,
        item_id=item_id,
        quantity=quantize(level.quantity),
        min_quantity=level.min_quantity,
        max_quantity=level.max_quantity,
    )


def get_stock_level(actor: ActorContext, branch_id: int, item_id: int) -> LevelReading:
    require_branch_in_business(actor.business_id, branch_id, active_only=False)
    item = db.session.query(Item).filter_by(id=item_id, business_id=actor.business_id).first()
    if not item:
        raise NotFound(f"Item {item_id} not found")
    return get_level(actor.business_id, branch_id, item_id)


def list_stock_levels(
    actor: ActorContext,
    *,
    branch_id: int | None = None,
    low_stock_only: bool = False,
) -> list[StockLevel]:
    query = db.session.query(StockLevel).filter(StockLevel.business_id == actor.business_id)
    if branch_id is not None:
        require_branch_in_business(actor.business_id, branch_id, active_only=False)
        query = query.filter(StockLevel.branch_id == branch_id)
    if low_stock_only:
        query = query.filter(
            StockLevel.min_quantity.isnot(None),
            StockLevel.quantity <= StockLevel.min_quantity,
        )
    return query.order_by(StockLevel.branch_id.asc(), StockLevel.item_id.asc()).all()


def set_stock_limits(actor: ActorContext, limits: StockLimits) -> StockLevel:
    """
    Configure min/max thresholds for one key.

    Creates the level row at zero when it does not exist yet; thresholds are
    not movements, so no Movement is written.
    """
    def _op():
        require_branch_in_business(actor.business_id, limits.branch_id)
        get_stockable_item(actor.business_id, limits.item_id)
        level = _locked_level(actor.business_id, limits.branch_id, limits.item_id, create=True)
        level.min_quantity = limits.min_quantity
        level.max_quantity = limits.max_quantity
        db.session.flush()
        return level

    return run_in_transaction(_op)


def adjust_stock(actor: ActorContext, adjustment: StockAdjustment) -> Movement:
    """
    Manual stock adjustment (additions, waste/damage/expiry deductions,
    administrative corrections).

    Raises:
        ValidationError: transaction type not allowed for manual adjustments
        AuthorizationDenied: admin_correction by a non-manager
        InsufficientInventory: deduction larger than on-hand quantity
    """
    if adjustment.transaction_type not in MANUAL_ADJUSTMENT_TYPES:
        raise ValidationError(
            f"transaction_type must be one of: {', '.join(sorted(MANUAL_ADJUSTMENT_TYPES))}"
        )
    if adjustment.transaction_type == MOVEMENT_ADMIN_CORRECTION and actor.role not in {ROLE_OWNER, ROLE_MANAGER}:
        raise AuthorizationDenied("Administrative corrections require the owner or manager role")

    if adjustment.transaction_type in DEDUCTION_MOVEMENTS:
        delta = -adjustment.quantity
        reason = adjustment.transaction_type
    else:
        delta = adjustment.quantity
        reason = None

    def _op():
        require_branch_in_business(actor.business_id, adjustment.branch_id)
        get_stockable_item(actor.business_id, adjustment.item_id)
        _level, movement = _apply(
            business_id=actor.business_id,
            branch_id=adjustment.branch_id,
            item_id=adjustment.item_id,
            delta=delta,
            transaction_type=adjustment.transaction_type,
            reference_type=REFERENCE_MANUAL,
            reason=reason,
            notes=adjustment.notes,
            performed_by=actor.user_id,
        )
        return movement

    return run_in_transaction(_op)


def record_purchase_cost(business_id: int, item_id: int, quantity: Decimal, unit_cost: Decimal) -> Item:
    """
    Fold a receipt into the item's weighted average cost.

    WAC = (on_hand * current_cost + quantity * unit_cost) / (on_hand + quantity)
    where on_hand is the business-wide quantity before this receipt
    (negative levels count as zero).
    """
    item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
    if item is None:
        raise NotFound(f"Item {item_id} not found")

    on_hand = _as_decimal(
        db.session.query(func.sum(StockLevel.quantity))
        .filter(
            StockLevel.business_id == business_id,
            StockLevel.item_id == item_id,
            StockLevel.quantity > 0,
        )
        .scalar()
    )
    current_cost = quantize(item.cost_per_unit if item.cost_per_unit is not None else ZERO)
    if quantity > 0:
        total_quantity = on_hand + quantity
        item.cost_per_unit = quantize((on_hand * current_cost + quantity * unit_cost) / total_quantity)
        item.last_purchase_cost = unit_cost
    return item


def verify_ledger(business_id: int | None = None) -> list[dict]:
    """
    Compare every StockLevel against the sum of its movements.

    Returns:
        One dict per drifting key: business_id, branch_id, item_id,
        level_quantity, movement_total
    """
    totals = (
        db.session.query(
            Movement.business_id,
            Movement.branch_id,
            Movement.item_id,
            func.sum(Movement.quantity_delta),
        )
        .group_by(Movement.business_id, Movement.branch_id, Movement.item_id)
    )
    levels = db.session.query(StockLevel)
    if business_id is not None:
        totals = totals.filter(Movement.business_id == business_id)
        levels = levels.filter(StockLevel.business_id == business_id)

    movement_totals = {
        (row[0], row[1], row[2]): _as_decimal(row[3]) for row in totals.all()
    }

    drift = []
    seen = set()
    for level in levels.all():
        key = (level.business_id, level.branch_id, level.item_id)
        seen.add(key)
        expected = movement_totals.get(key, ZERO)
        actual = quantize(level.quantity)
        if actual != expected:
            drift.append({
                "business_id": key[0],
                "branch_id": key[1],
                "item_id": key[2],
                "level_quantity": actual,
                "movement_total": expected,
            })

    # Movements with no level row at all
    for key, expected in movement_totals.items():
        if key not in seen and expected != ZERO:
            drift.append({
                "business_id": key[0],
                "branch_id": key[1],
                "item_id": key[2],
                "level_quantity": ZERO,
                "movement_total": expected,
            })

    return drift
