from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z, utcnow
from stockroom.validation import format_quantity


# Movement causes
MOVEMENT_PURCHASE_RECEIPT = "purchase_receipt"
MOVEMENT_TRANSFER_IN = "transfer_in"
MOVEMENT_TRANSFER_OUT = "transfer_out"
MOVEMENT_TRANSFER_OUT_REVERSAL = "transfer_out_reversal"
MOVEMENT_COUNT_ADJUSTMENT = "count_adjustment"
MOVEMENT_MANUAL_ADD = "manual_add"
MOVEMENT_MANUAL_DEDUCT = "manual_deduct"
MOVEMENT_WASTE = "waste"
MOVEMENT_DAMAGE = "damage"
MOVEMENT_EXPIRY = "expiry"
MOVEMENT_OTHERS = "others"
MOVEMENT_ADMIN_CORRECTION = "admin_correction"

ADDITIVE_MOVEMENTS = frozenset({
    MOVEMENT_PURCHASE_RECEIPT,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT_REVERSAL,
    MOVEMENT_MANUAL_ADD,
})
DEDUCTION_MOVEMENTS = frozenset({
    MOVEMENT_TRANSFER_OUT,
    MOVEMENT_MANUAL_DEDUCT,
    MOVEMENT_WASTE,
    MOVEMENT_DAMAGE,
    MOVEMENT_EXPIRY,
    MOVEMENT_OTHERS,
})
# Either sign allowed
SIGNED_MOVEMENTS = frozenset({
    MOVEMENT_COUNT_ADJUSTMENT,
    MOVEMENT_ADMIN_CORRECTION,
})
MOVEMENT_TYPES = ADDITIVE_MOVEMENTS | DEDUCTION_MOVEMENTS | SIGNED_MOVEMENTS

# reference_type values
REFERENCE_PURCHASE_ORDER = "purchase_order"
REFERENCE_TRANSFER = "transfer"
REFERENCE_INVENTORY_COUNT = "inventory_count"
REFERENCE_MANUAL = "manual"

# Movement.reason codes for count adjustments; the counter's own words stay
# on the count line and in the movement notes
REASON_COUNT_SHORTAGE = "count_shortage"
REASON_COUNT_SURPLUS = "count_surplus"


class StockLevel(db.Model):
    """
    Materialized on-hand quantity for one (business, branch, item) key.

    INVARIANT: quantity == SUM(Movement.quantity_delta) for the same key.
    Only stock_service.apply_movement writes quantity, and always together
    with the Movement row in the same transaction.

    Rows are created lazily on the first movement and never deleted.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.UniqueConstraint("business_id", "branch_id", "item_id", name="uq_stock_levels_key"),
        db.Index("ix_stock_levels_business_branch", "business_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(15, 4), nullable=False, default=0)
    min_quantity = db.Column(db.Numeric(15, 4), nullable=True)
    max_quantity = db.Column(db.Numeric(15, 4), nullable=True)

    last_movement_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_count_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_count_quantity = db.Column(db.Numeric(15, 4), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    item = db.relationship("Item")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        if self.min_quantity is None:
            return False
        return self.quantity <= self.min_quantity

    def __repr__(self) -> str:
        return (
            f"<StockLevel business_id={self.business_id} branch_id={self.branch_id} "
            f"item_id={self.item_id} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "unit": self.item.unit if self.item else None,
            "quantity": format_quantity(self.quantity),
            "min_quantity": format_quantity(self.min_quantity),
            "max_quantity": format_quantity(self.max_quantity),
            "is_low_stock": self.is_low_stock,
            "last_movement_at": to_utc_z(self.last_movement_at),
            "last_count_date": to_utc_z(self.last_count_date),
            "last_count_quantity": format_quantity(self.last_count_quantity),
        }


class Movement(db.Model):
    """
    Append-only record of one quantity change.

    This is the system of record; StockLevel is its projection. There is no
    update or delete path for movements anywhere in the service layer.

    quantity_before / quantity_after capture the level around the change so
    audits can be read without replaying the whole key.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_movements_key", "business_id", "branch_id", "item_id"),
        db.Index("ix_movements_reference", "reference_type", "reference_id"),
        db.Index("ix_movements_business_created", "business_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Numeric(15, 4), nullable=False)
    quantity_before = db.Column(db.Numeric(15, 4), nullable=False)
    quantity_after = db.Column(db.Numeric(15, 4), nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    # Variance or deduction reason code (missing, rejected, ...)
    reason = db.Column(db.String(32), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    performed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    item = db.relationship("Item")

    def __repr__(self) -> str:
        return (
            f"<Movement id={self.id} item_id={self.item_id} "
            f"type={self.transaction_type} delta={self.quantity_delta}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "transaction_type": self.transaction_type,
            "quantity_delta": format_quantity(self.quantity_delta),
            "quantity_before": format_quantity(self.quantity_before),
            "quantity_after": format_quantity(self.quantity_after),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "reason": self.reason,
            "notes": self.notes,
            "performed_by": self.performed_by,
            "created_at": to_utc_z(self.created_at),
        }
