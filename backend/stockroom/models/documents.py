from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z
from stockroom.validation import format_quantity


class Transfer(db.Model):
    """
    Stock transfer between two (business, branch) pairs.

    LIFECYCLE:
    1. pending: stock already deducted from the source (in flight)
    2. received: stock credited at the destination (terminal)
    3. cancelled: deduction reversed at the source (terminal)

    Both ends may belong to different businesses when an owner moves stock
    between businesses they are linked to. Transfer numbers are unique per
    source business.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.UniqueConstraint("from_business_id", "transfer_number", name="uq_transfers_business_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(32), nullable=False)

    from_business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    from_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    to_business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    to_branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    # pending, received, cancelled
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_branch = db.relationship("Branch", foreign_keys=[from_branch_id])
    to_branch = db.relationship("Branch", foreign_keys=[to_branch_id])
    items = db.relationship(
        "TransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="TransferItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Transfer id={self.id} number={self.transfer_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "transfer_number": self.transfer_number,
            "from_business_id": self.from_business_id,
            "from_branch_id": self.from_branch_id,
            "from_branch_name": self.from_branch.name if self.from_branch else None,
            "to_business_id": self.to_business_id,
            "to_branch_id": self.to_branch_id,
            "to_branch_name": self.to_branch.name if self.to_branch else None,
            "status": self.status,
            "notes": self.notes,
            "created_by": self.created_by,
            "received_by": self.received_by,
            "cancelled_by": self.cancelled_by,
            "created_at": to_utc_z(self.created_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [line.to_dict() for line in self.items]
        return data


class TransferItem(db.Model):
    __tablename__ = "transfer_items"
    __table_args__ = (
        db.UniqueConstraint("transfer_id", "item_id", name="uq_transfer_items_transfer_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=False, index=True)
    # Source business item
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    # Item credited at the destination: item_id itself inside one business,
    # the destination item with the same SKU across businesses
    destination_item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(15, 4), nullable=False)
    # Set on receive; less than quantity when the destination reports a shortage
    received_quantity = db.Column(db.Numeric(15, 4), nullable=True)

    transfer = db.relationship("Transfer", back_populates="items")
    item = db.relationship("Item", foreign_keys=[item_id])
    destination_item = db.relationship("Item", foreign_keys=[destination_item_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_id": self.transfer_id,
            "item_id": self.item_id,
            "destination_item_id": self.destination_item_id,
            "item_name": self.item.name if self.item else None,
            "unit": self.item.unit if self.item else None,
            "quantity": format_quantity(self.quantity),
            "received_quantity": format_quantity(self.received_quantity),
        }


class InventoryCount(db.Model):
    """
    Physical stock count for one branch.

    LIFECYCLE:
    1. draft: items counted and edited freely, no stock effect
    2. completed: one count_adjustment movement per differing item (terminal)

    There is no cancelled state; an unwanted draft is simply left alone.
    """
    __tablename__ = "inventory_counts"
    __table_args__ = (
        db.UniqueConstraint("business_id", "count_number", name="uq_inventory_counts_business_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    count_number = db.Column(db.String(32), nullable=False)

    # full, partial, cycle
    count_type = db.Column(db.String(16), nullable=False, default="full")
    # draft, completed
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    completed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "CountItem",
        back_populates="count",
        cascade="all, delete-orphan",
        order_by="CountItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryCount id={self.id} number={self.count_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        counted = sum(1 for line in self.items if line.counted_quantity is not None)
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "count_number": self.count_number,
            "count_type": self.count_type,
            "status": self.status,
            "notes": self.notes,
            "item_count": len(self.items),
            "counted_item_count": counted,
            "created_by": self.created_by,
            "completed_by": self.completed_by,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
        if include_items:
            data["items"] = [line.to_dict() for line in self.items]
        return data


class CountItem(db.Model):
    """
    One item on an inventory count.

    expected_quantity is the ledger snapshot when the item was added;
    variance is computed against the ledger at completion time.
    """
    __tablename__ = "inventory_count_items"
    __table_args__ = (
        db.UniqueConstraint("count_id", "item_id", name="uq_inventory_count_items_count_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    count_id = db.Column(db.Integer, db.ForeignKey("inventory_counts.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    expected_quantity = db.Column(db.Numeric(15, 4), nullable=False, default=0)
    counted_quantity = db.Column(db.Numeric(15, 4), nullable=True)
    variance = db.Column(db.Numeric(15, 4), nullable=True)
    variance_reason = db.Column(db.String(255), nullable=True)
    counted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    count = db.relationship("InventoryCount", back_populates="items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "count_id": self.count_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "unit": self.item.unit if self.item else None,
            "expected_quantity": format_quantity(self.expected_quantity),
            "counted_quantity": format_quantity(self.counted_quantity),
            "variance": format_quantity(self.variance),
            "variance_reason": self.variance_reason,
            "counted_at": to_utc_z(self.counted_at),
        }


class DocumentSequence(db.Model):
    """
    Atomic per-business, per-period document sequences.

    period is the YYMM stamp for monthly numbering (PO-2610-0001) and ""
    for sequences that never reset (vendor codes).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("business_id", "document_type", "period", name="uq_doc_sequences_business_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    period = db.Column(db.String(8), nullable=False, default="")
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
