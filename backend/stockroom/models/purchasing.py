from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_iso_date, to_utc_z
from stockroom.validation import format_quantity


class Vendor(db.Model):
    """
    Supplier scoped to a business.

    branch_id NULL means the vendor is shared by every branch of the business;
    otherwise it is visible only to that branch.

    Vendor codes (VND-0001) are unique within a business.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("business_id", "code", name="uq_vendors_business_code"),
        db.Index("ix_vendors_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Contact information
    contact_person = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # active, inactive
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} code={self.code!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "code": self.code,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Vendor purchase order.

    LIFECYCLE:
    1. pending: created with ordered quantities only, no prices
    2. counted: every line counted and barcode-scanned, variances justified
    3. received: invoice captured, stock increased (terminal, immutable)
    4. cancelled: abandoned from pending (terminal, no stock effect)
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("business_id", "order_number", name="uq_purchase_orders_business_number"),
        db.Index("ix_purchase_orders_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)

    # PO-2610-0001
    order_number = db.Column(db.String(32), nullable=False)

    # pending, counted, received, cancelled
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    expected_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    invoice_image_url = db.Column(db.String(1024), nullable=True)
    total_amount = db.Column(db.Numeric(15, 4), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    counted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    counted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    vendor = db.relationship("Vendor", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "order_number": self.order_number,
            "status": self.status,
            "expected_date": to_iso_date(self.expected_date),
            "notes": self.notes,
            "invoice_image_url": self.invoice_image_url,
            "total_amount": format_quantity(self.total_amount),
            "created_by": self.created_by,
            "counted_by": self.counted_by,
            "received_by": self.received_by,
            "cancelled_by": self.cancelled_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "counted_at": to_utc_z(self.counted_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [line.to_dict() for line in self.items]
        return data


class PurchaseOrderItem(db.Model):
    """
    One ordered item on a purchase order.

    counted_* fields are filled by the count step, received_* and costs by
    the receive step. unit_cost = total_cost / received_quantity.
    """
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "item_id", name="uq_purchase_order_items_order_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    ordered_quantity = db.Column(db.Numeric(15, 4), nullable=False)

    counted_quantity = db.Column(db.Numeric(15, 4), nullable=True)
    barcode_scanned = db.Column(db.Boolean, nullable=False, default=False)
    counted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    received_quantity = db.Column(db.Numeric(15, 4), nullable=True)
    unit_cost = db.Column(db.Numeric(15, 4), nullable=True)
    total_cost = db.Column(db.Numeric(15, 4), nullable=True)

    # missing, canceled, rejected
    variance_reason = db.Column(db.String(16), nullable=True)
    variance_note = db.Column(db.Text, nullable=True)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "unit": self.item.unit if self.item else None,
            "ordered_quantity": format_quantity(self.ordered_quantity),
            "counted_quantity": format_quantity(self.counted_quantity),
            "barcode_scanned": self.barcode_scanned,
            "counted_at": to_utc_z(self.counted_at),
            "received_quantity": format_quantity(self.received_quantity),
            "unit_cost": format_quantity(self.unit_cost),
            "total_cost": format_quantity(self.total_cost),
            "variance_reason": self.variance_reason,
            "variance_note": self.variance_note,
        }


class PurchaseOrderActivity(db.Model):
    """
    Append-only audit trail for a purchase order.

    Actions: created, items_updated, notes_updated, status_changed,
    counted, received, cancelled.
    """
    __tablename__ = "purchase_order_activity"
    __table_args__ = (
        db.Index("ix_po_activity_order_created", "purchase_order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    action = db.Column(db.String(32), nullable=False)
    old_status = db.Column(db.String(16), nullable=True)
    new_status = db.Column(db.String(16), nullable=True)
    changes = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    performed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "action": self.action,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "changes": self.changes,
            "notes": self.notes,
            "performed_by": self.performed_by,
            "created_at": to_utc_z(self.created_at),
        }


class POTemplate(db.Model):
    """
    Reusable purchase order: a vendor plus the usual quantities.

    Templates never touch stock; a purchase order is created from one with
    the template lines as ordered quantities. Inactive templates are kept
    for reference but cannot be ordered from.
    """
    __tablename__ = "po_templates"
    __table_args__ = (
        db.Index("ix_po_templates_business_vendor", "business_id", "vendor_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    vendor = db.relationship("Vendor")
    items = db.relationship(
        "POTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="POTemplateItem.id",
    )

    def __repr__(self) -> str:
        return f"<POTemplate id={self.id} name={self.name!r} vendor_id={self.vendor_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "name": self.name,
            "notes": self.notes,
            "is_active": self.is_active,
            "item_count": len(self.items),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [line.to_dict() for line in self.items]
        return data


class POTemplateItem(db.Model):
    __tablename__ = "po_template_items"
    __table_args__ = (
        db.UniqueConstraint("template_id", "item_id", name="uq_po_template_items_template_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey("po_templates.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(15, 4), nullable=False)

    template = db.relationship("POTemplate", back_populates="items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "template_id": self.template_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "sku": self.item.sku if self.item else None,
            "unit": self.item.unit if self.item else None,
            "cost_per_unit": format_quantity(self.item.cost_per_unit) if self.item else None,
            "quantity": format_quantity(self.quantity),
        }
