from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z
from stockroom.validation import format_quantity


class Item(db.Model):
    """
    Catalog entry, scoped to a business.

    Catalog management lives elsewhere; this service only reads items and
    maintains the purchase cost fields on receipt.

    Composite items (recipes, bundles) are assembled from raw items and never
    carry stock of their own.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("business_id", "sku", name="uq_items_business_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)

    # Unit of measure: piece, kg, g, l, ml, ...
    unit = db.Column(db.String(16), nullable=False, default="piece")
    is_composite = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Weighted average and most recent purchase cost per unit
    cost_per_unit = db.Column(db.Numeric(15, 4), nullable=False, default=0)
    last_purchase_cost = db.Column(db.Numeric(15, 4), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "sku": self.sku,
            "unit": self.unit,
            "is_composite": self.is_composite,
            "is_active": self.is_active,
            "cost_per_unit": format_quantity(self.cost_per_unit),
            "last_purchase_cost": format_quantity(self.last_purchase_cost),
        }


class ItemBarcode(db.Model):
    """
    Barcode bound to an item.

    Uniqueness is per business: two businesses may print the same barcode
    on different products. Each item carries at most one barcode.
    """
    __tablename__ = "item_barcodes"
    __table_args__ = (
        db.UniqueConstraint("business_id", "barcode", name="uq_item_barcodes_business_barcode"),
        db.UniqueConstraint("business_id", "item_id", name="uq_item_barcodes_business_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    barcode = db.Column(db.String(64), nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item", backref=db.backref("barcodes", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "item_id": self.item_id,
            "barcode": self.barcode,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
