# Overview: Typed input records for every workflow operation.

"""
Each record validates and normalizes itself in __post_init__, so a record
built by a route from JSON (from_dict) and one built directly in code go
through exactly the same checks.

Quantities and money become Decimal (4 dp); blank strings become None.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from stockroom.time_utils import parse_iso_datetime
from stockroom.validation import (
    ValidationError,
    require_key,
    require_list,
    to_bool,
    to_date,
    to_decimal,
    to_int,
    to_money,
    to_optional_int,
    to_quantity,
    to_text,
)


VARIANCE_REASONS = {"missing", "canceled", "rejected"}
COUNT_TYPES = {"full", "partial", "cycle"}


def _body(data: Any) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _ensure_unique_items(lines: list, label: str) -> None:
    seen = set()
    for line in lines:
        if line.item_id in seen:
            raise ValidationError(f"Item {line.item_id} appears more than once in {label}")
        seen.add(line.item_id)


def _variance_reason(value: Any) -> str | None:
    reason = to_text(value, "variance_reason", max_length=16)
    if reason is None:
        return None
    reason = reason.lower()
    if reason not in VARIANCE_REASONS:
        raise ValidationError(
            f"variance_reason must be one of: {', '.join(sorted(VARIANCE_REASONS))}"
        )
    return reason


@dataclass
class LineQuantity:
    """{item_id, quantity} with quantity > 0."""

    item_id: int
    quantity: Decimal

    def __post_init__(self):
        self.item_id = to_int(self.item_id, "item_id")
        self.quantity = to_quantity(self.quantity, "quantity")

    @classmethod
    def from_dict(cls, data: Any) -> "LineQuantity":
        data = _body(data)
        return cls(item_id=require_key(data, "item_id"), quantity=require_key(data, "quantity"))


def _lines(raw: list, label: str) -> list[LineQuantity]:
    lines = [LineQuantity.from_dict(entry) for entry in raw]
    if not lines:
        raise ValidationError(f"At least one item is required for {label}")
    _ensure_unique_items(lines, label)
    return lines


# =============================================================================
# Purchase orders
# =============================================================================

@dataclass
class CreatePurchaseOrder:
    vendor_id: int
    branch_id: int
    items: list[LineQuantity]
    expected_date: date | None = None
    notes: str | None = None

    def __post_init__(self):
        self.vendor_id = to_int(self.vendor_id, "vendor_id")
        self.branch_id = to_int(self.branch_id, "branch_id")
        if not self.items:
            raise ValidationError("At least one item is required for a purchase order")
        _ensure_unique_items(self.items, "purchase order")
        self.expected_date = to_date(self.expected_date, "expected_date")
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any) -> "CreatePurchaseOrder":
        data = _body(data)
        return cls(
            vendor_id=require_key(data, "vendor_id"),
            branch_id=require_key(data, "branch_id"),
            items=_lines(require_list(data, "items"), "purchase order"),
            expected_date=data.get("expected_date"),
            notes=data.get("notes"),
        )


@dataclass
class UpdatePurchaseOrder:
    """
    Partial update of a pending order. None means "leave unchanged";
    pass clear_notes / clear_expected_date to blank a field.
    """

    notes: str | None = None
    expected_date: date | None = None
    items: list[LineQuantity] | None = None
    clear_notes: bool = False
    clear_expected_date: bool = False

    def __post_init__(self):
        self.notes = to_text(self.notes, "notes")
        self.expected_date = to_date(self.expected_date, "expected_date")
        if self.items is not None:
            if not self.items:
                raise ValidationError("At least one item is required for a purchase order")
            _ensure_unique_items(self.items, "purchase order")

    @property
    def is_empty(self) -> bool:
        return (
            self.notes is None
            and self.expected_date is None
            and self.items is None
            and not self.clear_notes
            and not self.clear_expected_date
        )

    @classmethod
    def from_dict(cls, data: Any) -> "UpdatePurchaseOrder":
        data = _body(data)
        items = None
        if "items" in data:
            items = _lines(require_list(data, "items"), "purchase order")
        notes = data.get("notes")
        expected_date = data.get("expected_date")
        return cls(
            notes=notes,
            expected_date=expected_date,
            items=items,
            clear_notes="notes" in data and to_text(notes, "notes") is None,
            clear_expected_date="expected_date" in data and not expected_date,
        )


@dataclass
class CountLine:
    item_id: int
    counted_quantity: Decimal
    barcode_scanned: bool
    variance_reason: str | None = None
    variance_note: str | None = None

    def __post_init__(self):
        self.item_id = to_int(self.item_id, "item_id")
        self.counted_quantity = to_quantity(self.counted_quantity, "counted_quantity", allow_zero=True)
        self.barcode_scanned = to_bool(self.barcode_scanned, "barcode_scanned")
        self.variance_reason = _variance_reason(self.variance_reason)
        self.variance_note = to_text(self.variance_note, "variance_note")

    @classmethod
    def from_dict(cls, data: Any) -> "CountLine":
        data = _body(data)
        return cls(
            item_id=require_key(data, "item_id"),
            counted_quantity=require_key(data, "counted_quantity"),
            barcode_scanned=data.get("barcode_scanned", False),
            variance_reason=data.get("variance_reason"),
            variance_note=data.get("variance_note"),
        )


@dataclass
class CountPurchaseOrder:
    items: list[CountLine]

    def __post_init__(self):
        if not self.items:
            raise ValidationError("At least one counted item is required")
        _ensure_unique_items(self.items, "count")

    @classmethod
    def from_dict(cls, data: Any) -> "CountPurchaseOrder":
        data = _body(data)
        return cls(items=[CountLine.from_dict(entry) for entry in require_list(data, "items")])


@dataclass
class ReceiveLine:
    """received_quantity None reuses the counted quantity (counted orders only)."""

    item_id: int
    total_cost: Decimal
    received_quantity: Decimal | None = None
    variance_reason: str | None = None
    variance_note: str | None = None

    def __post_init__(self):
        self.item_id = to_int(self.item_id, "item_id")
        self.total_cost = to_money(self.total_cost, "total_cost")
        if self.received_quantity is not None:
            self.received_quantity = to_quantity(self.received_quantity, "received_quantity", allow_zero=True)
        self.variance_reason = _variance_reason(self.variance_reason)
        self.variance_note = to_text(self.variance_note, "variance_note")

    @classmethod
    def from_dict(cls, data: Any) -> "ReceiveLine":
        data = _body(data)
        return cls(
            item_id=require_key(data, "item_id"),
            total_cost=require_key(data, "total_cost"),
            received_quantity=data.get("received_quantity"),
            variance_reason=data.get("variance_reason"),
            variance_note=data.get("variance_note"),
        )


@dataclass
class ReceivePurchaseOrder:
    invoice_image_url: str
    items: list[ReceiveLine]

    def __post_init__(self):
        self.invoice_image_url = to_text(self.invoice_image_url, "invoice_image_url", max_length=1024)
        if not self.invoice_image_url:
            raise ValidationError("An invoice image is required to receive a purchase order")
        if not self.items:
            raise ValidationError("At least one received item is required")
        _ensure_unique_items(self.items, "receipt")

    @classmethod
    def from_dict(cls, data: Any) -> "ReceivePurchaseOrder":
        data = _body(data)
        return cls(
            invoice_image_url=data.get("invoice_image_url"),
            items=[ReceiveLine.from_dict(entry) for entry in require_list(data, "items")],
        )


# =============================================================================
# Purchase order templates
# =============================================================================

@dataclass
class CreatePOTemplate:
    vendor_id: int
    name: str
    items: list[LineQuantity]
    notes: str | None = None

    def __post_init__(self):
        self.vendor_id = to_int(self.vendor_id, "vendor_id")
        self.name = to_text(self.name, "name", max_length=255)
        if not self.name:
            raise ValidationError("Template name is required")
        if not self.items:
            raise ValidationError("At least one item is required for a template")
        _ensure_unique_items(self.items, "template")
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any) -> "CreatePOTemplate":
        data = _body(data)
        return cls(
            vendor_id=require_key(data, "vendor_id"),
            name=data.get("name"),
            items=_lines(require_list(data, "items"), "template"),
            notes=data.get("notes"),
        )


@dataclass
class UpdatePOTemplate:
    """Partial update. items, when given, replaces every line."""

    name: str | None = None
    notes: str | None = None
    is_active: bool | None = None
    items: list[LineQuantity] | None = None
    clear_notes: bool = False

    def __post_init__(self):
        if self.name is not None:
            self.name = to_text(self.name, "name", max_length=255)
            if not self.name:
                raise ValidationError("Template name cannot be blank")
        self.notes = to_text(self.notes, "notes")
        if self.is_active is not None:
            self.is_active = to_bool(self.is_active, "is_active")
        if self.items is not None:
            if not self.items:
                raise ValidationError("At least one item is required for a template")
            _ensure_unique_items(self.items, "template")

    @classmethod
    def from_dict(cls, data: Any) -> "UpdatePOTemplate":
        data = _body(data)
        items = None
        if "items" in data:
            items = _lines(require_list(data, "items"), "template")
        notes = data.get("notes")
        return cls(
            name=data.get("name"),
            notes=notes,
            is_active=data.get("is_active"),
            items=items,
            clear_notes="notes" in data and to_text(notes, "notes") is None,
        )


@dataclass
class OrderFromTemplate:
    branch_id: int
    expected_date: date | None = None
    notes: str | None = None

    def __post_init__(self):
        self.branch_id = to_int(self.branch_id, "branch_id")
        self.expected_date = to_date(self.expected_date, "expected_date")
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any) -> "OrderFromTemplate":
        data = _body(data)
        return cls(
            branch_id=require_key(data, "branch_id"),
            expected_date=data.get("expected_date"),
            notes=data.get("notes"),
        )


# =============================================================================
# Transfers
# =============================================================================

@dataclass
class CreateTransfer:
    from_business_id: int
    from_branch_id: int
    to_business_id: int
    to_branch_id: int
    items: list[LineQuantity]
    notes: str | None = None

    def __post_init__(self):
        self.from_business_id = to_int(self.from_business_id, "from_business_id")
        self.from_branch_id = to_int(self.from_branch_id, "from_branch_id")
        self.to_business_id = to_int(self.to_business_id, "to_business_id")
        self.to_branch_id = to_int(self.to_branch_id, "to_branch_id")
        if (self.from_business_id, self.from_branch_id) == (self.to_business_id, self.to_branch_id):
            raise ValidationError("Cannot transfer to the same branch")
        if not self.items:
            raise ValidationError("At least one item is required for a transfer")
        _ensure_unique_items(self.items, "transfer")
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any, *, default_business_id: int | None = None) -> "CreateTransfer":
        data = _body(data)
        from_business_id = data.get("from_business_id", default_business_id)
        to_business_id = data.get("to_business_id", from_business_id)
        if from_business_id is None:
            raise ValidationError("Missing required field: from_business_id")
        return cls(
            from_business_id=from_business_id,
            from_branch_id=require_key(data, "from_branch_id"),
            to_business_id=to_business_id,
            to_branch_id=require_key(data, "to_branch_id"),
            items=_lines(require_list(data, "items"), "transfer"),
            notes=data.get("notes"),
        )


@dataclass
class ReceivedQuantity:
    """Quantity actually received; may be below the sent quantity, never above."""

    item_id: int
    quantity: Decimal

    def __post_init__(self):
        self.item_id = to_int(self.item_id, "item_id")
        self.quantity = to_quantity(self.quantity, "quantity", allow_zero=True)

    @classmethod
    def from_dict(cls, data: Any) -> "ReceivedQuantity":
        data = _body(data)
        return cls(item_id=require_key(data, "item_id"), quantity=require_key(data, "quantity"))


@dataclass
class ReceiveTransfer:
    """items None receives every line in full."""

    items: list[ReceivedQuantity] | None = None

    def __post_init__(self):
        if self.items is not None:
            _ensure_unique_items(self.items, "transfer receipt")

    @classmethod
    def from_dict(cls, data: Any) -> "ReceiveTransfer":
        data = data or {}
        data = _body(data)
        raw = data.get("items")
        if raw is None:
            return cls(items=None)
        if not isinstance(raw, list):
            raise ValidationError("items must be a list")
        return cls(items=[ReceivedQuantity.from_dict(entry) for entry in raw])


# =============================================================================
# Inventory counts
# =============================================================================

@dataclass
class CreateCount:
    branch_id: int
    count_type: str = "full"
    item_ids: list[int] | None = None
    notes: str | None = None

    def __post_init__(self):
        self.branch_id = to_int(self.branch_id, "branch_id")
        count_type = (to_text(self.count_type, "count_type") or "full").lower()
        if count_type not in COUNT_TYPES:
            raise ValidationError(f"count_type must be one of: {', '.join(sorted(COUNT_TYPES))}")
        self.count_type = count_type
        if self.item_ids is not None:
            ids = [to_int(item_id, "item_id") for item_id in self.item_ids]
            if not ids:
                raise ValidationError("item_ids cannot be empty; omit it to count every item")
            if len(set(ids)) != len(ids):
                raise ValidationError("item_ids contains duplicates")
            self.item_ids = ids
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any) -> "CreateCount":
        data = _body(data)
        item_ids = data.get("item_ids")
        if item_ids is not None and not isinstance(item_ids, list):
            raise ValidationError("item_ids must be a list")
        return cls(
            branch_id=require_key(data, "branch_id"),
            count_type=data.get("count_type", "full"),
            item_ids=item_ids,
            notes=data.get("notes"),
        )


@dataclass
class UpdateCountItem:
    counted_quantity: Decimal
    variance_reason: str | None = None

    def __post_init__(self):
        self.counted_quantity = to_quantity(self.counted_quantity, "counted_quantity", allow_zero=True)
        self.variance_reason = to_text(self.variance_reason, "variance_reason", max_length=255)

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateCountItem":
        data = _body(data)
        return cls(
            counted_quantity=require_key(data, "counted_quantity"),
            variance_reason=data.get("variance_reason"),
        )


# =============================================================================
# Stock ledger
# =============================================================================

@dataclass
class StockAdjustment:
    """
    Manual movement. quantity is a positive magnitude for manual_add and the
    deduction types; admin_correction takes a signed, non-zero delta.
    """

    branch_id: int
    item_id: int
    quantity: Decimal
    transaction_type: str
    notes: str | None = None

    def __post_init__(self):
        self.branch_id = to_int(self.branch_id, "branch_id")
        self.item_id = to_int(self.item_id, "item_id")
        self.transaction_type = (to_text(self.transaction_type, "transaction_type", max_length=32) or "").lower()
        if not self.transaction_type:
            raise ValidationError("Missing required field: transaction_type")
        if self.transaction_type == "admin_correction":
            self.quantity = to_decimal(self.quantity, "quantity")
            if self.quantity == 0:
                raise ValidationError("quantity must be non-zero")
        else:
            self.quantity = to_quantity(self.quantity, "quantity")
        self.notes = to_text(self.notes, "notes")

    @classmethod
    def from_dict(cls, data: Any) -> "StockAdjustment":
        data = _body(data)
        return cls(
            branch_id=require_key(data, "branch_id"),
            item_id=require_key(data, "item_id"),
            quantity=require_key(data, "quantity"),
            transaction_type=require_key(data, "transaction_type"),
            notes=data.get("notes"),
        )


@dataclass
class StockLimits:
    branch_id: int
    item_id: int
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None

    def __post_init__(self):
        self.branch_id = to_int(self.branch_id, "branch_id")
        self.item_id = to_int(self.item_id, "item_id")
        if self.min_quantity is not None:
            self.min_quantity = to_quantity(self.min_quantity, "min_quantity", allow_zero=True)
        if self.max_quantity is not None:
            self.max_quantity = to_quantity(self.max_quantity, "max_quantity", allow_zero=True)
        if (
            self.min_quantity is not None
            and self.max_quantity is not None
            and self.max_quantity < self.min_quantity
        ):
            raise ValidationError("max_quantity cannot be less than min_quantity")

    @classmethod
    def from_dict(cls, data: Any) -> "StockLimits":
        data = _body(data)
        return cls(
            branch_id=require_key(data, "branch_id"),
            item_id=require_key(data, "item_id"),
            min_quantity=data.get("min_quantity"),
            max_quantity=data.get("max_quantity"),
        )


@dataclass
class MovementQuery:
    branch_id: int | None = None
    item_id: int | None = None
    transaction_type: str | None = None
    reference_type: str | None = None
    reference_id: int | None = None
    cause: str | None = None
    performed_by: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    page: int = 1
    limit: int = 50

    def __post_init__(self):
        self.branch_id = to_optional_int(self.branch_id, "branch_id")
        self.item_id = to_optional_int(self.item_id, "item_id")
        self.reference_id = to_optional_int(self.reference_id, "reference_id")
        self.performed_by = to_optional_int(self.performed_by, "performed_by")
        self.transaction_type = to_text(self.transaction_type, "transaction_type", max_length=32)
        self.reference_type = to_text(self.reference_type, "reference_type", max_length=32)
        self.cause = to_text(self.cause, "cause", max_length=32)
        self.page = to_int(self.page, "page")
        self.limit = to_int(self.limit, "limit")
        if self.page < 1:
            raise ValidationError("page must be at least 1")
        if self.limit < 1:
            raise ValidationError("limit must be at least 1")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date cannot be before start_date")

    @classmethod
    def from_args(cls, args, *, default_limit: int = 50) -> "MovementQuery":
        """Build from query-string arguments (all strings)."""
        try:
            start_date = parse_iso_datetime(args.get("start_date"))
            end_date = parse_iso_datetime(args.get("end_date"))
        except ValueError:
            raise ValidationError("start_date and end_date must be ISO-8601 datetimes")
        return cls(
            branch_id=args.get("branch_id"),
            item_id=args.get("item_id"),
            transaction_type=args.get("transaction_type"),
            reference_type=args.get("reference_type"),
            reference_id=args.get("reference_id"),
            cause=args.get("cause"),
            performed_by=args.get("performed_by"),
            start_date=start_date,
            end_date=end_date,
            page=args.get("page", 1),
            limit=args.get("limit", default_limit),
        )


# =============================================================================
# Vendors
# =============================================================================

VENDOR_TEXT_FIELDS = {
    "name": 255,
    "contact_person": 255,
    "email": 255,
    "phone": 64,
    "address": 2000,
    "notes": 2000,
}


@dataclass
class VendorInput:
    name: str
    code: str | None = None
    branch_id: int | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None

    def __post_init__(self):
        self.name = to_text(self.name, "name", max_length=255)
        if not self.name:
            raise ValidationError("Vendor name is required")
        code = to_text(self.code, "code", max_length=32)
        self.code = code.upper() if code else None
        self.branch_id = to_optional_int(self.branch_id, "branch_id")
        for key in ("contact_person", "email", "phone", "address", "notes"):
            setattr(self, key, to_text(getattr(self, key), key, max_length=VENDOR_TEXT_FIELDS[key]))

    @classmethod
    def from_dict(cls, data: Any) -> "VendorInput":
        data = _body(data)
        return cls(
            name=data.get("name"),
            code=data.get("code"),
            branch_id=data.get("branch_id"),
            contact_person=data.get("contact_person"),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            notes=data.get("notes"),
        )


@dataclass
class VendorUpdate:
    """Only the keys present in changes are applied; None clears optional fields."""

    changes: dict = field(default_factory=dict)

    WRITABLE = ("name", "branch_id", "contact_person", "email", "phone", "address", "notes", "status")

    def __post_init__(self):
        unknown = set(self.changes) - set(self.WRITABLE)
        if unknown:
            raise ValidationError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")
        cleaned = {}
        for key, value in self.changes.items():
            if key == "branch_id":
                cleaned[key] = to_optional_int(value, key)
            elif key == "status":
                status = (to_text(value, key) or "").lower()
                if status not in {"active", "inactive"}:
                    raise ValidationError("status must be 'active' or 'inactive'")
                cleaned[key] = status
            else:
                cleaned[key] = to_text(value, key, max_length=VENDOR_TEXT_FIELDS[key])
        if "name" in cleaned and not cleaned["name"]:
            raise ValidationError("Vendor name is required")
        self.changes = cleaned

    @classmethod
    def from_dict(cls, data: Any) -> "VendorUpdate":
        return cls(changes=dict(_body(data)))
