# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Directory

VISIBILITY: Vendors belong to a business. branch_id NULL means the vendor is
shared by every branch; otherwise only that branch sees it. list_vendors()
for a branch returns shared vendors plus that branch's own.

DELETE POLICY:
- Open (pending/counted) purchase orders block deletion with a Conflict.
- Closed orders or templates only: the vendor is deactivated so history
  keeps its name.
- No orders or templates at all: the row is removed.

Updates respect open orders too: no deactivation while any open order
references the vendor, and no restriction to one branch while open orders
at other branches do.
"""

from __future__ import annotations

from ..extensions import db
from ..models import POTemplate, PurchaseOrder, Vendor
from stockroom.validation import Conflict, NotFound, ValidationError
from .authorization_service import ActorContext, require_branch_in_business
from .concurrency import lock_for_update, run_in_transaction
from .document_service import DOCUMENT_VENDOR, next_document_number
from .lifecycle_service import PO_STATUS_COUNTED, PO_STATUS_PENDING
from .schemas import VendorInput, VendorUpdate


VENDOR_STATUS_ACTIVE = "active"
VENDOR_STATUS_INACTIVE = "inactive"

OPEN_ORDER_STATUSES = (PO_STATUS_PENDING, PO_STATUS_COUNTED)


def _code_taken(business_id: int, code: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Vendor.id).filter(Vendor.business_id == business_id, Vendor.code == code)
    if exclude_id is not None:
        query = query.filter(Vendor.id != exclude_id)
    return query.first() is not None


def _open_orders(vendor: Vendor):
    return db.session.query(PurchaseOrder.id).filter(
        PurchaseOrder.vendor_id == vendor.id,
        PurchaseOrder.status.in_(OPEN_ORDER_STATUSES),
    )


def create_vendor(actor: ActorContext, data: VendorInput) -> Vendor:
    """
    Create a vendor for the actor's business.

    The code is generated (VND-0001) when not supplied.

    Raises:
        NotFound: branch_id outside the business
        Conflict: code already used in this business
    """
    def _op():
        if data.branch_id is not None:
            require_branch_in_business(actor.business_id, data.branch_id)

        code = data.code
        if code:
            if _code_taken(actor.business_id, code):
                raise Conflict(f"Vendor code '{code}' already exists in this business")
        else:
            code = next_document_number(business_id=actor.business_id, document_type=DOCUMENT_VENDOR)
            while _code_taken(actor.business_id, code):
                code = next_document_number(business_id=actor.business_id, document_type=DOCUMENT_VENDOR)

        vendor = Vendor(
            business_id=actor.business_id,
            branch_id=data.branch_id,
            code=code,
            name=data.name,
            contact_person=data.contact_person,
            email=data.email,
            phone=data.phone,
            address=data.address,
            notes=data.notes,
            status=VENDOR_STATUS_ACTIVE,
        )
        db.session.add(vendor)
        db.session.flush()
        return vendor

    return run_in_transaction(_op)


def get_vendor(actor: ActorContext, vendor_id: int) -> Vendor:
    """
    Raises:
        NotFound: vendor missing or owned by another business
    """
    vendor = db.session.query(Vendor).filter_by(id=vendor_id).first()
    if not vendor or vendor.business_id != actor.business_id:
        raise NotFound(f"Vendor {vendor_id} not found")
    return vendor


def list_vendors(
    actor: ActorContext,
    *,
    branch_id: int | None = None,
    include_inactive: bool = False,
    search: str | None = None,
) -> list[Vendor]:
    """
    Vendors visible to a branch (shared + exclusive), or every vendor of the
    business when branch_id is None.
    """
    query = db.session.query(Vendor).filter(Vendor.business_id == actor.business_id)

    if branch_id is not None:
        require_branch_in_business(actor.business_id, branch_id, active_only=False)
        query = query.filter(db.or_(Vendor.branch_id.is_(None), Vendor.branch_id == branch_id))

    if not include_inactive:
        query = query.filter(Vendor.status == VENDOR_STATUS_ACTIVE)

    if search:
        search_term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Vendor.name.ilike(search_term),
                Vendor.code.ilike(search_term),
            )
        )

    return query.order_by(Vendor.name.asc(), Vendor.id.asc()).all()


def update_vendor(actor: ActorContext, vendor_id: int, update: VendorUpdate) -> Vendor:
    """
    Apply a partial update.

    Raises:
        NotFound: vendor or new branch outside the business
        Conflict: deactivating, or restricting to one branch, while open
            purchase orders elsewhere still reference the vendor
    """
    def _op():
        vendor = lock_for_update(db.session.query(Vendor).filter_by(id=vendor_id)).first()
        if not vendor or vendor.business_id != actor.business_id:
            raise NotFound(f"Vendor {vendor_id} not found")

        changes = update.changes
        if "branch_id" in changes and changes["branch_id"] is not None:
            require_branch_in_business(actor.business_id, changes["branch_id"])

        if changes.get("status") == VENDOR_STATUS_INACTIVE and vendor.status != VENDOR_STATUS_INACTIVE:
            open_orders = _open_orders(vendor).count()
            if open_orders:
                raise Conflict(
                    f"Cannot deactivate vendor with {open_orders} open purchase order(s); "
                    "receive or cancel them first"
                )

        new_branch_id = changes.get("branch_id")
        if new_branch_id is not None and new_branch_id != vendor.branch_id:
            stranded = _open_orders(vendor).filter(PurchaseOrder.branch_id != new_branch_id).count()
            if stranded:
                raise Conflict(
                    f"Cannot restrict vendor to branch {new_branch_id}: {stranded} open purchase "
                    "order(s) at other branches still use it"
                )

        for key, value in changes.items():
            setattr(vendor, key, value)

        db.session.flush()
        return vendor

    return run_in_transaction(_op)


def delete_vendor(actor: ActorContext, vendor_id: int) -> dict:
    """
    Delete or deactivate a vendor.

    Returns:
        {"id": vendor_id, "deleted": bool, "deactivated": bool}

    Raises:
        NotFound: vendor missing or foreign
        Conflict: open purchase orders still reference the vendor
    """
    def _op():
        vendor = lock_for_update(db.session.query(Vendor).filter_by(id=vendor_id)).first()
        if not vendor or vendor.business_id != actor.business_id:
            raise NotFound(f"Vendor {vendor_id} not found")

        open_orders = _open_orders(vendor).count()
        if open_orders:
            raise Conflict(
                f"Cannot delete vendor with {open_orders} open purchase order(s); "
                "receive or cancel them first"
            )

        has_history = (
            db.session.query(PurchaseOrder.id).filter(PurchaseOrder.vendor_id == vendor.id).first() is not None
            or db.session.query(POTemplate.id).filter(POTemplate.vendor_id == vendor.id).first() is not None
        )
        if has_history:
            vendor.status = VENDOR_STATUS_INACTIVE
            db.session.flush()
            return {"id": vendor_id, "deleted": False, "deactivated": True}

        db.session.delete(vendor)
        db.session.flush()
        return {"id": vendor_id, "deleted": True, "deactivated": False}

    return run_in_transaction(_op)


def validate_vendor_for_branch(business_id: int, vendor_id: int, branch_id: int) -> Vendor:
    """
    Vendor must exist in the business, be active, and be visible to the branch.

    Raises:
        NotFound: vendor missing or foreign
        ValidationError: vendor inactive or restricted to another branch
    """
    vendor = db.session.query(Vendor).filter_by(id=vendor_id).first()
    if not vendor or vendor.business_id != business_id:
        raise NotFound(f"Vendor {vendor_id} not found")
    if vendor.status != VENDOR_STATUS_ACTIVE:
        raise ValidationError("Vendor is inactive")
    if vendor.branch_id is not None and vendor.branch_id != branch_id:
        raise ValidationError("Vendor is not available to this branch")
    return vendor
