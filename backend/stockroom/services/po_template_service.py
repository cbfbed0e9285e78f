# Overview: Service-layer operations for purchase order templates.

"""
Purchase Order Templates

A template stores a vendor and the quantities usually ordered from it so a
recurring order can be placed in one step. Templates never move stock.

RULES:
- Template vendor and items must belong to the actor's business; items must
  be stockable (active, not composite).
- Updating items replaces every line.
- Ordering from a template re-validates the vendor for the chosen branch and
  the items, exactly as a hand-made purchase order would.
"""

from __future__ import annotations

from ..extensions import db
from ..models import POTemplate, POTemplateItem
from stockroom.validation import NotFound, ValidationError
from .authorization_service import ActorContext
from .concurrency import lock_for_update, run_in_transaction
from .purchase_order_service import create_purchase_order
from .schemas import CreatePOTemplate, CreatePurchaseOrder, LineQuantity, OrderFromTemplate, UpdatePOTemplate
from .stock_service import get_stockable_item
from .vendor_service import get_vendor


def _load_template(actor: ActorContext, template_id: int, *, lock: bool) -> POTemplate:
    query = db.session.query(POTemplate).filter_by(id=template_id)
    if lock:
        query = lock_for_update(query)
    template = query.first()
    if not template or template.business_id != actor.business_id:
        raise NotFound(f"Purchase order template {template_id} not found")
    return template


def _check_items(actor: ActorContext, lines: list[LineQuantity]) -> None:
    for line in lines:
        get_stockable_item(actor.business_id, line.item_id)


def list_po_templates(
    actor: ActorContext,
    *,
    vendor_id: int | None = None,
    is_active: bool | None = None,
) -> list[POTemplate]:
    query = db.session.query(POTemplate).filter(POTemplate.business_id == actor.business_id)
    if vendor_id is not None:
        query = query.filter(POTemplate.vendor_id == vendor_id)
    if is_active is not None:
        query = query.filter(POTemplate.is_active.is_(is_active))
    return query.order_by(POTemplate.name.asc(), POTemplate.id.asc()).all()


def get_po_template(actor: ActorContext, template_id: int) -> POTemplate:
    return _load_template(actor, template_id, lock=False)


def create_po_template(actor: ActorContext, data: CreatePOTemplate) -> POTemplate:
    """
    Raises:
        NotFound: vendor or item outside the business
        ValidationError: composite item
    """
    def _op():
        get_vendor(actor, data.vendor_id)
        _check_items(actor, data.items)

        template = POTemplate(
            business_id=actor.business_id,
            vendor_id=data.vendor_id,
            name=data.name,
            notes=data.notes,
            is_active=True,
            created_by=actor.user_id,
        )
        for line in data.items:
            template.items.append(POTemplateItem(item_id=line.item_id, quantity=line.quantity))

        db.session.add(template)
        db.session.flush()
        return template

    return run_in_transaction(_op)


def update_po_template(actor: ActorContext, template_id: int, data: UpdatePOTemplate) -> POTemplate:
    def _op():
        template = _load_template(actor, template_id, lock=True)

        if data.name is not None:
            template.name = data.name
        if data.clear_notes:
            template.notes = None
        elif data.notes is not None:
            template.notes = data.notes
        if data.is_active is not None:
            template.is_active = data.is_active

        if data.items is not None:
            _check_items(actor, data.items)
            template.items.clear()
            db.session.flush()
            for line in data.items:
                template.items.append(POTemplateItem(item_id=line.item_id, quantity=line.quantity))

        db.session.flush()
        return template

    return run_in_transaction(_op)


def delete_po_template(actor: ActorContext, template_id: int) -> dict:
    def _op():
        template = _load_template(actor, template_id, lock=True)
        db.session.delete(template)
        db.session.flush()
        return {"id": template_id, "deleted": True}

    return run_in_transaction(_op)


def create_purchase_order_from_template(actor: ActorContext, template_id: int, data: OrderFromTemplate):
    """
    Place a pending purchase order with the template's vendor and lines.

    Raises:
        NotFound: template outside the business
        ValidationError: template inactive, vendor inactive or restricted to
            another branch, item no longer stockable
    """
    template = _load_template(actor, template_id, lock=False)
    if not template.is_active:
        raise ValidationError("Purchase order template is inactive")

    notes = data.notes if data.notes is not None else template.notes
    return create_purchase_order(actor, CreatePurchaseOrder(
        vendor_id=template.vendor_id,
        branch_id=data.branch_id,
        items=[LineQuantity(item_id=line.item_id, quantity=line.quantity) for line in template.items],
        expected_date=data.expected_date,
        notes=notes,
    ))
