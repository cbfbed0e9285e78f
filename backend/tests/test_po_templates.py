# Overview: Pytest coverage for purchase order templates.

"""
Purchase Order Template Tests

Verifies that:
1. Templates are created for a vendor of the business with stockable items
2. Updates replace lines wholesale and can deactivate a template
3. Templates are scoped to their business
4. Ordering from a template produces a pending order with the template lines
5. Vendors referenced only by templates are deactivated, not removed
"""

from decimal import Decimal

import pytest
from stockroom.models import Movement, POTemplateItem
from stockroom.services import po_template_service, vendor_service
from stockroom.services.authorization_service import resolve_actor
from stockroom.services.schemas import (
    CreatePOTemplate, LineQuantity, OrderFromTemplate, UpdatePOTemplate, VendorInput, VendorUpdate,
)
from stockroom.time_utils import period_stamp
from stockroom.validation import NotFound, ValidationError


@pytest.fixture
def template(db_session, manager_actor, vendor, flour, sugar):
    """Weekly mill order: 25 kg flour, 10 kg sugar."""
    return po_template_service.create_po_template(manager_actor, CreatePOTemplate(
        vendor_id=vendor.id,
        name="Weekly mill order",
        items=[
            LineQuantity(item_id=flour.id, quantity="25"),
            LineQuantity(item_id=sugar.id, quantity="10"),
        ],
        notes="Deliver before 7am",
    ))


class TestCreateTemplate:

    def test_created_active_with_lines(self, template, flour, sugar):
        assert template.is_active is True
        assert template.name == "Weekly mill order"
        assert [(line.item_id, line.quantity) for line in template.items] == [
            (flour.id, Decimal("25.0000")),
            (sugar.id, Decimal("10.0000")),
        ]

    def test_serialized_with_vendor_and_items(self, template, vendor, flour):
        data = template.to_dict()
        assert data["vendor_name"] == vendor.name
        assert data["item_count"] == 2
        assert data["items"][0]["sku"] == flour.sku
        assert data["items"][0]["quantity"] == "25.0000"

    def test_name_and_items_required(self, vendor, flour):
        with pytest.raises(ValidationError):
            CreatePOTemplate(vendor_id=vendor.id, name=" ", items=[LineQuantity(item_id=flour.id, quantity="1")])
        with pytest.raises(ValidationError):
            CreatePOTemplate(vendor_id=vendor.id, name="Empty", items=[])

    def test_foreign_vendor_not_found(self, db_session, manager_b, flour, vendor, item_b):
        with pytest.raises(NotFound):
            po_template_service.create_po_template(resolve_actor(manager_b.id), CreatePOTemplate(
                vendor_id=vendor.id, name="Borrowed", items=[LineQuantity(item_id=item_b.id, quantity="1")],
            ))

    def test_composite_item_rejected(self, db_session, manager_actor, vendor, composite_item):
        with pytest.raises(ValidationError):
            po_template_service.create_po_template(manager_actor, CreatePOTemplate(
                vendor_id=vendor.id, name="Pastries", items=[LineQuantity(item_id=composite_item.id, quantity="1")],
            ))


class TestUpdateTemplate:

    def test_items_replaced(self, db_session, template, manager_actor, sugar):
        updated = po_template_service.update_po_template(manager_actor, template.id, UpdatePOTemplate(
            items=[LineQuantity(item_id=sugar.id, quantity="12")],
        ))

        assert [(line.item_id, line.quantity) for line in updated.items] == [(sugar.id, Decimal("12.0000"))]
        assert db_session.query(POTemplateItem).count() == 1

    def test_rename_clear_notes_and_deactivate(self, template, manager_actor):
        updated = po_template_service.update_po_template(manager_actor, template.id, UpdatePOTemplate(
            name="Holiday mill order", clear_notes=True, is_active=False,
        ))

        assert updated.name == "Holiday mill order"
        assert updated.notes is None
        assert updated.is_active is False
        assert len(updated.items) == 2

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            UpdatePOTemplate(name="  ")


class TestListAndDelete:

    def test_filters(self, db_session, template, manager_actor, vendor):
        other_vendor = vendor_service.create_vendor(manager_actor, VendorInput(name="Dairy Co"))
        po_template_service.update_po_template(manager_actor, template.id, UpdatePOTemplate(is_active=False))

        assert [t.id for t in po_template_service.list_po_templates(manager_actor)] == [template.id]
        assert po_template_service.list_po_templates(manager_actor, is_active=True) == []
        assert po_template_service.list_po_templates(manager_actor, vendor_id=other_vendor.id) == []

    def test_other_business_cannot_see(self, db_session, template, manager_b):
        actor_b = resolve_actor(manager_b.id)
        assert po_template_service.list_po_templates(actor_b) == []
        with pytest.raises(NotFound):
            po_template_service.get_po_template(actor_b, template.id)

    def test_delete_removes_lines(self, db_session, template, manager_actor):
        result = po_template_service.delete_po_template(manager_actor, template.id)

        assert result == {"id": template.id, "deleted": True}
        assert db_session.query(POTemplateItem).count() == 0
        with pytest.raises(NotFound):
            po_template_service.get_po_template(manager_actor, template.id)

    def test_vendor_with_template_is_deactivated(self, db_session, template, manager_actor, vendor):
        result = vendor_service.delete_vendor(manager_actor, vendor.id)

        assert result == {"id": vendor.id, "deleted": False, "deactivated": True}


class TestOrderFromTemplate:

    def test_creates_pending_order(self, db_session, template, manager_actor, branch_main, vendor, flour, sugar):
        order = po_template_service.create_purchase_order_from_template(
            manager_actor, template.id, OrderFromTemplate(branch_id=branch_main.id, expected_date="2026-11-02"),
        )

        assert order.status == "pending"
        assert order.order_number == f"PO-{period_stamp()}-0001"
        assert order.vendor_id == vendor.id
        assert order.notes == "Deliver before 7am"
        assert [(line.item_id, line.ordered_quantity) for line in order.items] == [
            (flour.id, Decimal("25.0000")),
            (sugar.id, Decimal("10.0000")),
        ]
        assert db_session.query(Movement).count() == 0

    def test_inactive_template_rejected(self, template, manager_actor, branch_main):
        po_template_service.update_po_template(manager_actor, template.id, UpdatePOTemplate(is_active=False))

        with pytest.raises(ValidationError):
            po_template_service.create_purchase_order_from_template(
                manager_actor, template.id, OrderFromTemplate(branch_id=branch_main.id),
            )

    def test_inactive_vendor_rejected(self, db_session, template, manager_actor, vendor, branch_main):
        vendor_service.update_vendor(manager_actor, vendor.id, VendorUpdate({"status": "inactive"}))

        with pytest.raises(ValidationError):
            po_template_service.create_purchase_order_from_template(
                manager_actor, template.id, OrderFromTemplate(branch_id=branch_main.id),
            )
