# Overview: Pytest coverage for branch-to-branch and cross-business stock transfers.

"""
Transfer Tests

Verifies that:
1. Creating a transfer deducts every line from the source immediately
2. Receiving credits the destination; source + destination + in-flight is conserved
3. Partial receipts record the shortage and do not return it to the source
4. Cancelling restores the source exactly
5. Received and cancelled transfers are terminal
6. Only owners move stock across businesses, and grants are re-checked on receive
7. Cross-business lines land on the destination item with the same SKU
"""

from decimal import Decimal

import pytest
from stockroom.models import Movement, OwnerBusinessLink, Transfer
from stockroom.services import count_service, stock_service
from stockroom.services import transfer_service
from stockroom.services.authorization_service import refresh_actor, resolve_actor
from stockroom.services.schemas import (
    CreateCount,
    CreateTransfer,
    LineQuantity,
    ReceivedQuantity,
    ReceiveTransfer,
    StockAdjustment,
    UpdateCountItem,
)
from stockroom.time_utils import period_stamp
from stockroom.validation import (
    AuthorizationDenied,
    InsufficientInventory,
    InvalidStateTransition,
    ValidationError,
)


def _level(business_id, branch, item):
    return stock_service.get_level(business_id, branch.id, item.id).quantity


def _create(actor, source, destination, *lines, to_business_id=None):
    return transfer_service.create_transfer(actor, CreateTransfer(
        from_business_id=source.business_id,
        from_branch_id=source.id,
        to_business_id=to_business_id or destination.business_id,
        to_branch_id=destination.id,
        items=[LineQuantity(item_id=item.id, quantity=str(quantity)) for item, quantity in lines],
    ))


@pytest.fixture
def stocked(db_session, branch_main, flour, sugar, add_stock):
    add_stock(branch_main, flour, 10)
    add_stock(branch_main, sugar, 1)


class TestCreateTransfer:

    def test_deducts_source_on_creation(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 4))

        assert transfer.status == "pending"
        assert transfer.transfer_number == f"TRF-{period_stamp()}-0001"
        assert _level(branch_main.business_id, branch_main, flour) == Decimal("6.0000")
        assert _level(branch_main.business_id, branch_warehouse, flour) == Decimal("0.0000")

        movement = db_session.query(Movement).filter_by(transaction_type="transfer_out").one()
        assert movement.quantity_delta == Decimal("-4.0000")
        assert movement.reference_type == "transfer"
        assert movement.reference_id == transfer.id

    def test_insufficient_line_rolls_back_everything(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour, sugar
    ):
        """Flour is available but sugar is not: nothing moves, no transfer is stored."""
        with pytest.raises(InsufficientInventory) as exc_info:
            _create(manager_actor, branch_main, branch_warehouse, (flour, 5), (sugar, 3))

        assert exc_info.value.item_id == sugar.id
        assert _level(branch_main.business_id, branch_main, flour) == Decimal("10.0000")
        assert db_session.query(Transfer).count() == 0
        assert db_session.query(Movement).filter_by(transaction_type="transfer_out").count() == 0

        retry = _create(manager_actor, branch_main, branch_warehouse, (flour, 5))
        assert retry.transfer_number == f"TRF-{period_stamp()}-0001"

    def test_same_branch_rejected(self, branch_main, flour):
        with pytest.raises(ValidationError):
            CreateTransfer(
                from_business_id=branch_main.business_id,
                from_branch_id=branch_main.id,
                to_business_id=branch_main.business_id,
                to_branch_id=branch_main.id,
                items=[LineQuantity(item_id=flour.id, quantity="1")],
            )

    def test_manager_cannot_cross_businesses(
        self, db_session, stocked, manager_actor, branch_main, branch_b, flour
    ):
        with pytest.raises(AuthorizationDenied):
            _create(manager_actor, branch_main, branch_b, (flour, 2))
        assert _level(branch_main.business_id, branch_main, flour) == Decimal("10.0000")

    def test_owner_without_link_cannot_cross_businesses(
        self, db_session, stocked, owner_actor, branch_main, branch_b, flour
    ):
        with pytest.raises(AuthorizationDenied):
            _create(owner_actor, branch_main, branch_b, (flour, 2))


class TestReceiveTransfer:

    def test_full_receipt_conserves_stock(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 4))

        received = transfer_service.receive_transfer(manager_actor, transfer.id)

        assert received.status == "received"
        assert received.received_at is not None
        assert received.items[0].received_quantity == Decimal("4.0000")
        main = _level(branch_main.business_id, branch_main, flour)
        warehouse = _level(branch_main.business_id, branch_warehouse, flour)
        assert warehouse == Decimal("4.0000")
        assert main + warehouse == Decimal("10.0000")

    def test_partial_receipt_records_shortage(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 5))

        received = transfer_service.receive_transfer(manager_actor, transfer.id, ReceiveTransfer(items=[
            ReceivedQuantity(item_id=flour.id, quantity="3"),
        ]))

        assert _level(branch_main.business_id, branch_warehouse, flour) == Decimal("3.0000")
        assert _level(branch_main.business_id, branch_main, flour) == Decimal("5.0000")
        summary = transfer_service.get_transfer_summary(received)
        assert summary["total_sent"] == "5.0000"
        assert summary["total_received"] == "3.0000"
        assert summary["shortage"] == "2.0000"

    def test_more_than_sent_rejected(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 2))

        with pytest.raises(ValidationError):
            transfer_service.receive_transfer(manager_actor, transfer.id, ReceiveTransfer(items=[
                ReceivedQuantity(item_id=flour.id, quantity="3"),
            ]))

        assert transfer_service.get_transfer(manager_actor, transfer.id).status == "pending"

    def test_receive_twice_rejected(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 2))
        transfer_service.receive_transfer(manager_actor, transfer.id)

        with pytest.raises(InvalidStateTransition):
            transfer_service.receive_transfer(manager_actor, transfer.id)
        with pytest.raises(InvalidStateTransition):
            transfer_service.cancel_transfer(manager_actor, transfer.id)

        assert _level(branch_main.business_id, branch_warehouse, flour) == Decimal("2.0000")


class TestCancelTransfer:

    def test_cancel_restores_source(
        self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour
    ):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 4))

        cancelled = transfer_service.cancel_transfer(manager_actor, transfer.id)

        assert cancelled.status == "cancelled"
        assert _level(branch_main.business_id, branch_main, flour) == Decimal("10.0000")
        reversal = db_session.query(Movement).filter_by(transaction_type="transfer_out_reversal").one()
        assert reversal.quantity_delta == Decimal("4.0000")

        with pytest.raises(InvalidStateTransition):
            transfer_service.receive_transfer(manager_actor, transfer.id)


class TestCrossBusinessTransfer:

    def test_owner_with_link_moves_stock(
        self, db_session, stocked, owner_link, owner_actor, branch_main, branch_b, business_b, flour, flour_b
    ):
        transfer = _create(owner_actor, branch_main, branch_b, (flour, 3))
        assert transfer.items[0].destination_item_id == flour_b.id

        transfer_service.receive_transfer(owner_actor, transfer.id)

        assert _level(branch_main.business_id, branch_main, flour) == Decimal("7.0000")
        assert _level(business_b.id, branch_b, flour_b) == Decimal("3.0000")
        assert _level(business_b.id, branch_b, flour) == Decimal("0.0000")
        assert stock_service.verify_ledger() == []

    def test_destination_business_works_with_received_stock(
        self, db_session, stocked, owner_link, owner_actor, manager_b, branch_main, branch_b, flour, flour_b
    ):
        transfer = _create(owner_actor, branch_main, branch_b, (flour, 3))
        transfer_service.receive_transfer(owner_actor, transfer.id)
        actor_b = resolve_actor(manager_b.id)

        assert stock_service.get_stock_level(actor_b, branch_b.id, flour_b.id).quantity == Decimal("3.0000")

        stock_service.adjust_stock(actor_b, StockAdjustment(
            branch_id=branch_b.id, item_id=flour_b.id, quantity="1", transaction_type="waste",
        ))
        count = count_service.create_count(actor_b, CreateCount(branch_id=branch_b.id, item_ids=[flour_b.id]))
        assert count.items[0].expected_quantity == Decimal("2.0000")

        count_service.update_count_item(actor_b, count.id, flour_b.id, UpdateCountItem(counted_quantity="2"))
        count_service.complete_count(actor_b, count.id)
        assert stock_service.get_stock_level(actor_b, branch_b.id, flour_b.id).quantity == Decimal("2.0000")

    def test_item_without_counterpart_rejected(
        self, db_session, stocked, owner_link, owner_actor, branch_main, branch_b, flour
    ):
        with pytest.raises(ValidationError):
            _create(owner_actor, branch_main, branch_b, (flour, 3))

        assert _level(branch_main.business_id, branch_main, flour) == Decimal("10.0000")
        assert db_session.query(Transfer).count() == 0

    def test_item_without_sku_rejected(
        self, db_session, owner_link, owner_actor, branch_main, branch_b, flour, add_stock
    ):
        flour.sku = None
        db_session.commit()
        add_stock(branch_main, flour, 5)

        with pytest.raises(ValidationError):
            _create(owner_actor, branch_main, branch_b, (flour, 1))

    def test_inactive_counterpart_rejected(
        self, db_session, stocked, owner_link, owner_actor, branch_main, branch_b, flour, flour_b
    ):
        flour_b.is_active = False
        db_session.commit()

        with pytest.raises(ValidationError):
            _create(owner_actor, branch_main, branch_b, (flour, 1))

    def test_revoked_link_blocks_receipt(
        self, db_session, stocked, owner_link, owner_actor, branch_main, branch_b, flour, flour_b
    ):
        transfer = _create(owner_actor, branch_main, branch_b, (flour, 3))

        db_session.delete(db_session.get(OwnerBusinessLink, owner_link.id))
        db_session.commit()

        with pytest.raises(AuthorizationDenied):
            transfer_service.receive_transfer(owner_actor, transfer.id)
        assert transfer_service.get_transfer(owner_actor, transfer.id).status == "pending"


class TestListTransfers:

    def test_directions(self, db_session, stocked, owner_link, owner, manager_actor, branch_main,
                        branch_warehouse, branch_b, flour, flour_b):
        internal = _create(manager_actor, branch_main, branch_warehouse, (flour, 1))
        outgoing = _create(resolve_actor(owner.id), branch_main, branch_b, (flour, 1))

        everything = {t.id for t in transfer_service.list_transfers(manager_actor)}
        sent = {
            t.id for t in transfer_service.list_transfers(
                manager_actor, direction=transfer_service.DIRECTION_OUTGOING
            )
        }
        incoming_b = {
            t.id for t in transfer_service.list_transfers(
                resolve_actor(owner.id, business_id=branch_b.business_id),
                direction=transfer_service.DIRECTION_INCOMING,
            )
        }

        assert everything == {internal.id, outgoing.id}
        assert sent == {internal.id, outgoing.id}
        assert incoming_b == {outgoing.id}

    def test_branch_filter(self, db_session, stocked, manager_actor, branch_main, branch_warehouse, flour):
        transfer = _create(manager_actor, branch_main, branch_warehouse, (flour, 1))

        incoming = transfer_service.list_transfers(
            manager_actor, direction=transfer_service.DIRECTION_INCOMING, branch_id=branch_warehouse.id
        )
        assert [t.id for t in incoming] == [transfer.id]
        assert transfer_service.list_transfers(
            manager_actor, direction=transfer_service.DIRECTION_INCOMING, branch_id=branch_main.id
        ) == []

    def test_bad_direction_rejected(self, db_session, manager_actor):
        with pytest.raises(ValidationError):
            transfer_service.list_transfers(manager_actor, direction="sideways")


class TestDestinations:

    def test_manager_sees_current_business(self, db_session, manager_actor, branch_main, branch_warehouse):
        destinations = transfer_service.list_destinations(manager_actor)

        assert len(destinations) == 1
        assert destinations[0]["is_current"] is True
        assert [b["id"] for b in destinations[0]["branches"]] == [branch_main.id, branch_warehouse.id]

    def test_owner_sees_linked_businesses(self, db_session, owner_link, owner_actor, business_a, business_b, branch_b):
        destinations = transfer_service.list_destinations(refresh_actor(owner_actor))

        assert [d["business_id"] for d in destinations] == [business_a.id, business_b.id]
        assert destinations[1]["is_current"] is False
        assert destinations[1]["branches"] == [{"id": branch_b.id, "name": "Harbor"}]
