# Overview: Pytest coverage for movement log queries and dashboard stats.

from decimal import Decimal

import pytest
from stockroom.services import movement_service, stock_service
from stockroom.services.authorization_service import resolve_actor
from stockroom.services.schemas import MovementQuery, StockAdjustment
from stockroom.validation import NotFound, ValidationError


@pytest.fixture
def activity(db_session, branch_main, branch_warehouse, flour, sugar, add_stock, employee_actor):
    """Five movements across two branches and two items."""
    add_stock(branch_main, flour, 20)
    add_stock(branch_main, sugar, 10)
    add_stock(branch_warehouse, flour, 5)
    stock_service.adjust_stock(employee_actor, StockAdjustment(
        branch_id=branch_main.id, item_id=flour.id, quantity="2", transaction_type="waste",
    ))
    stock_service.adjust_stock(employee_actor, StockAdjustment(
        branch_id=branch_main.id, item_id=flour.id, quantity="1", transaction_type="damage",
    ))


class TestQueryMovements:

    def test_newest_first_with_total(self, activity, manager_actor):
        rows, total = movement_service.query_movements(manager_actor, MovementQuery())
        assert total == 5
        assert [row.id for row in rows] == sorted((row.id for row in rows), reverse=True)
        assert rows[0].transaction_type == "damage"

    def test_filter_by_branch_and_item(self, activity, manager_actor, branch_main, flour):
        rows, total = movement_service.query_movements(
            manager_actor, MovementQuery(branch_id=branch_main.id, item_id=flour.id)
        )
        assert total == 3
        assert {row.transaction_type for row in rows} == {"manual_add", "waste", "damage"}

    def test_filter_by_transaction_type(self, activity, manager_actor):
        rows, total = movement_service.query_movements(manager_actor, MovementQuery(transaction_type="manual_add"))
        assert total == 3
        assert all(row.quantity_delta > 0 for row in rows)

    def test_cause_filter_matches_reason(self, activity, manager_actor):
        """Deductions carry their cause as the reason code."""
        rows, total = movement_service.query_movements(manager_actor, MovementQuery(cause="waste"))
        assert total == 1
        assert rows[0].quantity_delta == Decimal("-2.0000")

    def test_paging(self, activity, manager_actor):
        first, total = movement_service.query_movements(manager_actor, MovementQuery(page=1, limit=2))
        third, _ = movement_service.query_movements(manager_actor, MovementQuery(page=3, limit=2))
        assert total == 5
        assert len(first) == 2
        assert len(third) == 1

    def test_unknown_transaction_type_rejected(self, db_session, manager_actor):
        with pytest.raises(ValidationError):
            movement_service.query_movements(manager_actor, MovementQuery(transaction_type="sale"))

    def test_foreign_branch_filter_not_found(self, db_session, manager_actor, branch_b):
        with pytest.raises(NotFound):
            movement_service.query_movements(manager_actor, MovementQuery(branch_id=branch_b.id))

    def test_other_business_invisible(self, activity, manager_b):
        rows, total = movement_service.query_movements(resolve_actor(manager_b.id), MovementQuery())
        assert total == 0
        assert rows == []

    def test_bad_page_rejected(self):
        with pytest.raises(ValidationError):
            MovementQuery(page=0)


class TestMovementStats:

    def test_counts_by_type_and_today(self, activity, manager_actor):
        stats = movement_service.movement_stats(manager_actor)

        assert stats["by_type"]["manual_add"] == {"count": 3, "quantity": "35.0000"}
        assert stats["by_type"]["waste"]["count"] == 1
        assert stats["today_count"] == 5
        assert stats["today_additions"] == 3
        assert stats["today_deductions"] == 2
        assert stats["week_count"] == 5

    def test_top_deduction_types(self, activity, manager_actor):
        stats = movement_service.movement_stats(manager_actor)
        top = {entry["transaction_type"]: entry for entry in stats["top_deduction_types"]}

        assert set(top) == {"waste", "damage"}
        assert top["waste"]["quantity"] == "2.0000"

    def test_stats_for_one_branch(self, activity, manager_actor, branch_warehouse):
        stats = movement_service.movement_stats(manager_actor, branch_id=branch_warehouse.id)
        assert stats["today_count"] == 1
        assert stats["top_deduction_types"] == []
