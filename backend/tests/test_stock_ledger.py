# Overview: Pytest coverage for the stock ledger (levels, sign rules, adjustments, drift check).

"""
Stock Ledger Tests

Verifies that:
1. Every quantity change writes exactly one movement with before/after values
2. Deduction causes never take a level below zero, and a rejected
   deduction leaves no trace
3. Cause sign rules are enforced (additive > 0, deduction < 0, never zero)
4. admin_correction is the only path to a negative level, and only for
   owners/managers
5. verify_ledger() reports levels that disagree with their movement log
"""

from decimal import Decimal

import pytest
from stockroom.extensions import db
from stockroom.models import Movement, StockLevel
from stockroom.services import stock_service
from stockroom.services.concurrency import run_in_transaction
from stockroom.services.schemas import StockAdjustment, StockLimits
from stockroom.validation import (
    AuthorizationDenied,
    InsufficientInventory,
    NotFound,
    ValidationError,
)


def _level(branch, item):
    return stock_service.get_level(branch.business_id, branch.id, item.id).quantity


class TestApplyMovement:
    """apply_movement is the single writer of on-hand quantities."""

    def test_additive_movement_updates_level_and_log(self, db_session, business_a, branch_main, flour, manager):
        """A purchase receipt raises the level and records before/after."""
        def _op():
            return stock_service.apply_movement(
                business_id=business_a.id,
                branch_id=branch_main.id,
                item_id=flour.id,
                delta=Decimal("12.5"),
                transaction_type="purchase_receipt",
                performed_by=manager.id,
            )

        new_quantity = run_in_transaction(_op)

        assert new_quantity == Decimal("12.5000")
        movement = db_session.query(Movement).one()
        assert movement.transaction_type == "purchase_receipt"
        assert movement.quantity_delta == Decimal("12.5000")
        assert movement.quantity_before == Decimal("0.0000")
        assert movement.quantity_after == Decimal("12.5000")
        assert movement.performed_by == manager.id

    def test_zero_delta_rejected(self, db_session, business_a, branch_main, flour):
        with pytest.raises(ValidationError):
            stock_service.apply_movement(
                business_id=business_a.id,
                branch_id=branch_main.id,
                item_id=flour.id,
                delta=0,
                transaction_type="manual_add",
            )

    def test_wrong_sign_for_cause_rejected(self, db_session, business_a, branch_main, flour):
        """Additive causes need a positive delta, deductions a negative one."""
        with pytest.raises(ValidationError):
            stock_service.apply_movement(
                business_id=business_a.id,
                branch_id=branch_main.id,
                item_id=flour.id,
                delta=Decimal("-1"),
                transaction_type="purchase_receipt",
            )
        with pytest.raises(ValidationError):
            stock_service.apply_movement(
                business_id=business_a.id,
                branch_id=branch_main.id,
                item_id=flour.id,
                delta=Decimal("1"),
                transaction_type="waste",
            )

    def test_unknown_cause_rejected(self, db_session, business_a, branch_main, flour):
        with pytest.raises(ValidationError):
            stock_service.apply_movement(
                business_id=business_a.id,
                branch_id=branch_main.id,
                item_id=flour.id,
                delta=Decimal("1"),
                transaction_type="sale",
            )

    def test_decimal_quantities_do_not_drift(self, db_session, branch_main, flour, add_stock):
        """0.1 three times is exactly 0.3."""
        for _ in range(3):
            add_stock(branch_main, flour, "0.1")

        assert _level(branch_main, flour) == Decimal("0.3000")


class TestDeductions:
    """Deduction causes may not take stock below zero."""

    def test_deduction_within_stock(self, db_session, branch_main, flour, add_stock, employee_actor):
        add_stock(branch_main, flour, 10)

        movement = stock_service.adjust_stock(employee_actor, StockAdjustment(
            branch_id=branch_main.id,
            item_id=flour.id,
            quantity="4",
            transaction_type="waste",
        ))

        assert movement.quantity_delta == Decimal("-4.0000")
        assert movement.reason == "waste"
        assert _level(branch_main, flour) == Decimal("6.0000")

    def test_deduction_to_exactly_zero_allowed(self, db_session, branch_main, flour, add_stock, employee_actor):
        add_stock(branch_main, flour, 3)

        stock_service.adjust_stock(employee_actor, StockAdjustment(
            branch_id=branch_main.id,
            item_id=flour.id,
            quantity="3",
            transaction_type="manual_deduct",
        ))

        assert _level(branch_main, flour) == Decimal("0.0000")

    def test_insufficient_stock_rejected_without_side_effects(
        self, db_session, branch_main, flour, add_stock, employee_actor
    ):
        """The failed deduction writes no movement and leaves the level alone."""
        add_stock(branch_main, flour, 2)

        with pytest.raises(InsufficientInventory) as exc_info:
            stock_service.adjust_stock(employee_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=flour.id,
                quantity="5",
                transaction_type="damage",
            ))

        assert exc_info.value.available == Decimal("2.0000")
        assert exc_info.value.requested == Decimal("5.0000")
        assert exc_info.value.item_id == flour.id
        assert _level(branch_main, flour) == Decimal("2.0000")
        assert db_session.query(Movement).count() == 1

    def test_deduction_on_unstocked_item_rejected(self, db_session, branch_main, flour, employee_actor):
        with pytest.raises(InsufficientInventory):
            stock_service.adjust_stock(employee_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=flour.id,
                quantity="1",
                transaction_type="expiry",
            ))


class TestAdminCorrection:
    """admin_correction accepts either sign and may go negative."""

    def test_manager_can_correct_below_zero(self, db_session, branch_main, flour, add_stock, manager_actor):
        add_stock(branch_main, flour, 2)

        stock_service.adjust_stock(manager_actor, StockAdjustment(
            branch_id=branch_main.id,
            item_id=flour.id,
            quantity="-5",
            transaction_type="admin_correction",
        ))

        assert _level(branch_main, flour) == Decimal("-3.0000")

    def test_employee_cannot_correct(self, db_session, branch_main, flour, employee_actor):
        with pytest.raises(AuthorizationDenied):
            stock_service.adjust_stock(employee_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=flour.id,
                quantity="5",
                transaction_type="admin_correction",
            ))

    def test_zero_correction_rejected(self):
        with pytest.raises(ValidationError):
            StockAdjustment(branch_id=1, item_id=1, quantity="0", transaction_type="admin_correction")


class TestManualAdjustments:

    def test_workflow_causes_not_allowed_manually(self, db_session, branch_main, flour, manager_actor):
        """purchase_receipt and transfer causes belong to their workflows."""
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(manager_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=flour.id,
                quantity="5",
                transaction_type="purchase_receipt",
            ))

    def test_composite_item_cannot_be_stocked(self, db_session, branch_main, composite_item, manager_actor):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(manager_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=composite_item.id,
                quantity="5",
                transaction_type="manual_add",
            ))

    def test_foreign_item_not_found(self, db_session, branch_main, item_b, manager_actor):
        with pytest.raises(NotFound):
            stock_service.adjust_stock(manager_actor, StockAdjustment(
                branch_id=branch_main.id,
                item_id=item_b.id,
                quantity="5",
                transaction_type="manual_add",
            ))

    def test_foreign_branch_not_found(self, db_session, branch_b, flour, manager_actor):
        with pytest.raises(NotFound):
            stock_service.adjust_stock(manager_actor, StockAdjustment(
                branch_id=branch_b.id,
                item_id=flour.id,
                quantity="5",
                transaction_type="manual_add",
            ))


class TestLevels:

    def test_missing_level_reads_as_zero(self, db_session, branch_main, flour):
        reading = stock_service.get_level(branch_main.business_id, branch_main.id, flour.id)
        assert reading.quantity == Decimal("0.0000")
        assert reading.is_low_stock is False

    def test_limits_and_low_stock_listing(
        self, db_session, branch_main, flour, sugar, add_stock, manager_actor
    ):
        add_stock(branch_main, flour, 3)
        add_stock(branch_main, sugar, 50)

        stock_service.set_stock_limits(manager_actor, StockLimits(
            branch_id=branch_main.id, item_id=flour.id, min_quantity="5", max_quantity="40",
        ))
        stock_service.set_stock_limits(manager_actor, StockLimits(
            branch_id=branch_main.id, item_id=sugar.id, min_quantity="5",
        ))

        low = stock_service.list_stock_levels(manager_actor, branch_id=branch_main.id, low_stock_only=True)
        assert [level.item_id for level in low] == [flour.id]
        assert low[0].is_low_stock

        everything = stock_service.list_stock_levels(manager_actor, branch_id=branch_main.id)
        assert len(everything) == 2

    def test_limits_do_not_write_movements(self, db_session, branch_main, flour, manager_actor):
        stock_service.set_stock_limits(manager_actor, StockLimits(
            branch_id=branch_main.id, item_id=flour.id, min_quantity="1",
        ))
        assert db_session.query(Movement).count() == 0
        assert _level(branch_main, flour) == Decimal("0.0000")

    def test_max_below_min_rejected(self):
        with pytest.raises(ValidationError):
            StockLimits(branch_id=1, item_id=1, min_quantity="10", max_quantity="5")


class TestVerifyLedger:
    """Level == sum(movements) for every key."""

    def test_consistent_ledger_reports_nothing(
        self, db_session, branch_main, branch_warehouse, flour, sugar, add_stock, employee_actor
    ):
        add_stock(branch_main, flour, 10)
        add_stock(branch_warehouse, sugar, 4)
        stock_service.adjust_stock(employee_actor, StockAdjustment(
            branch_id=branch_main.id, item_id=flour.id, quantity="3", transaction_type="waste",
        ))

        assert stock_service.verify_ledger() == []

    def test_drift_is_reported(self, db_session, business_a, branch_main, flour, add_stock):
        add_stock(branch_main, flour, 10)

        level = db_session.query(StockLevel).filter_by(item_id=flour.id).one()
        level.quantity = Decimal("99")
        db.session.commit()

        drift = stock_service.verify_ledger(business_a.id)
        assert len(drift) == 1
        assert drift[0]["item_id"] == flour.id
        assert drift[0]["level_quantity"] == Decimal("99.0000")
        assert drift[0]["movement_total"] == Decimal("10.0000")
