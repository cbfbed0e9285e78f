# Overview: Pytest coverage for the transaction retry helpers.

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from stockroom.services.concurrency import is_lazy_insert_race, run_in_transaction


def _integrity_error(message):
    return IntegrityError("INSERT ...", {}, Exception(message))


class _Failing:
    """Callable that raises the given error every time and counts calls."""

    def __init__(self, error):
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        raise self.error


class TestLazyInsertRace:

    @pytest.mark.parametrize("message", [
        "UNIQUE constraint failed: stock_levels.business_id, stock_levels.branch_id, stock_levels.item_id",
        'duplicate key value violates unique constraint "uq_stock_levels_key"',
    ])
    def test_stock_level_duplicates_are_races(self, message):
        assert is_lazy_insert_race(_integrity_error(message))

    @pytest.mark.parametrize("message", [
        "UNIQUE constraint failed: item_barcodes.business_id, item_barcodes.barcode",
        'duplicate key value violates unique constraint "uq_items_business_sku"',
        "NOT NULL constraint failed: movements.item_id",
    ])
    def test_other_violations_are_not(self, message):
        assert not is_lazy_insert_race(_integrity_error(message))


class TestRunInTransaction:

    def test_stock_level_race_is_retried(self, app, db_session):
        failing = _Failing(_integrity_error(
            "UNIQUE constraint failed: stock_levels.business_id, stock_levels.branch_id, stock_levels.item_id"
        ))

        with pytest.raises(IntegrityError):
            run_in_transaction(failing, attempts=3, backoff_base=0)

        assert failing.calls == 3

    def test_constraint_bug_raised_on_first_attempt(self, app, db_session):
        failing = _Failing(_integrity_error(
            "UNIQUE constraint failed: item_barcodes.business_id, item_barcodes.barcode"
        ))

        with pytest.raises(IntegrityError):
            run_in_transaction(failing, attempts=3, backoff_base=0)

        assert failing.calls == 1

    def test_lock_conflict_is_retried(self, app, db_session):
        failing = _Failing(OperationalError("SELECT ...", {}, Exception("database is locked")))

        with pytest.raises(OperationalError):
            run_in_transaction(failing, attempts=2, backoff_base=0)

        assert failing.calls == 2

    def test_success_after_race(self, app, db_session):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) == 1:
                raise _integrity_error('duplicate key value violates unique constraint "uq_stock_levels_key"')
            return "done"

        assert run_in_transaction(_op, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 2
