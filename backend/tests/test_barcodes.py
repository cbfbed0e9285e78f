# Overview: Pytest coverage for barcode lookup and association.

import pytest
from stockroom.models import ItemBarcode
from stockroom.services import barcode_service
from stockroom.services.authorization_service import resolve_actor
from stockroom.validation import Conflict, NotFound, ValidationError


class TestNormalize:

    def test_whitespace_removed(self):
        assert barcode_service.normalize_barcode(" 0123 4567\n") == "01234567"

    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            barcode_service.normalize_barcode("   ")

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            barcode_service.normalize_barcode("9" * 65)


class TestAssociate:

    def test_lookup_after_association(self, db_session, manager_actor, flour):
        barcode_service.associate_barcode(manager_actor, flour.id, "4006381333931")

        assert barcode_service.lookup_barcode(manager_actor, "4006381333931").id == flour.id
        assert barcode_service.lookup_barcode(manager_actor, "0000000000000") is None

    def test_new_barcode_replaces_old(self, db_session, manager_actor, flour):
        barcode_service.associate_barcode(manager_actor, flour.id, "111")
        barcode_service.associate_barcode(manager_actor, flour.id, "222")

        assert barcode_service.lookup_barcode(manager_actor, "111") is None
        assert barcode_service.lookup_barcode(manager_actor, "222").id == flour.id
        assert db_session.query(ItemBarcode).filter_by(item_id=flour.id).count() == 1

    def test_same_pair_is_noop(self, db_session, manager_actor, flour):
        first = barcode_service.associate_barcode(manager_actor, flour.id, "111")
        again = barcode_service.associate_barcode(manager_actor, flour.id, "111")
        assert first.id == again.id

    def test_barcode_taken_by_other_item(self, db_session, manager_actor, flour, sugar):
        barcode_service.associate_barcode(manager_actor, flour.id, "111")
        with pytest.raises(Conflict):
            barcode_service.associate_barcode(manager_actor, sugar.id, "111")

    def test_same_barcode_in_other_business(self, db_session, manager_actor, manager_b, flour, item_b):
        barcode_service.associate_barcode(manager_actor, flour.id, "111")
        actor_b = resolve_actor(manager_b.id)
        barcode_service.associate_barcode(actor_b, item_b.id, "111")

        assert barcode_service.lookup_barcode(actor_b, "111").id == item_b.id
        assert barcode_service.lookup_barcode(manager_actor, "111").id == flour.id

    def test_foreign_item_not_found(self, db_session, manager_actor, item_b):
        with pytest.raises(NotFound):
            barcode_service.associate_barcode(manager_actor, item_b.id, "111")


class TestDissociate:

    def test_remove(self, db_session, manager_actor, flour):
        barcode_service.associate_barcode(manager_actor, flour.id, "111")

        assert barcode_service.dissociate_barcode(manager_actor, flour.id) is True
        assert barcode_service.lookup_barcode(manager_actor, "111") is None
        assert barcode_service.dissociate_barcode(manager_actor, flour.id) is False
