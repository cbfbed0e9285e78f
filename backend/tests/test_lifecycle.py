# Overview: Pytest coverage for document state machines and document numbering.

from datetime import datetime

import pytest
from stockroom.services import lifecycle_service as lifecycle
from stockroom.services.document_service import (
    DOCUMENT_COUNT,
    DOCUMENT_PURCHASE_ORDER,
    DOCUMENT_TRANSFER,
    DOCUMENT_VENDOR,
    DocumentSequenceError,
    next_document_number,
)
from stockroom.time_utils import period_stamp
from stockroom.validation import InvalidStateTransition


class TestTransitions:

    @pytest.mark.parametrize(
        "lifecycle_name,from_status,to_status",
        [
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "pending", "counted"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "pending", "received"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "pending", "cancelled"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "counted", "received"),
            (lifecycle.LIFECYCLE_TRANSFER, "pending", "received"),
            (lifecycle.LIFECYCLE_TRANSFER, "pending", "cancelled"),
            (lifecycle.LIFECYCLE_COUNT, "draft", "completed"),
        ],
    )
    def test_allowed(self, lifecycle_name, from_status, to_status):
        assert lifecycle.can_transition(lifecycle_name, from_status, to_status)
        lifecycle.require_transition(lifecycle_name, from_status, to_status)

    @pytest.mark.parametrize(
        "lifecycle_name,from_status,to_status",
        [
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "counted", "cancelled"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "counted", "pending"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "received", "received"),
            (lifecycle.LIFECYCLE_PURCHASE_ORDER, "cancelled", "pending"),
            (lifecycle.LIFECYCLE_TRANSFER, "received", "cancelled"),
            (lifecycle.LIFECYCLE_TRANSFER, "cancelled", "received"),
            (lifecycle.LIFECYCLE_COUNT, "completed", "draft"),
        ],
    )
    def test_rejected(self, lifecycle_name, from_status, to_status):
        assert not lifecycle.can_transition(lifecycle_name, from_status, to_status)
        with pytest.raises(InvalidStateTransition):
            lifecycle.require_transition(lifecycle_name, from_status, to_status)

    def test_terminal_states(self):
        assert lifecycle.is_terminal(lifecycle.LIFECYCLE_PURCHASE_ORDER, "received")
        assert lifecycle.is_terminal(lifecycle.LIFECYCLE_PURCHASE_ORDER, "cancelled")
        assert lifecycle.is_terminal(lifecycle.LIFECYCLE_TRANSFER, "received")
        assert lifecycle.is_terminal(lifecycle.LIFECYCLE_COUNT, "completed")
        assert not lifecycle.is_terminal(lifecycle.LIFECYCLE_PURCHASE_ORDER, "counted")

    def test_valid_statuses(self):
        assert lifecycle.valid_statuses(lifecycle.LIFECYCLE_TRANSFER) == {"pending", "received", "cancelled"}

    def test_unknown_lifecycle(self):
        with pytest.raises(ValueError):
            lifecycle.valid_statuses("invoice")

    def test_require_editable(self):
        lifecycle.require_editable(lifecycle.LIFECYCLE_COUNT, "draft", {"draft"}, "edit")
        with pytest.raises(InvalidStateTransition):
            lifecycle.require_editable(lifecycle.LIFECYCLE_COUNT, "completed", {"draft"}, "edit")


class TestDocumentNumbers:

    def test_period_stamp(self):
        assert period_stamp(datetime(2026, 3, 9)) == "2603"

    def test_sequences_are_per_type(self, db_session, business_a):
        stamp = period_stamp()
        numbers = [
            next_document_number(business_id=business_a.id, document_type=DOCUMENT_PURCHASE_ORDER),
            next_document_number(business_id=business_a.id, document_type=DOCUMENT_PURCHASE_ORDER),
            next_document_number(business_id=business_a.id, document_type=DOCUMENT_TRANSFER),
            next_document_number(business_id=business_a.id, document_type=DOCUMENT_COUNT),
        ]
        db_session.commit()

        assert numbers == [
            f"PO-{stamp}-0001",
            f"PO-{stamp}-0002",
            f"TRF-{stamp}-0001",
            f"CNT-{stamp}-0001",
        ]

    def test_sequences_are_per_business(self, db_session, business_a, business_b):
        first = next_document_number(business_id=business_a.id, document_type=DOCUMENT_VENDOR)
        other = next_document_number(business_id=business_b.id, document_type=DOCUMENT_VENDOR)
        db_session.commit()

        assert first == other == "VND-0001"

    def test_custom_padding(self, db_session, business_a):
        number = next_document_number(business_id=business_a.id, document_type=DOCUMENT_VENDOR, pad=6)
        db_session.commit()
        assert number == "VND-000001"

    def test_unknown_type(self, db_session, business_a):
        with pytest.raises(DocumentSequenceError):
            next_document_number(business_id=business_a.id, document_type="INVOICE")
