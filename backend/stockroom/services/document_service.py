# Overview: Atomic document number allocation (PO, transfer, count, vendor codes).

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from stockroom.time_utils import period_stamp


DOCUMENT_PURCHASE_ORDER = "PURCHASE_ORDER"
DOCUMENT_TRANSFER = "TRANSFER"
DOCUMENT_COUNT = "INVENTORY_COUNT"
DOCUMENT_VENDOR = "VENDOR"

# (prefix, resets monthly)
DOCUMENT_FORMATS = {
    DOCUMENT_PURCHASE_ORDER: ("PO", True),
    DOCUMENT_TRANSFER: ("TRF", True),
    DOCUMENT_COUNT: ("CNT", True),
    DOCUMENT_VENDOR: ("VND", False),
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _increment(business_id: int, document_type: str, period: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.business_id == business_id,
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(business_id=business_id, document_type=document_type, period=period)
        .scalar()
    )
    return current - 1


def next_document_number(*, business_id: int, document_type: str, pad: int | None = None) -> str:
    """
    Allocate the next number for a business/type, e.g. PO-2610-0007 or VND-0003.

    The UPDATE ... SET next_number = next_number + 1 takes the row lock, so
    concurrent callers serialize on it. Runs inside the caller's transaction:
    a rolled-back workflow also rolls back its number.
    """
    if not business_id:
        raise DocumentSequenceError("business_id is required")
    if document_type not in DOCUMENT_FORMATS:
        raise DocumentSequenceError(f"Unknown document type '{document_type}'")

    prefix, monthly = DOCUMENT_FORMATS[document_type]
    period = period_stamp() if monthly else ""
    if pad is None:
        pad = current_app.config.get("DOCUMENT_NUMBER_PAD", 4)

    number = _increment(business_id, document_type, period)
    if number is None:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(
                    business_id=business_id,
                    document_type=document_type,
                    period=period,
                    next_number=2,
                ))
            number = 1
        except IntegrityError:
            # Another transaction created the row first
            number = _increment(business_id, document_type, period)
            if number is None:
                raise

    if period:
        return f"{prefix}-{period}-{number:0{pad}d}"
    return f"{prefix}-{number:0{pad}d}"
