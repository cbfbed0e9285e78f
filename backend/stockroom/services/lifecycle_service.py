# Overview: Lifecycle state machines for purchase orders, transfers and inventory counts.

"""
Document Lifecycle Rules

STATE MACHINES:
    Purchase order:   pending -> counted -> received
                      pending -> received            (legacy receive path)
                      pending -> cancelled
    Transfer:         pending -> received | cancelled
    Inventory count:  draft -> completed

RULES:
1. Terminal states (received, cancelled, completed) have no outgoing edges.
2. Every status change in the workflow services goes through
   require_transition(); there are no ad hoc status checks elsewhere.
3. The status check and the transition happen in the same transaction as
   the stock movements they cause, so a replayed request finds the
   terminal state and is rejected.
"""

from __future__ import annotations

from typing import Literal

from stockroom.validation import InvalidStateTransition


LIFECYCLE_PURCHASE_ORDER = "purchase_order"
LIFECYCLE_TRANSFER = "transfer"
LIFECYCLE_COUNT = "inventory_count"

PurchaseOrderStatus = Literal["pending", "counted", "received", "cancelled"]
TransferStatus = Literal["pending", "received", "cancelled"]
CountStatus = Literal["draft", "completed"]

PO_STATUS_PENDING = "pending"
PO_STATUS_COUNTED = "counted"
PO_STATUS_RECEIVED = "received"
PO_STATUS_CANCELLED = "cancelled"

TRANSFER_STATUS_PENDING = "pending"
TRANSFER_STATUS_RECEIVED = "received"
TRANSFER_STATUS_CANCELLED = "cancelled"

COUNT_STATUS_DRAFT = "draft"
COUNT_STATUS_COMPLETED = "completed"

TRANSITIONS: dict[str, dict[str, frozenset[str]]] = {
    LIFECYCLE_PURCHASE_ORDER: {
        PO_STATUS_PENDING: frozenset({PO_STATUS_COUNTED, PO_STATUS_RECEIVED, PO_STATUS_CANCELLED}),
        PO_STATUS_COUNTED: frozenset({PO_STATUS_RECEIVED}),
        PO_STATUS_RECEIVED: frozenset(),
        PO_STATUS_CANCELLED: frozenset(),
    },
    LIFECYCLE_TRANSFER: {
        TRANSFER_STATUS_PENDING: frozenset({TRANSFER_STATUS_RECEIVED, TRANSFER_STATUS_CANCELLED}),
        TRANSFER_STATUS_RECEIVED: frozenset(),
        TRANSFER_STATUS_CANCELLED: frozenset(),
    },
    LIFECYCLE_COUNT: {
        COUNT_STATUS_DRAFT: frozenset({COUNT_STATUS_COMPLETED}),
        COUNT_STATUS_COMPLETED: frozenset(),
    },
}

_LABELS = {
    LIFECYCLE_PURCHASE_ORDER: "purchase order",
    LIFECYCLE_TRANSFER: "transfer",
    LIFECYCLE_COUNT: "inventory count",
}


def _states(lifecycle: str) -> dict[str, frozenset[str]]:
    try:
        return TRANSITIONS[lifecycle]
    except KeyError:
        raise ValueError(f"Unknown lifecycle '{lifecycle}'")


def valid_statuses(lifecycle: str) -> set[str]:
    return set(_states(lifecycle))


def is_terminal(lifecycle: str, status: str) -> bool:
    return not _states(lifecycle).get(status)


def can_transition(lifecycle: str, from_status: str, to_status: str) -> bool:
    """True when from_status -> to_status is an edge of the lifecycle graph."""
    return to_status in _states(lifecycle).get(from_status, frozenset())


def require_transition(lifecycle: str, from_status: str, to_status: str) -> None:
    """
    Raises:
        InvalidStateTransition: if the edge does not exist
    """
    if not can_transition(lifecycle, from_status, to_status):
        raise InvalidStateTransition(
            f"Cannot move {_LABELS[lifecycle]} from '{from_status}' to '{to_status}'"
        )


def require_editable(lifecycle: str, status: str, editable: set[str], action: str) -> None:
    """Guard for in-place edits that do not change status (update lines, count items)."""
    if status not in editable:
        raise InvalidStateTransition(
            f"Cannot {action} a {_LABELS[lifecycle]} in '{status}' status"
        )
