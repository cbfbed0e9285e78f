# Overview: Error taxonomy and input coercion helpers shared by services and routes.

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from stockroom.time_utils import parse_iso_date


# DECIMAL(15, 4) columns: quantities, costs
QUANTITY_PLACES = Decimal("0.0001")
MAX_QUANTITY = Decimal("99999999999.9999")

MAX_TEXT_LENGTH = 2000


class StockroomError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(StockroomError, ValueError):
    """400-level input problem (missing field, bad quantity, missing justification)."""

    kind = "validation_error"


class InvalidStateTransition(StockroomError):
    """409: the document's current status does not permit the operation."""

    status_code = 409
    kind = "invalid_state_transition"


class InsufficientInventory(StockroomError):
    """
    409: a deduction would take on-hand quantity below zero.

    Carries the available and requested quantities so callers can show them.
    """

    status_code = 409
    kind = "insufficient_inventory"

    def __init__(
        self,
        message: str,
        *,
        item_id: int | None = None,
        available: Decimal | None = None,
        requested: Decimal | None = None,
    ):
        super().__init__(message)
        self.item_id = item_id
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["item_id"] = self.item_id
        payload["available"] = format_quantity(self.available)
        payload["requested"] = format_quantity(self.requested)
        return payload


class AuthorizationDenied(StockroomError):
    """403: actor has no rights over a business or branch involved in the call."""

    status_code = 403
    kind = "authorization_denied"


class NotFound(StockroomError):
    """404: entity missing or owned by another business."""

    status_code = 404
    kind = "not_found"


class Conflict(StockroomError):
    """409-level business rule conflict (barcode already bound, vendor in use)."""

    status_code = 409
    kind = "conflict"


def quantize(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_PLACES)


def format_quantity(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(quantize(Decimal(value)))


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Strict numeric coercion for quantities and money.

    Rejects booleans, blanks, NaN/Infinity and values outside DECIMAL(15, 4).
    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    result = quantize(result)
    if abs(result) > MAX_QUANTITY:
        raise ValidationError(f"{field} is too large")
    return result


def to_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Non-negative quantity; strictly positive unless allow_zero."""
    result = to_decimal(value, field)
    if result < 0:
        raise ValidationError(f"{field} cannot be negative")
    if result == 0 and not allow_zero:
        raise ValidationError(f"{field} must be greater than zero")
    return result


def to_money(value: Any, field: str) -> Decimal:
    result = to_decimal(value, field)
    if result < 0:
        raise ValidationError(f"{field} cannot be negative")
    return result


def to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer")


def to_optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return to_int(value, field)


def to_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValidationError(f"{field} must be a boolean")


def to_text(value: Any, field: str, *, max_length: int = MAX_TEXT_LENGTH) -> str | None:
    """Strip strings; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def to_date(value: Any, field: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO date")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date")


def require_key(data: dict, key: str) -> Any:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    if key not in data or data[key] is None:
        raise ValidationError(f"Missing required field: {key}")
    return data[key]


def require_list(data: dict, key: str) -> list:
    value = require_key(data, key)
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    return value
