# Overview: Shared helpers for API blueprints: JSON body access, query args, error mapping.

from flask import jsonify, request, current_app
from werkzeug.exceptions import HTTPException

from ..extensions import db
from ..validation import StockroomError, ValidationError, to_optional_int


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_int(name: str) -> int | None:
    return to_optional_int(request.args.get(name), name)


def arg_bool(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


def register_error_handlers(app):
    """
    Domain errors become {"error": kind, "message": ...} with their status;
    anything unexpected is logged and returned as a 500.
    The session is rolled back in both cases.
    """
    @app.errorhandler(StockroomError)
    def handle_domain_error(exc: StockroomError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        current_app.logger.exception("Failed to handle %s %s", request.method, request.path)
        return jsonify({"error": "internal_error", "message": "Unexpected error"}), 500
