# backend/stockroom/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__)


@system_bp.get("/api/health")
def health():
    """Database round-trip check; 503 when the database is unreachable."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Database health check failed")
        return jsonify({"status": "unhealthy", "error": "Database error"}), 503
    elapsed_ms = (time.time() - start_time) * 1000
    return jsonify({"status": "healthy", "latency_ms": round(elapsed_ms, 2)}), 200
