# Overview: Request decorators establishing the actor context for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services.authorization_service import resolve_actor


# Identity headers set by the authenticating gateway in front of this service
USER_HEADER = "X-User-Id"
BUSINESS_HEADER = "X-Business-Id"
BRANCH_HEADER = "X-Branch-Id"


def _header_int(name: str) -> int | None:
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    return int(raw.strip())


def require_actor(f):
    """
    Resolve the caller into an ActorContext stored on g.actor.

    The user id comes from the upstream gateway; X-Business-Id selects the
    workspace (an owner may pick any linked business) and X-Branch-Id the
    branch. resolve_actor() raises AuthorizationDenied (403) when either is
    out of reach.

    Returns 401 when no user identity is present, 400 on malformed ids.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user_id = _header_int(USER_HEADER)
            business_id = _header_int(BUSINESS_HEADER)
            branch_id = _header_int(BRANCH_HEADER)
        except ValueError:
            return jsonify({"error": "validation_error", "message": "Identity headers must be integers"}), 400

        if user_id is None:
            return jsonify({"error": "authentication_required", "message": "Authentication required"}), 401

        g.actor = resolve_actor(user_id, business_id, branch_id)
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Restrict a route to actors holding one of the given roles.

    Must be applied after @require_actor.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                return jsonify({"error": "authentication_required", "message": "Authentication required"}), 401
            if actor.role not in allowed:
                return jsonify({
                    "error": "authorization_denied",
                    "message": f"Requires one of roles: {', '.join(sorted(allowed))}",
                }), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator
