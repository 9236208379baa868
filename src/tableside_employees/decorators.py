"""Decorators for staff route protection."""

from __future__ import annotations

from functools import wraps
from http import HTTPStatus

from flask import g, jsonify, request

from tableside_shared.serializers import error_response

# Staff identity is established upstream (gateway / SSO) and forwarded here.
STAFF_ID_HEADER = "X-Staff-Id"


def get_staff_id() -> str | None:
    """Staff principal of the current request, if any."""
    staff_id = (request.headers.get(STAFF_ID_HEADER) or "").strip()
    return staff_id or None


def staff_required(f):
    """Decorator to require a trusted staff principal for a route."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        staff_id = get_staff_id()
        if not staff_id:
            return jsonify(error_response("Staff authentication required")), (
                HTTPStatus.UNAUTHORIZED
            )
        g.staff_id = staff_id
        return f(*args, **kwargs)

    return decorated_function
