# Overview: Request decorators for API routes.

import hmac
from functools import wraps

from flask import current_app, jsonify, request


def require_staff(f):
    """
    Require the staff bearer token on admin routes.

    Staff sessions are issued by the back-office auth service; this API only
    checks the shared token it is configured with.

    Returns 401 if the Authorization header is missing or wrong, and 503 if
    no STAFF_API_TOKEN is configured (admin routes are closed by default).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("STAFF_API_TOKEN")
        if not expected:
            current_app.logger.warning("Admin request rejected: STAFF_API_TOKEN is not configured")
            return jsonify({"error": "Staff API is not configured"}), 503

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        if not hmac.compare_digest(token.encode(), expected.encode()):
            return jsonify({"error": "Invalid or expired token"}), 401

        return f(*args, **kwargs)

    return decorated_function
