# Overview: Request decorators for API routes; caller identity and admin guard.

from functools import wraps
from flask import request, jsonify, g

from .context import RequestContext
from .services import user_service


def _auth_error(message: str, status: int, kind: str, code: str):
    return jsonify({"error": {"kind": kind, "code": code, "message": message}}), status


def require_auth(f):
    """
    Resolve the caller from the X-User-Id header.

    Sets g.request_context to a RequestContext for the route to pass on.

    Returns 401 if the header is missing or malformed, or the user does not
    exist or is inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get("X-User-Id") or "").strip()
        if not raw:
            return _auth_error("Authentication required", 401, "Unauthenticated", "AUTH_REQUIRED")
        if not raw.isdigit():
            return _auth_error("Invalid X-User-Id header", 401, "Unauthenticated", "INVALID_USER_HEADER")

        user = user_service.find_user(int(raw))
        if not user or not user.is_active:
            return _auth_error("Unknown or inactive user", 401, "Unauthenticated", "INVALID_USER")

        g.request_context = RequestContext.for_user(user)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated caller to be an administrator. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = getattr(g, "request_context", None)
        if ctx is None:
            return _auth_error("Authentication required", 401, "Unauthenticated", "AUTH_REQUIRED")
        if not ctx.is_admin:
            return _auth_error("Administrator access required", 403, "AccessDenied", "ADMIN_REQUIRED")
        return f(*args, **kwargs)

    return decorated_function
