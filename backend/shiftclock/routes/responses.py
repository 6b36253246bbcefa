# Overview: Shared JSON error responses for API routes.

from flask import current_app, jsonify

from ..validation import ShiftClockError


def error_response(exc: ShiftClockError):
    return jsonify({"error": exc.to_dict()}), exc.status_code


def internal_error(action: str):
    """Log the active exception and return a generic 500."""
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": {"kind": "Internal", "code": "INTERNAL_ERROR", "message": "Internal server error"}}), 500


def page_args(args) -> tuple[int | None, int | None]:
    return args.get("page", type=int), args.get("per_page", type=int)
