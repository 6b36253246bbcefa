from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth
from ..services import notification_service
from ..validation import ShiftClockError, coerce_bool
from .responses import error_response

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    unread_only = coerce_bool(request.args.get("unread_only", False))
    limit = min(request.args.get("limit", 100, type=int), 500)
    notifications = notification_service.list_notifications(
        g.request_context.user_id, unread_only=unread_only, limit=limit
    )
    return jsonify({"items": [n.to_dict() for n in notifications], "count": len(notifications)})


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@require_auth
def mark_notification_read(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.request_context.user_id)
        return jsonify({"notification": notification.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
