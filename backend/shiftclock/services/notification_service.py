# Overview: Best-effort notification sender; failures are logged, never raised.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Notification, Shift, User
from ..validation import NotFoundError


EVENT_SHIFT_ASSIGNED = "shift.assigned"
EVENT_SHIFT_APPROVED = "shift.approved"
EVENT_SHIFT_REJECTED = "shift.rejected"

_SHIFT_MESSAGES = {
    EVENT_SHIFT_ASSIGNED: "Hello {name}, you have been assigned a new shift on {date} from {start} to {end}.",
    EVENT_SHIFT_APPROVED: "Hello {name}, your shift on {date} from {start} to {end} has been approved by the administrator.",
    EVENT_SHIFT_REJECTED: "Hello {name}, your shift request on {date} from {start} to {end} has been rejected by the administrator.",
}


def notify(user: User, event: str, context: dict | None = None, message: str | None = None) -> Notification | None:
    """
    Record a notification for `user`.

    Call only after the state transition has been committed: the
    notification gets its own commit, and a failure rolls back nothing but
    the notification itself.
    """
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
        return None
    user_id = user.id
    try:
        notification = Notification(
            user_id=user_id,
            event=event,
            message=message or event,
            context=context or {},
        )
        db.session.add(notification)
        db.session.commit()
        current_app.logger.info("Notification %s queued for user %s", event, user_id)
        return notification
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to send %s notification to user %s", event, user_id)
        return None


def notify_shift(user: User, shift: Shift, event: str) -> Notification | None:
    try:
        message = _SHIFT_MESSAGES[event].format(
            name=user.name,
            date=shift.date.isoformat() if shift.date else "",
            start=shift.start_time or "--:--",
            end=shift.end_time or "--:--",
        )
    except KeyError:
        current_app.logger.error("Unknown shift notification event %s", event)
        return None
    return notify(user, event, {"shift_id": shift.id}, message)


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 100) -> list[Notification]:
    query = db.session.query(Notification).filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(notification_id: int, user_id: int) -> Notification:
    notification = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if not notification:
        raise NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")
    notification.is_read = True
    db.session.commit()
    return notification
