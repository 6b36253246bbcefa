from __future__ import annotations

from ..extensions import db
from shiftclock.time_utils import to_utc_z


class Notification(db.Model):
    """
    In-app notification written by the notification sender.

    WHY: Shift assignment/approval/rejection must reach the employee, but
    delivery is best effort and never part of the state transition itself.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # e.g. shift.assigned, shift.approved, shift.rejected
    event = db.Column(db.String(64), nullable=False)
    message = db.Column(db.Text, nullable=False)
    context = db.Column(db.JSON, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("notifications", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event": self.event,
            "message": self.message,
            "context": self.context or {},
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
