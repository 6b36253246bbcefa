from __future__ import annotations

from ..extensions import db
from shiftclock.time_utils import to_utc_z, to_iso_date


# Shift type names (closed set)
SHIFT_TYPE_MORNING = "Morning"
SHIFT_TYPE_AFTERNOON = "Afternoon"
SHIFT_TYPE_NIGHT = "Night"
SHIFT_TYPE_PRN = "PRN"
SHIFT_TYPE_VOL = "VOL"
SHIFT_TYPE_WEEKEND = "WEEKEND"
SHIFT_TYPE_HOLIDAY = "HOLIDAY"
SHIFT_TYPE_TEMPSHIFT = "TEMPSHIFT"  # reserved for shifts synthesized at clock-in

SHIFT_TYPE_NAMES = (
    SHIFT_TYPE_MORNING,
    SHIFT_TYPE_AFTERNOON,
    SHIFT_TYPE_NIGHT,
    SHIFT_TYPE_PRN,
    SHIFT_TYPE_VOL,
    SHIFT_TYPE_WEEKEND,
    SHIFT_TYPE_HOLIDAY,
    SHIFT_TYPE_TEMPSHIFT,
)

# Shift statuses
SHIFT_OPEN = "Open"
SHIFT_ASSIGNED = "Assigned"
SHIFT_EXCESS = "Excess"
SHIFT_PENDING_APPROVAL = "Pending Approval"
SHIFT_REJECTED = "Rejected"

VALID_SHIFT_STATUSES = {
    SHIFT_OPEN,
    SHIFT_ASSIGNED,
    SHIFT_EXCESS,
    SHIFT_PENDING_APPROVAL,
    SHIFT_REJECTED,
}


class ShiftType(db.Model):
    """
    Named category of shift (Morning, Night, PRN, TEMPSHIFT, ...).

    Leaf data: cannot be deleted while any Shift references it.
    """
    __tablename__ = "shift_types"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Shift(db.Model):
    """
    A scheduled work interval an employee may be assigned to.

    LIFECYCLE:
    - Open -> Assigned                  (admin assignment)
    - Open -> Pending Approval          (employee request)
    - Pending Approval -> Assigned      (approve)
    - Pending Approval -> Open          (reject, assignee cleared)

    Temporary shifts (synthesized at clock-in) start in Pending Approval and
    may have no start/end time. A shift belongs to at most one pay period.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_date_type", "date", "shift_type_id"),
        db.Index("ix_shifts_assignee_date", "assigned_to_id", "date"),
        db.Index("ix_shifts_pay_period", "pay_period_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_type_id = db.Column(db.Integer, db.ForeignKey("shift_types.id"), nullable=True)

    date = db.Column(db.Date, nullable=False)
    # "HH:MM"; optional for temporary shifts
    start_time = db.Column(db.String(5), nullable=True)
    end_time = db.Column(db.String(5), nullable=True)

    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(db.String(32), nullable=False, default=SHIFT_OPEN, index=True)

    is_excess = db.Column(db.Boolean, nullable=False, default=False)
    is_temporary = db.Column(db.Boolean, nullable=False, default=False)
    reason = db.Column(db.Text, nullable=True)

    application_managed = db.Column(db.JSON, nullable=False, default=list)

    pay_period_id = db.Column(db.Integer, db.ForeignKey("pay_periods.id"), nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    shift_type = db.relationship("ShiftType", backref=db.backref("shifts", lazy=True))
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    pay_period = db.relationship("PayPeriod", backref=db.backref("shifts", lazy=True, order_by="Shift.date"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_type_id": self.shift_type_id,
            "shift_type": self.shift_type.name if self.shift_type else None,
            "date": to_iso_date(self.date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "assigned_to_id": self.assigned_to_id,
            "status": self.status,
            "is_excess": self.is_excess,
            "is_temporary": self.is_temporary,
            "reason": self.reason,
            "application_managed": list(self.application_managed or []),
            "pay_period_id": self.pay_period_id,
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
