from __future__ import annotations

from ..extensions import db
from shiftclock.time_utils import to_utc_z


# Time entry statuses
ENTRY_CLOCKED_IN = "clockedIn"
ENTRY_ON_BREAK = "onBreak"
ENTRY_CLOCKED_OUT = "clockedOut"
ENTRY_ABSENT = "absent"

VALID_ENTRY_STATUSES = {ENTRY_CLOCKED_IN, ENTRY_ON_BREAK, ENTRY_CLOCKED_OUT, ENTRY_ABSENT}
ACTIVE_ENTRY_STATUSES = (ENTRY_CLOCKED_IN, ENTRY_ON_BREAK)

_ACTIVE_PREDICATE = "status IN ('clockedIn', 'onBreak')"
_ABSENT_PREDICATE = "status = 'absent'"


class TimeEntry(db.Model):
    """
    Record of actual clock-in/out, break and absence activity against a Shift.

    LIFECYCLE:
    - clockedIn:  clock-in happened, work in progress
    - onBreak:    an open break exists
    - clockedOut: clock-out happened (requires a daily note)
    - absent:     terminal, no clock times

    CONCURRENCY: The partial unique index on employee_id over active statuses
    is the data-layer guard that an employee is never clocked in twice.
    Concurrent clock-ins race on the INSERT and the loser gets an
    IntegrityError instead of a second active row.

    hours_worked = round((clock_out - clock_in - breaks) / 15min) * 15min, in hours.
    """
    __tablename__ = "time_entries"
    __table_args__ = (
        db.Index("ix_time_entries_employee_status", "employee_id", "status"),
        db.Index("ix_time_entries_shift", "shift_id"),
        db.Index(
            "uq_time_entries_active_employee",
            "employee_id",
            unique=True,
            sqlite_where=db.text(_ACTIVE_PREDICATE),
            postgresql_where=db.text(_ACTIVE_PREDICATE),
        ),
        db.Index(
            "uq_time_entries_absence",
            "employee_id",
            "shift_id",
            unique=True,
            sqlite_where=db.text(_ABSENT_PREDICATE),
            postgresql_where=db.text(_ABSENT_PREDICATE),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False)

    # Clock times (both null for absences)
    clock_in = db.Column(db.DateTime(timezone=True), nullable=True)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    # Last time work resumed within the same session (after a break or a clock-out)
    resumed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Sum of closed break spans, in minutes
    total_break_time = db.Column(db.Float, nullable=False, default=0)
    hours_worked = db.Column(db.Float, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False)

    reason_for_absence = db.Column(db.Text, nullable=True)
    daily_note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    employee = db.relationship("User", backref=db.backref("time_entries", lazy=True))
    shift = db.relationship("Shift", backref=db.backref("time_entries", lazy=True))
    breaks = db.relationship(
        "TimeEntryBreak",
        backref="time_entry",
        lazy=True,
        order_by="TimeEntryBreak.id",
        cascade="all, delete-orphan",
    )

    def open_break(self) -> "TimeEntryBreak | None":
        """Most recent break without an end."""
        for brk in reversed(self.breaks):
            if brk.break_end is None:
                return brk
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shift_id": self.shift_id,
            "clock_in": to_utc_z(self.clock_in) if self.clock_in else None,
            "clock_out": to_utc_z(self.clock_out) if self.clock_out else None,
            "resumed_at": to_utc_z(self.resumed_at) if self.resumed_at else None,
            "breaks": [b.to_dict() for b in self.breaks],
            "total_break_time": self.total_break_time,
            "hours_worked": self.hours_worked,
            "status": self.status,
            "reason_for_absence": self.reason_for_absence,
            "daily_note": self.daily_note,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TimeEntryBreak(db.Model):
    """
    Break periods within a time entry.

    WHY: Track break start/end times separately for accurate work time calculation.
    """
    __tablename__ = "time_entry_breaks"
    __table_args__ = (
        db.Index("ix_time_entry_breaks_entry", "time_entry_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    time_entry_id = db.Column(db.Integer, db.ForeignKey("time_entries.id"), nullable=False)

    break_start = db.Column(db.DateTime(timezone=True), nullable=False)
    break_end = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "break_start": to_utc_z(self.break_start),
            "break_end": to_utc_z(self.break_end) if self.break_end else None,
        }
