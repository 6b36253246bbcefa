from __future__ import annotations

from ..extensions import db
from shiftclock.time_utils import to_utc_z, to_iso_date


# Pay period statuses (forward-only)
PAY_PERIOD_OPEN = "Open"
PAY_PERIOD_CLOSED = "Closed"
PAY_PERIOD_PROCESSED = "Processed"

VALID_PAY_PERIOD_STATUSES = {PAY_PERIOD_OPEN, PAY_PERIOD_CLOSED, PAY_PERIOD_PROCESSED}


class PayPeriod(db.Model):
    """
    Date range over which worked time is aggregated into payroll.

    STATE MACHINE:
        Open -> Closed -> Processed

    RULES:
    1. No two pay periods overlap ([start_date, end_date] inclusive)
    2. Shifts are bound at creation and may belong to one period only
    3. Closed/Processed periods accept no further shift changes
    4. Processing is one-shot; a Processed period cannot be processed again
    """
    __tablename__ = "pay_periods"
    __table_args__ = (
        db.Index("ix_pay_periods_range", "start_date", "end_date"),
        db.Index("ix_pay_periods_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PAY_PERIOD_OPEN)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    created_by = db.relationship("User")

    def to_dict(self, include_shifts: bool = False) -> dict:
        data = {
            "id": self.id,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "status": self.status,
            "created_by_id": self.created_by_id,
            "shift_ids": [s.id for s in self.shifts],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_shifts:
            data["shifts"] = [s.to_dict() for s in self.shifts]
        return data


class PayPeriodEmployee(db.Model):
    """
    Per-employee payroll summary for a pay period.

    Derived data: produced by payroll processing and replaced wholesale each
    time the period is reprocessed for employees.
    """
    __tablename__ = "pay_period_employees"
    __table_args__ = (
        db.UniqueConstraint("pay_period_id", "employee_id", name="uq_pay_period_employee"),
        db.Index("ix_pay_period_employees_employee", "employee_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    pay_period_id = db.Column(db.Integer, db.ForeignKey("pay_periods.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    total_hours = db.Column(db.Float, nullable=False, default=0)
    regular_hours = db.Column(db.Float, nullable=False, default=0)
    overtime_hours = db.Column(db.Float, nullable=False, default=0)

    hourly_rate = db.Column(db.Float, nullable=True)
    overtime_rate = db.Column(db.Float, nullable=True)

    total_pay = db.Column(db.Float, nullable=False, default=0)
    regular_pay = db.Column(db.Float, nullable=False, default=0)
    overtime_pay = db.Column(db.Float, nullable=False, default=0)
    # Taxes, benefits, etc.
    deductions = db.Column(db.Float, nullable=False, default=0)
    # Gross pay minus deductions
    net_pay = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    pay_period = db.relationship("PayPeriod", backref=db.backref("employee_summaries", lazy=True, cascade="all, delete-orphan"))
    employee = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pay_period_id": self.pay_period_id,
            "employee_id": self.employee_id,
            "total_hours": self.total_hours,
            "regular_hours": self.regular_hours,
            "overtime_hours": self.overtime_hours,
            "hourly_rate": self.hourly_rate,
            "overtime_rate": self.overtime_rate,
            "total_pay": self.total_pay,
            "regular_pay": self.regular_pay,
            "overtime_pay": self.overtime_pay,
            "deductions": self.deductions,
            "net_pay": self.net_pay,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
