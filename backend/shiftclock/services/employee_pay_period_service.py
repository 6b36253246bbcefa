# Overview: Per-employee pay period summaries; manual creation and maintenance.

"""
Employee Pay Period Service

calculate_employee_pay_period (pay_period_service) produces these rows in
bulk with the weekly overtime cap. This module covers single-employee
creation, which applies the per-entry 8 hour cap, and admin edits.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import PayPeriodEmployee, Shift, TimeEntry
from ..models.timekeeping import ENTRY_CLOCKED_OUT
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_float
from . import payroll_calculator, user_service
from .pay_period_service import default_hourly_rate, default_overtime_rate, get_pay_period


UPDATABLE_FIELDS = {"regular_hours", "overtime_hours", "hourly_rate", "overtime_rate", "deductions"}


def _apply_pay(row: PayPeriodEmployee) -> None:
    pay = payroll_calculator.calculate_payroll(
        row.regular_hours, row.overtime_hours, row.hourly_rate, row.overtime_rate
    )
    row.total_hours = row.regular_hours + row.overtime_hours
    row.regular_pay = pay["regular_pay"]
    row.overtime_pay = pay["overtime_pay"]
    row.total_pay = pay["total_pay"]
    row.net_pay = round(row.total_pay - (row.deductions or 0), 2)


def get_employee_pay_period(employee_pay_period_id: int) -> PayPeriodEmployee:
    row = db.session.get(PayPeriodEmployee, employee_pay_period_id)
    if not row:
        raise NotFoundError("Employee pay period not found", code="EMPLOYEE_PAY_PERIOD_NOT_FOUND")
    return row


def list_by_pay_period(pay_period_id: int) -> list[PayPeriodEmployee]:
    period = get_pay_period(pay_period_id)
    return (
        db.session.query(PayPeriodEmployee)
        .filter_by(pay_period_id=period.id)
        .order_by(PayPeriodEmployee.employee_id.asc())
        .all()
    )


def list_by_employee(employee: int | str) -> list[PayPeriodEmployee]:
    employee_id = user_service.resolve_employee_id(employee)
    return (
        db.session.query(PayPeriodEmployee)
        .filter_by(employee_id=employee_id)
        .order_by(PayPeriodEmployee.pay_period_id.desc())
        .all()
    )


def create_employee_pay_period(
    pay_period_id: int,
    employee: int | str,
    hourly_rate: float | None = None,
    overtime_rate: float | None = None,
    deductions: float = 0,
) -> PayPeriodEmployee:
    """Summarize one employee's clocked-out entries; hours beyond 8 per entry are overtime."""
    period = get_pay_period(pay_period_id)
    employee_id = user_service.resolve_employee_id(employee)
    user = user_service.get_user(employee_id)

    existing = db.session.query(PayPeriodEmployee).filter_by(
        pay_period_id=period.id, employee_id=employee_id
    ).first()
    if existing:
        raise ConflictError(
            "Employee already has a summary for this pay period", code="DUPLICATE_EMPLOYEE_PAY_PERIOD"
        )

    entries = (
        db.session.query(TimeEntry)
        .join(Shift, TimeEntry.shift_id == Shift.id)
        .filter(
            Shift.pay_period_id == period.id,
            TimeEntry.employee_id == employee_id,
            TimeEntry.status == ENTRY_CLOCKED_OUT,
        )
        .all()
    )
    threshold = current_app.config.get(
        "SHIFT_OVERTIME_THRESHOLD_HOURS", payroll_calculator.SHIFT_OVERTIME_THRESHOLD_HOURS
    )
    split = payroll_calculator.split_daily_hours([e.hours_worked or 0.0 for e in entries], threshold)

    hourly_rate = coerce_float(hourly_rate, "hourly_rate")
    overtime_rate = coerce_float(overtime_rate, "overtime_rate")
    row = PayPeriodEmployee(
        pay_period_id=period.id,
        employee_id=employee_id,
        regular_hours=split.regular_hours,
        overtime_hours=split.overtime_hours,
        hourly_rate=hourly_rate if hourly_rate is not None else (user.hourly_rate or default_hourly_rate()),
        overtime_rate=overtime_rate if overtime_rate is not None else (user.overtime_rate or default_overtime_rate()),
        deductions=coerce_float(deductions, "deductions") or 0,
    )
    _apply_pay(row)
    db.session.add(row)
    db.session.commit()
    return row


def update_employee_pay_period(employee_pay_period_id: int, patch: dict) -> PayPeriodEmployee:
    row = get_employee_pay_period(employee_pay_period_id)

    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    values = {}
    for field in UPDATABLE_FIELDS & set(patch):
        values[field] = coerce_float(patch[field], field, required=True)
    for field, value in values.items():
        setattr(row, field, value)

    _apply_pay(row)
    db.session.commit()
    return row


def delete_employee_pay_period(employee_pay_period_id: int) -> None:
    row = get_employee_pay_period(employee_pay_period_id)
    db.session.delete(row)
    db.session.commit()
