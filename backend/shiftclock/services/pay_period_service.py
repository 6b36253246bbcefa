# Overview: Service-layer operations for pay periods; creation, closing and payroll processing.

"""
Pay Period Service

STATE MACHINE:
    Open -> Closed -> Processed      (forward only, no reopen)

RULES:
1. Periods never overlap; creation checks and inserts under one critical
   section so two concurrent creators cannot both pass the overlap check
2. Creation binds every shift in the range that has no period yet
3. Closed/Processed periods reject shift mutations (ensure_pay_period_open)
4. process_pay_period is one-shot and uses the per-shift overtime cap
5. calculate_employee_pay_period uses the weekly overtime cap and may be
   rerun; each run replaces the period's employee rows
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import PayPeriod, PayPeriodEmployee, Shift, TimeEntry
from ..models.payroll import (
    PAY_PERIOD_CLOSED,
    PAY_PERIOD_OPEN,
    PAY_PERIOD_PROCESSED,
    VALID_PAY_PERIOD_STATUSES,
)
from ..models.timekeeping import ENTRY_CLOCKED_OUT
from ..validation import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    coerce_date,
    coerce_float,
    coerce_deductions_config,
)
from . import payroll_calculator, user_service
from .concurrency import critical_section, lock_for_update, run_with_retry


def _config_float(key: str, fallback: float) -> float:
    value = current_app.config.get(key)
    return float(value) if value is not None else fallback


def default_hourly_rate() -> float:
    return _config_float("DEFAULT_HOURLY_RATE", 20.0)


def default_overtime_rate() -> float:
    return _config_float("DEFAULT_OVERTIME_RATE", payroll_calculator.DEFAULT_OVERTIME_RATE)


# =============================================================================
# QUERIES / GUARDS
# =============================================================================

def get_pay_period(pay_period_id: int) -> PayPeriod:
    period = db.session.get(PayPeriod, pay_period_id)
    if not period:
        raise NotFoundError("Pay period not found", code="PAY_PERIOD_NOT_FOUND")
    return period


def list_pay_periods(status: str | None = None) -> list[PayPeriod]:
    query = db.session.query(PayPeriod)
    if status:
        if status not in VALID_PAY_PERIOD_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        query = query.filter(PayPeriod.status == status)
    return query.order_by(PayPeriod.start_date.desc()).all()


def ensure_pay_period_open(pay_period_id: int) -> PayPeriod:
    """Guard for shift mutations; Closed/Processed periods are locked."""
    period = get_pay_period(pay_period_id)
    if period.status != PAY_PERIOD_OPEN:
        raise InvalidStateError(
            f"Pay period {period.id} is {period.status}; its shifts can no longer change",
            code="PAY_PERIOD_LOCKED",
        )
    return period


def open_period_covering(day: date) -> PayPeriod | None:
    """The Open pay period whose range contains `day`, if any."""
    return (
        db.session.query(PayPeriod)
        .filter(
            PayPeriod.status == PAY_PERIOD_OPEN,
            PayPeriod.start_date <= day,
            PayPeriod.end_date >= day,
        )
        .first()
    )


def get_pay_period_shifts(pay_period_id: int) -> list[Shift]:
    return list(get_pay_period(pay_period_id).shifts)


def validate_pay_period_shifts(pay_period_id: int) -> list[Shift]:
    """Shifts bound to the period whose date falls outside its range."""
    period = get_pay_period(pay_period_id)
    return [s for s in period.shifts if not (period.start_date <= s.date <= period.end_date)]


# =============================================================================
# LIFECYCLE
# =============================================================================

def create_pay_period(start_date: date, end_date: date, created_by: int) -> PayPeriod:
    """
    Create an Open pay period and bind the unassigned shifts in its range.

    Overlap check, insert and binding happen in one transaction inside a
    process-wide critical section; any failure rolls all of it back.
    """
    start_date = coerce_date(start_date, "start_date", required=True)
    end_date = coerce_date(end_date, "end_date", required=True)
    if start_date >= end_date:
        raise ValidationError("start_date must be before end_date", code="INVALID_RANGE")

    with critical_section("pay_period_create"):
        try:
            overlapping = lock_for_update(
                db.session.query(PayPeriod).filter(
                    PayPeriod.start_date <= end_date,
                    PayPeriod.end_date >= start_date,
                )
            ).first()
            if overlapping:
                raise ConflictError(
                    f"Pay period overlaps existing period {overlapping.id} "
                    f"({overlapping.start_date.isoformat()} - {overlapping.end_date.isoformat()})",
                    code="OVERLAPPING_PERIOD",
                )

            period = PayPeriod(
                start_date=start_date,
                end_date=end_date,
                status=PAY_PERIOD_OPEN,
                created_by_id=created_by,
            )
            db.session.add(period)
            db.session.flush()

            bound = (
                db.session.query(Shift)
                .filter(
                    Shift.pay_period_id.is_(None),
                    Shift.date >= start_date,
                    Shift.date <= end_date,
                )
                .update({Shift.pay_period_id: period.id}, synchronize_session=False)
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    current_app.logger.info(
        "Pay period %s created for %s - %s (%s shifts bound)", period.id, start_date, end_date, bound
    )
    return period


def close_pay_period(pay_period_id: int) -> PayPeriod:
    def _op():
        period = lock_for_update(db.session.query(PayPeriod).filter_by(id=pay_period_id)).first()
        if not period:
            raise NotFoundError("Pay period not found", code="PAY_PERIOD_NOT_FOUND")
        if period.status != PAY_PERIOD_OPEN:
            raise InvalidStateError(
                f"Cannot close pay period in {period.status} status", code="INVALID_PAY_PERIOD_STATE"
            )
        period.status = PAY_PERIOD_CLOSED
        db.session.commit()
        return period

    return run_with_retry(_op)


def process_pay_period(
    pay_period_id: int,
    hourly_rate: float | None = None,
    overtime_rate: float | None = None,
) -> payroll_calculator.PayrollCalculation:
    """
    One-shot period summary using scheduled shift hours and the per-shift
    overtime cap. Closed -> Processed.
    """
    hourly_rate = coerce_float(hourly_rate, "hourly_rate")
    overtime_rate = coerce_float(overtime_rate, "overtime_rate")
    if hourly_rate is None:
        hourly_rate = default_hourly_rate()
    if overtime_rate is None:
        overtime_rate = default_overtime_rate()

    def _op():
        period = lock_for_update(db.session.query(PayPeriod).filter_by(id=pay_period_id)).first()
        if not period:
            raise NotFoundError("Pay period not found", code="PAY_PERIOD_NOT_FOUND")
        if period.status != PAY_PERIOD_CLOSED:
            raise InvalidStateError(
                f"Cannot process pay period in {period.status} status", code="INVALID_PAY_PERIOD_STATE"
            )

        shifts = list(period.shifts)
        outside = [s.id for s in shifts if not (period.start_date <= s.date <= period.end_date)]
        if outside:
            raise ValidationError(
                f"Shifts outside the pay period range: {', '.join(str(i) for i in outside)}",
                code="SHIFT_OUTSIDE_PERIOD",
            )

        calculation = payroll_calculator.calculate_period_payroll(
            [payroll_calculator.calculate_shift_hours(s.start_time, s.end_time) for s in shifts],
            hourly_rate,
            overtime_rate,
            threshold=_config_float(
                "SHIFT_OVERTIME_THRESHOLD_HOURS", payroll_calculator.SHIFT_OVERTIME_THRESHOLD_HOURS
            ),
        )
        period.status = PAY_PERIOD_PROCESSED
        db.session.commit()
        return calculation

    calculation = run_with_retry(_op)
    current_app.logger.info("Pay period %s processed: total pay %.2f", pay_period_id, calculation.total_pay)
    return calculation


def calculate_employee_pay_period(
    pay_period_id: int,
    hourly_rate: float | None = None,
    overtime_rate: float | None = None,
    deductions_config: dict | None = None,
) -> list[PayPeriodEmployee]:
    """
    Per-employee summaries from clocked-out time entries, weekly overtime cap.

    Rates resolve per employee: the user's own rate, then the argument,
    then the configured default. Existing rows for the period are replaced.
    """
    period = get_pay_period(pay_period_id)
    if period.status not in (PAY_PERIOD_CLOSED, PAY_PERIOD_PROCESSED):
        raise InvalidStateError(
            "Employee pay can only be calculated for Closed or Processed pay periods",
            code="INVALID_PAY_PERIOD_STATE",
        )

    hourly_rate = coerce_float(hourly_rate, "hourly_rate")
    overtime_rate = coerce_float(overtime_rate, "overtime_rate")
    deductions_config = coerce_deductions_config(deductions_config)
    threshold = _config_float(
        "WEEKLY_OVERTIME_THRESHOLD_HOURS", payroll_calculator.WEEKLY_OVERTIME_THRESHOLD_HOURS
    )

    entries = (
        db.session.query(TimeEntry)
        .join(Shift, TimeEntry.shift_id == Shift.id)
        .filter(Shift.pay_period_id == period.id, TimeEntry.status == ENTRY_CLOCKED_OUT)
        .all()
    )
    worked: dict[int, list[tuple[date, float]]] = defaultdict(list)
    for entry in entries:
        work_date = entry.clock_in.date() if entry.clock_in else entry.shift.date
        worked[entry.employee_id].append((work_date, entry.hours_worked or 0.0))

    try:
        db.session.query(PayPeriodEmployee).filter_by(pay_period_id=period.id).delete(synchronize_session=False)
        db.session.flush()

        rows = []
        for employee_id in sorted(worked):
            user = user_service.find_user(employee_id)
            rate = _first_set(user.hourly_rate if user else None, hourly_rate, default_hourly_rate())
            ot_rate = _first_set(user.overtime_rate if user else None, overtime_rate, default_overtime_rate())

            split = payroll_calculator.split_weekly_hours(worked[employee_id], threshold)
            pay = payroll_calculator.calculate_payroll(split.regular_hours, split.overtime_hours, rate, ot_rate)
            deductions = payroll_calculator.calculate_deductions(pay["total_pay"], deductions_config)

            row = PayPeriodEmployee(
                pay_period_id=period.id,
                employee_id=employee_id,
                total_hours=split.total_hours,
                regular_hours=split.regular_hours,
                overtime_hours=split.overtime_hours,
                hourly_rate=rate,
                overtime_rate=ot_rate,
                regular_pay=pay["regular_pay"],
                overtime_pay=pay["overtime_pay"],
                total_pay=pay["total_pay"],
                deductions=deductions,
                net_pay=round(pay["total_pay"] - deductions, 2),
            )
            db.session.add(row)
            rows.append(row)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Pay period %s: %s employee summaries calculated", period.id, len(rows))
    return rows


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None
