# Overview: Pure payroll arithmetic; no database or Flask access.

"""
Payroll Calculator

WHY: Hours and pay derivation must be testable in isolation and identical
wherever it is used (clock-out, period processing, employee summaries).

TWO OVERTIME POLICIES:
- Shift cap:  hours beyond 8 within a single shift are overtime
              (period-level summary in process_pay_period)
- Weekly cap: hours beyond 40 within an ISO week are overtime
              (per-employee PayPeriodEmployee rows)
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping

from shiftclock.time_utils import hhmm_to_minutes


ROUNDING_INTERVAL_MINUTES = 15
SHIFT_OVERTIME_THRESHOLD_HOURS = 8.0
WEEKLY_OVERTIME_THRESHOLD_HOURS = 40.0
DEFAULT_OVERTIME_RATE = 1.5
DEFAULT_TAX_RATE = 0.2


@dataclass(frozen=True)
class HoursSplit:
    total_hours: float
    regular_hours: float
    overtime_hours: float


@dataclass(frozen=True)
class PayrollCalculation:
    total_hours: float
    regular_hours: float
    overtime_hours: float
    regular_pay: float
    overtime_pay: float
    total_pay: float

    def to_dict(self) -> dict:
        return asdict(self)


def _money(value: float) -> float:
    return round(value, 2)


def round_to_nearest(minutes: float, interval: int = ROUNDING_INTERVAL_MINUTES) -> int:
    """Round half up to the nearest multiple of `interval`."""
    return int(math.floor(minutes / interval + 0.5)) * interval


def sum_break_minutes(breaks: Iterable[tuple[datetime, datetime | None]]) -> float:
    """Sum of closed break spans in minutes; open breaks (no end) are ignored."""
    total = 0.0
    for start, end in breaks:
        if end is None:
            continue
        total += (end - start).total_seconds() / 60
    return total


def compute_hours_worked(clock_in: datetime, clock_out: datetime, total_break_minutes: float = 0) -> float:
    """
    Worked hours rounded to the nearest 15 minutes.

    effective = (clock_out - clock_in) - breaks; never negative.
    """
    worked_minutes = (clock_out - clock_in).total_seconds() / 60
    effective_minutes = max(worked_minutes - (total_break_minutes or 0), 0)
    return round_to_nearest(effective_minutes) / 60


def calculate_shift_hours(start_time: str | None, end_time: str | None) -> float:
    """
    Scheduled hours between two "HH:MM" times.

    Overnight shifts (end before start) wrap past midnight: 22:00-06:00 -> 8.
    """
    if not start_time or not end_time:
        return 0.0
    diff = hhmm_to_minutes(end_time) - hhmm_to_minutes(start_time)
    if diff < 0:
        diff += 24 * 60
    return diff / 60 if diff > 0 else 0.0


def calculate_payroll(
    regular_hours: float,
    overtime_hours: float,
    hourly_rate: float,
    overtime_rate: float = DEFAULT_OVERTIME_RATE,
) -> dict:
    regular_pay = regular_hours * hourly_rate
    overtime_pay = overtime_hours * hourly_rate * overtime_rate
    return {
        "regular_pay": _money(regular_pay),
        "overtime_pay": _money(overtime_pay),
        "total_pay": _money(regular_pay + overtime_pay),
    }


def split_daily_hours(hours: Iterable[float], threshold: float = SHIFT_OVERTIME_THRESHOLD_HOURS) -> HoursSplit:
    """Each item (a shift or a time entry) contributes overtime beyond `threshold`."""
    total = 0.0
    overtime = 0.0
    for h in hours:
        total += h
        if h > threshold:
            overtime += h - threshold
    return HoursSplit(total_hours=total, regular_hours=total - overtime, overtime_hours=overtime)


def calculate_hours(worked_hours: float, threshold: float = WEEKLY_OVERTIME_THRESHOLD_HOURS) -> HoursSplit:
    """Split one week's hours at the weekly threshold."""
    regular = min(worked_hours, threshold)
    overtime = max(0.0, worked_hours - threshold)
    return HoursSplit(total_hours=worked_hours, regular_hours=regular, overtime_hours=overtime)


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())


def split_weekly_hours(
    entries: Iterable[tuple[date, float]],
    threshold: float = WEEKLY_OVERTIME_THRESHOLD_HOURS,
) -> HoursSplit:
    """
    Group (work date, hours) pairs by ISO week and apply the weekly threshold
    to each week independently.
    """
    weekly: dict[date, float] = {}
    for day, hours in entries:
        key = week_start(day)
        weekly[key] = weekly.get(key, 0.0) + (hours or 0.0)

    total = regular = overtime = 0.0
    for hours in weekly.values():
        split = calculate_hours(hours, threshold)
        total += split.total_hours
        regular += split.regular_hours
        overtime += split.overtime_hours
    return HoursSplit(total_hours=total, regular_hours=regular, overtime_hours=overtime)


def calculate_period_payroll(
    shift_hours: Iterable[float],
    hourly_rate: float,
    overtime_rate: float = DEFAULT_OVERTIME_RATE,
    threshold: float = SHIFT_OVERTIME_THRESHOLD_HOURS,
) -> PayrollCalculation:
    """Flat period summary using the per-shift overtime cap."""
    split = split_daily_hours(shift_hours, threshold)
    pay = calculate_payroll(split.regular_hours, split.overtime_hours, hourly_rate, overtime_rate)
    return PayrollCalculation(
        total_hours=split.total_hours,
        regular_hours=split.regular_hours,
        overtime_hours=split.overtime_hours,
        regular_pay=pay["regular_pay"],
        overtime_pay=pay["overtime_pay"],
        total_pay=pay["total_pay"],
    )


def calculate_deductions(gross_pay: float, deductions_config: Mapping | None) -> float:
    """
    Deductions from gross pay.

    deductions_config keys: tax_rate (fraction, default 0.2), benefits
    (flat amount), custom_deductions (flat amount). No config -> no deductions.
    """
    if not deductions_config:
        return 0.0
    tax_rate = deductions_config.get("tax_rate")
    if tax_rate is None:
        tax_rate = DEFAULT_TAX_RATE
    tax = gross_pay * tax_rate
    benefits = deductions_config.get("benefits") or 0
    custom = deductions_config.get("custom_deductions") or 0
    return _money(tax + benefits + custom)
