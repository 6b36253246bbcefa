# Overview: Service-layer operations for timekeeping; clock-in/out, breaks, absences and resumes.

"""
Timekeeping Service (Shift-Based)

WHY: Every worked minute must be attributable to a shift. Clocking in
without a scheduled shift creates a temporary one that waits for approval.

LIFECYCLE:
    (none) -> clockedIn               clock_in
    clockedIn -> onBreak              start_break
    onBreak -> clockedIn              end_break / clock_in (resume)
    clockedIn -> clockedOut           clock_out (daily note required)
    clockedOut -> clockedIn           clock_in / resume_time_entry (gap becomes a break)
    (none) -> absent                  mark_absent (terminal)

RULES:
1. At most one clockedIn/onBreak entry per employee, enforced by a partial
   unique index; the losing concurrent request sees ALREADY_CLOCKED_IN
2. Resuming keeps the original clock_in and stamps resumed_at
3. total_break_time is always the sum of closed break spans
4. hours_worked is recomputed on every clock-out and admin correction
5. Transitions on an existing entry are conditional UPDATEs on its status,
   so concurrent break/clock-out requests on one entry have one winner
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Shift, TimeEntry, TimeEntryBreak
from ..models.timekeeping import (
    ACTIVE_ENTRY_STATUSES,
    ENTRY_ABSENT,
    ENTRY_CLOCKED_IN,
    ENTRY_CLOCKED_OUT,
    ENTRY_ON_BREAK,
    VALID_ENTRY_STATUSES,
)
from ..validation import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    coerce_datetime,
    coerce_int,
)
from . import payroll_calculator, user_service
from .concurrency import run_with_retry
from .pay_period_service import ensure_pay_period_open
from .shift_service import check_active_shift, create_temporary_shift, get_shift
from shiftclock.time_utils import utcnow


CLOCK_IN_STARTED = "Started"
CLOCK_IN_RESUMED = "Resumed"

ADMIN_UPDATABLE_FIELDS = {"clock_in", "clock_out", "status", "daily_note", "reason_for_absence", "shift_id"}


@dataclass
class ClockInResult:
    outcome: str
    entry: TimeEntry

    def to_dict(self) -> dict:
        return {"outcome": self.outcome, "time_entry": self.entry.to_dict()}


# =============================================================================
# HELPERS
# =============================================================================

def _active_entry(employee_id: int) -> TimeEntry | None:
    return (
        db.session.query(TimeEntry)
        .filter(TimeEntry.employee_id == employee_id, TimeEntry.status.in_(ACTIVE_ENTRY_STATUSES))
        .first()
    )


def _transition_entry(time_entry_id: int, from_status: str, values: dict, *, code: str) -> None:
    """Conditional UPDATE; raises ConflictError when another request moved the entry first."""
    updated = (
        db.session.query(TimeEntry)
        .filter(TimeEntry.id == time_entry_id, TimeEntry.status == from_status)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.session.rollback()
        raise ConflictError("Time entry was changed by another request", code=code)


def _closed_break_minutes(entry: TimeEntry) -> float:
    return payroll_calculator.sum_break_minutes((b.break_start, b.break_end) for b in entry.breaks)


def _recompute_hours(entry: TimeEntry) -> None:
    entry.total_break_time = _closed_break_minutes(entry)
    if entry.clock_in and entry.clock_out:
        entry.hours_worked = payroll_calculator.compute_hours_worked(
            entry.clock_in, entry.clock_out, entry.total_break_time
        )
    else:
        entry.hours_worked = 0


def _resume(entry: TimeEntry, at: datetime) -> TimeEntry:
    """Put an onBreak or clockedOut entry back to clockedIn as of `at`."""
    from_status = entry.status
    brk = None
    if from_status == ENTRY_ON_BREAK:
        brk = entry.open_break()
        if brk and at < brk.break_start:
            raise ValidationError("Resume time is before the break started", code="INVALID_RESUME_TIME")
    elif from_status == ENTRY_CLOCKED_OUT:
        if entry.clock_out and at < entry.clock_out:
            raise ValidationError("Resume time is before the clock-out", code="INVALID_RESUME_TIME")
    else:
        raise InvalidStateError(f"Cannot resume a time entry in status '{entry.status}'")

    _transition_entry(
        entry.id,
        from_status,
        {TimeEntry.status: ENTRY_CLOCKED_IN, TimeEntry.resumed_at: at},
        code="ALREADY_CLOCKED_IN",
    )
    if brk:
        brk.break_end = at
    if from_status == ENTRY_CLOCKED_OUT:
        if entry.clock_out and at > entry.clock_out:
            entry.breaks.append(TimeEntryBreak(break_start=entry.clock_out, break_end=at))
        entry.clock_out = None

    entry.status = ENTRY_CLOCKED_IN
    entry.resumed_at = at
    _recompute_hours(entry)
    return entry


def _paginate(query, page: int | None, per_page: int | None) -> dict:
    if page is None:
        entries = query.all()
        return {"items": [e.to_dict() for e in entries], "count": len(entries)}

    per_page = max(1, min(per_page or 20, 100))  # Default 20, range 1..100
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    entries = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def compute_hours_worked(clock_in: datetime, clock_out: datetime, total_break_minutes: float = 0) -> float:
    return payroll_calculator.compute_hours_worked(clock_in, clock_out, total_break_minutes)


# =============================================================================
# CLOCK IN / OUT
# =============================================================================

def clock_in(employee: int | str, clock_in_time: datetime | None = None, shift_id: int | None = None) -> ClockInResult:
    """
    Start or resume work for an employee.

    Shift resolution order: explicit shift_id, the shift of an onBreak
    entry, the scheduled shift covering clock_in_time, a new temporary shift.
    """
    employee_id = user_service.resolve_employee_id(employee)
    clock_in_time = clock_in_time or utcnow()
    shift_id = coerce_int(shift_id, "shift_id")

    def _op() -> ClockInResult:
        active = _active_entry(employee_id)
        if active:
            if active.status == ENTRY_CLOCKED_IN:
                raise ConflictError("Employee is already clocked in", code="ALREADY_CLOCKED_IN")
            if shift_id is not None and shift_id != active.shift_id:
                raise ConflictError("Employee is on break from another shift", code="ALREADY_CLOCKED_IN")
            _resume(active, clock_in_time)
            db.session.commit()
            return ClockInResult(CLOCK_IN_RESUMED, active)

        if shift_id is not None:
            shift = get_shift(shift_id)
        else:
            shift = check_active_shift(employee_id, clock_in_time)
            if shift is None:
                shift = create_temporary_shift(employee_id, clock_in_time, commit=False)

        previous = (
            db.session.query(TimeEntry)
            .filter_by(employee_id=employee_id, shift_id=shift.id, status=ENTRY_CLOCKED_OUT)
            .order_by(TimeEntry.id.desc())
            .first()
        )
        if previous:
            _resume(previous, clock_in_time)
            db.session.commit()
            return ClockInResult(CLOCK_IN_RESUMED, previous)

        entry = TimeEntry(
            employee_id=employee_id,
            shift_id=shift.id,
            clock_in=clock_in_time,
            status=ENTRY_CLOCKED_IN,
            total_break_time=0,
            hours_worked=0,
        )
        db.session.add(entry)
        db.session.commit()
        return ClockInResult(CLOCK_IN_STARTED, entry)

    try:
        result = run_with_retry(_op)
    except IntegrityError:
        db.session.rollback()
        if _active_entry(employee_id):
            raise ConflictError("Employee is already clocked in", code="ALREADY_CLOCKED_IN")
        raise

    current_app.logger.info(
        "Employee %s clock-in %s on shift %s", employee_id, result.outcome.lower(), result.entry.shift_id
    )
    return result


def clock_out(time_entry_id: int, clock_out_time: datetime | None = None, daily_note: str | None = None) -> TimeEntry:
    entry = get_time_entry(time_entry_id)
    if entry.status != ENTRY_CLOCKED_IN:
        raise InvalidStateError("Employee is not clocked in", code="NOT_CLOCKED_IN")

    note = (daily_note or "").strip()
    if not note:
        raise ValidationError("A daily note is required to clock out", code="DAILY_NOTE_REQUIRED")

    clock_out_time = clock_out_time or utcnow()
    if clock_out_time <= entry.clock_in:
        raise ValidationError("Clock-out time must be after clock-in time", code="CLOCK_OUT_BEFORE_CLOCK_IN")

    break_minutes = _closed_break_minutes(entry)
    _transition_entry(
        entry.id,
        ENTRY_CLOCKED_IN,
        {
            TimeEntry.status: ENTRY_CLOCKED_OUT,
            TimeEntry.clock_out: clock_out_time,
            TimeEntry.daily_note: note,
            TimeEntry.total_break_time: break_minutes,
            TimeEntry.hours_worked: payroll_calculator.compute_hours_worked(
                entry.clock_in, clock_out_time, break_minutes
            ),
        },
        code="NOT_CLOCKED_IN",
    )
    db.session.commit()
    return entry


# =============================================================================
# BREAKS
# =============================================================================

def start_break(time_entry_id: int, at: datetime | None = None) -> TimeEntry:
    entry = get_time_entry(time_entry_id)
    if entry.status == ENTRY_ON_BREAK:
        raise InvalidStateError("Employee is already on break", code="ALREADY_ON_BREAK")
    if entry.status != ENTRY_CLOCKED_IN:
        raise InvalidStateError("Employee is not clocked in", code="NOT_CLOCKED_IN")

    at = at or utcnow()
    working_since = entry.resumed_at or entry.clock_in
    if working_since and at < working_since:
        raise ValidationError("Break cannot start before work started", code="INVALID_BREAK_TIME")

    _transition_entry(entry.id, ENTRY_CLOCKED_IN, {TimeEntry.status: ENTRY_ON_BREAK}, code="ALREADY_ON_BREAK")
    db.session.add(TimeEntryBreak(time_entry_id=entry.id, break_start=at))
    db.session.commit()
    return entry


def end_break(time_entry_id: int, at: datetime | None = None) -> TimeEntry:
    entry = get_time_entry(time_entry_id)
    if entry.status != ENTRY_ON_BREAK:
        raise InvalidStateError("Employee is not on break", code="NOT_ON_BREAK")

    brk = entry.open_break()
    if not brk:
        raise InvalidStateError("No active break found", code="NO_ACTIVE_BREAK")

    at = at or utcnow()
    if at < brk.break_start:
        raise ValidationError("Break cannot end before it started", code="INVALID_BREAK_TIME")

    _transition_entry(entry.id, ENTRY_ON_BREAK, {TimeEntry.status: ENTRY_CLOCKED_IN}, code="NOT_ON_BREAK")
    brk.break_end = at
    entry.total_break_time = _closed_break_minutes(entry)
    db.session.commit()
    return entry


# =============================================================================
# ABSENCE / RESUME
# =============================================================================

def mark_absent(employee: int | str, shift_id: int, reason: str | None = None) -> TimeEntry:
    employee_id = user_service.resolve_employee_id(employee)
    shift = get_shift(coerce_int(shift_id, "shift_id", required=True))

    existing = (
        db.session.query(TimeEntry)
        .filter_by(employee_id=employee_id, shift_id=shift.id, status=ENTRY_ABSENT)
        .first()
    )
    if existing:
        raise ConflictError("Absence already recorded for this shift", code="DUPLICATE_ABSENCE")

    entry = TimeEntry(
        employee_id=employee_id,
        shift_id=shift.id,
        status=ENTRY_ABSENT,
        reason_for_absence=(reason or "").strip() or None,
        total_break_time=0,
        hours_worked=0,
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Absence already recorded for this shift", code="DUPLICATE_ABSENCE")
    return entry


def resume_time_entry(employee: int | str, shift_id: int, clock_in_time: datetime | None = None) -> TimeEntry:
    """Resume the latest onBreak/clockedOut entry of an employee on a shift."""
    employee_id = user_service.resolve_employee_id(employee)
    shift_id = coerce_int(shift_id, "shift_id", required=True)
    clock_in_time = clock_in_time or utcnow()

    entry = (
        db.session.query(TimeEntry)
        .filter(
            TimeEntry.employee_id == employee_id,
            TimeEntry.shift_id == shift_id,
            TimeEntry.status.in_((ENTRY_ON_BREAK, ENTRY_CLOCKED_OUT)),
        )
        .order_by(TimeEntry.id.desc())
        .first()
    )
    if not entry:
        raise NotFoundError("No time entry to resume for this shift", code="NO_RESUMABLE_ENTRY")

    try:
        _resume(entry, clock_in_time)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Employee is already clocked in", code="ALREADY_CLOCKED_IN")
    return entry


# =============================================================================
# ADMIN CORRECTIONS
# =============================================================================

def update_time_entry_admin(time_entry_id: int, updates: dict, admin_id: int) -> TimeEntry:
    """
    Administrative correction of a time entry.

    Skips the transition guards, but a clockedOut result still needs a
    daily note and clock_in < clock_out. Hours are recomputed.
    """
    entry = get_time_entry(time_entry_id)

    unknown = set(updates) - ADMIN_UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    # Resolve the resulting values first; the entry is only touched once they are valid.
    clock_in = coerce_datetime(updates["clock_in"], "clock_in") if "clock_in" in updates else entry.clock_in
    clock_out = coerce_datetime(updates["clock_out"], "clock_out") if "clock_out" in updates else entry.clock_out
    status = updates.get("status", entry.status)
    if status not in VALID_ENTRY_STATUSES:
        raise ValidationError(f"Invalid status '{status}'")
    daily_note = entry.daily_note
    if "daily_note" in updates:
        daily_note = (updates["daily_note"] or "").strip() or None
    shift_id = entry.shift_id
    if "shift_id" in updates:
        shift_id = get_shift(coerce_int(updates["shift_id"], "shift_id", required=True)).id

    if status == ENTRY_CLOCKED_OUT:
        if not daily_note:
            raise ValidationError("A daily note is required to clock out", code="DAILY_NOTE_REQUIRED")
        if not clock_in or not clock_out:
            raise ValidationError("Clock-in and clock-out times are required", code="MISSING_FIELD")
    if status in ACTIVE_ENTRY_STATUSES and not clock_in:
        raise ValidationError("A clock-in time is required for an active entry", code="MISSING_FIELD")
    if clock_in and clock_out and clock_out <= clock_in:
        raise ValidationError("Clock-out time must be after clock-in time", code="CLOCK_OUT_BEFORE_CLOCK_IN")

    entry.clock_in = clock_in
    entry.clock_out = clock_out
    entry.status = status
    entry.daily_note = daily_note
    entry.shift_id = shift_id
    if "reason_for_absence" in updates:
        entry.reason_for_absence = (updates["reason_for_absence"] or "").strip() or None

    _recompute_hours(entry)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Employee already has an active time entry", code="ALREADY_CLOCKED_IN")

    current_app.logger.info(
        "Time entry %s corrected by admin %s (fields: %s)", entry.id, admin_id, ", ".join(sorted(updates))
    )
    return entry


# =============================================================================
# QUERIES
# =============================================================================

def get_time_entry(time_entry_id: int) -> TimeEntry:
    entry = db.session.get(TimeEntry, time_entry_id)
    if not entry:
        raise NotFoundError("Time entry not found", code="TIME_ENTRY_NOT_FOUND")
    return entry


def delete_time_entry(time_entry_id: int) -> None:
    entry = get_time_entry(time_entry_id)
    if entry.shift and entry.shift.pay_period_id is not None:
        ensure_pay_period_open(entry.shift.pay_period_id)
    db.session.delete(entry)
    db.session.commit()


def get_time_entries_by_employee(employee: int | str, *, page: int | None = None, per_page: int | None = None) -> dict:
    employee_id = user_service.resolve_employee_id(employee)
    query = (
        db.session.query(TimeEntry)
        .filter(TimeEntry.employee_id == employee_id)
        .order_by(TimeEntry.id.desc())
    )
    return _paginate(query, page, per_page)


def get_time_entries_by_shift(shift_id: int, *, page: int | None = None, per_page: int | None = None) -> dict:
    shift = get_shift(shift_id)
    query = db.session.query(TimeEntry).filter(TimeEntry.shift_id == shift.id).order_by(TimeEntry.id.asc())
    return _paginate(query, page, per_page)


def get_time_entries_by_pay_period(pay_period_id: int, *, page: int | None = None, per_page: int | None = None) -> dict:
    query = (
        db.session.query(TimeEntry)
        .join(Shift, TimeEntry.shift_id == Shift.id)
        .filter(Shift.pay_period_id == pay_period_id)
        .order_by(Shift.date.asc(), TimeEntry.id.asc())
    )
    return _paginate(query, page, per_page)


def get_absences(employee: int | str) -> list[TimeEntry]:
    employee_id = user_service.resolve_employee_id(employee)
    return (
        db.session.query(TimeEntry)
        .filter_by(employee_id=employee_id, status=ENTRY_ABSENT)
        .order_by(TimeEntry.id.desc())
        .all()
    )


def get_current_status(employee: int | str) -> dict:
    """Active entry of the employee, or 'clockedOut' when none is open."""
    employee_id = user_service.resolve_employee_id(employee)
    active = _active_entry(employee_id)
    return {
        "employee_id": employee_id,
        "status": active.status if active else ENTRY_CLOCKED_OUT,
        "time_entry": active.to_dict() if active else None,
    }


def find_invalid_time_entries(shift_id: int) -> list[TimeEntry]:
    """Entries on a shift whose clock-in falls before the shift's date."""
    shift = get_shift(shift_id)
    entries = db.session.query(TimeEntry).filter(TimeEntry.shift_id == shift.id).all()
    return [e for e in entries if e.clock_in is not None and e.clock_in.date() < shift.date]
