# Overview: Service-layer operations for shifts; creation, assignment and approval lifecycle.

"""
Shift Lifecycle Service

STATE MACHINE:
    Open -> Assigned                 (assign_shift, admin)
    Open -> Pending Approval         (request_shift_assignment, employee)
    Pending Approval -> Assigned     (approve_shift_assignment)
    Pending Approval -> Open         (reject_shift_assignment, assignee cleared)

CONCURRENCY:
Every transition is a conditional UPDATE (WHERE status = <expected>) with a
rowcount check, never read-modify-write. Two employees claiming the same
Open shift race on that UPDATE and exactly one wins.

NOTIFICATIONS:
Sent after the transition commits. Failures are logged by the notification
service and never undo the transition.

BULK OPERATIONS:
assign_shift_to_all and create_multiple_shifts are best effort: each item
commits on its own, a failing item is logged and skipped.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from flask import current_app

from ..extensions import db
from ..models import Shift, ShiftType, TimeEntry
from ..models.scheduling import (
    SHIFT_ASSIGNED,
    SHIFT_OPEN,
    SHIFT_PENDING_APPROVAL,
    SHIFT_TYPE_TEMPSHIFT,
    VALID_SHIFT_STATUSES,
)
from ..validation import (
    AccessDeniedError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    coerce_bool,
    coerce_hhmm,
    coerce_int,
    coerce_str_list,
    coerce_date,
)
from . import notification_service, user_service
from .concurrency import run_with_retry
from .pay_period_service import ensure_pay_period_open, open_period_covering
from .shift_type_service import get_or_create_shift_type
from shiftclock.time_utils import hhmm_to_minutes, to_hhmm


MAX_BULK_SHIFTS = 366

# Fields an admin may change through update_shift. Status and assignee only
# move through the lifecycle operations.
UPDATABLE_FIELDS = {
    "shift_type_id",
    "date",
    "start_time",
    "end_time",
    "is_excess",
    "application_managed",
    "reason",
    "pay_period_id",
}


# =============================================================================
# HELPERS
# =============================================================================

def _interval(start_time: str, end_time: str) -> tuple[int, int]:
    """HH:MM pair -> minutes interval; overnight shifts extend past 24:00."""
    start = hhmm_to_minutes(start_time)
    end = hhmm_to_minutes(end_time)
    if end <= start:
        end += 24 * 60
    return start, end


def shifts_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """
    True when shift b overlaps shift a.

    Three clauses: b straddles a's start, b straddles a's end, or b lies
    inside a. Shifts that merely touch (one ends as the other starts) do
    not overlap.
    """
    a0, a1 = _interval(a_start, a_end)
    b0, b1 = _interval(b_start, b_end)
    return (
        (b0 <= a0 and b1 > a0)
        or (b0 < a1 and b1 >= a1)
        or (b0 >= a0 and b1 <= a1)
    )


def shift_covers(shift: Shift, moment: datetime) -> bool:
    """Whether `moment` falls within the shift's scheduled window."""
    if not shift.start_time or not shift.end_time:
        return False
    start = datetime.combine(shift.date, time.fromisoformat(shift.start_time))
    end = datetime.combine(shift.date, time.fromisoformat(shift.end_time))
    if end <= start:
        end += timedelta(days=1)
    return start <= moment < end


def _require_shift_type(shift_type_id) -> ShiftType:
    shift_type_id = coerce_int(shift_type_id, "shift_type_id")
    shift_type = db.session.get(ShiftType, shift_type_id) if shift_type_id else None
    if not shift_type:
        raise ValidationError("Invalid shift type", code="INVALID_SHIFT_TYPE")
    return shift_type


def _transition(shift_id: int, from_status: str, values: dict, *, code: str) -> None:
    """Conditional UPDATE; raises ConflictError when another request moved the shift first."""
    updated = (
        db.session.query(Shift)
        .filter(Shift.id == shift_id, Shift.status == from_status)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.session.rollback()
        raise ConflictError("Shift was changed by another request", code=code)


def _ensure_shift_editable(shift: Shift) -> None:
    if shift.pay_period_id is not None:
        ensure_pay_period_open(shift.pay_period_id)


def _resolve_pay_period_id(shift_date: date, pay_period_id: int | None) -> int | None:
    """
    Pay period a new or moved shift belongs to.

    An explicit period must be Open and contain the date; otherwise the
    Open period covering the date is used, if there is one.
    """
    if pay_period_id is None:
        period = open_period_covering(shift_date)
        return period.id if period else None

    period = ensure_pay_period_open(pay_period_id)
    if not (period.start_date <= shift_date <= period.end_date):
        raise ValidationError(
            f"Shift date {shift_date.isoformat()} is outside pay period {period.id}",
            code="SHIFT_OUTSIDE_PERIOD",
        )
    return period.id


# =============================================================================
# QUERIES
# =============================================================================

def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift:
        raise NotFoundError("Shift not found", code="SHIFT_NOT_FOUND")
    return shift


def list_shifts(
    *,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    assigned_to_id: int | None = None,
    shift_type_id: int | None = None,
    pay_period_id: int | None = None,
    is_temporary: bool | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered shift listing, ordered by date then start time.

    Returns a dict with 'items', 'count' and, when page is given, pagination metadata.
    """
    query = db.session.query(Shift)
    if status:
        if status not in VALID_SHIFT_STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        query = query.filter(Shift.status == status)
    if date_from:
        query = query.filter(Shift.date >= date_from)
    if date_to:
        query = query.filter(Shift.date <= date_to)
    if assigned_to_id:
        query = query.filter(Shift.assigned_to_id == assigned_to_id)
    if shift_type_id:
        query = query.filter(Shift.shift_type_id == shift_type_id)
    if pay_period_id:
        query = query.filter(Shift.pay_period_id == pay_period_id)
    if is_temporary is not None:
        query = query.filter(Shift.is_temporary == is_temporary)

    query = query.order_by(Shift.date.asc(), Shift.start_time.asc(), Shift.id.asc())

    if page is None:
        shifts = query.all()
        return {"items": [s.to_dict() for s in shifts], "count": len(shifts)}

    per_page = max(1, min(per_page or 20, 100))  # Default 20, range 1..100
    page = max(page, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    shifts = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [s.to_dict() for s in shifts],
        "count": len(shifts),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_shifts_by_employee(employee: int | str) -> list[Shift]:
    """Shifts assigned to an employee, by internal id or employee code."""
    employee_id = user_service.resolve_employee_id(employee)
    return (
        db.session.query(Shift)
        .filter(Shift.assigned_to_id == employee_id)
        .order_by(Shift.date.asc(), Shift.start_time.asc())
        .all()
    )


def check_active_shift(employee_id: int, now: datetime) -> Shift | None:
    """
    The Open/Assigned shift assigned to the employee that covers `now`.

    Yesterday's shifts are considered too, so an overnight shift still
    covers the early hours of the next day.
    """
    candidates = (
        db.session.query(Shift)
        .filter(
            Shift.assigned_to_id == employee_id,
            Shift.status.in_((SHIFT_OPEN, SHIFT_ASSIGNED)),
            Shift.date.in_((now.date(), now.date() - timedelta(days=1))),
            Shift.start_time.isnot(None),
            Shift.end_time.isnot(None),
        )
        .order_by(Shift.date.desc(), Shift.start_time.asc())
        .all()
    )
    for shift in candidates:
        if shift_covers(shift, now):
            return shift
    return None


# =============================================================================
# CREATION
# =============================================================================

def create_shift(
    shift_type_id: int,
    date: date,
    start_time: str,
    end_time: str,
    created_by: int,
    application_managed: list[str] | None = None,
    is_excess: bool = False,
    pay_period_id: int | None = None,
) -> Shift:
    shift_type = _require_shift_type(shift_type_id)
    shift_date = coerce_date(date, "date", required=True)
    start_time = coerce_hhmm(start_time, "start_time", required=True)
    end_time = coerce_hhmm(end_time, "end_time", required=True)

    pay_period_id = _resolve_pay_period_id(shift_date, coerce_int(pay_period_id, "pay_period_id"))

    shift = Shift(
        shift_type_id=shift_type.id,
        date=shift_date,
        start_time=start_time,
        end_time=end_time,
        status=SHIFT_OPEN,
        is_excess=bool(is_excess),
        created_by_id=created_by,
        application_managed=coerce_str_list(application_managed, "application_managed"),
        pay_period_id=pay_period_id,
    )
    db.session.add(shift)
    db.session.commit()
    return shift


def create_multiple_shifts(
    shift_type_id: int,
    start_date: date,
    start_time: str,
    end_time: str,
    created_by: int,
    application_managed: list[str] | None = None,
    is_excess: bool = False,
    *,
    repeat_daily: bool = False,
    end_date: date | None = None,
    count: int | None = None,
) -> list[Shift]:
    """
    Create a batch of Open shifts.

    - repeat_daily with end_date: one shift per day, start_date..end_date inclusive
    - count > 1: `count` identical shifts on start_date
    - otherwise: a single shift

    Each shift commits independently; a failure is logged and skipped.
    """
    shift_type = _require_shift_type(shift_type_id)
    start_date = coerce_date(start_date, "start_date", required=True)
    end_date = coerce_date(end_date, "end_date")
    start_time = coerce_hhmm(start_time, "start_time", required=True)
    end_time = coerce_hhmm(end_time, "end_time", required=True)
    apps = coerce_str_list(application_managed, "application_managed")
    count = coerce_int(count, "count")

    if repeat_daily and end_date:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", code="INVALID_RANGE")
        days = (end_date - start_date).days + 1
        if days > MAX_BULK_SHIFTS:
            raise ValidationError(f"Cannot create more than {MAX_BULK_SHIFTS} shifts at once")
        dates = [start_date + timedelta(days=i) for i in range(days)]
    elif count and count > 1:
        if count > MAX_BULK_SHIFTS:
            raise ValidationError(f"Cannot create more than {MAX_BULK_SHIFTS} shifts at once")
        dates = [start_date] * count
    else:
        dates = [start_date]

    created: list[Shift] = []
    for shift_date in dates:
        try:
            shift = Shift(
                shift_type_id=shift_type.id,
                date=shift_date,
                start_time=start_time,
                end_time=end_time,
                status=SHIFT_OPEN,
                is_excess=bool(is_excess),
                created_by_id=created_by,
                application_managed=list(apps),
                pay_period_id=_resolve_pay_period_id(shift_date, None),
            )
            db.session.add(shift)
            db.session.commit()
            created.append(shift)
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to create shift for %s", shift_date)
    return created


def create_temporary_shift(employee_id: int, clock_in_time: datetime, *, commit: bool = True) -> Shift:
    """
    Synthesize a shift for an employee clocking in without a scheduled one.

    Uses the reserved TEMPSHIFT type, spans TEMP_SHIFT_HOURS from the clock-in
    time and waits for admin approval.
    """
    shift_type = get_or_create_shift_type(SHIFT_TYPE_TEMPSHIFT)
    hours = current_app.config.get("TEMP_SHIFT_HOURS", 8)
    default_end = clock_in_time + timedelta(hours=hours)

    shift = Shift(
        shift_type_id=shift_type.id,
        date=clock_in_time.date(),
        start_time=to_hhmm(clock_in_time),
        end_time=to_hhmm(default_end),
        assigned_to_id=employee_id,
        status=SHIFT_PENDING_APPROVAL,
        is_temporary=True,
        reason="Clock-in without a scheduled shift",
        created_by_id=employee_id,
        application_managed=[],
        pay_period_id=_resolve_pay_period_id(clock_in_time.date(), None),
    )
    db.session.add(shift)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    current_app.logger.info("Temporary shift %s created for employee %s", shift.id, employee_id)
    return shift


# =============================================================================
# ASSIGNMENT LIFECYCLE
# =============================================================================

def assign_shift(shift_id: int, user_id: int) -> Shift:
    def _op():
        shift = get_shift(shift_id)
        if shift.status != SHIFT_OPEN:
            raise InvalidStateError("Shift is not open for assignment", code="SHIFT_NOT_OPEN")

        user = user_service.get_user(user_id)
        if not user.applications_managed:
            raise AccessDeniedError("User does not have any applications to manage shifts")
        if not user_service.manages_any(user, shift.application_managed):
            raise AccessDeniedError("User does not have access to manage this shift")

        _transition(
            shift.id,
            SHIFT_OPEN,
            {Shift.status: SHIFT_ASSIGNED, Shift.assigned_to_id: user.id},
            code="SHIFT_NOT_OPEN",
        )
        db.session.commit()
        return shift, user

    shift, user = run_with_retry(_op)
    notification_service.notify_shift(user, shift, notification_service.EVENT_SHIFT_ASSIGNED)
    return shift


def assign_shift_to_all(
    shift_type_id: int,
    date: date,
    start_time: str,
    end_time: str,
    created_by: int,
    application_managed: list[str],
    is_excess: bool = False,
) -> list[Shift]:
    """
    Create a parent Open shift, then one Assigned copy per active user
    managing any of the target applications.
    """
    parent = create_shift(shift_type_id, date, start_time, end_time, created_by, application_managed, is_excess)
    users = user_service.list_active_users_managing(parent.application_managed)

    assignments: list[Shift] = []
    for user in users:
        try:
            shift = Shift(
                shift_type_id=parent.shift_type_id,
                date=parent.date,
                start_time=parent.start_time,
                end_time=parent.end_time,
                status=SHIFT_ASSIGNED,
                assigned_to_id=user.id,
                is_excess=parent.is_excess,
                created_by_id=created_by,
                application_managed=list(parent.application_managed or []),
                pay_period_id=parent.pay_period_id,
            )
            db.session.add(shift)
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to assign shift %s to user %s", parent.id, user.id)
            continue
        assignments.append(shift)
        notification_service.notify_shift(user, shift, notification_service.EVENT_SHIFT_ASSIGNED)

    return assignments


def request_shift_assignment(shift_id: int, user_id: int) -> Shift:
    """Employee self-service pick; the shift waits for admin approval."""
    def _op():
        shift = get_shift(shift_id)
        if shift.status != SHIFT_OPEN:
            raise InvalidStateError("Shift is not open for assignment", code="SHIFT_NOT_OPEN")

        user = user_service.get_user(user_id)

        if shift.start_time and shift.end_time:
            others = (
                db.session.query(Shift)
                .filter(
                    Shift.assigned_to_id == user.id,
                    Shift.date == shift.date,
                    Shift.id != shift.id,
                    Shift.start_time.isnot(None),
                    Shift.end_time.isnot(None),
                )
                .all()
            )
            for other in others:
                if shifts_overlap(shift.start_time, shift.end_time, other.start_time, other.end_time):
                    raise ConflictError("You have an overlapping shift during this time", code="OVERLAPPING_SHIFT")

        _transition(
            shift.id,
            SHIFT_OPEN,
            {Shift.status: SHIFT_PENDING_APPROVAL, Shift.assigned_to_id: user.id},
            code="SHIFT_NOT_OPEN",
        )
        db.session.commit()
        return shift

    return run_with_retry(_op)


def pick_open_shift(shift_id: int, user_id: int) -> Shift:
    return request_shift_assignment(shift_id, user_id)


def approve_shift_assignment(shift_id: int) -> Shift:
    shift = get_shift(shift_id)
    if shift.status != SHIFT_PENDING_APPROVAL:
        raise InvalidStateError("Shift is not pending approval", code="SHIFT_NOT_PENDING_APPROVAL")

    _transition(shift.id, SHIFT_PENDING_APPROVAL, {Shift.status: SHIFT_ASSIGNED}, code="SHIFT_NOT_PENDING_APPROVAL")
    db.session.commit()

    user = user_service.find_user(shift.assigned_to_id)
    if user:
        notification_service.notify_shift(user, shift, notification_service.EVENT_SHIFT_APPROVED)
    return shift


def reject_shift_assignment(shift_id: int) -> Shift:
    shift = get_shift(shift_id)
    if shift.status != SHIFT_PENDING_APPROVAL:
        raise InvalidStateError("Shift is not pending approval", code="SHIFT_NOT_PENDING_APPROVAL")

    rejected_user_id = shift.assigned_to_id
    _transition(
        shift.id,
        SHIFT_PENDING_APPROVAL,
        {Shift.status: SHIFT_OPEN, Shift.assigned_to_id: None},
        code="SHIFT_NOT_PENDING_APPROVAL",
    )
    db.session.commit()

    user = user_service.find_user(rejected_user_id)
    if user:
        notification_service.notify_shift(user, shift, notification_service.EVENT_SHIFT_REJECTED)
    return shift


# =============================================================================
# ADMIN MAINTENANCE
# =============================================================================

def update_shift(shift_id: int, patch: dict) -> Shift:
    shift = get_shift(shift_id)
    _ensure_shift_editable(shift)

    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    # Validate everything before touching the row.
    values = {}
    if "shift_type_id" in patch:
        values["shift_type_id"] = _require_shift_type(patch["shift_type_id"]).id
    if "date" in patch:
        values["date"] = coerce_date(patch["date"], "date", required=True)
    if "start_time" in patch:
        values["start_time"] = coerce_hhmm(patch["start_time"], "start_time", required=not shift.is_temporary)
    if "end_time" in patch:
        values["end_time"] = coerce_hhmm(patch["end_time"], "end_time", required=not shift.is_temporary)
    if "is_excess" in patch:
        values["is_excess"] = coerce_bool(patch["is_excess"])
    if "application_managed" in patch:
        values["application_managed"] = coerce_str_list(patch["application_managed"], "application_managed")
    if "reason" in patch:
        values["reason"] = (patch["reason"] or "").strip() or None

    shift_date = values.get("date", shift.date)
    if "pay_period_id" in patch:
        pay_period_id = coerce_int(patch["pay_period_id"], "pay_period_id")
        # null detaches the shift from its period
        values["pay_period_id"] = (
            _resolve_pay_period_id(shift_date, pay_period_id) if pay_period_id is not None else None
        )
    elif "date" in values and values["date"] != shift.date:
        values["pay_period_id"] = _resolve_pay_period_id(shift_date, None)

    for field, value in values.items():
        setattr(shift, field, value)
    db.session.commit()
    return shift


def delete_shift(shift_id: int) -> None:
    """
    Hard-delete a shift.

    Blocked once time entries reference it (worked time must stay
    attributable) and while its pay period is Closed/Processed.
    """
    shift = get_shift(shift_id)
    _ensure_shift_editable(shift)

    if db.session.query(TimeEntry.id).filter_by(shift_id=shift.id).first() is not None:
        raise ConflictError("Cannot delete a shift that has time entries", code="SHIFT_HAS_TIME_ENTRIES")

    db.session.delete(shift)
    db.session.commit()
