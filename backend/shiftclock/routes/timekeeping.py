# Overview: Flask API routes for time entries; parses input and returns JSON responses.

"""
Timekeeping Routes

SECURITY:
- Employees clock in/out, take breaks, resume and report absences for
  themselves only; admins may act on behalf of any employee.
- Admin corrections, deletion and cross-employee listings are admin only.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import timekeeping_service, user_service
from ..services.timekeeping_service import CLOCK_IN_STARTED
from ..validation import AccessDeniedError, ShiftClockError, coerce_datetime, coerce_int
from .responses import error_response, internal_error, page_args


timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/time-entries")


def _target_employee(value) -> int:
    """Employee the caller acts on; non-admins may only name themselves."""
    ctx = g.request_context
    if value in (None, ""):
        return ctx.user_id
    employee_id = user_service.resolve_employee_id(value)
    if employee_id != ctx.user_id and not ctx.is_admin:
        raise AccessDeniedError("You can only manage your own time entries")
    return employee_id


def _owned_entry(time_entry_id: int):
    entry = timekeeping_service.get_time_entry(time_entry_id)
    ctx = g.request_context
    if entry.employee_id != ctx.user_id and not ctx.is_admin:
        raise AccessDeniedError("You can only manage your own time entries")
    return entry


@timekeeping_bp.post("/clock-in")
@require_auth
def clock_in_route():
    data = request.get_json(silent=True) or {}
    try:
        result = timekeeping_service.clock_in(
            _target_employee(data.get("employee")),
            coerce_datetime(data.get("clock_in_time"), "clock_in_time"),
            shift_id=coerce_int(data.get("shift_id"), "shift_id"),
        )
        status = 201 if result.outcome == CLOCK_IN_STARTED else 200
        return jsonify(result.to_dict()), status
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("clock in")


@timekeeping_bp.post("/<int:time_entry_id>/clock-out")
@require_auth
def clock_out_route(time_entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        _owned_entry(time_entry_id)
        entry = timekeeping_service.clock_out(
            time_entry_id,
            coerce_datetime(data.get("clock_out_time"), "clock_out_time"),
            data.get("daily_note"),
        )
        return jsonify({"time_entry": entry.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("clock out")


@timekeeping_bp.post("/<int:time_entry_id>/break/start")
@require_auth
def start_break_route(time_entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        _owned_entry(time_entry_id)
        entry = timekeeping_service.start_break(time_entry_id, coerce_datetime(data.get("at"), "at"))
        return jsonify({"time_entry": entry.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("start break")


@timekeeping_bp.post("/<int:time_entry_id>/break/end")
@require_auth
def end_break_route(time_entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        _owned_entry(time_entry_id)
        entry = timekeeping_service.end_break(time_entry_id, coerce_datetime(data.get("at"), "at"))
        return jsonify({"time_entry": entry.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("end break")


@timekeeping_bp.post("/absent")
@require_auth
def mark_absent_route():
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.mark_absent(
            _target_employee(data.get("employee")),
            coerce_int(data.get("shift_id"), "shift_id", required=True),
            data.get("reason"),
        )
        return jsonify({"time_entry": entry.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("mark absence")


@timekeeping_bp.post("/resume")
@require_auth
def resume_route():
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.resume_time_entry(
            _target_employee(data.get("employee")),
            coerce_int(data.get("shift_id"), "shift_id", required=True),
            coerce_datetime(data.get("clock_in_time"), "clock_in_time"),
        )
        return jsonify({"time_entry": entry.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("resume time entry")


@timekeeping_bp.get("/status")
@require_auth
def status_route():
    try:
        return jsonify(timekeeping_service.get_current_status(_target_employee(request.args.get("employee"))))
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.get("/absences")
@require_auth
def absences_route():
    try:
        entries = timekeeping_service.get_absences(_target_employee(request.args.get("employee")))
        return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.get("/employee/<employee>")
@require_auth
def employee_entries_route(employee: str):
    page, per_page = page_args(request.args)
    try:
        return jsonify(
            timekeeping_service.get_time_entries_by_employee(_target_employee(employee), page=page, per_page=per_page)
        )
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.get("/shift/<int:shift_id>")
@require_auth
@require_admin
def shift_entries_route(shift_id: int):
    page, per_page = page_args(request.args)
    try:
        return jsonify(timekeeping_service.get_time_entries_by_shift(shift_id, page=page, per_page=per_page))
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.get("/shift/<int:shift_id>/invalid")
@require_auth
@require_admin
def invalid_entries_route(shift_id: int):
    try:
        entries = timekeeping_service.find_invalid_time_entries(shift_id)
        return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.get("/<int:time_entry_id>")
@require_auth
def get_time_entry_route(time_entry_id: int):
    try:
        return jsonify({"time_entry": _owned_entry(time_entry_id).to_dict()})
    except ShiftClockError as e:
        return error_response(e)


@timekeeping_bp.patch("/<int:time_entry_id>")
@require_auth
@require_admin
def update_time_entry_route(time_entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.update_time_entry_admin(time_entry_id, data, g.request_context.user_id)
        return jsonify({"time_entry": entry.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("update time entry")


@timekeeping_bp.delete("/<int:time_entry_id>")
@require_auth
@require_admin
def delete_time_entry_route(time_entry_id: int):
    try:
        timekeeping_service.delete_time_entry(time_entry_id)
        return "", 204
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete time entry")
