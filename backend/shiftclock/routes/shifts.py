# Overview: Flask API routes for shifts; parses input and returns JSON responses.

"""
Shift Routes

SECURITY:
- Creating, assigning, approving, editing and deleting shifts is admin only.
- Any authenticated user may browse shifts and request an Open shift for
  themselves (request/pick use the caller's id, never a body field).
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import shift_service
from ..validation import ShiftClockError, coerce_bool, coerce_date, coerce_int, require_fields
from .responses import error_response, internal_error, page_args


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("")
@require_auth
def list_shifts_route():
    page, per_page = page_args(request.args)
    is_temporary = request.args.get("is_temporary")
    try:
        result = shift_service.list_shifts(
            status=request.args.get("status"),
            date_from=coerce_date(request.args.get("date_from"), "date_from"),
            date_to=coerce_date(request.args.get("date_to"), "date_to"),
            assigned_to_id=request.args.get("assigned_to_id", type=int),
            shift_type_id=request.args.get("shift_type_id", type=int),
            pay_period_id=request.args.get("pay_period_id", type=int),
            is_temporary=coerce_bool(is_temporary) if is_temporary is not None else None,
            page=page,
            per_page=per_page,
        )
        return jsonify(result)
    except ShiftClockError as e:
        return error_response(e)


@shifts_bp.get("/mine")
@require_auth
def my_shifts_route():
    shifts = shift_service.get_shifts_by_employee(g.request_context.user_id)
    return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)})


@shifts_bp.get("/employee/<employee>")
@require_auth
@require_admin
def employee_shifts_route(employee: str):
    try:
        shifts = shift_service.get_shifts_by_employee(employee)
        return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)})
    except ShiftClockError as e:
        return error_response(e)


@shifts_bp.get("/<int:shift_id>")
@require_auth
def get_shift_route(shift_id: int):
    try:
        return jsonify({"shift": shift_service.get_shift(shift_id).to_dict()})
    except ShiftClockError as e:
        return error_response(e)


@shifts_bp.post("")
@require_auth
@require_admin
def create_shift_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "shift_type_id", "date", "start_time", "end_time")
        shift = shift_service.create_shift(
            shift_type_id=data["shift_type_id"],
            date=data["date"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            created_by=g.request_context.user_id,
            application_managed=data.get("application_managed"),
            is_excess=coerce_bool(data.get("is_excess", False)),
            pay_period_id=coerce_int(data.get("pay_period_id"), "pay_period_id"),
        )
        return jsonify({"shift": shift.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create shift")


@shifts_bp.post("/bulk")
@require_auth
@require_admin
def create_multiple_shifts_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "shift_type_id", "start_date", "start_time", "end_time")
        shifts = shift_service.create_multiple_shifts(
            shift_type_id=data["shift_type_id"],
            start_date=data["start_date"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            created_by=g.request_context.user_id,
            application_managed=data.get("application_managed"),
            is_excess=coerce_bool(data.get("is_excess", False)),
            repeat_daily=coerce_bool(data.get("repeat_daily", False)),
            end_date=data.get("end_date"),
            count=data.get("count"),
        )
        return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create shifts")


@shifts_bp.post("/assign-all")
@require_auth
@require_admin
def assign_shift_to_all_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "shift_type_id", "date", "start_time", "end_time", "application_managed")
        shifts = shift_service.assign_shift_to_all(
            shift_type_id=data["shift_type_id"],
            date=data["date"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            created_by=g.request_context.user_id,
            application_managed=data["application_managed"],
            is_excess=coerce_bool(data.get("is_excess", False)),
        )
        return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("assign shift to all")


@shifts_bp.post("/<int:shift_id>/assign")
@require_auth
@require_admin
def assign_shift_route(shift_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user_id = coerce_int(data.get("user_id"), "user_id", required=True)
        shift = shift_service.assign_shift(shift_id, user_id)
        return jsonify({"shift": shift.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("assign shift")


@shifts_bp.post("/<int:shift_id>/request")
@shifts_bp.post("/<int:shift_id>/pick")
@require_auth
def request_shift_route(shift_id: int):
    try:
        shift = shift_service.request_shift_assignment(shift_id, g.request_context.user_id)
        return jsonify({"shift": shift.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("request shift")


@shifts_bp.post("/<int:shift_id>/approve")
@require_auth
@require_admin
def approve_shift_route(shift_id: int):
    try:
        return jsonify({"shift": shift_service.approve_shift_assignment(shift_id).to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("approve shift")


@shifts_bp.post("/<int:shift_id>/reject")
@require_auth
@require_admin
def reject_shift_route(shift_id: int):
    try:
        return jsonify({"shift": shift_service.reject_shift_assignment(shift_id).to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("reject shift")


@shifts_bp.patch("/<int:shift_id>")
@require_auth
@require_admin
def update_shift_route(shift_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify({"shift": shift_service.update_shift(shift_id, data).to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("update shift")


@shifts_bp.delete("/<int:shift_id>")
@require_auth
@require_admin
def delete_shift_route(shift_id: int):
    try:
        shift_service.delete_shift(shift_id)
        return "", 204
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete shift")
