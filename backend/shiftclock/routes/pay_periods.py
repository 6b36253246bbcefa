# Overview: Flask API routes for pay periods and payroll processing.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import pay_period_service, scheduler_service, timekeeping_service
from ..validation import ShiftClockError, coerce_bool, require_fields
from .responses import error_response, internal_error, page_args


pay_periods_bp = Blueprint("pay_periods", __name__, url_prefix="/api/pay-periods")


@pay_periods_bp.get("")
@require_auth
def list_pay_periods_route():
    try:
        periods = pay_period_service.list_pay_periods(request.args.get("status"))
        return jsonify({"items": [p.to_dict() for p in periods], "count": len(periods)})
    except ShiftClockError as e:
        return error_response(e)


@pay_periods_bp.post("")
@require_auth
@require_admin
def create_pay_period_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "start_date", "end_date")
        period = pay_period_service.create_pay_period(
            data["start_date"], data["end_date"], g.request_context.user_id
        )
        return jsonify({"pay_period": period.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create pay period")


@pay_periods_bp.post("/next")
@require_auth
@require_admin
def create_next_pay_period_route():
    try:
        period = scheduler_service.create_next_pay_period(created_by=g.request_context.user_id)
        return jsonify({"pay_period": period.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create next pay period")


@pay_periods_bp.get("/<int:pay_period_id>")
@require_auth
def get_pay_period_route(pay_period_id: int):
    include_shifts = coerce_bool(request.args.get("include_shifts", False))
    try:
        period = pay_period_service.get_pay_period(pay_period_id)
        return jsonify({"pay_period": period.to_dict(include_shifts=include_shifts)})
    except ShiftClockError as e:
        return error_response(e)


@pay_periods_bp.post("/<int:pay_period_id>/close")
@require_auth
@require_admin
def close_pay_period_route(pay_period_id: int):
    try:
        period = pay_period_service.close_pay_period(pay_period_id)
        return jsonify({"pay_period": period.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("close pay period")


@pay_periods_bp.post("/<int:pay_period_id>/process")
@require_auth
@require_admin
def process_pay_period_route(pay_period_id: int):
    data = request.get_json(silent=True) or {}
    try:
        calculation = pay_period_service.process_pay_period(
            pay_period_id,
            hourly_rate=data.get("hourly_rate"),
            overtime_rate=data.get("overtime_rate"),
        )
        period = pay_period_service.get_pay_period(pay_period_id)
        return jsonify({"pay_period": period.to_dict(), "payroll": calculation.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("process pay period")


@pay_periods_bp.post("/<int:pay_period_id>/calculate-employees")
@require_auth
@require_admin
def calculate_employees_route(pay_period_id: int):
    data = request.get_json(silent=True) or {}
    try:
        rows = pay_period_service.calculate_employee_pay_period(
            pay_period_id,
            hourly_rate=data.get("hourly_rate"),
            overtime_rate=data.get("overtime_rate"),
            deductions_config=data.get("deductions"),
        )
        return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("calculate employee pay")


@pay_periods_bp.get("/<int:pay_period_id>/shifts")
@require_auth
@require_admin
def pay_period_shifts_route(pay_period_id: int):
    try:
        shifts = pay_period_service.get_pay_period_shifts(pay_period_id)
        return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)})
    except ShiftClockError as e:
        return error_response(e)


@pay_periods_bp.get("/<int:pay_period_id>/invalid-shifts")
@require_auth
@require_admin
def pay_period_invalid_shifts_route(pay_period_id: int):
    try:
        shifts = pay_period_service.validate_pay_period_shifts(pay_period_id)
        return jsonify({"items": [s.to_dict() for s in shifts], "count": len(shifts)})
    except ShiftClockError as e:
        return error_response(e)


@pay_periods_bp.get("/<int:pay_period_id>/time-entries")
@require_auth
@require_admin
def pay_period_time_entries_route(pay_period_id: int):
    page, per_page = page_args(request.args)
    try:
        pay_period_service.get_pay_period(pay_period_id)
        return jsonify(
            timekeeping_service.get_time_entries_by_pay_period(pay_period_id, page=page, per_page=per_page)
        )
    except ShiftClockError as e:
        return error_response(e)
