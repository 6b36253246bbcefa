# Overview: Flask API routes for per-employee pay period summaries.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import employee_pay_period_service
from ..validation import ShiftClockError, ValidationError, coerce_int, require_fields
from .responses import error_response, internal_error


employee_pay_periods_bp = Blueprint("employee_pay_periods", __name__, url_prefix="/api/employee-pay-periods")


@employee_pay_periods_bp.get("")
@require_auth
@require_admin
def list_employee_pay_periods_route():
    pay_period_id = request.args.get("pay_period_id", type=int)
    employee = request.args.get("employee")
    try:
        if pay_period_id:
            rows = employee_pay_period_service.list_by_pay_period(pay_period_id)
        elif employee:
            rows = employee_pay_period_service.list_by_employee(employee)
        else:
            raise ValidationError("pay_period_id or employee required", code="MISSING_FIELD")
        return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})
    except ShiftClockError as e:
        return error_response(e)


@employee_pay_periods_bp.get("/mine")
@require_auth
def my_employee_pay_periods_route():
    rows = employee_pay_period_service.list_by_employee(g.request_context.user_id)
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)})


@employee_pay_periods_bp.get("/<int:employee_pay_period_id>")
@require_auth
@require_admin
def get_employee_pay_period_route(employee_pay_period_id: int):
    try:
        row = employee_pay_period_service.get_employee_pay_period(employee_pay_period_id)
        return jsonify({"employee_pay_period": row.to_dict()})
    except ShiftClockError as e:
        return error_response(e)


@employee_pay_periods_bp.post("")
@require_auth
@require_admin
def create_employee_pay_period_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "pay_period_id", "employee")
        row = employee_pay_period_service.create_employee_pay_period(
            coerce_int(data["pay_period_id"], "pay_period_id", required=True),
            data["employee"],
            hourly_rate=data.get("hourly_rate"),
            overtime_rate=data.get("overtime_rate"),
            deductions=data.get("deductions", 0),
        )
        return jsonify({"employee_pay_period": row.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create employee pay period")


@employee_pay_periods_bp.patch("/<int:employee_pay_period_id>")
@require_auth
@require_admin
def update_employee_pay_period_route(employee_pay_period_id: int):
    data = request.get_json(silent=True) or {}
    try:
        row = employee_pay_period_service.update_employee_pay_period(employee_pay_period_id, data)
        return jsonify({"employee_pay_period": row.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("update employee pay period")


@employee_pay_periods_bp.delete("/<int:employee_pay_period_id>")
@require_auth
@require_admin
def delete_employee_pay_period_route(employee_pay_period_id: int):
    try:
        employee_pay_period_service.delete_employee_pay_period(employee_pay_period_id)
        return "", 204
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete employee pay period")
