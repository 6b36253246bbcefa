# Overview: Flask API routes for the shift type registry.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_admin
from ..services import shift_type_service
from ..validation import ShiftClockError
from .responses import error_response, internal_error


shift_types_bp = Blueprint("shift_types", __name__, url_prefix="/api/shift-types")


@shift_types_bp.get("")
@require_auth
def list_shift_types_route():
    shift_types = shift_type_service.list_shift_types()
    return jsonify({"items": [st.to_dict() for st in shift_types], "count": len(shift_types)})


@shift_types_bp.get("/<int:shift_type_id>")
@require_auth
def get_shift_type_route(shift_type_id: int):
    try:
        return jsonify({"shift_type": shift_type_service.get_shift_type(shift_type_id).to_dict()})
    except ShiftClockError as e:
        return error_response(e)


@shift_types_bp.post("")
@require_auth
@require_admin
def create_shift_type_route():
    data = request.get_json(silent=True) or {}
    try:
        shift_type = shift_type_service.create_shift_type(data.get("name"), data.get("description"))
        return jsonify({"shift_type": shift_type.to_dict()}), 201
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("create shift type")


@shift_types_bp.patch("/<int:shift_type_id>")
@require_auth
@require_admin
def update_shift_type_route(shift_type_id: int):
    data = request.get_json(silent=True) or {}
    try:
        shift_type = shift_type_service.update_shift_type(
            shift_type_id,
            name=data.get("name"),
            description=data.get("description"),
        )
        return jsonify({"shift_type": shift_type.to_dict()})
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("update shift type")


@shift_types_bp.delete("/<int:shift_type_id>")
@require_auth
@require_admin
def delete_shift_type_route(shift_type_id: int):
    try:
        shift_type_service.delete_shift_type(shift_type_id)
        return "", 204
    except ShiftClockError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete shift type")
