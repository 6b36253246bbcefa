# Overview: Service-layer operations for the shift type registry.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Shift, ShiftType
from ..models.scheduling import SHIFT_TYPE_NAMES
from ..validation import ConflictError, NotFoundError, ValidationError


DEFAULT_DESCRIPTIONS = {
    "Morning": "Morning shift",
    "Afternoon": "Afternoon shift",
    "Night": "Overnight shift",
    "PRN": "As-needed (pro re nata) shift",
    "VOL": "Volunteer shift",
    "WEEKEND": "Weekend shift",
    "HOLIDAY": "Holiday shift",
    "TEMPSHIFT": "Temporary shift created at clock-in",
}


def validate_name(name: str) -> None:
    if name not in SHIFT_TYPE_NAMES:
        raise ValidationError(
            f"Invalid shift type name '{name}'. Must be one of: {', '.join(SHIFT_TYPE_NAMES)}",
            code="INVALID_SHIFT_TYPE_NAME",
        )


def _is_referenced(shift_type_id: int) -> bool:
    return db.session.query(Shift.id).filter_by(shift_type_id=shift_type_id).first() is not None


def get_shift_type(shift_type_id: int) -> ShiftType:
    shift_type = db.session.get(ShiftType, shift_type_id)
    if not shift_type:
        raise NotFoundError("Shift type not found", code="SHIFT_TYPE_NOT_FOUND")
    return shift_type


def list_shift_types() -> list[ShiftType]:
    return db.session.query(ShiftType).order_by(ShiftType.name.asc()).all()


def create_shift_type(name: str, description: str | None = None) -> ShiftType:
    validate_name(name)
    if db.session.query(ShiftType).filter_by(name=name).first():
        raise ConflictError("Shift type already exists", code="DUPLICATE_SHIFT_TYPE")

    shift_type = ShiftType(name=name, description=(description or "").strip() or None)
    db.session.add(shift_type)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Shift type already exists", code="DUPLICATE_SHIFT_TYPE")
    return shift_type


def update_shift_type(shift_type_id: int, *, name: str | None = None, description: str | None = None) -> ShiftType:
    """
    Rename and/or re-describe a shift type.

    A shift type referenced by shifts keeps its name; only its description
    may change.
    """
    shift_type = get_shift_type(shift_type_id)

    if name and name != shift_type.name:
        validate_name(name)
        if db.session.query(ShiftType).filter_by(name=name).first():
            raise ConflictError("Another shift type with this name already exists", code="DUPLICATE_SHIFT_TYPE")
        if _is_referenced(shift_type.id):
            raise ConflictError("Cannot rename a shift type that is referenced by shifts", code="SHIFT_TYPE_IN_USE")
        shift_type.name = name

    if description is not None:
        shift_type.description = description.strip() or None

    db.session.commit()
    return shift_type


def delete_shift_type(shift_type_id: int) -> None:
    shift_type = get_shift_type(shift_type_id)
    if _is_referenced(shift_type.id):
        raise ConflictError("Cannot delete shift type with associated shifts", code="SHIFT_TYPE_IN_USE")
    db.session.delete(shift_type)
    db.session.commit()


def get_or_create_shift_type(name: str) -> ShiftType:
    """
    Fetch a shift type by name, creating it when missing.

    The insert commits on its own. A concurrent caller that loses the race
    on the unique name rolls back and reads the winner's row.
    Call with no pending changes in the session.
    """
    validate_name(name)
    shift_type = db.session.query(ShiftType).filter_by(name=name).first()
    if shift_type:
        return shift_type

    db.session.add(ShiftType(name=name, description=DEFAULT_DESCRIPTIONS.get(name)))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
    return db.session.query(ShiftType).filter_by(name=name).one()


def ensure_default_shift_types() -> list[ShiftType]:
    """Idempotently seed every known shift type name."""
    created = []
    existing = {st.name for st in db.session.query(ShiftType).all()}
    for name in SHIFT_TYPE_NAMES:
        if name in existing:
            continue
        shift_type = ShiftType(name=name, description=DEFAULT_DESCRIPTIONS.get(name))
        db.session.add(shift_type)
        created.append(shift_type)
    db.session.commit()
    return created
