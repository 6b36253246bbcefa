from __future__ import annotations
from datetime import date, datetime

from shiftclock.time_utils import is_valid_hhmm, parse_iso_date, parse_iso_datetime

from typing import Any


class ShiftClockError(ValueError):
    """
    Base class for domain failures surfaced to callers.

    Every failure carries a coarse `kind` (what sort of problem) and a
    specific `code` (which rule was violated). Routes serialize both.
    """
    kind = "Error"
    status_code = 400
    default_code = "ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"kind": self.kind, "code": self.code, "message": self.message}


class NotFoundError(ShiftClockError):
    """404-level: referenced entity does not exist."""
    kind = "NotFound"
    status_code = 404
    default_code = "NOT_FOUND"


class InvalidStateError(ShiftClockError):
    """409-level: entity is in the wrong status for the requested transition."""
    kind = "InvalidState"
    status_code = 409
    default_code = "INVALID_STATE"


class ConflictError(ShiftClockError):
    """409-level business rule conflict (overlap, duplicate, double clock-in)."""
    kind = "Conflict"
    status_code = 409
    default_code = "CONFLICT"


class ValidationError(ShiftClockError):
    """400-level input problem."""
    kind = "ValidationError"
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AccessDeniedError(ShiftClockError):
    """403-level: application-management mismatch or missing privilege."""
    kind = "AccessDenied"
    status_code = 403
    default_code = "ACCESS_DENIED"


# =============================================================================
# REQUEST PAYLOAD COERCION
# =============================================================================

def require_fields(payload: dict, *names: str) -> None:
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", code="MISSING_FIELD")


def coerce_int(value: Any, field: str, *, required: bool = False) -> int | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", code="MISSING_FIELD")
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def coerce_float(value: Any, field: str, *, required: bool = False) -> float | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", code="MISSING_FIELD")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if number < 0:
        raise ValidationError(f"{field} must not be negative")
    return number


def coerce_datetime(value: Any, field: str, *, required: bool = False) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", code="MISSING_FIELD")
        return None
    try:
        dt = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    return dt


def coerce_date(value: Any, field: str, *, required: bool = False) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", code="MISSING_FIELD")
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def coerce_hhmm(value: Any, field: str, *, required: bool = False) -> str | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required", code="MISSING_FIELD")
        return None
    value = str(value).strip()
    if not is_valid_hhmm(value):
        raise ValidationError(f"{field} must be in HH:MM format", code="INVALID_TIME")
    return value


def coerce_str_list(value: Any, field: str) -> list[str]:
    """Accept a list of strings or a comma-separated string; strips and drops blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple, set)):
        raise ValidationError(f"{field} must be a list of strings")
    return [str(v).strip() for v in value if str(v).strip()]


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    # fallback: truthiness
    return bool(value)


DEDUCTION_KEYS = ("tax_rate", "benefits", "custom_deductions")


def coerce_deductions_config(value: Any) -> dict | None:
    """Validate a deductions payload; None or {} means no deductions."""
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("deductions must be an object")
    unknown = set(value) - set(DEDUCTION_KEYS)
    if unknown:
        raise ValidationError(f"Unknown deduction fields: {', '.join(sorted(unknown))}")
    return {key: coerce_float(value[key], key) for key in DEDUCTION_KEYS if key in value}
