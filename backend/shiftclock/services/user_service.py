# Overview: Identity provider and employee-code resolver used by the scheduling core.

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import User
from ..models.auth import USER_ACTIVE, VALID_ROLES, ROLE_EMPLOYEE
from ..validation import ConflictError, NotFoundError, ValidationError


def find_user(user_id: int | None) -> User | None:
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def get_user(user_id: int) -> User:
    user = find_user(user_id)
    if not user:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return user


def resolve_employee_id(identifier: int | str) -> int:
    """
    Map an internal id or an external employee code ("EMP-1234") to the internal id.

    Integers and all-digit strings are treated as internal ids; anything else
    is looked up by employee_code.
    """
    if identifier is None or (isinstance(identifier, str) and not identifier.strip()):
        raise ValidationError("employee identifier is required", code="MISSING_FIELD")

    if isinstance(identifier, int) and not isinstance(identifier, bool):
        user = find_user(identifier)
    else:
        value = str(identifier).strip()
        if value.isdigit():
            user = find_user(int(value))
        else:
            user = db.session.query(User).filter_by(employee_code=value).first()

    if not user:
        raise NotFoundError("Employee not found", code="EMPLOYEE_NOT_FOUND")
    return user.id


def manages_any(user: User, applications: Iterable[str]) -> bool:
    managed = set(user.applications_managed or [])
    return bool(managed & set(applications or []))


def list_active_users_managing(applications: Iterable[str]) -> list[User]:
    """Active users whose managed applications intersect `applications`."""
    wanted = set(applications or [])
    if not wanted:
        return []
    users = (
        db.session.query(User)
        .filter(User.status == USER_ACTIVE)
        .order_by(User.id.asc())
        .all()
    )
    return [u for u in users if manages_any(u, wanted)]


def create_user(
    *,
    name: str,
    email: str,
    employee_code: str | None = None,
    role: str = ROLE_EMPLOYEE,
    applications_managed: list[str] | None = None,
    hourly_rate: float | None = None,
    overtime_rate: float | None = None,
) -> User:
    if not name or not email:
        raise ValidationError("name and email are required", code="MISSING_FIELD")
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists", code="DUPLICATE_USER")
    if employee_code and db.session.query(User).filter_by(employee_code=employee_code).first():
        raise ConflictError("A user with this employee code already exists", code="DUPLICATE_USER")

    user = User(
        name=name,
        email=email,
        employee_code=employee_code,
        role=role,
        status=USER_ACTIVE,
        applications_managed=list(applications_managed or []),
        hourly_rate=hourly_rate,
        overtime_rate=overtime_rate,
    )
    db.session.add(user)
    db.session.commit()
    return user
