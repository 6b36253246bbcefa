from __future__ import annotations

from ..extensions import db
from shiftclock.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
VALID_ROLES = {ROLE_ADMIN, ROLE_EMPLOYEE}

USER_ACTIVE = "Active"
USER_INACTIVE = "Inactive"


class User(db.Model):
    """
    Employee / administrator account.

    WHY: Local stand-in for the identity provider. The engine only needs
    identity, active status, the applications a user manages (assignment
    eligibility) and optional per-employee pay rates.

    employee_code is the external identifier ("EMP-1234") printed on badges
    and used by kiosks; id is the internal key everything references.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    employee_code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    # admin | employee
    role = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE)
    # Active | Inactive
    status = db.Column(db.String(16), nullable=False, default=USER_ACTIVE)

    # Applications this user manages; must overlap Shift.application_managed for assignment
    applications_managed = db.Column(db.JSON, nullable=False, default=list)

    # Optional per-employee rates (fall back to caller/config defaults)
    hourly_rate = db.Column(db.Float, nullable=True)
    overtime_rate = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == USER_ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "employee_code": self.employee_code,
            "role": self.role,
            "status": self.status,
            "applications_managed": list(self.applications_managed or []),
            "hourly_rate": self.hourly_rate,
            "overtime_rate": self.overtime_rate,
            "created_at": to_utc_z(self.created_at),
        }
