# Overview: System health endpoint.

import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import PayPeriod, Shift, ShiftType, User
from shiftclock.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Database connectivity plus row counts of the core tables."""
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "shift_types": db.session.query(ShiftType).count(),
            "shifts": db.session.query(Shift).count(),
            "pay_periods": db.session.query(PayPeriod).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


def check_shift_types_health() -> dict:
    """Degraded when the shift type registry has not been seeded."""
    try:
        count = db.session.query(ShiftType).count()
    except Exception:
        current_app.logger.exception("Shift type registry check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": "Shift type registry error"}
    if count == 0:
        return {"status": "degraded", "warning": "No shift types configured; run `flask system init`"}
    return {"status": "healthy", "details": {"shift_types": count}}


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()
    registry_health = check_shift_types_health()

    all_checks = [database_health, registry_health]
    if any(c["status"] == "unhealthy" for c in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(c["status"] == "degraded" for c in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {"database": database_health, "shift_types": registry_health},
    }, http_status
