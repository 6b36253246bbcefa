# Overview: Periodic pay period rollover; invoked by `flask pay-periods create-next` from cron.

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..models import PayPeriod, User
from ..models.auth import ROLE_ADMIN, USER_ACTIVE
from ..validation import ValidationError
from shiftclock.time_utils import parse_iso_date, utcnow
from .pay_period_service import create_pay_period


def next_pay_period_dates(today: date | None = None) -> tuple[date, date]:
    """
    Dates of the next pay period to create.

    Continues the day after the latest existing period. With no periods
    yet, returns the period containing `today`, counted in fixed-length
    steps from PAY_PERIOD_ANCHOR_DATE.
    """
    length = int(current_app.config.get("PAY_PERIOD_LENGTH_DAYS", 14))
    today = today or utcnow().date()

    latest_end = db.session.query(db.func.max(PayPeriod.end_date)).scalar()
    if latest_end is not None:
        start = latest_end + timedelta(days=1)
    else:
        anchor = parse_iso_date(str(current_app.config.get("PAY_PERIOD_ANCHOR_DATE", "2024-01-01")))
        start = anchor + timedelta(days=((today - anchor).days // length) * length)
    return start, start + timedelta(days=length - 1)


def system_user_id() -> int:
    admin = (
        db.session.query(User)
        .filter_by(role=ROLE_ADMIN, status=USER_ACTIVE)
        .order_by(User.id.asc())
        .first()
    )
    if not admin:
        raise ValidationError("No active administrator to own the pay period", code="NO_ADMIN")
    return admin.id


def create_next_pay_period(created_by: int | None = None, today: date | None = None) -> PayPeriod:
    start, end = next_pay_period_dates(today)
    period = create_pay_period(start, end, created_by or system_user_id())
    current_app.logger.info("Scheduled pay period %s created (%s - %s)", period.id, start, end)
    return period
