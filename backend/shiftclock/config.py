# backend/shiftclock/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shiftclock.sqlite3 by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shiftclock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Payroll defaults (used when neither the caller nor the employee record supplies a rate)
    DEFAULT_HOURLY_RATE = float(os.environ.get("DEFAULT_HOURLY_RATE", "20"))
    DEFAULT_OVERTIME_RATE = float(os.environ.get("DEFAULT_OVERTIME_RATE", "1.5"))
    SHIFT_OVERTIME_THRESHOLD_HOURS = float(os.environ.get("SHIFT_OVERTIME_THRESHOLD_HOURS", "8"))
    WEEKLY_OVERTIME_THRESHOLD_HOURS = float(os.environ.get("WEEKLY_OVERTIME_THRESHOLD_HOURS", "40"))

    # Temporary shifts synthesized at clock-in
    TEMP_SHIFT_HOURS = int(os.environ.get("TEMP_SHIFT_HOURS", "8"))

    # Pay period scheduler (bi-weekly periods counted from a Monday anchor)
    PAY_PERIOD_LENGTH_DAYS = int(os.environ.get("PAY_PERIOD_LENGTH_DAYS", "14"))
    PAY_PERIOD_ANCHOR_DATE = os.environ.get("PAY_PERIOD_ANCHOR_DATE", "2024-01-01")

    NOTIFICATIONS_ENABLED = os.environ.get("NOTIFICATIONS_ENABLED", "1") == "1"

    # Browser origins allowed to call the API (comma-separated)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    )
