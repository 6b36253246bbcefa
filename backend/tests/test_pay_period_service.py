"""
Pay period tests.

Lifecycle (Open -> Closed -> Processed), shift binding, period payroll,
per-employee summaries and the pay period scheduler.
"""

from datetime import date, datetime, timedelta

import pytest

from shiftclock.models import PayPeriodEmployee
from shiftclock.models.payroll import PAY_PERIOD_CLOSED, PAY_PERIOD_OPEN, PAY_PERIOD_PROCESSED
from shiftclock.services import (
    employee_pay_period_service,
    pay_period_service,
    scheduler_service,
    shift_service,
    timekeeping_service,
)
from shiftclock.validation import ConflictError, InvalidStateError, ValidationError


MARCH_START = date(2024, 3, 4)
MARCH_END = date(2024, 3, 17)


def work(employee, shift, day, start_hour, end_hour):
    """Clock the employee in and out on `shift` for the given hours."""
    entry = timekeeping_service.clock_in(
        employee.id, datetime(day.year, day.month, day.day, start_hour), shift_id=shift.id
    ).entry
    return timekeeping_service.clock_out(
        entry.id, datetime(day.year, day.month, day.day, end_hour), "Worked as scheduled"
    )


@pytest.fixture
def period(admin):
    return pay_period_service.create_pay_period(MARCH_START, MARCH_END, admin.id)


class TestCreatePayPeriod:

    def test_create_binds_unassigned_shifts_in_range(self, make_shift, admin):
        inside = make_shift(day=date(2024, 3, 8))
        outside = make_shift(day=date(2024, 3, 25))

        period = pay_period_service.create_pay_period(MARCH_START, MARCH_END, admin.id)

        assert period.status == PAY_PERIOD_OPEN
        assert shift_service.get_shift(inside.id).pay_period_id == period.id
        assert shift_service.get_shift(outside.id).pay_period_id is None
        assert period.to_dict()["shift_ids"] == [inside.id]

    def test_accepts_iso_strings(self, admin):
        period = pay_period_service.create_pay_period("2024-03-04", "2024-03-17", admin.id)

        assert (period.start_date, period.end_date) == (MARCH_START, MARCH_END)

    def test_start_must_precede_end(self, admin):
        with pytest.raises(ValidationError) as exc:
            pay_period_service.create_pay_period(MARCH_END, MARCH_START, admin.id)
        assert exc.value.code == "INVALID_RANGE"

        with pytest.raises(ValidationError):
            pay_period_service.create_pay_period(MARCH_START, MARCH_START, admin.id)

    def test_overlap_rejected(self, period, admin):
        with pytest.raises(ConflictError) as exc:
            pay_period_service.create_pay_period(date(2024, 3, 10), date(2024, 3, 24), admin.id)
        assert exc.value.code == "OVERLAPPING_PERIOD"

    def test_shared_boundary_day_overlaps(self, period, admin):
        with pytest.raises(ConflictError):
            pay_period_service.create_pay_period(MARCH_END, date(2024, 3, 31), admin.id)

    def test_adjacent_periods_allowed(self, period, admin):
        following = pay_period_service.create_pay_period(date(2024, 3, 18), date(2024, 3, 31), admin.id)

        assert [p.id for p in pay_period_service.list_pay_periods()] == [following.id, period.id]


class TestCloseAndProcess:

    def test_close(self, period):
        closed = pay_period_service.close_pay_period(period.id)

        assert closed.status == PAY_PERIOD_CLOSED
        assert [p.id for p in pay_period_service.list_pay_periods(PAY_PERIOD_CLOSED)] == [period.id]

    def test_close_twice(self, period):
        pay_period_service.close_pay_period(period.id)

        with pytest.raises(InvalidStateError) as exc:
            pay_period_service.close_pay_period(period.id)
        assert exc.value.code == "INVALID_PAY_PERIOD_STATE"

    def test_process_requires_closed(self, period):
        with pytest.raises(InvalidStateError) as exc:
            pay_period_service.process_pay_period(period.id)
        assert exc.value.code == "INVALID_PAY_PERIOD_STATE"

    def test_process_uses_per_shift_overtime(self, period, make_shift):
        make_shift(day=date(2024, 3, 5), start="09:00", end="17:00")
        make_shift(day=date(2024, 3, 6), start="20:00", end="08:00", type_name="Night")
        pay_period_service.close_pay_period(period.id)

        calc = pay_period_service.process_pay_period(period.id, hourly_rate=20)

        assert calc.total_hours == 20
        assert calc.regular_hours == 16
        assert calc.overtime_hours == 4
        assert calc.regular_pay == 320
        assert calc.overtime_pay == 120
        assert calc.total_pay == 440
        assert pay_period_service.get_pay_period(period.id).status == PAY_PERIOD_PROCESSED

    def test_process_is_one_shot(self, period):
        pay_period_service.close_pay_period(period.id)
        pay_period_service.process_pay_period(period.id)

        with pytest.raises(InvalidStateError):
            pay_period_service.process_pay_period(period.id)

    def test_process_rejects_shift_outside_range(self, db_session, period, make_shift):
        stray = make_shift(day=date(2024, 3, 8))
        stray.date = date(2024, 3, 30)
        db_session.commit()
        pay_period_service.close_pay_period(period.id)

        assert [s.id for s in pay_period_service.validate_pay_period_shifts(period.id)] == [stray.id]
        with pytest.raises(ValidationError) as exc:
            pay_period_service.process_pay_period(period.id)
        assert exc.value.code == "SHIFT_OUTSIDE_PERIOD"
        assert pay_period_service.get_pay_period(period.id).status == PAY_PERIOD_CLOSED


class TestEmployeePayCalculation:

    def _work_week(self, make_shift, employee, hours_per_day, start_day=MARCH_START, days=5):
        for i in range(days):
            day = start_day + timedelta(days=i)
            shift = make_shift(day=day, start="08:00", end="20:00")
            work(employee, shift, day, 8, 8 + hours_per_day)

    def test_requires_closed_or_processed(self, period):
        with pytest.raises(InvalidStateError) as exc:
            pay_period_service.calculate_employee_pay_period(period.id)
        assert exc.value.code == "INVALID_PAY_PERIOD_STATE"

    def test_weekly_overtime_with_employee_rate_and_deductions(self, db_session, period, make_shift, employee):
        employee.hourly_rate = 25.0
        db_session.commit()
        self._work_week(make_shift, employee, 9)
        pay_period_service.close_pay_period(period.id)

        rows = pay_period_service.calculate_employee_pay_period(period.id, deductions_config={"tax_rate": 0.1})

        assert len(rows) == 1
        row = rows[0]
        assert row.employee_id == employee.id
        assert row.total_hours == 45
        assert row.regular_hours == 40
        assert row.overtime_hours == 5
        assert row.hourly_rate == 25.0
        assert row.total_pay == 1187.5
        assert row.deductions == 118.75
        assert row.net_pay == 1068.75

    def test_overtime_is_per_week(self, period, make_shift, employee):
        self._work_week(make_shift, employee, 9)
        self._work_week(make_shift, employee, 6, start_day=date(2024, 3, 11))
        pay_period_service.close_pay_period(period.id)

        row = pay_period_service.calculate_employee_pay_period(period.id)[0]

        assert row.total_hours == 75
        assert row.overtime_hours == 5
        assert row.hourly_rate == 20.0
        assert row.deductions == 0
        assert row.net_pay == row.total_pay

    def test_argument_rate_used_when_employee_has_none(self, period, make_shift, employee):
        self._work_week(make_shift, employee, 8, days=1)
        pay_period_service.close_pay_period(period.id)

        row = pay_period_service.calculate_employee_pay_period(period.id, hourly_rate=30)[0]

        assert row.total_pay == 240

    def test_rerun_replaces_rows(self, db_session, period, make_shift, employee):
        self._work_week(make_shift, employee, 8, days=2)
        pay_period_service.close_pay_period(period.id)

        pay_period_service.calculate_employee_pay_period(period.id)
        pay_period_service.calculate_employee_pay_period(period.id)

        assert db_session.query(PayPeriodEmployee).filter_by(pay_period_id=period.id).count() == 1

    def test_open_entries_are_ignored(self, period, make_shift, employee):
        shift = make_shift()
        timekeeping_service.clock_in(employee.id, datetime(2024, 3, 4, 9), shift_id=shift.id)
        pay_period_service.close_pay_period(period.id)

        assert pay_period_service.calculate_employee_pay_period(period.id) == []

    @pytest.mark.parametrize("deductions", [
        "20%",
        [0.2],
        {"tax_rate": "x"},
        {"tax_rate": -0.1},
        {"benefits": True},
        {"bonus": 10},
    ])
    def test_invalid_deductions_rejected(self, db_session, period, make_shift, employee, deductions):
        self._work_week(make_shift, employee, 8, days=1)
        pay_period_service.close_pay_period(period.id)

        with pytest.raises(ValidationError):
            pay_period_service.calculate_employee_pay_period(period.id, deductions_config=deductions)

        assert db_session.query(PayPeriodEmployee).count() == 0

    def test_string_deduction_amounts_are_coerced(self, period, make_shift, employee):
        self._work_week(make_shift, employee, 8, days=1)
        pay_period_service.close_pay_period(period.id)

        row = pay_period_service.calculate_employee_pay_period(
            period.id, deductions_config={"tax_rate": "0.25", "benefits": "10"}
        )[0]

        assert row.total_pay == 160
        assert row.deductions == 50
        assert row.net_pay == 110


class TestEmployeePayPeriodService:

    def test_create_with_per_entry_cap(self, period, make_shift, employee):
        long_day = make_shift(day=date(2024, 3, 5), start="08:00", end="18:00")
        short_day = make_shift(day=date(2024, 3, 6), start="08:00", end="14:00")
        work(employee, long_day, date(2024, 3, 5), 8, 18)
        work(employee, short_day, date(2024, 3, 6), 8, 14)

        row = employee_pay_period_service.create_employee_pay_period(period.id, "EMP-0001", deductions=40)

        assert row.regular_hours == 14
        assert row.overtime_hours == 2
        assert row.total_hours == 16
        assert row.total_pay == 340
        assert row.net_pay == 300

    def test_duplicate(self, period, employee):
        employee_pay_period_service.create_employee_pay_period(period.id, employee.id)

        with pytest.raises(ConflictError) as exc:
            employee_pay_period_service.create_employee_pay_period(period.id, employee.id)
        assert exc.value.code == "DUPLICATE_EMPLOYEE_PAY_PERIOD"

    def test_update_recomputes_pay(self, period, employee):
        row = employee_pay_period_service.create_employee_pay_period(period.id, employee.id, hourly_rate=10)

        updated = employee_pay_period_service.update_employee_pay_period(
            row.id, {"regular_hours": 40, "overtime_hours": 2}
        )

        assert updated.total_hours == 42
        assert updated.total_pay == 430
        assert updated.net_pay == 430

    def test_update_rejects_unknown_field(self, period, employee):
        row = employee_pay_period_service.create_employee_pay_period(period.id, employee.id)

        with pytest.raises(ValidationError):
            employee_pay_period_service.update_employee_pay_period(row.id, {"net_pay": 1_000_000})

    def test_list_and_delete(self, period, employee):
        row = employee_pay_period_service.create_employee_pay_period(period.id, employee.id)

        assert [r.id for r in employee_pay_period_service.list_by_pay_period(period.id)] == [row.id]
        assert [r.id for r in employee_pay_period_service.list_by_employee("EMP-0001")] == [row.id]

        employee_pay_period_service.delete_employee_pay_period(row.id)

        assert employee_pay_period_service.list_by_pay_period(period.id) == []


class TestScheduler:

    def test_first_period_aligned_to_anchor(self, db_session):
        start, end = scheduler_service.next_pay_period_dates(today=date(2024, 1, 20))

        assert (start, end) == (date(2024, 1, 15), date(2024, 1, 28))

    def test_continues_after_latest_period(self, admin):
        pay_period_service.create_pay_period(date(2024, 1, 15), date(2024, 1, 28), admin.id)

        period = scheduler_service.create_next_pay_period(today=date(2024, 3, 1))

        assert (period.start_date, period.end_date) == (date(2024, 1, 29), date(2024, 2, 11))
        assert period.created_by_id == admin.id

    def test_requires_an_admin(self, employee):
        with pytest.raises(ValidationError) as exc:
            scheduler_service.create_next_pay_period(today=date(2024, 1, 20))
        assert exc.value.code == "NO_ADMIN"
