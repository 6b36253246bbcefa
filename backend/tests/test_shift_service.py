"""
Shift lifecycle tests.

Covers creation, bulk creation, admin assignment, employee requests,
approval/rejection, admin maintenance and pay period binding.
"""

from datetime import date, datetime

import pytest

from shiftclock.models import Notification, Shift, TimeEntry
from shiftclock.models.scheduling import (
    SHIFT_ASSIGNED,
    SHIFT_OPEN,
    SHIFT_PENDING_APPROVAL,
    SHIFT_TYPE_TEMPSHIFT,
)
from shiftclock.models.timekeeping import ENTRY_ABSENT
from shiftclock.services import notification_service, pay_period_service, shift_service
from shiftclock.validation import (
    AccessDeniedError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


WORK_DAY = date(2024, 3, 4)


def _notifications(db_session, user, event=None):
    query = db_session.query(Notification).filter_by(user_id=user.id)
    if event:
        query = query.filter_by(event=event)
    return query.all()


class TestOverlap:

    def test_partial_overlap(self):
        assert shift_service.shifts_overlap("09:00", "17:00", "12:00", "20:00")
        assert shift_service.shifts_overlap("09:00", "17:00", "06:00", "10:00")

    def test_contained(self):
        assert shift_service.shifts_overlap("09:00", "17:00", "10:00", "11:00")
        assert shift_service.shifts_overlap("10:00", "11:00", "09:00", "17:00")

    def test_touching_shifts_do_not_overlap(self):
        assert not shift_service.shifts_overlap("09:00", "17:00", "17:00", "20:00")
        assert not shift_service.shifts_overlap("09:00", "17:00", "06:00", "09:00")

    def test_overnight(self):
        assert shift_service.shifts_overlap("22:00", "06:00", "23:00", "02:00")


class TestCreateShift:

    def test_create_open_shift(self, make_shift, admin):
        shift = make_shift()

        assert shift.status == SHIFT_OPEN
        assert shift.assigned_to_id is None
        assert shift.created_by_id == admin.id
        assert shift.application_managed == ["kiosk"]
        assert shift.pay_period_id is None

    def test_invalid_shift_type(self, db_session, admin):
        with pytest.raises(ValidationError) as exc:
            shift_service.create_shift(9999, WORK_DAY, "09:00", "17:00", admin.id)
        assert exc.value.code == "INVALID_SHIFT_TYPE"

    def test_invalid_time_format(self, make_shift):
        with pytest.raises(ValidationError) as exc:
            make_shift(start="9am")
        assert exc.value.code == "INVALID_TIME"

    def test_binds_to_open_period_covering_date(self, make_shift, admin):
        period = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 17), admin.id)

        inside = make_shift(day=date(2024, 3, 10))
        outside = make_shift(day=date(2024, 3, 20))

        assert inside.pay_period_id == period.id
        assert outside.pay_period_id is None

    def test_explicit_period_must_contain_date(self, make_shift, admin):
        period = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 17), admin.id)

        with pytest.raises(ValidationError) as exc:
            make_shift(day=date(2024, 3, 20), pay_period_id=period.id)
        assert exc.value.code == "SHIFT_OUTSIDE_PERIOD"

    def test_closed_period_rejects_new_shift(self, make_shift, admin):
        period = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 17), admin.id)
        pay_period_service.close_pay_period(period.id)

        with pytest.raises(InvalidStateError) as exc:
            make_shift(pay_period_id=period.id)
        assert exc.value.code == "PAY_PERIOD_LOCKED"


class TestCreateMultipleShifts:

    def test_repeat_daily(self, db_session, admin, shift_types):
        shifts = shift_service.create_multiple_shifts(
            shift_types["Morning"].id,
            date(2024, 3, 4),
            "09:00",
            "17:00",
            admin.id,
            ["kiosk"],
            repeat_daily=True,
            end_date=date(2024, 3, 6),
        )

        assert [s.date for s in shifts] == [date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6)]
        assert all(s.status == SHIFT_OPEN for s in shifts)

    def test_count_on_single_day(self, db_session, admin, shift_types):
        shifts = shift_service.create_multiple_shifts(
            shift_types["PRN"].id, WORK_DAY, "08:00", "12:00", admin.id, count=4
        )

        assert len(shifts) == 4
        assert {s.date for s in shifts} == {WORK_DAY}

    def test_end_before_start(self, db_session, admin, shift_types):
        with pytest.raises(ValidationError) as exc:
            shift_service.create_multiple_shifts(
                shift_types["Morning"].id,
                date(2024, 3, 6),
                "09:00",
                "17:00",
                admin.id,
                repeat_daily=True,
                end_date=date(2024, 3, 4),
            )
        assert exc.value.code == "INVALID_RANGE"

    def test_each_shift_binds_to_its_own_period(self, db_session, admin, shift_types):
        period = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 5), admin.id)

        shifts = shift_service.create_multiple_shifts(
            shift_types["Morning"].id,
            date(2024, 3, 5),
            "09:00",
            "17:00",
            admin.id,
            repeat_daily=True,
            end_date=date(2024, 3, 6),
        )

        assert [s.pay_period_id for s in shifts] == [period.id, None]


class TestAssignShift:

    def test_assign_open_shift(self, db_session, make_shift, employee):
        shift = make_shift()

        result = shift_service.assign_shift(shift.id, employee.id)

        assert result.status == SHIFT_ASSIGNED
        assert result.assigned_to_id == employee.id
        notes = _notifications(db_session, employee, "shift.assigned")
        assert len(notes) == 1
        assert notes[0].context == {"shift_id": shift.id}

    def test_unknown_shift(self, db_session, employee):
        with pytest.raises(NotFoundError) as exc:
            shift_service.assign_shift(9999, employee.id)
        assert exc.value.code == "SHIFT_NOT_FOUND"

    def test_already_assigned(self, make_shift, employee, admin):
        shift = make_shift()
        shift_service.assign_shift(shift.id, employee.id)

        with pytest.raises(InvalidStateError) as exc:
            shift_service.assign_shift(shift.id, admin.id)
        assert exc.value.code == "SHIFT_NOT_OPEN"

    def test_unknown_user(self, make_shift):
        shift = make_shift()

        with pytest.raises(NotFoundError) as exc:
            shift_service.assign_shift(shift.id, 9999)
        assert exc.value.code == "USER_NOT_FOUND"

    def test_application_mismatch(self, make_shift, other_employee):
        shift = make_shift(apps=("kiosk",))

        with pytest.raises(AccessDeniedError):
            shift_service.assign_shift(shift.id, other_employee.id)

        assert shift_service.get_shift(shift.id).status == SHIFT_OPEN

    def test_user_without_applications(self, db_session, make_shift, employee):
        employee.applications_managed = []
        db_session.commit()
        shift = make_shift()

        with pytest.raises(AccessDeniedError):
            shift_service.assign_shift(shift.id, employee.id)

    def test_notification_failure_keeps_assignment(self, db_session, make_shift, employee, monkeypatch):
        shift = make_shift()

        def broken_notification(**kwargs):
            raise RuntimeError("notification store down")

        monkeypatch.setattr(notification_service, "Notification", broken_notification)

        result = shift_service.assign_shift(shift.id, employee.id)

        assert result.status == SHIFT_ASSIGNED
        assert _notifications(db_session, employee) == []
        assert shift_service.get_shift(shift.id).status == SHIFT_ASSIGNED


class TestAssignShiftToAll:

    def test_copies_for_every_active_manager(self, db_session, admin, employee, other_employee,
                                              inactive_employee, shift_types):
        copies = shift_service.assign_shift_to_all(
            shift_types["HOLIDAY"].id, WORK_DAY, "10:00", "14:00", admin.id, ["kiosk"]
        )

        assert {s.assigned_to_id for s in copies} == {admin.id, employee.id}
        assert all(s.status == SHIFT_ASSIGNED for s in copies)

        all_shifts = db_session.query(Shift).all()
        assert len(all_shifts) == 3
        parents = [s for s in all_shifts if s.assigned_to_id is None]
        assert len(parents) == 1
        assert parents[0].status == SHIFT_OPEN

        assert len(_notifications(db_session, employee, "shift.assigned")) == 1
        assert _notifications(db_session, inactive_employee) == []


class TestRequestAndApproval:

    def test_request_moves_to_pending(self, make_shift, employee):
        shift = make_shift()

        result = shift_service.request_shift_assignment(shift.id, employee.id)

        assert result.status == SHIFT_PENDING_APPROVAL
        assert result.assigned_to_id == employee.id

    def test_pick_open_shift_is_a_request(self, make_shift, employee):
        shift = make_shift()

        assert shift_service.pick_open_shift(shift.id, employee.id).status == SHIFT_PENDING_APPROVAL

    def test_request_non_open_shift(self, make_shift, employee, other_employee):
        shift = make_shift()
        shift_service.request_shift_assignment(shift.id, employee.id)

        with pytest.raises(InvalidStateError) as exc:
            shift_service.request_shift_assignment(shift.id, other_employee.id)
        assert exc.value.code == "SHIFT_NOT_OPEN"

    def test_overlapping_request(self, make_shift, employee):
        first = make_shift(start="09:00", end="17:00")
        shift_service.assign_shift(first.id, employee.id)
        second = make_shift(start="12:00", end="20:00")

        with pytest.raises(ConflictError) as exc:
            shift_service.request_shift_assignment(second.id, employee.id)
        assert exc.value.code == "OVERLAPPING_SHIFT"

    def test_back_to_back_request_allowed(self, make_shift, employee):
        first = make_shift(start="09:00", end="17:00")
        shift_service.assign_shift(first.id, employee.id)
        second = make_shift(start="17:00", end="21:00")

        assert shift_service.request_shift_assignment(second.id, employee.id).status == SHIFT_PENDING_APPROVAL

    def test_approve(self, db_session, make_shift, employee):
        shift = make_shift()
        shift_service.request_shift_assignment(shift.id, employee.id)

        result = shift_service.approve_shift_assignment(shift.id)

        assert result.status == SHIFT_ASSIGNED
        assert result.assigned_to_id == employee.id
        assert len(_notifications(db_session, employee, "shift.approved")) == 1

    def test_reject_reopens_shift(self, db_session, make_shift, employee):
        shift = make_shift()
        shift_service.request_shift_assignment(shift.id, employee.id)

        result = shift_service.reject_shift_assignment(shift.id)

        assert result.status == SHIFT_OPEN
        assert result.assigned_to_id is None
        assert len(_notifications(db_session, employee, "shift.rejected")) == 1

    def test_approve_requires_pending(self, make_shift):
        shift = make_shift()

        with pytest.raises(InvalidStateError) as exc:
            shift_service.approve_shift_assignment(shift.id)
        assert exc.value.code == "SHIFT_NOT_PENDING_APPROVAL"

        with pytest.raises(InvalidStateError):
            shift_service.reject_shift_assignment(shift.id)


class TestQueries:

    def test_list_with_pagination(self, make_shift):
        for day in (4, 5, 6):
            make_shift(day=date(2024, 3, day))

        result = shift_service.list_shifts(page=1, per_page=2)

        assert result["count"] == 2
        assert result["pagination"]["total"] == 3
        assert result["pagination"]["has_next"] is True
        assert [s["date"] for s in result["items"]] == ["2024-03-04", "2024-03-05"]

    def test_negative_per_page_is_clamped(self, make_shift):
        for day in (4, 5):
            make_shift(day=date(2024, 3, day))

        result = shift_service.list_shifts(page=1, per_page=-1)

        assert result["count"] == 1
        assert result["pagination"]["per_page"] == 1
        assert result["pagination"]["total_pages"] == 2

    def test_list_filters(self, make_shift, employee):
        assigned = make_shift(day=date(2024, 3, 4))
        make_shift(day=date(2024, 3, 5))
        shift_service.assign_shift(assigned.id, employee.id)

        result = shift_service.list_shifts(status=SHIFT_ASSIGNED)
        assert [s["id"] for s in result["items"]] == [assigned.id]

        result = shift_service.list_shifts(date_from=date(2024, 3, 5))
        assert result["count"] == 1

    def test_list_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            shift_service.list_shifts(status="Finished")

    def test_shifts_by_employee_code(self, make_shift, employee):
        shift = make_shift()
        shift_service.assign_shift(shift.id, employee.id)

        assert [s.id for s in shift_service.get_shifts_by_employee("EMP-0001")] == [shift.id]

    def test_unknown_employee_code(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            shift_service.get_shifts_by_employee("EMP-4040")
        assert exc.value.code == "EMPLOYEE_NOT_FOUND"

    def test_active_shift_covers_overnight(self, make_shift, employee):
        shift = make_shift(day=date(2024, 3, 4), start="22:00", end="06:00", type_name="Night")
        shift_service.assign_shift(shift.id, employee.id)

        assert shift_service.check_active_shift(employee.id, datetime(2024, 3, 5, 3, 0)).id == shift.id
        assert shift_service.check_active_shift(employee.id, datetime(2024, 3, 5, 7, 0)) is None


class TestTemporaryShift:

    def test_create_temporary_shift(self, db_session, employee):
        shift = shift_service.create_temporary_shift(employee.id, datetime(2024, 3, 4, 18, 30))

        assert shift.is_temporary is True
        assert shift.status == SHIFT_PENDING_APPROVAL
        assert shift.shift_type.name == SHIFT_TYPE_TEMPSHIFT
        assert (shift.start_time, shift.end_time) == ("18:30", "02:30")
        assert shift.assigned_to_id == employee.id


class TestUpdateAndDelete:

    def test_update_times(self, make_shift):
        shift = make_shift()

        updated = shift_service.update_shift(shift.id, {"start_time": "10:00", "end_time": "18:00", "reason": "moved"})

        assert (updated.start_time, updated.end_time, updated.reason) == ("10:00", "18:00", "moved")

    def test_status_not_updatable(self, make_shift):
        shift = make_shift()

        with pytest.raises(ValidationError):
            shift_service.update_shift(shift.id, {"status": SHIFT_ASSIGNED})

    def test_invalid_patch_leaves_shift_untouched(self, make_shift):
        shift = make_shift()

        with pytest.raises(ValidationError):
            shift_service.update_shift(shift.id, {"start_time": "07:00", "end_time": "25:00"})

        assert shift_service.get_shift(shift.id).start_time == "09:00"

    def test_date_change_rebinds_period(self, make_shift, admin):
        first = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 17), admin.id)
        second = pay_period_service.create_pay_period(date(2024, 3, 18), date(2024, 3, 31), admin.id)
        shift = make_shift(day=date(2024, 3, 10))
        assert shift.pay_period_id == first.id

        updated = shift_service.update_shift(shift.id, {"date": "2024-03-20"})

        assert updated.pay_period_id == second.id

    def test_locked_period_blocks_update(self, make_shift, admin):
        period = pay_period_service.create_pay_period(date(2024, 3, 4), date(2024, 3, 17), admin.id)
        shift = make_shift()
        pay_period_service.close_pay_period(period.id)

        with pytest.raises(InvalidStateError) as exc:
            shift_service.update_shift(shift.id, {"reason": "late change"})
        assert exc.value.code == "PAY_PERIOD_LOCKED"

    def test_delete(self, make_shift):
        shift = make_shift()

        shift_service.delete_shift(shift.id)

        with pytest.raises(NotFoundError):
            shift_service.get_shift(shift.id)

    def test_delete_with_time_entries(self, db_session, make_shift, employee):
        shift = make_shift()
        db_session.add(TimeEntry(employee_id=employee.id, shift_id=shift.id, status=ENTRY_ABSENT))
        db_session.commit()

        with pytest.raises(ConflictError) as exc:
            shift_service.delete_shift(shift.id)
        assert exc.value.code == "SHIFT_HAS_TIME_ENTRIES"
