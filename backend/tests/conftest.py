"""
Pytest fixtures for ShiftClock backend tests.

Provides an in-memory application, a per-test clean database, users,
the shift type registry and request header helpers.
"""

from datetime import date

import pytest
from shiftclock import create_app
from shiftclock.extensions import db
from shiftclock.models import User
from shiftclock.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE, USER_ACTIVE, USER_INACTIVE
from shiftclock.services import shift_service, shift_type_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'DEFAULT_HOURLY_RATE': 20.0,
    'DEFAULT_OVERTIME_RATE': 1.5,
    'PAY_PERIOD_LENGTH_DAYS': 14,
    'PAY_PERIOD_ANCHOR_DATE': '2024-01-01',
    'NOTIFICATIONS_ENABLED': True,
}

# Monday
WORK_DAY = date(2024, 3, 4)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(db_session, name, email, role=ROLE_EMPLOYEE, apps=None, code=None, status=USER_ACTIVE, rate=None):
    user = User(
        name=name,
        email=email,
        employee_code=code,
        role=role,
        status=status,
        applications_managed=list(apps or []),
        hourly_rate=rate,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    """Administrator managing kiosk and web."""
    return _make_user(db_session, "Admin", "admin@test.local", role=ROLE_ADMIN, apps=["kiosk", "web"], code="ADM-0001")


@pytest.fixture(scope='function')
def employee(db_session):
    """Employee managing kiosk."""
    return _make_user(db_session, "Ana Employee", "ana@test.local", apps=["kiosk"], code="EMP-0001")


@pytest.fixture(scope='function')
def other_employee(db_session):
    """Employee managing web only."""
    return _make_user(db_session, "Ben Employee", "ben@test.local", apps=["web"], code="EMP-0002")


@pytest.fixture(scope='function')
def inactive_employee(db_session):
    return _make_user(
        db_session, "Old Employee", "old@test.local", apps=["kiosk"], code="EMP-0099", status=USER_INACTIVE
    )


@pytest.fixture(scope='function')
def shift_types(db_session):
    """Seeded shift type registry, keyed by name."""
    shift_type_service.ensure_default_shift_types()
    return {st.name: st for st in shift_type_service.list_shift_types()}


@pytest.fixture(scope='function')
def make_shift(db_session, admin, shift_types):
    """Factory for Open shifts; defaults to a kiosk Morning shift on WORK_DAY."""
    def _make(day=WORK_DAY, start="09:00", end="17:00", type_name="Morning", apps=("kiosk",), **kwargs):
        return shift_service.create_shift(
            shift_type_id=shift_types[type_name].id,
            date=day,
            start_time=start,
            end_time=end,
            created_by=admin.id,
            application_managed=list(apps),
            **kwargs,
        )
    return _make


def user_headers(user) -> dict:
    """Helper to create caller identity headers."""
    return {'X-User-Id': str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin):
    return user_headers(admin)


@pytest.fixture(scope='function')
def employee_headers(employee):
    return user_headers(employee)
