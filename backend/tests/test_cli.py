"""
CLI command tests, invoked through Flask's CLI runner.
"""

from shiftclock.models import PayPeriod, ShiftType, User


class TestSystemCommands:

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Created admin: admin@shiftclock.local" in result.output
        assert db_session.query(ShiftType).count() == 8

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Shift types already configured" in result.output
        assert "already exists" in result.output
        assert db_session.query(User).filter_by(email="admin@shiftclock.local").count() == 1


class TestUserCommands:

    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create",
            "--name", "Dana",
            "--email", "dana@example.com",
            "--employee-code", "EMP-0100",
            "--apps", "kiosk, web",
            "--hourly-rate", "22.5",
        ])
        assert result.exit_code == 0
        user = db_session.query(User).filter_by(email="dana@example.com").one()
        assert user.applications_managed == ["kiosk", "web"]
        assert user.hourly_rate == 22.5

        result = runner.invoke(args=["users", "list"])
        assert "EMP-0100" in result.output

    def test_duplicate_email_fails(self, app, employee):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["users", "create", "--name", "Copy", "--email", employee.email])

        assert result.exit_code == 1
        assert "FAIL [DUPLICATE_USER]" in result.output


class TestPayPeriodCommands:

    def test_create_close_process(self, app, db_session, admin, make_shift):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["pay-periods", "create", "--start", "2024-03-04", "--end", "2024-03-17"])
        assert result.exit_code == 0
        assert "PASS Pay period" in result.output
        period_id = db_session.query(PayPeriod).one().id

        make_shift(start="09:00", end="17:00")

        result = runner.invoke(args=["pay-periods", "close", str(period_id)])
        assert result.exit_code == 0
        assert "[Closed]" in result.output

        result = runner.invoke(args=["pay-periods", "process", str(period_id), "--hourly-rate", "20"])
        assert result.exit_code == 0
        assert "total pay 160.00" in result.output

        result = runner.invoke(args=["pay-periods", "calculate-employees", str(period_id)])
        assert result.exit_code == 0
        assert "PASS 0 employee summaries calculated" in result.output

    def test_create_next(self, app, admin):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["pay-periods", "create-next"])

        assert result.exit_code == 0
        assert "[Open]" in result.output

    def test_unknown_period(self, app, admin):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["pay-periods", "close", "9999"])

        assert result.exit_code == 1
        assert "FAIL [PAY_PERIOD_NOT_FOUND]" in result.output

    def test_invalid_date(self, app, admin):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["pay-periods", "create", "--start", "March", "--end", "2024-03-17"])

        assert result.exit_code == 1
        assert "FAIL [VALIDATION_ERROR]" in result.output
