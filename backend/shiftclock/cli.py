# Overview: Flask CLI command groups for bootstrap, inspection, and payroll maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, seeds shift types and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@example.com --employee-code EMP-0001 --role employee --apps kiosk,web
#
# Shift types:
# - python -m flask shift-types list
#
# Pay periods (create-next is the cron entry point):
# - python -m flask pay-periods create --start 2024-01-01 --end 2024-01-14
# - python -m flask pay-periods create-next
# - python -m flask pay-periods close 3
# - python -m flask pay-periods process 3 --hourly-rate 20 --overtime-rate 1.5
# - python -m flask pay-periods calculate-employees 3 [--tax-rate 0.2 --benefits 50]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import PayPeriod, User
from .models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from .services import pay_period_service, scheduler_service, shift_type_service, user_service
from .validation import ShiftClockError, coerce_date


DEFAULT_ADMIN_EMAIL = "admin@shiftclock.local"


def _fail(e: ShiftClockError):
    click.echo(f"FAIL [{e.code}] {e.message}")
    raise SystemExit(1)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=DEFAULT_ADMIN_EMAIL, help='Email of the default administrator')
@with_appcontext
def init_system(admin_email):
    """
    Initialize ShiftClock: schema, shift type registry and a default admin.

    Safe to run repeatedly; existing rows are left untouched.
    """
    click.echo("START Initializing ShiftClock...")
    db.create_all()

    created = shift_type_service.ensure_default_shift_types()
    if created:
        click.echo(f"PASS Created shift types: {', '.join(st.name for st in created)}")
    else:
        click.echo("PASS Shift types already configured")

    admin = db.session.query(User).filter_by(email=admin_email).first()
    if admin:
        click.echo(f"WARN  Admin '{admin_email}' already exists, skipping...")
    else:
        admin = user_service.create_user(name="Administrator", email=admin_email, role=ROLE_ADMIN)
        click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")

    click.echo("DONE ShiftClock initialized. Send X-User-Id: %s to act as admin." % admin.id)


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--employee-code', default=None, help='External employee code, e.g. EMP-0001')
@click.option('--role', type=click.Choice([ROLE_ADMIN, ROLE_EMPLOYEE]), default=ROLE_EMPLOYEE, help='Role')
@click.option('--apps', default='', help='Comma-separated applications the user manages')
@click.option('--hourly-rate', type=float, default=None, help='Per-employee hourly rate')
@with_appcontext
def create_user_cli(name, email, employee_code, role, apps, hourly_rate):
    """Create a user."""
    try:
        user = user_service.create_user(
            name=name,
            email=email,
            employee_code=employee_code,
            role=role,
            applications_managed=[a.strip() for a in apps.split(",") if a.strip()],
            hourly_rate=hourly_rate,
        )
    except ShiftClockError as e:
        _fail(e)
    click.echo(f"PASS Created user: {user.name} ({user.email}) ID {user.id} role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Code':<12} {'Name':<20} {'Email':<30} {'Role':<10} {'Status':<9} {'Apps'}")
    click.echo("="*100)
    for user in users:
        apps = ", ".join(user.applications_managed or []) or "none"
        click.echo(
            f"{user.id:<5} {(user.employee_code or '-'):<12} {user.name:<20} {user.email:<30} "
            f"{user.role:<10} {user.status:<9} {apps}"
        )
    click.echo("="*100 + "\n")


@click.group('shift-types')
def shift_types_group():
    """Shift type registry commands."""


@shift_types_group.command('list')
@with_appcontext
def list_shift_types_cli():
    """List shift types."""
    shift_types = shift_type_service.list_shift_types()
    if not shift_types:
        click.echo("No shift types found. Run 'python -m flask system init'.")
        return
    for st in shift_types:
        click.echo(f"{st.id:<5} {st.name:<12} {st.description or ''}")


@click.group('pay-periods')
def pay_periods_group():
    """Pay period lifecycle and payroll commands."""


def _print_period(period: PayPeriod):
    click.echo(
        f"PASS Pay period {period.id}: {period.start_date.isoformat()} - {period.end_date.isoformat()} "
        f"[{period.status}] ({len(period.shifts)} shifts)"
    )


@pay_periods_group.command('create')
@click.option('--start', 'start_date', required=True, help='Start date (YYYY-MM-DD)')
@click.option('--end', 'end_date', required=True, help='End date (YYYY-MM-DD)')
@click.option('--created-by', type=int, default=None, help='Admin user id (defaults to the first admin)')
@with_appcontext
def create_pay_period_cli(start_date, end_date, created_by):
    """Create a pay period and bind its unassigned shifts."""
    try:
        period = pay_period_service.create_pay_period(
            coerce_date(start_date, "start", required=True),
            coerce_date(end_date, "end", required=True),
            created_by or scheduler_service.system_user_id(),
        )
    except ShiftClockError as e:
        _fail(e)
    _print_period(period)


@pay_periods_group.command('create-next')
@with_appcontext
def create_next_pay_period_cli():
    """Create the next bi-weekly pay period (cron entry point)."""
    try:
        period = scheduler_service.create_next_pay_period()
    except ShiftClockError as e:
        _fail(e)
    _print_period(period)


@pay_periods_group.command('close')
@click.argument('pay_period_id', type=int)
@with_appcontext
def close_pay_period_cli(pay_period_id):
    """Close an Open pay period."""
    try:
        period = pay_period_service.close_pay_period(pay_period_id)
    except ShiftClockError as e:
        _fail(e)
    _print_period(period)


@pay_periods_group.command('process')
@click.argument('pay_period_id', type=int)
@click.option('--hourly-rate', type=float, default=None, help='Hourly rate (defaults to DEFAULT_HOURLY_RATE)')
@click.option('--overtime-rate', type=float, default=None, help='Overtime multiplier')
@with_appcontext
def process_pay_period_cli(pay_period_id, hourly_rate, overtime_rate):
    """Process a Closed pay period (per-shift overtime)."""
    try:
        calc = pay_period_service.process_pay_period(pay_period_id, hourly_rate, overtime_rate)
    except ShiftClockError as e:
        _fail(e)
    click.echo(
        f"PASS Processed pay period {pay_period_id}: {calc.total_hours:.2f}h "
        f"(regular {calc.regular_hours:.2f}h, overtime {calc.overtime_hours:.2f}h), total pay {calc.total_pay:.2f}"
    )


@pay_periods_group.command('calculate-employees')
@click.argument('pay_period_id', type=int)
@click.option('--hourly-rate', type=float, default=None, help='Fallback hourly rate')
@click.option('--overtime-rate', type=float, default=None, help='Fallback overtime multiplier')
@click.option('--tax-rate', type=float, default=None, help='Enable deductions with this tax rate')
@click.option('--benefits', type=float, default=None, help='Flat benefits deduction (enables deductions)')
@with_appcontext
def calculate_employees_cli(pay_period_id, hourly_rate, overtime_rate, tax_rate, benefits):
    """Recalculate per-employee summaries (weekly overtime)."""
    deductions_config = None
    if tax_rate is not None or benefits is not None:
        deductions_config = {"tax_rate": tax_rate, "benefits": benefits}
    try:
        rows = pay_period_service.calculate_employee_pay_period(
            pay_period_id, hourly_rate, overtime_rate, deductions_config
        )
    except ShiftClockError as e:
        _fail(e)
    for row in rows:
        click.echo(
            f"{row.employee_id:<5} {row.total_hours:>7.2f}h  OT {row.overtime_hours:>6.2f}h  "
            f"gross {row.total_pay:>9.2f}  net {row.net_pay:>9.2f}"
        )
    click.echo(f"PASS {len(rows)} employee summaries calculated")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(shift_types_group)
    app.cli.add_command(pay_periods_group)
