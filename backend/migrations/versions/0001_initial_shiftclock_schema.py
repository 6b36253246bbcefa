"""initial shiftclock schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the scheduling, timekeeping and payroll schema:
- users: employees and administrators
- shift_types: closed registry of shift categories
- pay_periods / pay_period_employees: payroll aggregation
- shifts: scheduled work, bound to at most one pay period
- time_entries / time_entry_breaks: clock activity
- notifications: in-app shift notifications

Partial unique indexes on time_entries carry the concurrency guarantees:
- one clockedIn/onBreak entry per employee
- one absence per employee and shift
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


ACTIVE_PREDICATE = "status IN ('clockedIn', 'onBreak')"
ABSENT_PREDICATE = "status = 'absent'"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('applications_managed', sa.JSON(), nullable=False),
        sa.Column('hourly_rate', sa.Float(), nullable=True),
        sa.Column('overtime_rate', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_employee_code', 'users', ['employee_code'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])

    # ============================================================================
    # shift_types
    # ============================================================================
    op.create_table(
        'shift_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # pay_periods
    # ============================================================================
    op.create_table(
        'pay_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_pay_periods_range', 'pay_periods', ['start_date', 'end_date'])
    op.create_index('ix_pay_periods_status', 'pay_periods', ['status'])

    # ============================================================================
    # shifts
    # ============================================================================
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_type_id', sa.Integer(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=True),
        sa.Column('end_time', sa.String(length=5), nullable=True),
        sa.Column('assigned_to_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('is_excess', sa.Boolean(), nullable=False),
        sa.Column('is_temporary', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('application_managed', sa.JSON(), nullable=False),
        sa.Column('pay_period_id', sa.Integer(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shift_type_id'], ['shift_types.id']),
        sa.ForeignKeyConstraint(['assigned_to_id'], ['users.id']),
        sa.ForeignKeyConstraint(['pay_period_id'], ['pay_periods.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shifts_status', 'shifts', ['status'])
    op.create_index('ix_shifts_date_type', 'shifts', ['date', 'shift_type_id'])
    op.create_index('ix_shifts_assignee_date', 'shifts', ['assigned_to_id', 'date'])
    op.create_index('ix_shifts_pay_period', 'shifts', ['pay_period_id'])

    # ============================================================================
    # time_entries / time_entry_breaks
    # ============================================================================
    op.create_table(
        'time_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('clock_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_break_time', sa.Float(), nullable=False),
        sa.Column('hours_worked', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('reason_for_absence', sa.Text(), nullable=True),
        sa.Column('daily_note', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_time_entries_employee_id', 'time_entries', ['employee_id'])
    op.create_index('ix_time_entries_employee_status', 'time_entries', ['employee_id', 'status'])
    op.create_index('ix_time_entries_shift', 'time_entries', ['shift_id'])
    op.create_index(
        'uq_time_entries_active_employee', 'time_entries', ['employee_id'], unique=True,
        sqlite_where=sa.text(ACTIVE_PREDICATE), postgresql_where=sa.text(ACTIVE_PREDICATE),
    )
    op.create_index(
        'uq_time_entries_absence', 'time_entries', ['employee_id', 'shift_id'], unique=True,
        sqlite_where=sa.text(ABSENT_PREDICATE), postgresql_where=sa.text(ABSENT_PREDICATE),
    )

    op.create_table(
        'time_entry_breaks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('time_entry_id', sa.Integer(), nullable=False),
        sa.Column('break_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('break_end', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['time_entry_id'], ['time_entries.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_time_entry_breaks_entry', 'time_entry_breaks', ['time_entry_id'])

    # ============================================================================
    # pay_period_employees
    # ============================================================================
    op.create_table(
        'pay_period_employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pay_period_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('total_hours', sa.Float(), nullable=False),
        sa.Column('regular_hours', sa.Float(), nullable=False),
        sa.Column('overtime_hours', sa.Float(), nullable=False),
        sa.Column('hourly_rate', sa.Float(), nullable=True),
        sa.Column('overtime_rate', sa.Float(), nullable=True),
        sa.Column('total_pay', sa.Float(), nullable=False),
        sa.Column('regular_pay', sa.Float(), nullable=False),
        sa.Column('overtime_pay', sa.Float(), nullable=False),
        sa.Column('deductions', sa.Float(), nullable=False),
        sa.Column('net_pay', sa.Float(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['pay_period_id'], ['pay_periods.id']),
        sa.ForeignKeyConstraint(['employee_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pay_period_id', 'employee_id', name='uq_pay_period_employee'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_pay_period_employees_pay_period_id', 'pay_period_employees', ['pay_period_id'])
    op.create_index('ix_pay_period_employees_employee', 'pay_period_employees', ['employee_id'])

    # ============================================================================
    # notifications
    # ============================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event', sa.String(length=64), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('context', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('pay_period_employees')
    op.drop_table('time_entry_breaks')
    op.drop_table('time_entries')
    op.drop_table('shifts')
    op.drop_table('pay_periods')
    op.drop_table('shift_types')
    op.drop_table('users')
