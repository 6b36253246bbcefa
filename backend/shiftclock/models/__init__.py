from .auth import User
from .scheduling import ShiftType, Shift
from .timekeeping import TimeEntry, TimeEntryBreak
from .payroll import PayPeriod, PayPeriodEmployee
from .communications import Notification

__all__ = [
    'User',
    'ShiftType', 'Shift',
    'TimeEntry', 'TimeEntryBreak',
    'PayPeriod', 'PayPeriodEmployee',
    'Notification',
]
