"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

OVERDUE_GRACE_DAYS = 7
INSTALLMENT_CYCLE_DAYS = 30
NEW_INSTALLMENT_DUE_DAYS = 7
DEFAULT_INSTALLMENT_DUE_DAYS = 7

ROLL_NO_COUNTER = "rollNo"
ROLL_NO_WIDTH = 4

HOLIDAY_SETTING_KEY = "holidayDays"
DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR = 12

DEFAULT_ATTENDANCE_LOCK_CRON = "1 0 * * *"
DEFAULT_BILLING_SWEEP_CRON = "15 0 * * *"
