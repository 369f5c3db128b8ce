import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "lms_ledger_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SCHEDULER_ENABLED = False
RUN_CATCHUP_ON_START = False
SCHEDULER_TIMEZONE = "UTC"
ATTENDANCE_LOCK_CRON = "1 0 * * *"
BILLING_SWEEP_CRON = "15 0 * * *"

ATTENDANCE_EDIT_CUTOFF_HOUR = 12
RECEIPT_DIR = None
