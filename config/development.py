from .config import Config, env_flag

SECRET_KEY = Config.SECRET_KEY
DB_CONFIG = Config.db_config()

DEBUG = True
LOG_LEVEL = Config.LOG_LEVEL

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")

SCHEDULER_ENABLED = env_flag("SCHEDULER_ENABLED", "1")
RUN_CATCHUP_ON_START = env_flag("RUN_CATCHUP_ON_START", "1")
SCHEDULER_TIMEZONE = Config.SCHEDULER_TIMEZONE
ATTENDANCE_LOCK_CRON = Config.ATTENDANCE_LOCK_CRON
BILLING_SWEEP_CRON = Config.BILLING_SWEEP_CRON

ATTENDANCE_EDIT_CUTOFF_HOUR = Config.ATTENDANCE_EDIT_CUTOFF_HOUR
RECEIPT_DIR = Config.RECEIPT_DIR
