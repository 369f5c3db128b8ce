import os


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.environ.get(name, default)))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "lms-ledger-dev-secret"

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "lms_ledger")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Scheduled sweeps (5-field crontab, evaluated in SCHEDULER_TIMEZONE)
    SCHEDULER_TIMEZONE = os.environ.get("SCHEDULER_TIMEZONE", "UTC")
    ATTENDANCE_LOCK_CRON = os.environ.get("ATTENDANCE_LOCK_CRON", "1 0 * * *")
    BILLING_SWEEP_CRON = os.environ.get("BILLING_SWEEP_CRON", "15 0 * * *")

    ATTENDANCE_EDIT_CUTOFF_HOUR = int(os.environ.get("ATTENDANCE_EDIT_CUTOFF_HOUR", "12"))

    # Uploaded payment receipts; unset disables receipt cleanup
    RECEIPT_DIR = os.environ.get("RECEIPT_DIR") or None

    @classmethod
    def db_config(cls) -> dict:
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
        }
