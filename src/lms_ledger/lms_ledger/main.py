from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .billing.sweep import JOB_NAME as BILLING_SWEEP
from .common.logging_setup import setup_logging
from .container import build_container
from .core.constants import (
    DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR,
    DEFAULT_ATTENDANCE_LOCK_CRON,
    DEFAULT_BILLING_SWEEP_CRON,
)
from .database.bootstrap import apply_schema, list_tables
from .enrollments.controller import register as register_enrollments
from .fees.controller import register as register_fees
from .scheduler.controller import register as register_scheduler
from .settings.controller import register as register_settings

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    debug = bool(getattr(settings, "DEBUG", False))
    setup_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), debug=debug)

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = debug
    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "Starting with settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        tz=ZoneInfo(getattr(settings, "SCHEDULER_TIMEZONE", "UTC")),
        receipt_dir=getattr(settings, "RECEIPT_DIR", None),
        attendance_lock_cron=getattr(settings, "ATTENDANCE_LOCK_CRON", DEFAULT_ATTENDANCE_LOCK_CRON),
        billing_sweep_cron=getattr(settings, "BILLING_SWEEP_CRON", DEFAULT_BILLING_SWEEP_CRON),
        attendance_edit_cutoff_hour=int(
            getattr(settings, "ATTENDANCE_EDIT_CUTOFF_HOUR", DEFAULT_ATTENDANCE_EDIT_CUTOFF_HOUR)
        ),
    )
    app.extensions["lms_ledger"] = container

    register_fees(app, container)
    register_enrollments(app, container)
    register_attendance(app, container)
    register_settings(app, container)
    register_scheduler(app, container)

    @app.errorhandler(Exception)
    def unhandled(exc):
        code = getattr(exc, "code", None)
        if isinstance(code, int) and code < 500:
            return jsonify({"success": False, "message": getattr(exc, "description", str(exc))}), code
        logger.exception("Unhandled error")
        return jsonify({"success": False, "message": "Internal server error"}), 500

    if bool(getattr(settings, "SCHEDULER_ENABLED", False)):
        if bool(getattr(settings, "RUN_CATCHUP_ON_START", True)):
            container.scheduler.schedule_catch_up(BILLING_SWEEP)
        container.scheduler.start()
        atexit.register(container.scheduler.shutdown)

    return app
