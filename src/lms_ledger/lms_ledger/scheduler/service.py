"""Cron-style scheduling of the maintenance sweeps.

Wraps an APScheduler BackgroundScheduler. Every job has one entry point,
`run_job(name)`, shared by its cron trigger, the startup catch-up and the
admin "run now" route, so all three execute the same idempotent code.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..common.datetime_utils import now_utc
from ..core.exceptions import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ScheduledJob:
    """A named sweep with optional cron trigger and run statistics."""

    name: str
    func: Callable[[], Any]
    cron: Optional[str] = None
    description: str = ""
    run_count: int = 0
    error_count: int = 0
    last_run: Optional[datetime] = None
    last_result: Any = None
    last_error: Optional[str] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "cron": self.cron,
            "description": self.description,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_run": self.last_run,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }


class SweepScheduler:
    def __init__(self, timezone: tzinfo, *, misfire_grace_seconds: int = 3600):
        self._tz = timezone
        self._scheduler = BackgroundScheduler(
            timezone=timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": int(misfire_grace_seconds),
            },
        )
        self._jobs: dict[str, ScheduledJob] = {}
        self._stats_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return bool(self._scheduler.running)

    def register(
        self,
        name: str,
        func: Callable[[], Any],
        *,
        cron: Optional[str] = None,
        description: str = "",
    ) -> ScheduledJob:
        """Register a job. Without `cron` it only runs on demand."""

        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        job = ScheduledJob(name=name, func=func, cron=cron, description=description)
        self._jobs[name] = job

        if cron:
            trigger = CronTrigger.from_crontab(cron, timezone=self._tz)
            self._scheduler.add_job(
                self._run_scheduled,
                trigger=trigger,
                args=[name],
                id=name,
                name=name,
                replace_existing=True,
            )
            logger.info("Registered job %s (%s)", name, cron)
        else:
            logger.info("Registered on-demand job %s", name)
        return job

    def get_job(self, name: str) -> ScheduledJob:
        job = self._jobs.get(name)
        if not job:
            raise NotFoundError(f"Unknown job: {name}")
        return job

    def list_jobs(self) -> list[dict[str, Any]]:
        out = []
        for job in self._jobs.values():
            data = job.to_dict()
            aps_job = self._scheduler.get_job(job.name)
            data["next_run"] = getattr(aps_job, "next_run_time", None) if aps_job else None
            out.append(data)
        return out

    def run_job(self, name: str) -> Any:
        """Run a job now in the calling thread.

        A failing run is logged and recorded; its error is returned in place
        of a result. Raises InvalidStateError if the job is already running.
        """

        job = self.get_job(name)
        if not job._lock.acquire(blocking=False):
            raise InvalidStateError(f"Job {name} is already running")
        started = now_utc()
        try:
            logger.info("Job %s started", name)
            try:
                result = job.func()
            except Exception as exc:
                logger.exception("Job %s failed", name)
                with self._stats_lock:
                    job.run_count += 1
                    job.error_count += 1
                    job.last_run = started
                    job.last_error = str(exc)
                    job.last_result = None
                return {"job": name, "ok": False, "error": str(exc)}

            with self._stats_lock:
                job.run_count += 1
                job.last_run = started
                job.last_result = result
                job.last_error = None
            logger.info("Job %s finished in %.2fs", name, (now_utc() - started).total_seconds())
            return result
        finally:
            job._lock.release()

    def _run_scheduled(self, name: str) -> None:
        try:
            self.run_job(name)
        except InvalidStateError:
            logger.warning("Skipping trigger of %s: previous run still in progress", name)

    def schedule_catch_up(self, name: str) -> None:
        """Run `name` once, right after the scheduler starts."""

        self.get_job(name)
        self._scheduler.add_job(
            self._run_scheduled,
            args=[name],
            id=f"{name}:catch-up",
            name=f"{name} (catch-up)",
            replace_existing=True,
        )
        logger.info("Catch-up run of %s scheduled", name)

    def start(self) -> None:
        if self.is_running:
            return
        self._scheduler.start()
        logger.info("Scheduler started with %d job(s)", len(self._jobs))

    def shutdown(self) -> None:
        if not self.is_running:
            return
        self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
