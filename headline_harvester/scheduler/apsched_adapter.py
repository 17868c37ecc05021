"""Run the harvest pipeline on a cron, interval or one-shot schedule."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging

PIPELINE_JOB_ID = "pipeline::harvest"


def build_trigger(schedule: ScheduleConfig) -> BaseTrigger:
    """Translate a ``ScheduleConfig`` into an APScheduler trigger.

    Cron values are five-field crontab strings; interval values are seconds
    or ``IntervalTrigger`` keyword arguments; a one-shot without a value
    fires immediately.
    """

    value = schedule.value
    if schedule.type is ScheduleType.CRON:
        return CronTrigger.from_crontab(str(value))
    if schedule.type is ScheduleType.INTERVAL:
        if isinstance(value, dict):
            return IntervalTrigger(**value)
        if isinstance(value, (int, float)):
            return IntervalTrigger(seconds=float(value))
        raise ValueError("Interval schedule requires seconds or kwargs dict")
    if schedule.type is ScheduleType.ONCE:
        run_date = datetime.fromisoformat(str(value)) if value else datetime.now(timezone.utc)
        return DateTrigger(run_date=run_date)
    raise ValueError(f"Unknown schedule type: {schedule.type}")


class APSchedulerAdapter:
    """Owns a background scheduler holding at most one harvest job."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False
        self.scheduler.add_listener(
            self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )

    def start(self) -> None:
        if self.started:
            return
        self.scheduler.start()
        self.started = True
        self.logger.info("scheduler_started")

    def shutdown(self) -> None:
        if not self.started:
            return
        self.scheduler.shutdown(wait=False)
        self.started = False
        self.logger.info("scheduler_stopped")

    def schedule_pipeline(self, callback: Callable[[], object], schedule: ScheduleConfig) -> None:
        # one run at a time; a backlog of missed runs collapses into one
        self.scheduler.add_job(
            callback,
            trigger=build_trigger(schedule),
            id=PIPELINE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info(
            "pipeline_scheduled", job=PIPELINE_JOB_ID, schedule=schedule.model_dump(mode="json")
        )

    def remove_pipeline(self) -> None:
        try:
            self.scheduler.remove_job(PIPELINE_JOB_ID)
        except JobLookupError:
            self.logger.warning("pipeline_not_scheduled", job=PIPELINE_JOB_ID)

    def list_jobs(self) -> list[dict[str, Any]]:
        return [
            {
                "id": job.id,
                "trigger": str(job.trigger),
                "next_run_time": getattr(job, "next_run_time", None),
            }
            for job in self.scheduler.get_jobs()
        ]

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.code == EVENT_JOB_ERROR:
            self.logger.error(
                "scheduled_run_failed", job=event.job_id, error=repr(event.exception)
            )
        elif event.code == EVENT_JOB_MISSED:
            self.logger.warning(
                "scheduled_run_missed", job=event.job_id, scheduled_for=str(event.scheduled_run_time)
            )
        else:
            self.logger.debug("scheduled_run_executed", job=event.job_id)


__all__ = ["APSchedulerAdapter", "PIPELINE_JOB_ID", "build_trigger"]
