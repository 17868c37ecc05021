"""Scheduling helpers."""

from .apsched_adapter import PIPELINE_JOB_ID, APSchedulerAdapter, build_trigger

__all__ = ["APSchedulerAdapter", "PIPELINE_JOB_ID", "build_trigger"]
