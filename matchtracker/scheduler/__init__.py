"""Scheduler package for automated tasks."""

from matchtracker.scheduler.jobs import JOB_ID, ReminderScheduler

__all__ = ["JOB_ID", "ReminderScheduler"]
