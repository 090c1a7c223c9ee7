"""Scheduler integration layer."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
