"""Scheduler module for the URL shortener application.

This module provides scheduled task functionality using APScheduler.
"""

from hashurl.scheduler.scheduler import SchedulerService, expiry_sweep_job, scheduler_service

__all__ = ["SchedulerService", "expiry_sweep_job", "scheduler_service"]
