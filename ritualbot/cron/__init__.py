"""Scheduling: calendar rules, actions, retrying executor and the scheduler."""

from ritualbot.cron.catalog import ActionCatalog
from ritualbot.cron.executor import RetryExecutor
from ritualbot.cron.service import Scheduler
from ritualbot.cron.types import Action, DailyConditional, Job, WeeklyAt

__all__ = ["ActionCatalog", "RetryExecutor", "Scheduler", "Action", "DailyConditional", "Job", "WeeklyAt"]
