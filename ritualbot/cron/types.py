"""Cron types."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union


@dataclass(frozen=True)
class WeeklyAt:
    """Fires every week on day_of_week at hour:minute local time."""
    # Cron numbering: 0=Sunday, 1=Monday ... 6=Saturday
    day_of_week: int
    hour: int
    minute: int
    tz: str = "Pacific/Auckland"


@dataclass(frozen=True)
class DailyConditional:
    """Fires at hour:minute local time on days whose local date satisfies the condition."""
    hour: int
    minute: int
    tz: str = "Pacific/Auckland"
    condition: Literal["nth_week_of_month", "last_day_of_month"] = "last_day_of_month"
    # nth_week_of_month: which weeks of the month (1-indexed) qualify
    weeks: tuple[int, ...] = ()
    # Optional weekday restriction, cron numbering
    day_of_week: int | None = None


RecurrenceSpec = Union[WeeklyAt, DailyConditional]


@dataclass(frozen=True)
class Action:
    """A named broadcast: what to post and when."""
    name: str
    message: str
    recurrence: RecurrenceSpec


class JobHandle:
    """Cancellable handle around the asyncio task driving one job.

    cancel() is idempotent. A job that is mid-fire is not interrupted: the
    task sees the flag and exits once the in-flight execution returns.
    """

    def __init__(self) -> None:
        self.task: asyncio.Task | None = None
        self.cancelled = False
        self.firing = False

    def cancel(self) -> bool:
        if self.cancelled:
            return False
        self.cancelled = True
        if self.task and not self.firing and not self.task.done():
            self.task.cancel()
        return True


@dataclass
class Job:
    """A live timer binding an Action to its recurrence."""
    action: Action
    handle: JobHandle = field(default_factory=JobHandle)
    next_fire_time: datetime | None = None
    last_run_at: datetime | None = None
    last_status: Literal["ok", "failed", "skipped"] | None = None
