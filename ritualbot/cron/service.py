"""Scheduler: one asyncio task per catalog action, firing on its recurrence."""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable

from loguru import logger

from ritualbot.bus.events import Chat
from ritualbot.context import SchedulerState
from ritualbot.cron.catalog import ActionCatalog
from ritualbot.cron.clock import condition_holds, local_date, next_fire_time
from ritualbot.cron.executor import RetryExecutor
from ritualbot.cron.types import DailyConditional, Job
from ritualbot.errors import MalformedRecurrenceError
from ritualbot.utils.helpers import format_timestamp, now_in
from ritualbot.utils.logging_config import reset_trace_id, set_trace_id


class Scheduler:
    """
    Owns the active jobs in SchedulerState.

    Each job runs in its own task: sleep until the next fire time, fire, then
    compute the following fire time from the one just processed. Fires of the
    same job are therefore strictly sequential.
    """

    def __init__(
        self,
        state: SchedulerState,
        catalog: ActionCatalog,
        executor: RetryExecutor,
        tz: str = "Pacific/Auckland",
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.state = state
        self.catalog = catalog
        self.executor = executor
        self.tz = tz
        self._clock = clock or (lambda: now_in(tz))
        self._sleep = sleep
        self._summary: list[tuple[str, str]] = []

    @property
    def active(self) -> bool:
        return self.state.active

    async def setup(self, initial_chat: Chat) -> bool:
        """
        (Re)build all jobs for the target group.

        Existing jobs are cancelled first. The target group is adopted from
        `initial_chat` only when none is set. Returns False when any action
        could not be scheduled; the others are registered regardless.
        """
        if self.state.active or self.state.jobs:
            cancelled = self._cancel_jobs()
            logger.info(f"Scheduler restart: cancelled {cancelled} existing jobs")

        self.state.adopt_target(initial_chat)

        ok = True
        now = self._clock()
        for action in self.catalog.all():
            try:
                first = next_fire_time(action.recurrence, now)
            except MalformedRecurrenceError as e:
                logger.error(f"Scheduler: cannot schedule '{action.name}': {e}")
                ok = False
                continue
            job = Job(action=action, next_fire_time=first)
            job.handle.task = asyncio.create_task(self._run_job(job), name=f"job:{action.name}")
            self.state.jobs[action.name] = job
            logger.info(f"Scheduler: registered '{action.name}' next={format_timestamp(first, self.tz)}")

        self.state.active = True
        self.state.started_at = now
        self._refresh_summary()
        logger.info(
            f"Scheduler started with {len(self.state.jobs)} jobs for "
            f"{self.state.target_group_name or self.state.target_group_id}"
        )
        return ok

    def teardown_all(self) -> int:
        """Cancel every job and mark inactive. No-op when already inactive."""
        if not self.state.active and not self.state.jobs:
            return 0
        count = self._cancel_jobs()
        self.state.active = False
        self.state.started_at = None
        self._summary = []
        logger.info(f"All scheduled jobs cancelled ({count})")
        return count

    def _cancel_jobs(self) -> int:
        count = len(self.state.jobs)
        for job in self.state.jobs.values():
            job.handle.cancel()
        self.state.jobs.clear()
        return count

    async def _run_job(self, job: Job) -> None:
        handle = job.handle
        rule = job.action.recurrence
        try:
            while not handle.cancelled and job.next_fire_time is not None:
                fire_at = job.next_fire_time
                delay = (fire_at - self._clock()).total_seconds()
                if delay > 0:
                    await self._sleep(delay)
                if handle.cancelled:
                    break
                handle.firing = True
                try:
                    await self._fire(job)
                finally:
                    handle.firing = False
                if handle.cancelled:
                    break
                try:
                    job.next_fire_time = next_fire_time(rule, max(fire_at, self._clock()))
                except MalformedRecurrenceError as e:
                    logger.error(f"Scheduler: '{job.action.name}' stopped: {e}")
                    job.next_fire_time = None
                self._refresh_summary()
        except asyncio.CancelledError:
            logger.debug(f"Scheduler: job '{job.action.name}' cancelled")
            raise

    async def _fire(self, job: Job) -> None:
        """Run one occurrence. Errors are logged; they never stop the job."""
        action = job.action
        rule = action.recurrence
        now = self._clock()
        token = set_trace_id(f"{action.name}-{uuid.uuid4().hex[:6]}")
        try:
            if isinstance(rule, DailyConditional):
                today = local_date(now, rule.tz)
                if not condition_holds(rule, today):
                    logger.info(f"Skipping '{action.name}' on {today.isoformat()}: condition not met")
                    job.last_status = "skipped"
                    return
            logger.info(f"Executing '{action.name}' task at {format_timestamp(now, self.tz)}")
            sent = await self.executor.execute(action, self.state.target_group_id)
            job.last_status = "ok" if sent else "failed"
            if not sent:
                logger.error(f"Scheduler: '{action.name}' not delivered, retries exhausted")
        except Exception as e:
            job.last_status = "failed"
            logger.exception(f"Error in '{action.name}' task: {e}")
        finally:
            job.last_run_at = now
            reset_trace_id(token)

    def _refresh_summary(self) -> None:
        entries = sorted(
            ((j.action.name, j.next_fire_time) for j in self.state.jobs.values() if j.next_fire_time),
            key=lambda e: e[1],
        )
        self._summary = [(name, format_timestamp(ts, self.tz)) for name, ts in entries]

    # ========== Public API ==========

    def next_fire_summary(self) -> list[tuple[str, str]]:
        """(name, formatted next fire time) pairs, soonest first."""
        return list(self._summary)

    def failed_jobs(self) -> list[str]:
        return [name for name, job in self.state.jobs.items() if job.last_status == "failed"]

    def status(self) -> dict[str, Any]:
        return {
            "active": self.state.active,
            "jobs": len(self.state.jobs),
            "target_group_id": self.state.target_group_id,
            "target_group_name": self.state.target_group_name,
            "started_at": self.state.started_at,
        }
