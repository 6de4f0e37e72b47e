"""Connection supervisor: health checks, teardown on disconnect, bounded reconnection."""

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Literal

from loguru import logger

from ritualbot.bus.events import LifecycleEvent
from ritualbot.context import BotContext
from ritualbot.errors import ReconnectExhaustedError
from ritualbot.session.base import BaseSession
from ritualbot.utils.helpers import utc_now

if TYPE_CHECKING:
    from ritualbot.cron.service import Scheduler

State = Literal["disconnected", "connecting", "ready", "reconnecting", "exhausted"]


class ConnectionSupervisor:
    """
    Observes session lifecycle events through handle().

    ready: reset the attempt counter and (re)start the health check.
    disconnected: stop the health check, tear down all jobs, reconnect with a
    fixed delay up to max_attempts times. Exhaustion is terminal until the
    process is restarted, but never raises.
    """

    def __init__(
        self,
        ctx: BotContext,
        session: BaseSession,
        scheduler: "Scheduler",
        health_check_interval_s: float = 300.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ctx = ctx
        self.session = session
        self.scheduler = scheduler
        self.health_check_interval_s = health_check_interval_s
        self._sleep = sleep
        self.state: State = "disconnected"
        self.last_error: Exception | None = None
        self._health_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None

    async def start(self) -> None:
        """Initial connection. A failure here enters the reconnect loop."""
        self.state = "connecting"
        logger.info("Starting WhatsApp session...")
        try:
            await self.session.initialize()
        except Exception as e:
            logger.error(f"Initial connection failed: {e}")
            self._start_reconnect()

    async def stop(self) -> None:
        self.stop_health_check()
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

    async def handle(self, event: LifecycleEvent) -> None:
        """Single intake for lifecycle events."""
        kind = event.kind
        if kind == "ready":
            self._on_ready()
        elif kind == "disconnected":
            self._on_disconnected(event.detail)
        elif kind == "auth_failure":
            logger.error(f"Authentication failed: {event.detail}")
        elif kind == "authenticated":
            logger.info("Authentication successful!")
        elif kind == "loading":
            logger.info(f"Loading: {event.percent}%")
        elif kind == "qr":
            logger.info("QR code generated. Scan with WhatsApp mobile app.")
        else:
            logger.warning(f"Unknown lifecycle event: {kind}")

    def _on_ready(self) -> None:
        logger.info("Client is ready! WhatsApp bot is now active.")
        self.state = "ready"
        self.last_error = None
        self.ctx.ready_at = utc_now()
        self.ctx.reconnect.attempt_count = 0
        self.start_health_check()

    def _on_disconnected(self, reason: str) -> None:
        logger.warning(f"Client disconnected: {reason}")
        self.state = "disconnected"
        self.stop_health_check()
        self.scheduler.teardown_all()
        logger.info("All scheduled jobs cancelled due to disconnection")
        self._start_reconnect()

    # ========== Health check ==========

    def start_health_check(self) -> None:
        if self._health_task and not self._health_task.done():
            self._health_task.cancel()
        self._health_task = asyncio.create_task(self._health_loop(), name="health-check")
        logger.info("Connection monitoring started")

    def stop_health_check(self) -> None:
        if self._health_task:
            if not self._health_task.done():
                self._health_task.cancel()
            self._health_task = None
            logger.info("Connection monitoring stopped")

    async def _health_loop(self) -> None:
        while True:
            await self._sleep(self.health_check_interval_s)
            await self.check_health()

    async def check_health(self) -> bool:
        """Observational only: logs the outcome, never triggers reconnection."""
        try:
            if not self.session.is_ready():
                logger.warning("Connection check failed: Client not ready")
                return False
            state = await self.session.get_state()
            if not state:
                logger.warning("Connection check failed: No client state available")
                return False
            logger.info(f"Connection health check passed ({state})")
            return True
        except Exception as e:
            logger.error(f"Connection health check error: {e}")
            return False

    # ========== Reconnection ==========

    def _start_reconnect(self) -> None:
        if self._reconnect_task and not self._reconnect_task.done():
            logger.debug("Reconnection already in progress")
            return
        logger.info("Scheduling reconnection attempt...")
        self._reconnect_task = asyncio.create_task(self.reconnect(), name="reconnect")

    async def reconnect(self) -> bool:
        """
        Bounded reconnect loop. Each pass counts one attempt, waits the fixed
        delay, then destroys and reinitializes the session. True once
        initialize() returns; False when attempts are exhausted.
        """
        rs = self.ctx.reconnect
        while True:
            if rs.exhausted:
                self.state = "exhausted"
                self.last_error = ReconnectExhaustedError(rs.max_attempts)
                logger.error(str(self.last_error))
                return False
            rs.attempt_count += 1
            self.state = "reconnecting"
            logger.info(f"Attempting to reconnect... (Attempt {rs.attempt_count}/{rs.max_attempts})")
            await self._sleep(rs.delay_s)
            try:
                await self.session.destroy()
                logger.info("Previous client instance destroyed")
                logger.info("Reinitializing WhatsApp client...")
                await self.session.initialize()
                # `ready` may already have been dispatched while initialize() was running
                if self.state == "reconnecting":
                    self.state = "connecting"
                return True
            except Exception as e:
                self.last_error = e
                logger.error(f"Error during reconnection: {e}")

    @property
    def reconnecting(self) -> bool:
        return bool(self._reconnect_task and not self._reconnect_task.done())

    async def wait_reconnect(self) -> bool | None:
        """Await the current reconnect task, if any."""
        if self._reconnect_task is None:
            return None
        return await self._reconnect_task
