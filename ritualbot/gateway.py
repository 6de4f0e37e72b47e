"""Gateway: builds the bot from config and runs it on one event loop."""

import asyncio
from typing import Any

from loguru import logger

from ritualbot.bus.events import GroupMessage, LifecycleEvent, SessionEvent
from ritualbot.bus.queue import EventBus
from ritualbot.config.schema import Config
from ritualbot.context import BotContext
from ritualbot.cron.catalog import ActionCatalog
from ritualbot.cron.executor import RetryExecutor
from ritualbot.cron.service import Scheduler
from ritualbot.router import CommandRouter
from ritualbot.session.base import BaseSession
from ritualbot.session.supervisor import ConnectionSupervisor


class Gateway:
    """
    Owns the BotContext and wires every component to it.

    Session events flow through the EventBus into dispatch(), which hands
    lifecycle events to the supervisor and messages to the router.
    """

    def __init__(self, config: Config, session: BaseSession | None = None, bus: EventBus | None = None):
        self.config = config
        self.ctx = BotContext.from_config(config)
        self.bus = bus or EventBus()
        if session is None:
            from ritualbot.session.whatsapp import WhatsAppSession
            session = WhatsAppSession(config.channels.whatsapp, self.bus)
        self.session = session
        self.catalog = ActionCatalog.default(config.schedule.timezone)
        self.executor = RetryExecutor(
            session,
            max_retries=config.retry.max_retries,
            base_delay_s=config.retry.base_delay_s,
        )
        self.scheduler = Scheduler(self.ctx.scheduler, self.catalog, self.executor, tz=config.schedule.timezone)
        self.supervisor = ConnectionSupervisor(
            self.ctx,
            session,
            self.scheduler,
            health_check_interval_s=config.connection.health_check_interval_s,
        )
        self.router = CommandRouter(
            self.ctx,
            session,
            self.scheduler,
            self.catalog,
            self.executor,
            prefix=config.commands.prefix,
        )
        self._dispatch_task: asyncio.Task | None = None

    async def dispatch(self, event: SessionEvent) -> None:
        if isinstance(event, LifecycleEvent):
            await self.supervisor.handle(event)
        elif isinstance(event, GroupMessage):
            await self.router.handle(event)
        else:
            logger.warning(f"Unknown event type: {type(event).__name__}")

    @staticmethod
    def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        """Catch-all for unhandled asyncio failures: log and keep running."""
        exc = context.get("exception")
        message = context.get("message", "Unhandled exception in event loop")
        if exc is not None:
            logger.opt(exception=exc).error(f"Unhandled async error: {message}")
        else:
            logger.error(f"Unhandled async error: {message}")

    async def start(self) -> None:
        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)
        self._dispatch_task = asyncio.create_task(self.bus.run(self.dispatch), name="dispatcher")
        await self.supervisor.start()

    async def stop(self) -> None:
        logger.info("Shutting down...")
        self.scheduler.teardown_all()
        await self.supervisor.stop()
        self.bus.stop()
        if self._dispatch_task:
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
            self._dispatch_task = None
        try:
            await self.session.destroy()
        except Exception as e:
            logger.warning(f"Error destroying session: {e}")

    async def run_forever(self) -> None:
        """Start and stay alive until cancelled, even after reconnection is exhausted."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
