"""Command router: maps group text to scheduler and catalog operations.

Commands are exact, case-sensitive matches after stripping whitespace, and are
honoured only in the target group. Anything else is ignored silently.
"""

from datetime import datetime
from typing import Awaitable, Callable

from loguru import logger

from ritualbot.bus.events import Chat, GroupMessage
from ritualbot.context import BotContext
from ritualbot.cron.catalog import ActionCatalog
from ritualbot.cron.executor import RetryExecutor
from ritualbot.cron.service import Scheduler
from ritualbot.session.base import BaseSession
from ritualbot.utils.helpers import format_timestamp, format_uptime, utc_now

MSG_STARTED = (
    "📆 Scheduled message service started! "
    "I will now post regular updates according to the schedule."
)
MSG_START_FAILED = "❌ Failed to start scheduled message service. Please check server logs."
MSG_NO_UPCOMING = "No upcoming messages scheduled."

# Manual trigger command -> catalog action name
MANUAL_TRIGGERS = {
    "monday": "monday",
    "friday": "friday",
    "demo": "demo",
    "monthly": "monthEnd",
}


def build_help_text(prefix: str) -> str:
    return (
        "*Available Commands*\n\n"
        f"📝 *{prefix} start*\n"
        "Starts the scheduled messaging service.\n\n"
        f"📊 *{prefix} status*\n"
        "Shows the current bot status and upcoming scheduled messages.\n\n"
        f"🛟 *{prefix} help*\n"
        "Displays this help message.\n\n"
        f"📅 *{prefix} monday*\n"
        "Triggers the Monday message manually.\n\n"
        f"📅 *{prefix} friday*\n"
        "Triggers the Friday message manually.\n\n"
        f"📅 *{prefix} demo*\n"
        "Triggers the biweekly demo day message manually.\n\n"
        f"📅 *{prefix} monthly*\n"
        "Triggers the monthly celebration message manually."
    )


class CommandRouter:
    """Single intake for inbound messages: handle()."""

    def __init__(
        self,
        ctx: BotContext,
        session: BaseSession,
        scheduler: Scheduler,
        catalog: ActionCatalog,
        executor: RetryExecutor,
        prefix: str = "!bot",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ctx = ctx
        self.session = session
        self.scheduler = scheduler
        self.catalog = catalog
        self.executor = executor
        self.prefix = prefix
        self._clock = clock
        self._commands: dict[str, Callable[[Chat], Awaitable[None]]] = {
            f"{prefix} start": self._start,
            f"{prefix} status": self._status,
            f"{prefix} help": self._help,
        }
        for command, action_name in MANUAL_TRIGGERS.items():
            self._commands[f"{prefix} {command}"] = self._manual_trigger(action_name)

    async def handle(self, message: GroupMessage) -> bool:
        """Route one inbound message. Returns True when a command was executed."""
        if not message.from_group:
            return False
        chat = message.chat
        content = (message.text or "").strip()
        logger.info(f"Received group message from {chat.name or chat.id}: {content[:80]}")

        state = self.ctx.scheduler
        state.adopt_target(chat)
        if chat.id != state.target_group_id:
            logger.debug(f"Ignoring message from non-target group {chat.id}")
            return False

        handler = self._commands.get(content)
        if handler is None:
            return False
        await handler(chat)
        return True

    async def _reply(self, chat: Chat, text: str) -> None:
        try:
            await self.session.send_message(chat.id, text)
        except Exception as e:
            logger.error(f"Failed to reply in {chat.name or chat.id}: {e}")

    async def _start(self, chat: Chat) -> None:
        try:
            ok = await self.scheduler.setup(chat)
        except Exception as e:
            logger.exception(f"Error setting up scheduled messages: {e}")
            ok = False
        await self._reply(chat, MSG_STARTED if ok else MSG_START_FAILED)

    async def _status(self, chat: Chat) -> None:
        await self._reply(chat, self.render_status())

    async def _help(self, chat: Chat) -> None:
        await self._reply(chat, build_help_text(self.prefix))

    def _manual_trigger(self, action_name: str) -> Callable[[Chat], Awaitable[None]]:
        async def trigger(chat: Chat) -> None:
            action = self.catalog.lookup(action_name)
            logger.info(
                f"Manually triggering {action_name} message at "
                f"{format_timestamp(self._clock(), self.ctx.timezone)}"
            )
            # One attempt: a manual trigger is never repeated
            if not await self.executor.execute(action, chat.id, max_retries=1):
                logger.error(f"Manual {action_name} message was not sent")
        return trigger

    def render_status(self) -> str:
        state = self.ctx.scheduler
        upcoming = self.scheduler.next_fire_summary()
        lines = "\n".join(f"- {name}: {when}" for name, when in upcoming) if upcoming else MSG_NO_UPCOMING
        report = (
            "*Bot Status Report*\n\n"
            f"🤖 Active: {'Yes ✅' if state.active else 'No ❌'}\n"
            f"⏱️ Uptime: {format_uptime(self.ctx.ready_at, self._clock())}\n"
            f"👥 Target Group: {state.target_group_name or '(not set)'}\n"
            f"📊 Scheduled Tasks: {len(state.jobs)}\n\n"
            f"*Upcoming Messages:*\n{lines}"
        )
        failed = self.scheduler.failed_jobs()
        if failed:
            report += f"\n\n⚠️ Last delivery failed: {', '.join(failed)}"
        return report
