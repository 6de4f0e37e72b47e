"""Send one action to the target group with bounded retries and linear backoff."""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from ritualbot.bus.events import Chat
from ritualbot.cron.types import Action
from ritualbot.errors import SessionNotReadyError, TransportError
from ritualbot.session.base import BaseSession


class RetryExecutor:
    """
    Executes actions against the session.

    At most `max_retries` send attempts per call; attempt n is followed by a
    sleep of base_delay_s * n when it fails and is not the last. Returns as
    soon as one send succeeds, so a success is never repeated.
    """

    def __init__(
        self,
        session: BaseSession,
        max_retries: int = 3,
        base_delay_s: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.session = session
        self.max_retries = max_retries
        self.base_delay_s = base_delay_s
        self._sleep = sleep

    async def resolve_chat(self, chat_id: str) -> Chat:
        """Fetch the target group, failing fast when the session is not usable."""
        if not self.session.is_ready():
            raise SessionNotReadyError("Client is not ready or disconnected")
        if not chat_id:
            raise TransportError("No target group set")
        chat = await self.session.get_chat(chat_id)
        if chat is None or not chat.is_group:
            raise TransportError("Target group chat not found or not a group")
        return chat

    async def execute(self, action: Action, target_group_id: str, *, max_retries: int | None = None) -> bool:
        """Send `action` to `target_group_id`. True when sent, False when retries are exhausted."""
        attempts = max_retries or self.max_retries
        for attempt in range(1, attempts + 1):
            try:
                chat = await self.resolve_chat(target_group_id)
                await self.session.send_message(chat.id, action.message)
                logger.info(f"Action '{action.name}' sent to {chat.name or chat.id} (attempt {attempt}/{attempts})")
                return True
            except Exception as e:
                logger.warning(f"Action '{action.name}' attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    delay = self.base_delay_s * attempt
                    logger.info(f"Retrying '{action.name}' in {delay:.0f}s")
                    await self._sleep(delay)
        logger.error(f"Action '{action.name}' failed after {attempts} attempts")
        return False
