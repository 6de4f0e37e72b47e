"""Async event queue between the session and the bot core.

The session pushes events; a single consumer dispatches them one at a time,
which keeps lifecycle and command handling ordered.
"""

import asyncio
import uuid
from typing import Awaitable, Callable

from loguru import logger

from ritualbot.bus.events import SessionEvent
from ritualbot.utils.logging_config import reset_trace_id, set_trace_id


class EventBus:
    """
    Async queue of session events.

    Handlers run sequentially; an exception raised by a handler is logged and
    the loop keeps consuming.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._running = False

    async def publish(self, event: SessionEvent) -> None:
        await self.queue.put(event)

    def publish_nowait(self, event: SessionEvent) -> None:
        self.queue.put_nowait(event)

    async def run(self, handler: Callable[[SessionEvent], Awaitable[None]]) -> None:
        """Dispatch events to `handler` until stop() is called. Run as a background task."""
        self._running = True
        logger.info("Event dispatcher started")
        while self._running:
            try:
                event = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            token = set_trace_id(uuid.uuid4().hex[:12])
            try:
                await handler(event)
            except Exception as e:
                logger.exception(f"Error dispatching {type(event).__name__}: {e}")
            finally:
                reset_trace_id(token)
        logger.info("Event dispatcher stopped")

    def stop(self) -> None:
        self._running = False

    @property
    def size(self) -> int:
        """Number of pending events."""
        return self.queue.qsize()
