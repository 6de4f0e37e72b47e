"""Base session interface for the chat platform."""

from abc import ABC, abstractmethod

from ritualbot.bus.events import Chat, SessionEvent
from ritualbot.bus.queue import EventBus


class BaseSession(ABC):
    """
    Abstract chat session.

    Implementations own the transport (authentication, pairing, sending) and
    publish lifecycle events and inbound messages to the event bus.
    """

    name: str = "base"

    def __init__(self, bus: EventBus):
        self.bus = bus

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and authenticate. Raises on failure; `ready` arrives as an event."""

    @abstractmethod
    async def destroy(self) -> None:
        """Tear down the current connection. Safe to call when not connected."""

    @abstractmethod
    def is_ready(self) -> bool:
        """True once the session is authenticated and has announced `ready`."""

    @abstractmethod
    async def get_state(self) -> str | None:
        """Lightweight liveness query; None when the platform does not answer."""

    @abstractmethod
    async def get_chat(self, chat_id: str) -> Chat | None:
        """Resolve a chat by id; None when it does not exist."""

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> None:
        """
        Send one text message.

        Raises:
            TransportError: the message was not accepted by the platform.
        """

    async def _emit(self, event: SessionEvent) -> None:
        await self.bus.publish(event)
