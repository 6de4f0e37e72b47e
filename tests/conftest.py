"""Pytest config: puts the project root on the path and provides an in-memory session."""
import asyncio
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

root = Path(__file__).resolve().parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from ritualbot.bus.events import Chat  # noqa: E402
from ritualbot.bus.queue import EventBus  # noqa: E402
from ritualbot.context import BotContext  # noqa: E402
from ritualbot.errors import TransportError  # noqa: E402
from ritualbot.session.base import BaseSession  # noqa: E402

NZ = ZoneInfo("Pacific/Auckland")
GROUP_ID = "120363000000001@g.us"


class FakeSession(BaseSession):
    """Session double: records sends, fails on demand, never touches the network."""

    name = "fake"

    def __init__(self, bus: EventBus | None = None):
        super().__init__(bus or EventBus())
        self.ready = True
        self.state: str | None = "CONNECTED"
        self.chats: dict[str, Chat] = {}
        self.sent: list[tuple[str, str]] = []
        self.send_attempts = 0
        self.send_failures = 0  # next N sends raise
        self.init_failures = 0  # next N initialize() calls raise
        self.initialize_calls = 0
        self.destroy_calls = 0
        self.get_chat_calls = 0
        self.state_error: Exception | None = None

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.init_failures > 0:
            self.init_failures -= 1
            raise ConnectionError("bridge unreachable")

    async def destroy(self) -> None:
        self.destroy_calls += 1

    def is_ready(self) -> bool:
        return self.ready

    async def get_state(self) -> str | None:
        if self.state_error:
            raise self.state_error
        return self.state

    async def get_chat(self, chat_id: str) -> Chat | None:
        self.get_chat_calls += 1
        return self.chats.get(chat_id)

    async def send_message(self, chat_id: str, text: str) -> None:
        self.send_attempts += 1
        if self.send_failures > 0:
            self.send_failures -= 1
            raise TransportError("send rejected")
        self.sent.append((chat_id, text))


class RecordingSleep:
    """Drop-in for asyncio.sleep that records delays and only yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def group():
    return Chat(id=GROUP_ID, name="Builders", is_group=True)


@pytest.fixture
def session(group):
    s = FakeSession()
    s.chats[group.id] = group
    return s


@pytest.fixture
def ctx():
    return BotContext()


@pytest.fixture
def recorded_sleep():
    return RecordingSleep()
