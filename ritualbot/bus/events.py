"""Event types carried from the session to the bot core."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

GROUP_SUFFIX = "@g.us"

LifecycleKind = Literal["qr", "loading", "authenticated", "auth_failure", "ready", "disconnected"]


@dataclass
class Chat:
    """A conversation as resolved by the session."""
    id: str
    name: str = ""
    is_group: bool = False


@dataclass
class GroupMessage:
    """Inbound text message. from_group is False for private chats."""
    chat: Chat
    sender_chat_id: str
    text: str
    from_group: bool = True
    message_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class LifecycleEvent:
    """Connection lifecycle notification, single-fire per occurrence."""
    kind: LifecycleKind
    detail: str = ""  # disconnect reason, auth failure message or QR payload
    percent: int | None = None  # loading progress
    timestamp: datetime = field(default_factory=datetime.now)


SessionEvent = Union[GroupMessage, LifecycleEvent]
