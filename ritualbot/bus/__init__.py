"""Event bus module for decoupled session-core communication."""

from ritualbot.bus.events import Chat, GroupMessage, LifecycleEvent, SessionEvent
from ritualbot.bus.queue import EventBus

__all__ = ["EventBus", "Chat", "GroupMessage", "LifecycleEvent", "SessionEvent"]
