"""Process-wide bot state, owned by the gateway and passed into every component."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

from ritualbot.bus.events import Chat
from ritualbot.config.schema import Config

if TYPE_CHECKING:
    from ritualbot.cron.types import Job


@dataclass
class SchedulerState:
    """Jobs and target group. Rebuilt on every setup, reset on teardown."""
    active: bool = False
    target_group_id: str = ""
    target_group_name: str = ""
    jobs: "dict[str, Job]" = field(default_factory=dict)
    started_at: datetime | None = None

    def adopt_target(self, chat: Chat) -> bool:
        """Set the target group if none is set yet. Returns True when adopted."""
        if self.target_group_id:
            return False
        self.target_group_id = chat.id
        self.target_group_name = chat.name
        logger.info(f"Set target group to: {chat.name} ({chat.id})")
        return True


@dataclass
class ReconnectState:
    """Reconnect bookkeeping: reset on ready, incremented once per attempt."""
    max_attempts: int = 5
    delay_s: float = 30.0
    attempt_count: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts


@dataclass
class BotContext:
    config: Config = field(default_factory=Config)
    scheduler: SchedulerState = field(default_factory=SchedulerState)
    reconnect: ReconnectState = field(default_factory=ReconnectState)
    ready_at: datetime | None = None

    @classmethod
    def from_config(cls, config: Config) -> "BotContext":
        return cls(
            config=config,
            reconnect=ReconnectState(
                max_attempts=config.connection.max_reconnect_attempts,
                delay_s=config.connection.reconnect_delay_s,
            ),
        )

    @property
    def timezone(self) -> str:
        return self.config.schedule.timezone
