"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class WhatsAppConfig(BaseModel):
    """WhatsApp bridge connection. The bot posts into one group only."""
    bridge_url: str = "ws://localhost:3001"
    request_timeout_s: float = 10.0


class ChannelsConfig(BaseModel):
    whatsapp: WhatsAppConfig = Field(default_factory=WhatsAppConfig)


class ScheduleConfig(BaseModel):
    """Timezone used for fire times and calendar predicates."""
    timezone: str = "Pacific/Auckland"


class RetryConfig(BaseModel):
    """Send retries: attempt n waits base_delay_s * n before attempt n+1."""
    max_retries: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=60.0, ge=0)


class ConnectionConfig(BaseModel):
    """Reconnection and health check settings."""
    max_reconnect_attempts: int = Field(default=5, ge=0)
    reconnect_delay_s: float = Field(default=30.0, ge=0)
    health_check_interval_s: float = Field(default=300.0, gt=0)  # 5 minutes


class CommandsConfig(BaseModel):
    prefix: str = "!bot"


class Config(BaseSettings):
    """Root configuration for ritualbot."""
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)

    class Config:
        env_prefix = "RITUALBOT_"
        env_nested_delimiter = "__"
