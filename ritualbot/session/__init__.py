"""Chat session: transport interface, WhatsApp bridge and connection supervisor."""

from ritualbot.session.base import BaseSession
from ritualbot.session.supervisor import ConnectionSupervisor

__all__ = ["BaseSession", "ConnectionSupervisor"]
