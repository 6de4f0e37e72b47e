"""Error types for the bot runtime.

Background tasks catch and log these; they never terminate the process.
"""


class RitualBotError(Exception):
    """Base class for runtime errors."""


class TransportError(RitualBotError):
    """Send or chat lookup failed while connected (transient, retried)."""


class SessionNotReadyError(TransportError):
    """The session is not authenticated/ready; counts as a failed attempt."""


class ConnectionLostError(TransportError):
    """The bridge socket is gone."""


class ReconnectExhaustedError(RitualBotError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Max reconnection attempts ({attempts}) reached. Manual restart required.")


class MalformedRecurrenceError(RitualBotError, ValueError):
    def __init__(self, message: str, rule: object | None = None):
        self.rule = rule
        super().__init__(message)
