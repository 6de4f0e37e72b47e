"""Time formatting helpers shared by the scheduler, status report and CLI."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def now_in(tz: str) -> datetime:
    """Current time as an aware datetime in `tz`."""
    return datetime.now(ZoneInfo(tz))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime, tz: str) -> str:
    """Medium date + time in `tz`, e.g. '19 Oct 2026, 9:00:00 am'. Locale independent."""
    local = moment.astimezone(ZoneInfo(tz))
    hour12 = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return (
        f"{local.day} {_MONTHS[local.month - 1]} {local.year}, "
        f"{hour12}:{local.minute:02d}:{local.second:02d} {meridiem}"
    )


def format_uptime(started_at: datetime | None, now: datetime | None = None) -> str:
    """Elapsed time as 'D days, H hours, M minutes'."""
    if started_at is None:
        return "0 days, 0 hours, 0 minutes"
    now = now or datetime.now(started_at.tzinfo)
    total_minutes = max(0, int((now - started_at).total_seconds() // 60))
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    return f"{days} days, {hours} hours, {minutes} minutes"
