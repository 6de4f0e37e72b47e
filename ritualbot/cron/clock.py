"""Calendar rules: month predicates and next fire time for a recurrence.

All functions are pure. Predicates take the *local* date in the rule's
timezone; callers convert with local_date() instead of relying on the host
timezone or UTC.
"""

import math
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

from ritualbot.cron.types import DailyConditional, RecurrenceSpec, WeeklyAt
from ritualbot.errors import MalformedRecurrenceError

# Candidates inspected before a conditional rule is declared unsatisfiable
_MAX_LOOKAHEAD = 400

_CONDITIONS = ("nth_week_of_month", "last_day_of_month")


def is_last_day_of_month(day: date) -> bool:
    return (day + timedelta(days=1)).day == 1


def week_of_month(day: date) -> int:
    """1-indexed week of the month, weeks starting on Sunday."""
    first = day.replace(day=1)
    offset = (first.weekday() + 1) % 7  # Sunday=0
    return math.ceil((day.day + offset) / 7)


def cron_weekday(day: date) -> int:
    """Weekday in cron numbering (0=Sunday)."""
    return (day.weekday() + 1) % 7


def local_date(moment: datetime, tz: str) -> date:
    return moment.astimezone(ZoneInfo(tz)).date()


def condition_holds(rule: DailyConditional, day: date) -> bool:
    """Evaluate a DailyConditional predicate against a local calendar date."""
    if rule.day_of_week is not None and cron_weekday(day) != rule.day_of_week:
        return False
    if rule.condition == "last_day_of_month":
        return is_last_day_of_month(day)
    if rule.condition == "nth_week_of_month":
        return week_of_month(day) in rule.weeks
    raise MalformedRecurrenceError(f"Unknown condition {rule.condition!r}", rule)


def _zone(rule: RecurrenceSpec) -> ZoneInfo:
    try:
        return ZoneInfo(rule.tz)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise MalformedRecurrenceError(f"Unknown timezone {rule.tz!r}", rule) from e


def validate(rule: RecurrenceSpec) -> None:
    """Raise MalformedRecurrenceError unless the rule can be scheduled."""
    if not isinstance(rule, (WeeklyAt, DailyConditional)):
        raise MalformedRecurrenceError(f"Unsupported recurrence {rule!r}", rule)
    if not (isinstance(rule.hour, int) and 0 <= rule.hour <= 23):
        raise MalformedRecurrenceError(f"Hour out of range: {rule.hour!r}", rule)
    if not (isinstance(rule.minute, int) and 0 <= rule.minute <= 59):
        raise MalformedRecurrenceError(f"Minute out of range: {rule.minute!r}", rule)
    dow = rule.day_of_week
    if isinstance(rule, WeeklyAt) and dow is None:
        raise MalformedRecurrenceError("Weekly rule needs a day_of_week", rule)
    if dow is not None and not (isinstance(dow, int) and 0 <= dow <= 6):
        raise MalformedRecurrenceError(f"Weekday out of range: {dow!r}", rule)
    if isinstance(rule, DailyConditional):
        if rule.condition not in _CONDITIONS:
            raise MalformedRecurrenceError(f"Unknown condition {rule.condition!r}", rule)
        if rule.condition == "nth_week_of_month" and not rule.weeks:
            raise MalformedRecurrenceError("nth_week_of_month needs at least one week", rule)
    _zone(rule)


def to_cron_expr(rule: RecurrenceSpec) -> str:
    """Cron expression for the clock part of the rule (the condition is applied on top)."""
    dow = "*" if rule.day_of_week is None else str(rule.day_of_week)
    return f"{rule.minute} {rule.hour} * * {dow}"


def next_fire_time(rule: RecurrenceSpec, after: datetime) -> datetime:
    """
    Next occurrence of the rule strictly after `after`, in the rule's timezone.

    For DailyConditional rules this is the next clock occurrence whose local
    date satisfies the condition. Naive `after` values are read as local time
    in the rule's timezone.
    """
    validate(rule)
    tz = _zone(rule)
    if after.tzinfo is None:
        after = after.replace(tzinfo=tz)
    start = after.astimezone(tz)
    it = croniter(to_cron_expr(rule), start)
    for _ in range(_MAX_LOOKAHEAD):
        candidate = it.get_next(datetime).astimezone(tz)
        if candidate <= after:
            continue
        if isinstance(rule, WeeklyAt) or condition_holds(rule, candidate.date()):
            return candidate
    raise MalformedRecurrenceError(f"No occurrence within {_MAX_LOOKAHEAD} candidates", rule)
