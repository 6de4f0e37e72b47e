"""The fixed set of broadcast actions posted to the target group."""

from ritualbot.cron.types import Action, DailyConditional, WeeklyAt

DEFAULT_TZ = "Pacific/Auckland"

MONDAY_MESSAGE = (
    "*Kick off your week with purpose*\n\n"
    "👉 What are your main goals this week?\n\n"
    "Share below and let's crush this week together! 💪"
)
FRIDAY_MESSAGE = (
    "*Wrap up your week with reflection*\n\n"
    "👉 How did you do on your goals this week?\n\n"
    "Share your insights and let's celebrate our growth! 🎉"
)
DEMO_MESSAGE = (
    "*Demo day*\n\n"
    "👉 Share what you've been cooking up!\n\n"
    "There is no specific format. Could be a short vid, link, screenshot or picture. 🏆"
)
MONTH_END_MESSAGE = (
    "*Monthly Celebration* 🎊\n\n"
    "As we close out the month, take a moment to reflect on your accomplishments!\n\n"
    "Be proud of what you've achieved ✨"
)


def default_actions(tz: str = DEFAULT_TZ) -> tuple[Action, ...]:
    return (
        Action("monday", MONDAY_MESSAGE, WeeklyAt(day_of_week=1, hour=9, minute=0, tz=tz)),
        Action("friday", FRIDAY_MESSAGE, WeeklyAt(day_of_week=5, hour=15, minute=30, tz=tz)),
        # First and third week of the month, on Wednesday
        Action("demo", DEMO_MESSAGE, DailyConditional(
            hour=9, minute=0, tz=tz, condition="nth_week_of_month", weeks=(1, 3), day_of_week=3,
        )),
        Action("monthEnd", MONTH_END_MESSAGE, DailyConditional(
            hour=9, minute=0, tz=tz, condition="last_day_of_month",
        )),
    )


class ActionCatalog:
    """Read-only lookup of actions by name."""

    def __init__(self, actions: tuple[Action, ...] | list[Action]):
        self._actions: dict[str, Action] = {}
        for action in actions:
            if action.name in self._actions:
                raise ValueError(f"Duplicate action name: {action.name}")
            self._actions[action.name] = action

    @classmethod
    def default(cls, tz: str = DEFAULT_TZ) -> "ActionCatalog":
        return cls(default_actions(tz))

    def lookup(self, name: str) -> Action:
        """Return the action called `name`; KeyError if unknown."""
        return self._actions[name]

    def all(self) -> tuple[Action, ...]:
        return tuple(self._actions.values())

    def names(self) -> list[str]:
        return list(self._actions)

    def __contains__(self, name: str) -> bool:
        return name in self._actions

    def __len__(self) -> int:
        return len(self._actions)
