"""Tests for the action catalog."""

import pytest

from ritualbot.cron.catalog import (
    DEMO_MESSAGE,
    MONDAY_MESSAGE,
    ActionCatalog,
    default_actions,
)
from ritualbot.cron.types import Action, DailyConditional, WeeklyAt


def test_default_catalog_has_four_actions():
    catalog = ActionCatalog.default()
    assert catalog.names() == ["monday", "friday", "demo", "monthEnd"]
    assert len(catalog) == 4
    assert "monthEnd" in catalog
    assert "monthly" not in catalog


def test_lookup_returns_message_and_rule():
    catalog = ActionCatalog.default()
    monday = catalog.lookup("monday")
    assert monday.message == MONDAY_MESSAGE
    assert monday.recurrence == WeeklyAt(day_of_week=1, hour=9, minute=0, tz="Pacific/Auckland")
    demo = catalog.lookup("demo")
    assert demo.message == DEMO_MESSAGE
    assert isinstance(demo.recurrence, DailyConditional)
    assert demo.recurrence.weeks == (1, 3)
    assert demo.recurrence.day_of_week == 3


def test_lookup_unknown_raises():
    with pytest.raises(KeyError):
        ActionCatalog.default().lookup("tuesday")


def test_duplicate_names_rejected():
    rule = WeeklyAt(day_of_week=1, hour=9, minute=0)
    with pytest.raises(ValueError):
        ActionCatalog([Action("monday", "a", rule), Action("monday", "b", rule)])


def test_timezone_applies_to_every_rule():
    actions = default_actions("Europe/London")
    assert {a.recurrence.tz for a in actions} == {"Europe/London"}


def test_messages_are_non_empty():
    assert all(a.message.strip() for a in ActionCatalog.default().all())
