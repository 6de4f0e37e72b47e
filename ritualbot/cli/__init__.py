"""CLI module for ritualbot."""
