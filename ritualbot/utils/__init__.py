"""Utility helpers for ritualbot."""
