# swishmatch/domain/timeslots.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from .types import DateOption, DayAvailability, TimeSlot, WeeklyAvailability

# Indexed by datetime.weekday()
DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_ALL_DAY_MARKERS = {"all_day", "allday", "all-day", "anytime"}


def wall_clock(dt: datetime) -> datetime:
    """
    Naive datetime with the customer's local fields kept as given.
    A UTC offset is dropped, never converted.
    """
    if dt.tzinfo is None:
        return dt
    return dt.replace(tzinfo=None)


def day_of_week(dt: datetime) -> str:
    return DAY_NAMES[dt.weekday()]


def slot_for_hour(hour: int) -> TimeSlot:
    if 6 <= hour < 12:
        return TimeSlot.morning
    if 12 <= hour < 17:
        return TimeSlot.afternoon
    return TimeSlot.evening


def requested_slot(option: DateOption) -> TimeSlot:
    """Explicit slot wins; otherwise derive it from the option's hour."""
    if option.time_slot is not None:
        return option.time_slot
    return slot_for_hour(option.date.hour)


def same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def hours_until(target: datetime, now: datetime) -> float:
    return max(0.0, (target - now).total_seconds() / 3600.0)


def minutes_since(then: datetime, now: datetime) -> float:
    return (now - then).total_seconds() / 60.0


def _parse_day(raw: Any) -> DayAvailability | None:
    if raw is None or raw is False:
        return None

    if raw is True:
        return DayAvailability(kind="all_day")

    if isinstance(raw, str):
        if raw.strip().lower() in _ALL_DAY_MARKERS:
            return DayAvailability(kind="all_day")
        return None

    # ["9:00 AM", "5:00 PM"] -> two endpoints means open the whole day
    if isinstance(raw, (list, tuple)):
        if len(raw) >= 2:
            return DayAvailability(kind="all_day")
        return None

    if isinstance(raw, dict):
        slots = set()
        for k, v in raw.items():
            if v is not True:
                continue
            try:
                slots.add(TimeSlot(str(k).strip().lower()))
            except ValueError:
                continue
        return DayAvailability(kind="slots", slots=frozenset(slots))

    return None


def parse_availability(raw: Any) -> WeeklyAvailability:
    """
    Normalize the stored availability shape into a WeeklyAvailability.

    Accepted per-day shapes:
      {"morning": true, "afternoon": false}   slot map
      ["9:00 AM", "5:00 PM"]                  two endpoints -> all day
      "all_day" / true                         all day
    A top-level "all_day" marker opens every day.
    """
    if raw is None:
        return WeeklyAvailability()

    if raw is True or (isinstance(raw, str) and raw.strip().lower() in _ALL_DAY_MARKERS):
        return WeeklyAvailability(days={d: DayAvailability(kind="all_day") for d in DAY_NAMES})

    if not isinstance(raw, dict):
        return WeeklyAvailability()

    days: dict[str, DayAvailability] = {}
    for key, value in raw.items():
        day = str(key).strip().lower()
        if day not in DAY_NAMES:
            continue
        parsed = _parse_day(value)
        if parsed is not None:
            days[day] = parsed
    return WeeklyAvailability(days=days)


def option_available(availability: WeeklyAvailability, option: DateOption) -> bool:
    return availability.is_available(day_of_week(option.date), requested_slot(option))
