"""Recurrence rule evaluation and (de)serialization.

Rules are never expanded into stored occurrences. Whether a reservation
repeats on a given date is always answered by `occurs_on`, which is a pure
function of the rule and the date.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional

from spacebook.domain.models import (
    MonthlyOnDayOfMonth,
    MonthlyOnNthWeekday,
    RecurrenceRule,
    WeeklyOnWeekday,
)


def weekday_of(day: date) -> int:
    """Return the weekday with Sunday as 0 and Saturday as 6."""
    return day.isoweekday() % 7


def nth_weekday_ordinal(day: date) -> int:
    """Return which occurrence of its weekday `day` is within its month (1-based)."""
    return (day.day - 1) // 7 + 1


def occurs_on(rule: Optional[RecurrenceRule], day: date) -> bool:
    """Return True when `rule` produces an occurrence on `day`.

    A missing rule never matches; the caller compares the reservation's own
    date separately. Rules with missing or non-numeric fields evaluate to
    False instead of raising.
    """
    if rule is None:
        return False
    try:
        if isinstance(rule, WeeklyOnWeekday):
            return weekday_of(day) == int(rule.weekday)
        if isinstance(rule, MonthlyOnDayOfMonth):
            # No clamping: day 31 never matches a 30-day month.
            return day.day == int(rule.day)
        if isinstance(rule, MonthlyOnNthWeekday):
            if weekday_of(day) != int(rule.weekday):
                return False
            return nth_weekday_ordinal(day) == int(rule.nth)
    except (TypeError, ValueError):
        return False
    return False


def parse_recurrence(payload: Any) -> Optional[RecurrenceRule]:
    """Build a rule from the JSON shape clients send.

    Accepted shapes, checked in this order:
      {"frequency": "weekly", "weekday": 1}
      {"dayOfMonth": 15}
      {"nth": 3, "weekday": 5}
    Anything else, including `False` or `None`, means a one-off booking.
    """
    if not isinstance(payload, Mapping):
        return None

    weekday = payload.get("weekday")
    day_of_month = payload.get("dayOfMonth")
    nth = payload.get("nth")
    try:
        if payload.get("frequency") == "weekly" and weekday is not None:
            return WeeklyOnWeekday(weekday=int(weekday))
        if day_of_month is not None:
            return MonthlyOnDayOfMonth(day=int(day_of_month))
        if nth is not None and weekday is not None:
            return MonthlyOnNthWeekday(nth=int(nth), weekday=int(weekday))
    except (TypeError, ValueError):
        return None
    return None


def rule_to_payload(rule: Optional[RecurrenceRule]) -> Optional[dict[str, Any]]:
    """Inverse of `parse_recurrence` for persistence and API responses."""
    if isinstance(rule, WeeklyOnWeekday):
        return {"frequency": "weekly", "weekday": rule.weekday}
    if isinstance(rule, MonthlyOnDayOfMonth):
        return {"frequency": "monthly", "dayOfMonth": rule.day}
    if isinstance(rule, MonthlyOnNthWeekday):
        return {"frequency": "monthly", "nth": rule.nth, "weekday": rule.weekday}
    return None
