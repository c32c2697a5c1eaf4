"""Domain-level validation rules applied before the availability engine runs."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from spacebook.domain.models import (
    MonthlyOnDayOfMonth,
    MonthlyOnNthWeekday,
    RecurrenceRule,
    WeeklyOnWeekday,
)


_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60
_END_OF_DAY = "24:00"


def parse_time(value: str, allow_end_of_day: bool = False) -> int:
    """Convert a 24h `HH:MM` string into minutes since midnight.

    `24:00` is only accepted with `allow_end_of_day`, for end times of
    windows that run up to midnight.
    """
    if not isinstance(value, str):
        raise ValueError(f"time must follow HH:MM 24-hour format, got {value!r}")
    if allow_end_of_day and value.strip() == _END_OF_DAY:
        return MINUTES_PER_DAY
    match = _TIME_PATTERN.fullmatch(value.strip())
    if match is None:
        raise ValueError(f"time must follow HH:MM 24-hour format, got {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError("minutes must be within a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as exc:
        raise ValueError("date must follow YYYY-MM-DD format") from exc


def validate_time_window(start: int, end: int, max_booking_hours: int) -> None:
    if not 0 <= start < MINUTES_PER_DAY:
        raise ValueError("start time is outside the day")
    if not 0 < end <= MINUTES_PER_DAY:
        raise ValueError("end time is outside the day")
    if end <= start:
        raise ValueError("End time must be after start time")
    if end - start > max_booking_hours * 60:
        raise ValueError(f"Bookings cannot exceed {max_booking_hours} hours")


def validate_recurrence_rule(rule: Optional[RecurrenceRule]) -> None:
    if rule is None:
        return
    if isinstance(rule, WeeklyOnWeekday):
        _check_weekday(rule.weekday)
    elif isinstance(rule, MonthlyOnDayOfMonth):
        if not isinstance(rule.day, int) or not 1 <= rule.day <= 31:
            raise ValueError("dayOfMonth must be between 1 and 31")
    elif isinstance(rule, MonthlyOnNthWeekday):
        if not isinstance(rule.nth, int) or not 1 <= rule.nth <= 5:
            raise ValueError("nth must be between 1 and 5")
        _check_weekday(rule.weekday)
    else:
        raise ValueError("unsupported recurrence rule")


def _check_weekday(weekday: object) -> None:
    if not isinstance(weekday, int) or not 0 <= weekday <= 6:
        raise ValueError("weekday must be between 0 (Sunday) and 6 (Saturday)")
