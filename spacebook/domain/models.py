"""Domain models for spaces, reservations and recurrence rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import IntEnum
from typing import Optional, Union


class Weekday(IntEnum):
    """Weekday numbering used on the wire: Sunday is 0."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class ReservationStatus:
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class WeeklyOnWeekday:
    weekday: int


@dataclass(frozen=True)
class MonthlyOnDayOfMonth:
    day: int


@dataclass(frozen=True)
class MonthlyOnNthWeekday:
    nth: int
    weekday: int


RecurrenceRule = Union[WeeklyOnWeekday, MonthlyOnDayOfMonth, MonthlyOnNthWeekday]


@dataclass(frozen=True)
class Space:
    space_id: str
    name: str
    space_type: str
    priority_order: int


@dataclass(frozen=True)
class Reservation:
    """An admitted booking; `start`/`end` are minutes since midnight."""

    reservation_id: str
    space_id: str
    date: date
    start: int
    end: int
    rule: Optional[RecurrenceRule] = None
    name: str = ""
    email: str = ""
    status: str = ReservationStatus.ACTIVE
    checked_in: bool = False

    @property
    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED

    @property
    def is_recurring(self) -> bool:
        return self.rule is not None


@dataclass(frozen=True)
class ReservationRequest:
    """Admission input; exactly one of `space_id` / `space_type` is set."""

    date: date
    start: int
    end: int
    space_id: Optional[str] = None
    space_type: Optional[str] = None
    rule: Optional[RecurrenceRule] = None
    name: str = ""
    email: str = ""
