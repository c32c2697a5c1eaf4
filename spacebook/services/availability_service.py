"""Conflict resolution over one-off and recurring reservations.

Every function here is a pure query over a `ReservationSnapshot`: nothing is
written, nothing blocks, and the same inputs always give the same answer.
Serialising "check, then write" is the job of the booking service.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator, Optional

from spacebook.domain.models import RecurrenceRule, Reservation
from spacebook.domain.recurrence import occurs_on
from spacebook.domain.snapshot import ReservationSnapshot
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)

# Recurring rules are unbounded, so admission only proves conflict-freedom
# this many years past the first occurrence.
RECURRENCE_HORIZON_YEARS = 1


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return start_a < end_b and start_b < end_a


def reservation_occurs_on(reservation: Reservation, day: date) -> bool:
    """True when the reservation holds its space on `day`.

    The rule is evaluated for any date, including dates before the
    reservation's first occurrence.
    """
    return reservation.date == day or occurs_on(reservation.rule, day)


def find_conflict(
    snapshot: ReservationSnapshot,
    space_id: str,
    day: date,
    start: int,
    end: int,
) -> Optional[Reservation]:
    for reservation in snapshot.reservations_for(space_id):
        if reservation.is_cancelled:
            continue
        if not reservation_occurs_on(reservation, day):
            continue
        if intervals_overlap(start, end, reservation.start, reservation.end):
            return reservation
    return None


def is_available(
    snapshot: ReservationSnapshot,
    space_id: str,
    day: date,
    start: int,
    end: int,
) -> bool:
    return find_conflict(snapshot, space_id, day, start, end) is None


def horizon_end(first_date: date) -> date:
    """Same calendar day `RECURRENCE_HORIZON_YEARS` later; Feb 29 rolls to Mar 1."""
    target_year = first_date.year + RECURRENCE_HORIZON_YEARS
    try:
        return first_date.replace(year=target_year)
    except ValueError:
        return date(target_year, 3, 1)


def iter_horizon_dates(first_date: date) -> Iterator[date]:
    """Dates strictly after `first_date` up to and including the horizon end."""
    last = horizon_end(first_date)
    current = first_date + timedelta(days=1)
    while current <= last:
        yield current
        current += timedelta(days=1)


def future_occurrences_are_free(
    snapshot: ReservationSnapshot,
    space_id: str,
    first_date: date,
    start: int,
    end: int,
    rule: Optional[RecurrenceRule],
) -> bool:
    """Check every occurrence of `rule` after `first_date` within the horizon.

    The first occurrence itself is not checked here; the caller validates it
    with `is_available` beforehand.
    """
    if rule is None:
        return True
    for day in iter_horizon_dates(first_date):
        if not occurs_on(rule, day):
            continue
        if not is_available(snapshot, space_id, day, start, end):
            logger.debug(
                "Recurring conflict found | space_id=%s | first_date=%s | conflict_date=%s",
                space_id,
                first_date.isoformat(),
                day.isoformat(),
            )
            return False
    return True


def assign_space(
    snapshot: ReservationSnapshot,
    space_type: str,
    day: date,
    start: int,
    end: int,
) -> Optional[str]:
    """Return the id of the most preferred free space of `space_type`, or None.

    Candidates are tried by ascending priority; `sorted` is stable, so equal
    priorities keep registry order.
    """
    candidates = sorted(
        snapshot.spaces_of_type(space_type),
        key=lambda space: space.priority_order,
    )
    for space in candidates:
        if is_available(snapshot, space.space_id, day, start, end):
            return space.space_id
    return None
