"""Booking admission, auto-assignment and cancellation.

Availability answers come from `availability_service`, which only reads a
snapshot. Between that answer and the insert another request could take the
same slot, so every admission reloads the snapshot, checks and writes while
holding the lock of each space it may touch.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Optional

from spacebook.domain.constraints import validate_recurrence_rule, validate_time_window
from spacebook.domain.models import Reservation, ReservationRequest, Space
from spacebook.domain.snapshot import ReservationSnapshot
from spacebook.repository.data_repository import DataRepository
from spacebook.services.availability_service import (
    assign_space,
    future_occurrences_are_free,
    is_available,
    reservation_occurs_on,
)
from spacebook.services.space_service import (
    SpaceLockTable,
    SpaceNotFoundError,
    normalize_space_type,
)
from spacebook.utils.config import Settings, get_settings
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 100


class BookingValidationError(Exception):
    """Raised when a booking request is malformed or out of range."""


class BookingConflictError(Exception):
    """Raised when the requested slot overlaps an existing reservation."""


class BookingNotFoundError(Exception):
    """Raised when a reservation id does not exist or is already cancelled."""


class NoSpaceAvailableError(Exception):
    """Raised when auto-booking finds no free space of the requested type."""


BookingRow = tuple[Reservation, Optional[Space]]


@dataclass(frozen=True)
class BookingPage:
    items: list[BookingRow]
    total: int
    offset: int
    page: Optional[int]
    page_size: int


class BookingService:
    """Admits reservations with the availability engine as the gatekeeper."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[SpaceLockTable] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or datetime.now
        self._locks = locks if locks is not None else SpaceLockTable()

    def _validate(self, request: ReservationRequest) -> None:
        try:
            validate_time_window(
                request.start,
                request.end,
                self._settings.max_booking_hours,
            )
            validate_recurrence_rule(request.rule)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc

        if self._settings.allow_past_bookings:
            return
        starts_at = datetime.combine(
            request.date,
            time(hour=request.start // 60, minute=request.start % 60),
        )
        if starts_at < self._clock():
            raise BookingValidationError("Cannot book a date/time in the past")

    def _build_reservation(self, request: ReservationRequest, space_id: str) -> Reservation:
        return Reservation(
            reservation_id="",
            space_id=space_id,
            date=request.date,
            start=request.start,
            end=request.end,
            rule=request.rule,
            name=request.name.strip(),
            email=request.email.strip().lower(),
        )

    def create_booking(self, request: ReservationRequest) -> Reservation:
        """Admit a booking for an explicit space or raise."""
        if not request.space_id:
            raise BookingValidationError("space_id is required; use auto-booking for a type")
        self._validate(request)
        # Unknown ids never reach the lock table.
        if self._repository.get_space(request.space_id) is None:
            raise SpaceNotFoundError(f"Space {request.space_id} not found")

        with self._locks.holding([request.space_id]):
            snapshot = self._repository.load_snapshot()
            if snapshot.get_space(request.space_id) is None:
                self._locks.discard(request.space_id)
                raise SpaceNotFoundError(f"Space {request.space_id} not found")

            if not is_available(
                snapshot,
                request.space_id,
                request.date,
                request.start,
                request.end,
            ):
                raise BookingConflictError("Space is not available for the requested time")

            if not future_occurrences_are_free(
                snapshot,
                request.space_id,
                request.date,
                request.start,
                request.end,
                request.rule,
            ):
                raise BookingConflictError(
                    "Recurring booking conflicts with an existing booking in a future period"
                )

            reservation = self._repository.create_reservation(
                self._build_reservation(request, request.space_id)
            )

        logger.info(
            "Booking admitted | reservation_id=%s | space_id=%s | date=%s | recurring=%s",
            reservation.reservation_id,
            reservation.space_id,
            reservation.date.isoformat(),
            reservation.is_recurring,
        )
        return reservation

    def auto_book(self, request: ReservationRequest) -> tuple[Reservation, Space]:
        """Book the highest-priority free space of `request.space_type`."""
        if not request.space_type or not request.space_type.strip():
            raise BookingValidationError("space_type is required for auto-booking")
        if request.rule is not None:
            raise BookingValidationError("Auto-booking only supports one-off bookings")
        self._validate(request)

        space_type = normalize_space_type(request.space_type)
        candidate_ids = {
            space.space_id
            for space in self._repository.list_spaces()
            if space.space_type == space_type
        }
        with self._locks.holding(candidate_ids):
            loaded = self._repository.load_snapshot()
            # Only spaces whose locks are held may be picked.
            snapshot = ReservationSnapshot(
                spaces=tuple(s for s in loaded.spaces if s.space_id in candidate_ids),
                by_space=loaded.by_space,
            )
            space_id = assign_space(
                snapshot,
                space_type,
                request.date,
                request.start,
                request.end,
            )
            space = snapshot.get_space(space_id) if space_id is not None else None
            if space is None:
                logger.info(
                    "Auto-booking found no free space | space_type=%s | date=%s",
                    space_type,
                    request.date.isoformat(),
                )
                raise NoSpaceAvailableError("No spaces available for the requested time")
            reservation = self._repository.create_reservation(
                self._build_reservation(request, space.space_id)
            )

        logger.info(
            "Auto-booking admitted | reservation_id=%s | space_id=%s | priority=%s",
            reservation.reservation_id,
            space.space_id,
            space.priority_order,
        )
        return reservation, space

    def cancel_booking(self, reservation_id: str) -> None:
        if not self._repository.cancel_reservation(reservation_id):
            raise BookingNotFoundError("Booking not found")
        logger.info("Booking cancelled | reservation_id=%s", reservation_id)

    def check_in(self, reservation_id: str) -> None:
        if not self._repository.mark_checked_in(reservation_id):
            raise BookingNotFoundError("Booking not found")

    def get_booking(self, reservation_id: str) -> BookingRow:
        reservation = self._repository.get_reservation(reservation_id)
        if reservation is None:
            raise BookingNotFoundError("Booking not found")
        return reservation, self._repository.get_space(reservation.space_id)

    def list_available_spaces(
        self,
        day: date,
        start: int,
        end: int,
        space_type: Optional[str] = None,
    ) -> list[Space]:
        try:
            validate_time_window(start, end, self._settings.max_booking_hours)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc
        wanted = normalize_space_type(space_type) if space_type is not None else None
        snapshot = self._repository.load_snapshot()
        return [
            space
            for space in snapshot.spaces
            if (wanted is None or space.space_type == wanted)
            and is_available(snapshot, space.space_id, day, start, end)
        ]

    def get_space(self, space_id: str) -> Optional[Space]:
        return self._repository.get_space(space_id)

    def list_bookings(self) -> list[BookingRow]:
        snapshot = self._repository.load_snapshot()
        return [
            (reservation, snapshot.get_space(reservation.space_id))
            for reservation in self._repository.list_reservations()
        ]

    def query_bookings(
        self,
        upcoming: bool = False,
        from_date: Optional[date] = None,
        descending: bool = False,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        offset: int = 0,
    ) -> BookingPage:
        """Filter, sort and page the active bookings.

        `upcoming` keeps bookings whose first date is after today, or today
        with an end time not yet passed. A recurring series that started in
        the past is left out. `page` (1-based) wins over `offset`.
        """
        if page is not None and page < 1:
            raise BookingValidationError("page must be at least 1")
        if page_size is not None and page_size < 1:
            raise BookingValidationError("pageSize must be at least 1")
        if offset < 0:
            raise BookingValidationError("offset must not be negative")

        rows = self.list_bookings()
        if upcoming:
            now = self._clock()
            today = now.date()
            current = now.hour * 60 + now.minute
            rows = [
                (reservation, space)
                for reservation, space in rows
                if reservation.date > today
                or (reservation.date == today and reservation.end >= current)
            ]
        if from_date is not None:
            rows = [
                (reservation, space)
                for reservation, space in rows
                if reservation.date >= from_date
            ]

        rows.sort(key=lambda row: (row[0].date, row[0].start), reverse=descending)

        size = page_size or DEFAULT_PAGE_SIZE
        start = (page - 1) * size if page is not None else offset
        return BookingPage(
            items=rows[start:start + size],
            total=len(rows),
            offset=start,
            page=page,
            page_size=size,
        )

    def bookings_on(self, day: date) -> list[BookingRow]:
        """Reservations holding a space on `day`, one-off or recurring."""
        return [
            (reservation, space)
            for reservation, space in self.list_bookings()
            if reservation_occurs_on(reservation, day)
        ]
