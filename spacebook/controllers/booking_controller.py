"""HTTP controller layer for bookings and availability queries."""

from __future__ import annotations

from datetime import date as date_type
from typing import Any, Literal, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from spacebook.controllers.dependencies import get_booking_service, require_admin
from spacebook.controllers.space_controller import OkResponse, SpaceResponse
from spacebook.domain.constraints import format_time, parse_time
from spacebook.domain.models import Reservation, ReservationRequest, Space
from spacebook.domain.recurrence import parse_recurrence, rule_to_payload
from spacebook.services.booking_service import (
    BookingConflictError,
    BookingNotFoundError,
    BookingService,
    BookingValidationError,
    NoSpaceAvailableError,
)
from spacebook.services.space_service import SpaceNotFoundError
from spacebook.utils.config import get_settings
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api", tags=["bookings"])


class RecurrencePayload(BaseModel):
    """Wire shape of a recurrence rule; weekday 0 is Sunday."""

    model_config = ConfigDict(populate_by_name=True)

    frequency: Optional[str] = None
    weekday: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, alias="dayOfMonth", ge=1, le=31)
    nth: Optional[int] = Field(default=None, ge=1, le=5)


class CreateBookingRequest(BaseModel):
    """Accepts snake_case fields and the camelCase names older clients send."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    space_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("space_id", "spaceId"),
    )
    date: date_type
    start_time: str = Field(
        pattern=settings.time_format_regex,
        validation_alias=AliasChoices("start_time", "startTime"),
    )
    end_time: str = Field(
        pattern=settings.end_time_format_regex,
        validation_alias=AliasChoices("end_time", "endTime"),
    )
    # `false` means a one-off booking.
    recurrence: Union[RecurrencePayload, Literal[False], None] = Field(
        default=None,
        validation_alias=AliasChoices("recurrence", "recurring"),
    )


class BookingResponse(BaseModel):
    id: str
    space_id: str
    space_name: str
    name: str
    email: str
    date: date_type
    start_time: str
    end_time: str
    recurring: bool
    recurrence: Optional[dict[str, Any]] = None
    checked_in: bool

    @classmethod
    def from_reservation(
        cls,
        reservation: Reservation,
        space: Optional[Space],
    ) -> "BookingResponse":
        return cls(
            id=reservation.reservation_id,
            space_id=reservation.space_id,
            space_name=space.name if space is not None else "",
            name=reservation.name,
            email=reservation.email,
            date=reservation.date,
            start_time=format_time(reservation.start),
            end_time=format_time(reservation.end),
            recurring=reservation.is_recurring,
            recurrence=rule_to_payload(reservation.rule),
            checked_in=reservation.checked_in,
        )


class AutoBookingResponse(BaseModel):
    id: str
    space_id: str
    space_name: str


class BookingPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[BookingResponse]
    total: int
    offset: int
    page: Optional[int] = None
    page_size: int = Field(alias="pageSize")


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, BookingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (SpaceNotFoundError, BookingNotFoundError, NoSpaceAvailableError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, BookingConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.exception("Unexpected booking failure")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process booking",
    )


@router.get(
    "/bookings",
    response_model=Union[list[BookingResponse], BookingPageResponse],
    dependencies=[Depends(require_admin)],
)
async def list_bookings(
    upcoming: Optional[bool] = None,
    from_date: Optional[date_type] = Query(default=None, alias="from"),
    sort: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: Optional[int] = Query(default=None, ge=0),
    page: Optional[int] = Query(default=None, ge=1),
    page_size: Optional[int] = Query(default=None, alias="pageSize", ge=1),
    service: BookingService = Depends(get_booking_service),
) -> Union[list[BookingResponse], BookingPageResponse]:
    """All active bookings; any filter or paging parameter switches to a page."""
    controls = (upcoming, from_date, sort, limit, offset, page, page_size)
    if all(value is None for value in controls):
        return [
            BookingResponse.from_reservation(reservation, space)
            for reservation, space in service.list_bookings()
        ]

    try:
        result = service.query_bookings(
            upcoming=bool(upcoming),
            from_date=from_date,
            descending=(sort or "").strip().lower() == "desc",
            page=page,
            page_size=page_size or limit,
            offset=offset or 0,
        )
    except Exception as exc:
        raise _translate(exc) from exc
    return BookingPageResponse(
        items=[
            BookingResponse.from_reservation(reservation, space)
            for reservation, space in result.items
        ],
        total=result.total,
        offset=result.offset,
        page=result.page,
        page_size=result.page_size,
    )


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Admit a one-off or recurring booking for an explicit space."""
    rule = None
    if isinstance(payload.recurrence, RecurrencePayload):
        rule = parse_recurrence(payload.recurrence.model_dump(by_alias=True))
    try:
        reservation = service.create_booking(
            ReservationRequest(
                space_id=payload.space_id,
                date=payload.date,
                start=parse_time(payload.start_time),
                end=parse_time(payload.end_time, allow_end_of_day=True),
                rule=rule,
                name=payload.name,
                email=payload.email,
            )
        )
    except Exception as exc:
        raise _translate(exc) from exc
    return BookingResponse.from_reservation(
        reservation,
        service.get_space(reservation.space_id),
    )


@router.get("/bookings/auto", response_model=AutoBookingResponse)
async def auto_book(
    type: str = Query(min_length=1),
    date: date_type = Query(),
    start: str = Query(pattern=settings.time_format_regex),
    end: str = Query(pattern=settings.end_time_format_regex),
    name: str = Query(min_length=1),
    email: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> AutoBookingResponse:
    """Book the highest-priority free space of the requested type."""
    try:
        reservation, space = service.auto_book(
            ReservationRequest(
                space_type=type,
                date=date,
                start=parse_time(start),
                end=parse_time(end, allow_end_of_day=True),
                name=name,
                email=email,
            )
        )
    except Exception as exc:
        raise _translate(exc) from exc
    return AutoBookingResponse(
        id=reservation.reservation_id,
        space_id=space.space_id,
        space_name=space.name,
    )


@router.get(
    "/bookings/today",
    response_model=list[BookingResponse],
    dependencies=[Depends(require_admin)],
)
async def bookings_today(
    date: Optional[date_type] = None,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    """Bookings occurring on `date` (default: today), recurring ones included."""
    target = date or date_type.today()
    return [
        BookingResponse.from_reservation(reservation, space)
        for reservation, space in service.bookings_on(target)
    ]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    dependencies=[Depends(require_admin)],
)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        reservation, space = service.get_booking(booking_id)
    except Exception as exc:
        raise _translate(exc) from exc
    return BookingResponse.from_reservation(reservation, space)


@router.post(
    "/bookings/{booking_id}/checkin",
    response_model=OkResponse,
    dependencies=[Depends(require_admin)],
)
async def check_in(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> OkResponse:
    try:
        service.check_in(booking_id)
    except Exception as exc:
        raise _translate(exc) from exc
    return OkResponse()


@router.delete(
    "/bookings/{booking_id}",
    response_model=OkResponse,
    dependencies=[Depends(require_admin)],
)
async def cancel_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> OkResponse:
    try:
        service.cancel_booking(booking_id)
    except Exception as exc:
        raise _translate(exc) from exc
    return OkResponse()


@router.get("/availability", response_model=list[SpaceResponse])
async def availability(
    date: date_type = Query(),
    start: str = Query(pattern=settings.time_format_regex),
    end: str = Query(pattern=settings.end_time_format_regex),
    type: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
) -> list[SpaceResponse]:
    """Spaces free for the whole window on `date`, optionally of one type."""
    try:
        spaces = service.list_available_spaces(
            day=date,
            start=parse_time(start),
            end=parse_time(end, allow_end_of_day=True),
            space_type=type,
        )
    except Exception as exc:
        raise _translate(exc) from exc
    return [SpaceResponse.from_space(space) for space in spaces]
