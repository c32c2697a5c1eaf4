"""Read-only reservation state indexed per space."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from spacebook.domain.models import Reservation, Space


@dataclass(frozen=True)
class ReservationSnapshot:
    """Spaces in registry order plus active reservations keyed by space id.

    Cancelled reservations are dropped while indexing, so lookups never need
    to scan reservations that belong to other spaces or no longer count.
    """

    spaces: tuple[Space, ...] = ()
    by_space: dict[str, tuple[Reservation, ...]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        spaces: Iterable[Space],
        reservations: Iterable[Reservation],
    ) -> "ReservationSnapshot":
        grouped: dict[str, list[Reservation]] = defaultdict(list)
        for reservation in reservations:
            if reservation.is_cancelled:
                continue
            grouped[reservation.space_id].append(reservation)
        return cls(
            spaces=tuple(spaces),
            by_space={space_id: tuple(items) for space_id, items in grouped.items()},
        )

    def reservations_for(self, space_id: str) -> tuple[Reservation, ...]:
        return self.by_space.get(space_id, ())

    def get_space(self, space_id: str) -> Optional[Space]:
        for space in self.spaces:
            if space.space_id == space_id:
                return space
        return None

    def spaces_of_type(self, space_type: str) -> list[Space]:
        return [space for space in self.spaces if space.space_type == space_type]
