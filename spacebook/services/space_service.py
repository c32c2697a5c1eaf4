"""Space registry management."""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from threading import Lock, RLock
from typing import Iterable, Iterator, Optional

from spacebook.domain.models import Space
from spacebook.repository.data_repository import DataRepository
from spacebook.utils.config import Settings, get_settings
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)


class SpaceValidationError(Exception):
    """Raised when space attributes are missing or invalid."""


class SpaceNotFoundError(Exception):
    """Raised when a space id is unknown."""


def normalize_space_type(space_type: str) -> str:
    """Types are stored and compared case-insensitively."""
    return space_type.strip().lower()


class SpaceLockTable:
    """Per-space locks, acquired in a fixed order.

    Callers only take locks for spaces they have seen in the registry, and a
    deleted space's lock is dropped, so the table tracks existing spaces.
    """

    def __init__(self) -> None:
        self._guard = RLock()
        self._locks: dict[str, Lock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _lock_for(self, space_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(space_id)
            if lock is None:
                lock = Lock()
                self._locks[space_id] = lock
            return lock

    @contextmanager
    def holding(self, space_ids: Iterable[str]) -> Iterator[None]:
        # Sorted acquisition keeps multi-space holders from deadlocking.
        with ExitStack() as stack:
            for space_id in sorted(set(space_ids)):
                stack.enter_context(self._lock_for(space_id))
            yield

    def discard(self, space_id: str) -> None:
        with self._guard:
            self._locks.pop(space_id, None)


class SpaceService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        locks: Optional[SpaceLockTable] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._locks = locks if locks is not None else SpaceLockTable()

    def list_spaces(self, space_type: Optional[str] = None) -> list[Space]:
        spaces = self._repository.list_spaces()
        if space_type is None:
            return spaces
        wanted = normalize_space_type(space_type)
        return [space for space in spaces if space.space_type == wanted]

    def create_space(self, name: str, space_type: str, priority_order: int) -> Space:
        if not name.strip():
            raise SpaceValidationError("name must be non-empty")
        if not space_type.strip():
            raise SpaceValidationError("type must be non-empty")
        space = self._repository.create_space(
            name=name.strip(),
            space_type=normalize_space_type(space_type),
            priority_order=int(priority_order),
        )
        logger.info(
            "Space created | space_id=%s | type=%s | priority=%s",
            space.space_id,
            space.space_type,
            space.priority_order,
        )
        return space

    def delete_space(self, space_id: str) -> None:
        """Remove a space; its reservations are removed with it.

        Runs under the space's lock so no admission can insert a booking for
        it between its availability check and its write.
        """
        if self._repository.get_space(space_id) is None:
            raise SpaceNotFoundError("Space not found")
        with self._locks.holding([space_id]):
            deleted = self._repository.delete_space(space_id)
            self._locks.discard(space_id)
        if not deleted:
            raise SpaceNotFoundError("Space not found")
        logger.info("Space deleted | space_id=%s", space_id)
