"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import replace
from pathlib import Path
from typing import Optional
from uuid import uuid4

from spacebook.domain.constraints import format_time, parse_date, parse_time
from spacebook.domain.models import Reservation, ReservationStatus, Space
from spacebook.domain.recurrence import parse_recurrence, rule_to_payload
from spacebook.domain.snapshot import ReservationSnapshot
from spacebook.utils.config import Settings, get_settings
from spacebook.utils.logger import get_logger


logger = get_logger(__name__)


class DataRepository:
    """Encapsulates SQLite access so the availability engine stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create tables and indexes; safe to call on every startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Spaces (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        space_type TEXT NOT NULL,
                        priority_order INTEGER NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Reservations (
                        id TEXT PRIMARY KEY,
                        space_id TEXT NOT NULL,
                        name TEXT NOT NULL DEFAULT '',
                        email TEXT NOT NULL DEFAULT '',
                        date TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        recurrence TEXT,
                        status TEXT NOT NULL DEFAULT 'ACTIVE',
                        checked_in INTEGER NOT NULL DEFAULT 0 CHECK (checked_in IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (space_id) REFERENCES Spaces(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_reservations_space_status
                    ON Reservations(space_id, status);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_spaces_type_priority
                    ON Spaces(space_type, priority_order);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_default_spaces(self) -> None:
        """Insert the default office/desk/conference spaces when none exist."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Spaces;")
            if int(cursor.fetchone()["count"]) > 0:
                logger.info("Spaces already present; skipping seed")
                return
            cursor.executemany(
                """
                INSERT INTO Spaces (id, name, space_type, priority_order)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (str(uuid4()), name, space_type, priority_order)
                    for name, space_type, priority_order in self._settings.default_spaces
                ],
            )
            conn.commit()
        logger.info("Seeded %s default spaces", len(self._settings.default_spaces))

    @staticmethod
    def _row_to_space(row: sqlite3.Row) -> Space:
        return Space(
            space_id=str(row["id"]),
            name=str(row["name"]),
            space_type=str(row["space_type"]),
            priority_order=int(row["priority_order"]),
        )

    @staticmethod
    def _row_to_reservation(row: sqlite3.Row) -> Reservation:
        recurrence = row["recurrence"]
        return Reservation(
            reservation_id=str(row["id"]),
            space_id=str(row["space_id"]),
            date=parse_date(str(row["date"])),
            start=parse_time(str(row["start_time"])),
            end=parse_time(str(row["end_time"]), allow_end_of_day=True),
            rule=parse_recurrence(json.loads(recurrence)) if recurrence else None,
            name=str(row["name"]),
            email=str(row["email"]),
            status=str(row["status"]),
            checked_in=bool(row["checked_in"]),
        )

    def list_spaces(self) -> list[Space]:
        """Return spaces in registry (insertion) order."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, space_type, priority_order
                FROM Spaces
                ORDER BY rowid ASC;
                """
            )
            return [self._row_to_space(row) for row in cursor.fetchall()]

    def get_space(self, space_id: str) -> Optional[Space]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, space_type, priority_order FROM Spaces WHERE id = ?;",
                (space_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_space(row)

    def create_space(self, name: str, space_type: str, priority_order: int) -> Space:
        space = Space(
            space_id=str(uuid4()),
            name=name,
            space_type=space_type,
            priority_order=priority_order,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Spaces (id, name, space_type, priority_order)
                VALUES (?, ?, ?, ?);
                """,
                (space.space_id, space.name, space.space_type, space.priority_order),
            )
            conn.commit()
        return space

    def delete_space(self, space_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM Spaces WHERE id = ?;", (space_id,))
            conn.commit()
            return cursor.rowcount > 0

    def create_reservation(self, reservation: Reservation) -> Reservation:
        """Insert an admitted reservation; a fresh id is assigned when empty."""
        if not reservation.reservation_id:
            reservation = replace(reservation, reservation_id=str(uuid4()))
        payload = rule_to_payload(reservation.rule)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Reservations (
                    id,
                    space_id,
                    name,
                    email,
                    date,
                    start_time,
                    end_time,
                    recurrence,
                    status,
                    checked_in
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    reservation.reservation_id,
                    reservation.space_id,
                    reservation.name,
                    reservation.email,
                    reservation.date.isoformat(),
                    format_time(reservation.start),
                    format_time(reservation.end),
                    json.dumps(payload) if payload is not None else None,
                    reservation.status,
                    int(reservation.checked_in),
                ),
            )
            conn.commit()
        return reservation

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM Reservations WHERE id = ?;", (reservation_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_reservation(row)

    def list_reservations(self, include_cancelled: bool = False) -> list[Reservation]:
        """Return reservations ordered by first date then start time."""
        query = "SELECT * FROM Reservations"
        if not include_cancelled:
            query += f" WHERE status = '{ReservationStatus.ACTIVE}'"
        query += " ORDER BY date ASC, start_time ASC, rowid ASC;"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query)
            return [self._row_to_reservation(row) for row in cursor.fetchall()]

    def cancel_reservation(self, reservation_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE Reservations
                SET status = ?
                WHERE id = ? AND status = ?;
                """,
                (ReservationStatus.CANCELLED, reservation_id, ReservationStatus.ACTIVE),
            )
            conn.commit()
            return cursor.rowcount > 0

    def mark_checked_in(self, reservation_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE Reservations
                SET checked_in = 1
                WHERE id = ? AND status = ?;
                """,
                (reservation_id, ReservationStatus.ACTIVE),
            )
            conn.commit()
            return cursor.rowcount > 0

    def load_snapshot(self) -> ReservationSnapshot:
        """Read spaces and active reservations into a per-space index."""
        return ReservationSnapshot.build(
            spaces=self.list_spaces(),
            reservations=self.list_reservations(),
        )
