"""Repository layer responsible for all authoritative database access."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from housekeeping.domain.errors import NotFoundError, StorageError, ValidationError
from housekeeping.domain.models import (
    Assignment,
    Cleaning,
    Incident,
    IncidentPhoto,
    IncidentStatus,
    Room,
    RoomStatus,
    User,
    UserRole,
)
from housekeeping.utils.clock import from_db_timestamp, to_db_timestamp, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

RoomTransition = Callable[[Room], Room]
ResolutionTransition = Callable[[Room, int], Room]

DEMO_USERS = (
    ("Administrator", "admin@hotel.com", UserRole.ADMIN),
    ("Reception", "reception@hotel.com", UserRole.RECEPTION),
    ("María González", "housekeeper1@hotel.com", UserRole.HOUSEKEEPER),
    ("Ana Martínez", "housekeeper2@hotel.com", UserRole.HOUSEKEEPER),
)
DEMO_FLOORS = 3
DEMO_ROOMS_PER_FLOOR = 10


def _new_id() -> str:
    return uuid.uuid4().hex


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" for _ in values)


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose work commits together or not at all."""
        connection = self._connect()
        try:
            with connection:
                if immediate:
                    connection.execute("BEGIN IMMEDIATE;")
                yield connection
        except sqlite3.IntegrityError as exc:
            raise ValidationError(f"Constraint violation: {exc}") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Storage operation failed: {exc}") from exc
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        with self._transaction() as conn:
            cursor = conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    role TEXT NOT NULL CHECK (role IN ('ADMIN','RECEPTION','HOUSEKEEPER'))
                );
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Rooms (
                    id TEXT PRIMARY KEY,
                    number TEXT NOT NULL UNIQUE,
                    floor INTEGER,
                    status TEXT NOT NULL DEFAULT 'VACANT' CHECK (status IN (
                        'VACANT','OCCUPIED','CLEANING_PENDING',
                        'CHECKOUT_PENDING','CLEAN','DISABLED'
                    )),
                    is_occupied INTEGER NOT NULL DEFAULT 0 CHECK (is_occupied IN (0,1)),
                    last_cleaned_by TEXT,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (last_cleaned_by) REFERENCES Users(id)
                );
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Assignments (
                    id TEXT PRIMARY KEY,
                    room_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    assigned_at TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0 CHECK (completed IN (0,1)),
                    UNIQUE (room_id, user_id, date),
                    FOREIGN KEY (room_id) REFERENCES Rooms(id),
                    FOREIGN KEY (user_id) REFERENCES Users(id)
                );
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Cleanings (
                    id TEXT PRIMARY KEY,
                    room_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    cleaned_at TEXT NOT NULL,
                    FOREIGN KEY (room_id) REFERENCES Rooms(id),
                    FOREIGN KEY (user_id) REFERENCES Users(id)
                );
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Incidents (
                    id TEXT PRIMARY KEY,
                    room_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    description TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'OPEN' CHECK (status IN ('OPEN','RESOLVED')),
                    created_at TEXT NOT NULL,
                    resolved_at TEXT,
                    resolved_by TEXT,
                    FOREIGN KEY (room_id) REFERENCES Rooms(id),
                    FOREIGN KEY (user_id) REFERENCES Users(id),
                    FOREIGN KEY (resolved_by) REFERENCES Users(id)
                );
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS IncidentPhotos (
                    id TEXT PRIMARY KEY,
                    incident_id TEXT NOT NULL,
                    url TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    FOREIGN KEY (incident_id) REFERENCES Incidents(id)
                );
                """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_assignments_date_user
                ON Assignments(date, user_id);
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_cleanings_room_date
                ON Cleanings(room_id, date, cleaned_at);
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_incidents_room_status
                ON Incidents(room_id, status);
                """
            )
        logger.info("Database initialized at %s", self._db_path)

    def seed_demo_data(self) -> None:
        """Seed staff and rooms 101-310 only when the store is empty."""
        with self._transaction(immediate=True) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Users;")
            if int(cursor.fetchone()["count"]) > 0:
                logger.info("Demo data already present; skipping seed")
                return

            cursor.executemany(
                "INSERT INTO Users (id, name, email, role) VALUES (?, ?, ?, ?);",
                [(_new_id(), name, email, role.value) for name, email, role in DEMO_USERS],
            )
            now = to_db_timestamp(utc_now())
            rooms = [
                (_new_id(), f"{floor}{index:02d}", floor, now)
                for floor in range(1, DEMO_FLOORS + 1)
                for index in range(1, DEMO_ROOMS_PER_FLOOR + 1)
            ]
            cursor.executemany(
                """
                INSERT INTO Rooms (id, number, floor, status, is_occupied, updated_at)
                VALUES (?, ?, ?, 'VACANT', 0, ?);
                """,
                rooms,
            )
        logger.info(
            "Demo seed completed with %s users and %s rooms",
            len(DEMO_USERS),
            len(rooms),
        )

    # --- Users ---

    def get_user(self, user_id: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, name, email, role FROM Users WHERE id = ?;",
                (user_id,),
            ).fetchone()
            if row is None:
                return None
            return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, name, email, role FROM Users WHERE lower(email) = lower(?);",
                (email.strip(),),
            ).fetchone()
            return None if row is None else self._row_to_user(row)

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        with self._transaction() as conn:
            if role is None:
                rows = conn.execute(
                    "SELECT id, name, email, role FROM Users ORDER BY email ASC;"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT id, name, email, role FROM Users WHERE role = ? ORDER BY email ASC;",
                    (role.value,),
                ).fetchall()
            return [self._row_to_user(row) for row in rows]

    # --- Rooms ---

    def create_room(self, number: str, floor: Optional[int]) -> Room:
        room = Room(
            room_id=_new_id(),
            number=number,
            floor=floor,
            status=RoomStatus.VACANT,
            is_occupied=False,
        )
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO Rooms (id, number, floor, status, is_occupied, updated_at)
                VALUES (?, ?, ?, ?, 0, ?);
                """,
                (room.room_id, room.number, room.floor, room.status.value, to_db_timestamp(utc_now())),
            )
        logger.info("Room %s created", room.number)
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        with self._transaction() as conn:
            return self._fetch_room(conn, room_id)

    def list_rooms(self, room_ids: Optional[Sequence[str]] = None) -> List[Room]:
        """Return rooms ordered by display number."""
        with self._transaction() as conn:
            if room_ids is None:
                rows = conn.execute(
                    """
                    SELECT id, number, floor, status, is_occupied, last_cleaned_by
                    FROM Rooms
                    ORDER BY number ASC;
                    """
                ).fetchall()
            elif not room_ids:
                return []
            else:
                rows = conn.execute(
                    f"""
                    SELECT id, number, floor, status, is_occupied, last_cleaned_by
                    FROM Rooms
                    WHERE id IN ({_placeholders(room_ids)})
                    ORDER BY number ASC;
                    """,
                    tuple(room_ids),
                ).fetchall()
            return [self._row_to_room(row) for row in rows]

    def transition_room(self, room_id: str, transition: RoomTransition) -> Room:
        """Apply a state-machine transition to one room atomically."""
        with self._transaction(immediate=True) as conn:
            room = self._require_room(conn, room_id)
            next_room = transition(room)
            self._write_room(conn, next_room)
        if next_room.status != room.status:
            logger.info(
                "Room %s status %s -> %s",
                room.number,
                room.status.value,
                next_room.status.value,
            )
        return next_room

    # --- Assignments ---

    def assign_rooms(
        self,
        room_ids: Sequence[str],
        user_id: str,
        service_date: str,
        assigned_at: datetime,
        transition: RoomTransition,
    ) -> tuple[List[Assignment], List[Room]]:
        """Upsert assignments and transition their rooms as one unit.

        Either every targeted room gets its assignment and status change or,
        when any room or the assignee is unknown, nothing is written.
        """
        stamp = to_db_timestamp(assigned_at)
        with self._transaction(immediate=True) as conn:
            cursor = conn.cursor()
            if self._fetch_user(conn, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")

            rooms: list[Room] = []
            for room_id in room_ids:
                rooms.append(self._require_room(conn, room_id))

            cursor.executemany(
                """
                INSERT INTO Assignments (id, room_id, user_id, date, assigned_at, completed)
                VALUES (?, ?, ?, ?, ?, 0)
                ON CONFLICT (room_id, user_id, date)
                DO UPDATE SET assigned_at = excluded.assigned_at, completed = 0;
                """,
                [(_new_id(), room_id, user_id, service_date, stamp) for room_id in room_ids],
            )

            updated_rooms = [transition(room) for room in rooms]
            for room in updated_rooms:
                self._write_room(conn, room)

            cursor.execute(
                f"""
                SELECT id, room_id, user_id, date, assigned_at, completed
                FROM Assignments
                WHERE user_id = ? AND date = ? AND room_id IN ({_placeholders(room_ids)});
                """,
                (user_id, service_date, *room_ids),
            )
            by_room = {row["room_id"]: self._row_to_assignment(row) for row in cursor.fetchall()}
        return [by_room[room_id] for room_id in room_ids], updated_rooms

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, room_id, user_id, date, assigned_at, completed
                FROM Assignments
                WHERE id = ?;
                """,
                (assignment_id,),
            ).fetchone()
            if row is None:
                return None
            return self._row_to_assignment(row)

    def delete_assignment(self, assignment_id: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM Assignments WHERE id = ?;", (assignment_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Assignment {assignment_id} not found")

    def list_assignments(
        self,
        service_date: str,
        user_id: Optional[str] = None,
    ) -> List[Assignment]:
        """Return assignments for a date, most recently assigned first."""
        query = """
            SELECT id, room_id, user_id, date, assigned_at, completed
            FROM Assignments
            WHERE date = ?
        """
        params: list[object] = [service_date]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += " ORDER BY assigned_at DESC, id ASC;"
        with self._transaction() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [self._row_to_assignment(row) for row in rows]

    def count_assignments(self) -> int:
        with self._transaction() as conn:
            return int(conn.execute("SELECT COUNT(*) AS count FROM Assignments;").fetchone()["count"])

    # --- Cleanings ---

    def record_cleaning(
        self,
        room_id: str,
        user_id: str,
        service_date: str,
        cleaned_at: datetime,
        transition: RoomTransition,
    ) -> Cleaning:
        """Append a cleaning fact, transition the room, complete assignments."""
        cleaning = Cleaning(
            cleaning_id=_new_id(),
            room_id=room_id,
            user_id=user_id,
            date=service_date,
            cleaned_at=cleaned_at,
        )
        with self._transaction(immediate=True) as conn:
            room = self._require_room(conn, room_id)
            conn.execute(
                """
                INSERT INTO Cleanings (id, room_id, user_id, date, cleaned_at)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    cleaning.cleaning_id,
                    room_id,
                    user_id,
                    service_date,
                    to_db_timestamp(cleaned_at),
                ),
            )
            self._write_room(conn, transition(room))
            conn.execute(
                """
                UPDATE Assignments
                SET completed = 1
                WHERE room_id = ? AND user_id = ? AND date = ?;
                """,
                (room_id, user_id, service_date),
            )
        return cleaning

    def list_cleanings(
        self,
        start_date: str,
        end_date: Optional[str] = None,
        room_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Cleaning]:
        """Return cleanings in an inclusive date range, newest first."""
        query = """
            SELECT id, room_id, user_id, date, cleaned_at
            FROM Cleanings
            WHERE date >= ? AND date <= ?
        """
        params: list[object] = [start_date, end_date or start_date]
        if room_id is not None:
            query += " AND room_id = ?"
            params.append(room_id)
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += " ORDER BY date DESC, cleaned_at DESC;"
        with self._transaction() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            return [self._row_to_cleaning(row) for row in rows]

    def count_cleanings(self, room_id: Optional[str] = None) -> int:
        with self._transaction() as conn:
            if room_id is None:
                row = conn.execute("SELECT COUNT(*) AS count FROM Cleanings;").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS count FROM Cleanings WHERE room_id = ?;",
                    (room_id,),
                ).fetchone()
            return int(row["count"])

    # --- Incidents ---

    def create_incident(
        self,
        room_id: str,
        user_id: str,
        description: str,
        created_at: datetime,
        photo_urls: Sequence[str],
        transition: RoomTransition,
    ) -> Incident:
        incident_id = _new_id()
        photos = tuple(
            IncidentPhoto(photo_id=_new_id(), incident_id=incident_id, url=url)
            for url in photo_urls
        )
        with self._transaction(immediate=True) as conn:
            room = self._require_room(conn, room_id)
            conn.execute(
                """
                INSERT INTO Incidents (id, room_id, user_id, description, status, created_at)
                VALUES (?, ?, ?, ?, 'OPEN', ?);
                """,
                (incident_id, room_id, user_id, description, to_db_timestamp(created_at)),
            )
            conn.executemany(
                """
                INSERT INTO IncidentPhotos (id, incident_id, url, position)
                VALUES (?, ?, ?, ?);
                """,
                [
                    (photo.photo_id, incident_id, photo.url, position)
                    for position, photo in enumerate(photos)
                ],
            )
            self._write_room(conn, transition(room))
        logger.info("Incident %s opened for room %s", incident_id, room.number)
        return Incident(
            incident_id=incident_id,
            room_id=room_id,
            user_id=user_id,
            description=description,
            status=IncidentStatus.OPEN,
            created_at=created_at,
            photos=photos,
        )

    def resolve_incident(
        self,
        incident_id: str,
        room_id: str,
        resolved_by: str,
        resolved_at: datetime,
        transition: ResolutionTransition,
    ) -> tuple[Incident, Room]:
        """Close an OPEN incident and transition its room in one unit."""
        with self._transaction(immediate=True) as conn:
            incident = self._fetch_incident(conn, incident_id)
            if incident is None:
                raise NotFoundError(f"Incident {incident_id} not found")
            if incident.status == IncidentStatus.RESOLVED:
                raise ValidationError(f"Incident {incident_id} is already resolved")
            if incident.room_id != room_id:
                raise ValidationError(f"Incident {incident_id} does not belong to room {room_id}")
            room = self._require_room(conn, room_id)
            conn.execute(
                """
                UPDATE Incidents
                SET status = 'RESOLVED', resolved_at = ?, resolved_by = ?
                WHERE id = ?;
                """,
                (to_db_timestamp(resolved_at), resolved_by, incident_id),
            )
            remaining = self._count_open_incidents(conn, room_id)
            next_room = transition(room, remaining)
            self._write_room(conn, next_room)
            resolved = self._fetch_incident(conn, incident_id)
        logger.info(
            "Incident %s resolved; room %s now %s (%s still open)",
            incident_id,
            room.number,
            next_room.status.value,
            remaining,
        )
        return resolved, next_room

    def get_incident(self, incident_id: str) -> Optional[Incident]:
        with self._transaction() as conn:
            return self._fetch_incident(conn, incident_id)

    def list_incidents(
        self,
        room_id: Optional[str] = None,
        status: Optional[IncidentStatus] = None,
        user_id: Optional[str] = None,
    ) -> List[Incident]:
        """Return incidents with photos, newest first."""
        query = """
            SELECT id, room_id, user_id, description, status, created_at, resolved_at, resolved_by
            FROM Incidents
            WHERE 1 = 1
        """
        params: list[object] = []
        if room_id is not None:
            query += " AND room_id = ?"
            params.append(room_id)
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += " ORDER BY created_at DESC, id ASC;"
        with self._transaction() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
            photos_by_incident = self._fetch_photos(conn, [str(row["id"]) for row in rows])
            return [
                self._row_to_incident(row, photos_by_incident.get(str(row["id"]), ()))
                for row in rows
            ]

    def count_open_incidents(self, room_id: str) -> int:
        with self._transaction() as conn:
            return self._count_open_incidents(conn, room_id)

    # --- Internal helpers ---

    def _fetch_user(self, conn: sqlite3.Connection, user_id: str) -> Optional[User]:
        row = conn.execute(
            "SELECT id, name, email, role FROM Users WHERE id = ?;",
            (user_id,),
        ).fetchone()
        return None if row is None else self._row_to_user(row)

    def _fetch_room(self, conn: sqlite3.Connection, room_id: str) -> Optional[Room]:
        row = conn.execute(
            """
            SELECT id, number, floor, status, is_occupied, last_cleaned_by
            FROM Rooms
            WHERE id = ?;
            """,
            (room_id,),
        ).fetchone()
        return None if row is None else self._row_to_room(row)

    def _require_room(self, conn: sqlite3.Connection, room_id: str) -> Room:
        room = self._fetch_room(conn, room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    def _write_room(self, conn: sqlite3.Connection, room: Room) -> None:
        conn.execute(
            """
            UPDATE Rooms
            SET number = ?, floor = ?, status = ?, is_occupied = ?,
                last_cleaned_by = ?, updated_at = ?
            WHERE id = ?;
            """,
            (
                room.number,
                room.floor,
                room.status.value,
                1 if room.is_occupied else 0,
                room.last_cleaned_by,
                to_db_timestamp(utc_now()),
                room.room_id,
            ),
        )

    def _count_open_incidents(self, conn: sqlite3.Connection, room_id: str) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS count FROM Incidents WHERE room_id = ? AND status = 'OPEN';",
            (room_id,),
        ).fetchone()
        return int(row["count"])

    def _fetch_incident(self, conn: sqlite3.Connection, incident_id: str) -> Optional[Incident]:
        row = conn.execute(
            """
            SELECT id, room_id, user_id, description, status, created_at, resolved_at, resolved_by
            FROM Incidents
            WHERE id = ?;
            """,
            (incident_id,),
        ).fetchone()
        if row is None:
            return None
        photos = self._fetch_photos(conn, [incident_id]).get(incident_id, ())
        return self._row_to_incident(row, photos)

    def _fetch_photos(
        self,
        conn: sqlite3.Connection,
        incident_ids: Sequence[str],
    ) -> dict[str, tuple[IncidentPhoto, ...]]:
        if not incident_ids:
            return {}
        rows = conn.execute(
            f"""
            SELECT id, incident_id, url
            FROM IncidentPhotos
            WHERE incident_id IN ({_placeholders(incident_ids)})
            ORDER BY incident_id ASC, position ASC;
            """,
            tuple(incident_ids),
        ).fetchall()
        grouped: dict[str, list[IncidentPhoto]] = {}
        for row in rows:
            grouped.setdefault(str(row["incident_id"]), []).append(
                IncidentPhoto(
                    photo_id=str(row["id"]),
                    incident_id=str(row["incident_id"]),
                    url=str(row["url"]),
                )
            )
        return {key: tuple(value) for key, value in grouped.items()}

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            user_id=str(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            role=UserRole(row["role"]),
        )

    @staticmethod
    def _row_to_room(row: sqlite3.Row) -> Room:
        return Room(
            room_id=str(row["id"]),
            number=str(row["number"]),
            floor=None if row["floor"] is None else int(row["floor"]),
            status=RoomStatus(row["status"]),
            is_occupied=bool(row["is_occupied"]),
            last_cleaned_by=row["last_cleaned_by"],
        )

    @staticmethod
    def _row_to_assignment(row: sqlite3.Row) -> Assignment:
        return Assignment(
            assignment_id=str(row["id"]),
            room_id=str(row["room_id"]),
            user_id=str(row["user_id"]),
            date=str(row["date"]),
            assigned_at=from_db_timestamp(row["assigned_at"]),
            completed=bool(row["completed"]),
        )

    @staticmethod
    def _row_to_cleaning(row: sqlite3.Row) -> Cleaning:
        return Cleaning(
            cleaning_id=str(row["id"]),
            room_id=str(row["room_id"]),
            user_id=str(row["user_id"]),
            date=str(row["date"]),
            cleaned_at=from_db_timestamp(row["cleaned_at"]),
        )

    @staticmethod
    def _row_to_incident(
        row: sqlite3.Row,
        photos: tuple[IncidentPhoto, ...],
    ) -> Incident:
        return Incident(
            incident_id=str(row["id"]),
            room_id=str(row["room_id"]),
            user_id=str(row["user_id"]),
            description=str(row["description"]),
            status=IncidentStatus(row["status"]),
            created_at=from_db_timestamp(row["created_at"]),
            resolved_at=None if row["resolved_at"] is None else from_db_timestamp(row["resolved_at"]),
            resolved_by=row["resolved_by"],
            photos=photos,
        )
