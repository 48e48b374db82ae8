"""Client-resident durable queue of actions recorded while offline.

The outbox is an append-only, integer-addressed log kept in its own SQLite
file on the housekeeping device. Entries are read in insertion order and
removed one at a time, only after the server accepted them.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from housekeeping.domain.errors import StorageError
from housekeeping.domain.models import PendingCleaning, PendingIncident
from housekeeping.utils.clock import from_db_timestamp, to_db_timestamp
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class OfflineOutbox:
    """SQLite-backed outbox with one table per entry kind."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.outbox_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        return connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            with connection:
                yield connection
        except sqlite3.Error as exc:
            raise StorageError(f"Outbox operation failed: {exc}") from exc
        finally:
            connection.close()

    def initialize(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS PendingCleanings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    cleaned_at TEXT NOT NULL,
                    synced INTEGER NOT NULL DEFAULT 0 CHECK (synced IN (0,1))
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS PendingIncidents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    description TEXT NOT NULL,
                    photos TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    synced INTEGER NOT NULL DEFAULT 0 CHECK (synced IN (0,1))
                );
                """
            )
        logger.info("Outbox initialized at %s", self._db_path)

    def add_cleaning(
        self,
        room_id: str,
        user_id: str,
        service_date: str,
        cleaned_at: datetime,
    ) -> PendingCleaning:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO PendingCleanings (room_id, user_id, date, cleaned_at)
                VALUES (?, ?, ?, ?);
                """,
                (room_id, user_id, service_date, to_db_timestamp(cleaned_at)),
            )
            entry_id = int(cursor.lastrowid)
        logger.info("Queued offline cleaning %s for room %s", entry_id, room_id)
        return PendingCleaning(
            entry_id=entry_id,
            room_id=room_id,
            user_id=user_id,
            date=service_date,
            cleaned_at=cleaned_at,
        )

    def add_incident(
        self,
        room_id: str,
        user_id: str,
        description: str,
        photos: Sequence[str],
        created_at: datetime,
    ) -> PendingIncident:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO PendingIncidents (room_id, user_id, description, photos, created_at)
                VALUES (?, ?, ?, ?, ?);
                """,
                (room_id, user_id, description, json.dumps(list(photos)), to_db_timestamp(created_at)),
            )
            entry_id = int(cursor.lastrowid)
        logger.info("Queued offline incident %s for room %s", entry_id, room_id)
        return PendingIncident(
            entry_id=entry_id,
            room_id=room_id,
            user_id=user_id,
            description=description,
            photos=tuple(photos),
            created_at=created_at,
        )

    def list_unsynced_cleanings(self) -> List[PendingCleaning]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, room_id, user_id, date, cleaned_at, synced
                FROM PendingCleanings
                WHERE synced = 0
                ORDER BY id ASC;
                """
            ).fetchall()
            return [self._row_to_cleaning(row) for row in rows]

    def list_unsynced_incidents(self) -> List[PendingIncident]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, room_id, user_id, description, photos, created_at, synced
                FROM PendingIncidents
                WHERE synced = 0
                ORDER BY id ASC;
                """
            ).fetchall()
            return [self._row_to_incident(row) for row in rows]

    def get_cleaning(self, entry_id: int) -> Optional[PendingCleaning]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, room_id, user_id, date, cleaned_at, synced
                FROM PendingCleanings
                WHERE id = ?;
                """,
                (entry_id,),
            ).fetchone()
            return None if row is None else self._row_to_cleaning(row)

    def get_incident(self, entry_id: int) -> Optional[PendingIncident]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, room_id, user_id, description, photos, created_at, synced
                FROM PendingIncidents
                WHERE id = ?;
                """,
                (entry_id,),
            ).fetchone()
            return None if row is None else self._row_to_incident(row)

    def remove_cleaning(self, entry_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM PendingCleanings WHERE id = ?;", (entry_id,))

    def remove_incident(self, entry_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM PendingIncidents WHERE id = ?;", (entry_id,))

    def count_unsynced(self) -> dict[str, int]:
        with self._transaction() as conn:
            cleanings = conn.execute(
                "SELECT COUNT(*) AS count FROM PendingCleanings WHERE synced = 0;"
            ).fetchone()
            incidents = conn.execute(
                "SELECT COUNT(*) AS count FROM PendingIncidents WHERE synced = 0;"
            ).fetchone()
            return {
                "cleanings": int(cleanings["count"]),
                "incidents": int(incidents["count"]),
            }

    @staticmethod
    def _row_to_cleaning(row: sqlite3.Row) -> PendingCleaning:
        return PendingCleaning(
            entry_id=int(row["id"]),
            room_id=str(row["room_id"]),
            user_id=str(row["user_id"]),
            date=str(row["date"]),
            cleaned_at=from_db_timestamp(row["cleaned_at"]),
            synced=bool(row["synced"]),
        )

    @staticmethod
    def _row_to_incident(row: sqlite3.Row) -> PendingIncident:
        return PendingIncident(
            entry_id=int(row["id"]),
            room_id=str(row["room_id"]),
            user_id=str(row["user_id"]),
            description=str(row["description"]),
            photos=tuple(json.loads(row["photos"])),
            created_at=from_db_timestamp(row["created_at"]),
            synced=bool(row["synced"]),
        )
