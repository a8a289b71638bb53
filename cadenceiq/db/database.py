"""Snapshot persistence for CadenceIQ.

The stores read named snapshots once at startup and write the
whole snapshot back after every mutation. No schema versioning
beyond whole-value replace.

Provides:
    - SnapshotStore: abstract key-value interface
    - MemorySnapshotStore: in-process dict (tests, dry runs)
    - Database: SQLite file with WAL mode, JSON values

Usage:
    from cadenceiq.db.database import Database

    db = Database()
    db.initialize()
    db.save("lead_goal", 12)
    goal = db.load("lead_goal", 10)
"""

import copy
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping, Optional

from cadenceiq.core.config import get_config
from cadenceiq.core.exceptions import DatabaseError
from cadenceiq.core.logging import get_logger

logger = get_logger(__name__)

# Snapshot keys
CONTACTS_KEY = "contacts"
CALENDAR_EVENTS_KEY = "calendar_events"
LEAD_GOAL_KEY = "lead_goal"
ACCESS_KEY = "access"


class SnapshotStore(ABC):
    """Abstract key-value store holding JSON-compatible snapshots."""

    @abstractmethod
    def load(self, key: str, default: Any = None) -> Any:
        """Return the snapshot stored under key, or default if absent."""
        pass

    def save(self, key: str, value: Any) -> None:
        """Replace the snapshot stored under key."""
        self.save_many({key: value})

    @abstractmethod
    def save_many(self, values: Mapping[str, Any]) -> None:
        """Replace several snapshots together: all are written or none is."""
        pass


class MemorySnapshotStore(SnapshotStore):
    """Snapshot store backed by a dict.

    Values are deep-copied in both directions so callers can never
    alias stored state.

    Attributes:
        writes: Number of committed writes, handy for asserting persistence
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.writes = 0

    def load(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def save_many(self, values: Mapping[str, Any]) -> None:
        copies = {key: copy.deepcopy(value) for key, value in values.items()}
        self._data.update(copies)
        self.writes += 1


class Database(SnapshotStore):
    """SQLite-backed snapshot store.

    One table, one row per key, values stored as JSON text.

    Attributes:
        db_path: Path to database file
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database.

        Args:
            db_path: Path to database file. Use ":memory:" for in-memory.
                    Defaults to config path.
        """
        if db_path is None:
            config = get_config()
            self.db_path = str(config.db_path)
        else:
            self.db_path = str(db_path)

        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

                self._conn = sqlite3.connect(self.db_path)
                self._conn.row_factory = sqlite3.Row

                if self.db_path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")

            except (sqlite3.Error, OSError) as e:
                raise DatabaseError(f"Cannot connect to database: {e}") from e

        return self._conn

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def initialize(self) -> None:
        """Create schema if not exists."""
        conn = self._get_connection()

        try:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """
            )
            conn.commit()
            logger.info("Database initialized", extra={"context": {"path": self.db_path}})
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot initialize database: {e}") from e

    def load(self, key: str, default: Any = None) -> Any:
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT value FROM snapshots WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot read snapshot {key!r}: {e}") from e

        if row is None:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Snapshot {key!r} is corrupt: {e}") from e

    def save_many(self, values: Mapping[str, Any]) -> None:
        """Write every snapshot in one transaction.

        Raises:
            DatabaseError: If any value is not JSON-serialisable or the write
                fails; nothing is written in that case
        """
        try:
            rows = [(key, json.dumps(value)) for key, value in values.items()]
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Cannot serialise snapshots {sorted(values)}: {e}") from e

        conn = self._get_connection()
        try:
            conn.executemany(
                """INSERT INTO snapshots (key, value, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                rows,
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Cannot write snapshots {sorted(values)}: {e}") from e

        logger.debug("Snapshots saved", extra={"context": {"keys": sorted(values)}})

    def keys(self) -> list[str]:
        """Return the stored snapshot keys."""
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT key FROM snapshots ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot list snapshots: {e}") from e
        return [row["key"] for row in rows]
