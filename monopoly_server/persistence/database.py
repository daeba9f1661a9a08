"""
Database connection management and initialization.
"""

import sqlite3
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import Generator

from monopoly_server.config import settings


class Database:
    """
    Thread-safe SQLite database manager.

    Each thread gets its own connection. The schema is created the first time
    a given database file is opened.
    """

    _init_lock = threading.Lock()

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = str(db_path or settings.DATABASE_PATH)
        self._local = threading.local()
        self._ensure_directory()
        self._ensure_schema()

    def _ensure_directory(self) -> None:
        """Create database directory if it doesn't exist."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _ensure_schema(self) -> None:
        with Database._init_lock:
            with self.get_connection() as conn:
                self._create_tables(conn)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a thread-local database connection.

        Commits when the block exits normally and rolls back otherwise.

        Usage:
            with db.get_connection() as conn:
                cursor = conn.execute("SELECT ...")
        """
        if getattr(self._local, "connection", None) is None:
            self._local.connection = self._create_connection()

        conn = self._local.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )

        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.row_factory = sqlite3.Row

        return conn

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        conn.executescript(SCHEMA_SQL)

    def close_connection(self) -> None:
        """Close the current thread's connection."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None


SCHEMA_SQL = """
-- Rooms: lobby metadata and lifecycle
CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    board_size INTEGER NOT NULL DEFAULT 40,
    max_players INTEGER NOT NULL DEFAULT 4,
    status TEXT NOT NULL DEFAULT 'WAITING',
    host_id TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Players: one seat in one room
CREATE TABLE IF NOT EXISTS players (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    name TEXT NOT NULL,
    color TEXT NOT NULL DEFAULT '',
    cash INTEGER NOT NULL DEFAULT 1500,
    position INTEGER NOT NULL DEFAULT 0,
    in_jail INTEGER NOT NULL DEFAULT 0,
    jail_turns INTEGER NOT NULL DEFAULT 0,
    is_ready INTEGER NOT NULL DEFAULT 0,
    is_bankrupt INTEGER NOT NULL DEFAULT 0,
    turn_order INTEGER NOT NULL DEFAULT 0,
    jail_cards INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (room_id) REFERENCES rooms(id) ON DELETE CASCADE
);

-- Properties: every board tile of a started room
CREATE TABLE IF NOT EXISTS properties (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    position INTEGER NOT NULL,
    price INTEGER,
    rent INTEGER,
    rent_with_house INTEGER,
    rent_with_hotel INTEGER,
    color_group TEXT,
    owner_id TEXT,
    houses INTEGER NOT NULL DEFAULT 0,
    has_hotel INTEGER NOT NULL DEFAULT 0,
    is_mortgaged INTEGER NOT NULL DEFAULT 0,

    UNIQUE (room_id, position),
    FOREIGN KEY (room_id) REFERENCES rooms(id) ON DELETE CASCADE
);

-- Transactions: append-only money log
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    type TEXT NOT NULL,
    amount INTEGER NOT NULL,
    description TEXT NOT NULL,
    player_id TEXT,
    from_player_id TEXT,
    to_player_id TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (room_id) REFERENCES rooms(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_players_room_id ON players(room_id);
CREATE INDEX IF NOT EXISTS idx_properties_room_id ON properties(room_id);
CREATE INDEX IF NOT EXISTS idx_properties_owner_id ON properties(owner_id);
CREATE INDEX IF NOT EXISTS idx_transactions_room_id ON transactions(room_id);
CREATE INDEX IF NOT EXISTS idx_rooms_status ON rooms(status);
"""


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


def init_database(db_path: str | Path | None = None) -> Database:
    """Initialize the database with optional custom path."""
    global _db
    _db = Database(db_path)
    return _db
