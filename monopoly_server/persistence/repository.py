"""
Repository layer for room persistence operations.

Handles all database CRUD operations for rooms, players, board tiles and
the transaction log.
"""

from datetime import datetime
from typing import Any, Iterable

from monopoly_shared.enums import RoomStatus
from monopoly_server.persistence.database import Database, get_database
from monopoly_server.persistence.models import (
    RoomRecord,
    PlayerRecord,
    PropertyRecord,
    TransactionRecord
)


PLAYER_COLUMNS = frozenset({
    "name", "color", "cash", "position", "in_jail", "jail_turns",
    "is_ready", "is_bankrupt", "turn_order", "jail_cards",
})

PROPERTY_COLUMNS = frozenset({
    "owner_id", "houses", "has_hotel", "is_mortgaged",
})


def _assignments(fields: dict[str, Any], allowed: frozenset[str]) -> tuple[str, list[Any]]:
    """Build the SET clause of an update, refusing unknown columns."""
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown columns: {', '.join(sorted(unknown))}")
    columns = sorted(fields)
    clause = ", ".join(f"{column} = ?" for column in columns)
    return clause, [fields[column] for column in columns]


class RoomRepository:
    """
    Repository for room persistence operations.

    Provides the record-level reads and writes the match coordinator needs,
    abstracting away the database details.
    """

    def __init__(self, database: Database | None = None):
        self.db = database or get_database()

    # =========================================================================
    # Rooms
    # =========================================================================

    def create_room(self, record: RoomRecord) -> RoomRecord:
        """Create a new room record."""
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO rooms (id, name, board_size, max_players, status, host_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.name,
                    record.board_size,
                    record.max_players,
                    record.status,
                    record.host_id
                )
            )
        return record

    def get_room(self, room_id: str) -> RoomRecord | None:
        """Get a room by ID."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM rooms WHERE id = ?",
                (room_id,)
            )
            row = cursor.fetchone()

            if row:
                return RoomRecord.from_row(dict(row))
            return None

    def update_room_status(self, room_id: str, status: RoomStatus) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                """
                UPDATE rooms
                SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (RoomStatus(status).value, room_id)
            )

    # =========================================================================
    # Players
    # =========================================================================

    def add_player(self, record: PlayerRecord) -> PlayerRecord:
        """Seat a player in a room."""
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO players (
                    id, room_id, name, color, cash, position, in_jail,
                    jail_turns, is_ready, is_bankrupt, turn_order, jail_cards
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.room_id,
                    record.name,
                    record.color,
                    record.cash,
                    record.position,
                    int(record.in_jail),
                    record.jail_turns,
                    int(record.is_ready),
                    int(record.is_bankrupt),
                    record.turn_order,
                    record.jail_cards
                )
            )
        return record

    def get_player(self, player_id: str) -> PlayerRecord | None:
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM players WHERE id = ?",
                (player_id,)
            )
            row = cursor.fetchone()

            if row:
                return PlayerRecord.from_row(dict(row))
            return None

    def list_players(self, room_id: str) -> list[PlayerRecord]:
        """All players of a room in join order."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM players WHERE room_id = ? ORDER BY created_at, rowid",
                (room_id,)
            )
            return [PlayerRecord.from_row(dict(row)) for row in cursor.fetchall()]

    def update_player(self, player_id: str, fields: dict[str, Any]) -> None:
        """Write the given columns of one player."""
        if not fields:
            return
        clause, values = _assignments(fields, PLAYER_COLUMNS)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE players SET {clause} WHERE id = ?",
                (*values, player_id)
            )

    # =========================================================================
    # Properties
    # =========================================================================

    def create_properties(self, records: Iterable[PropertyRecord]) -> None:
        """Insert the generated board of a room in one transaction."""
        with self.db.get_connection() as conn:
            conn.executemany(
                """
                INSERT INTO properties (
                    id, room_id, name, type, position, price, rent,
                    rent_with_house, rent_with_hotel, color_group, owner_id,
                    houses, has_hotel, is_mortgaged
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.id, r.room_id, r.name, r.type, r.position, r.price,
                        r.rent, r.rent_with_house, r.rent_with_hotel,
                        r.color_group, r.owner_id, r.houses,
                        int(r.has_hotel), int(r.is_mortgaged)
                    )
                    for r in records
                ]
            )

    def list_properties(self, room_id: str) -> list[PropertyRecord]:
        """All tiles of a room ordered by position."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM properties WHERE room_id = ? ORDER BY position",
                (room_id,)
            )
            return [PropertyRecord.from_row(dict(row)) for row in cursor.fetchall()]

    def update_property(self, property_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        clause, values = _assignments(fields, PROPERTY_COLUMNS)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE properties SET {clause} WHERE id = ?",
                (*values, property_id)
            )

    # =========================================================================
    # Transactions
    # =========================================================================

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Append one entry to the transaction log. Entries are never updated."""
        created = record.created_at
        if isinstance(created, datetime):
            created = created.isoformat()
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO transactions (
                    id, room_id, type, amount, description, player_id,
                    from_player_id, to_player_id, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, COALESCE(?, CURRENT_TIMESTAMP))
                """,
                (
                    record.id,
                    record.room_id,
                    record.type,
                    record.amount,
                    record.description,
                    record.player_id,
                    record.from_player_id,
                    record.to_player_id,
                    created
                )
            )
        return record

    def list_transactions(self, room_id: str, limit: int = 100) -> list[TransactionRecord]:
        """Most recent transactions of a room, newest first."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM transactions
                WHERE room_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (room_id, limit)
            )
            return [TransactionRecord.from_row(dict(row)) for row in cursor.fetchall()]
