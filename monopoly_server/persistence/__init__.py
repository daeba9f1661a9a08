"""
Persistence layer for the match server.

Provides SQLite-based storage for rooms, players, board tiles and the
transaction log.
"""

from monopoly_server.persistence.database import (
    Database,
    get_database,
    init_database
)
from monopoly_server.persistence.models import (
    RoomRecord,
    PlayerRecord,
    PropertyRecord,
    TransactionRecord
)
from monopoly_server.persistence.repository import RoomRepository


__all__ = [
    # Database
    "Database",
    "get_database",
    "init_database",

    # Models
    "RoomRecord",
    "PlayerRecord",
    "PropertyRecord",
    "TransactionRecord",

    # Repository
    "RoomRepository"
]
