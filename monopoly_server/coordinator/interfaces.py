"""
Collaborator interfaces of the match coordinator.

The coordinator only talks to storage and to clients through these two
protocols, so tests can hand it in-memory fakes.
"""
from typing import Any, Iterable, Protocol

from monopoly_shared.enums import EventType, RoomStatus
from monopoly_server.persistence.models import (
    PlayerRecord, PropertyRecord, RoomRecord, TransactionRecord,
)


class RoomStore(Protocol):
    """Record-level storage. Calls are synchronous and may raise."""

    def create_room(self, record: RoomRecord) -> RoomRecord: ...

    def get_room(self, room_id: str) -> RoomRecord | None: ...

    def update_room_status(self, room_id: str, status: RoomStatus) -> None: ...

    def add_player(self, record: PlayerRecord) -> PlayerRecord: ...

    def get_player(self, player_id: str) -> PlayerRecord | None: ...

    def list_players(self, room_id: str) -> list[PlayerRecord]: ...

    def update_player(self, player_id: str, fields: dict[str, Any]) -> None: ...

    def create_properties(self, records: Iterable[PropertyRecord]) -> None: ...

    def list_properties(self, room_id: str) -> list[PropertyRecord]: ...

    def update_property(self, property_id: str, fields: dict[str, Any]) -> None: ...

    def append_transaction(self, record: TransactionRecord) -> TransactionRecord: ...

    def list_transactions(self, room_id: str, limit: int = 100) -> list[TransactionRecord]: ...


class Broadcaster(Protocol):
    """Outbound event delivery."""

    async def emit_to_room(self, room_id: str, event: EventType, payload: dict) -> None: ...

    async def emit_to_player(self, player_id: str, event: EventType, payload: dict) -> None: ...

    async def subscribe(self, player_id: str, room_id: str) -> None:
        """Make a player receive the events of a room."""
        ...
