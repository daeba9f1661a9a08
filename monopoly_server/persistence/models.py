"""
Data models for database operations.

These are simple dataclasses that map to database rows,
separate from the game engine models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from monopoly_shared.enums import RoomStatus, TileType, TransactionType
from monopoly_server.game_engine.board import Property
from monopoly_server.game_engine.game import Room
from monopoly_server.game_engine.ledger import Transaction
from monopoly_server.game_engine.player import Player


@dataclass
class RoomRecord:
    """Database representation of a room."""
    id: str
    name: str
    board_size: int = 40
    max_players: int = 4
    status: str = RoomStatus.WAITING.value
    host_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RoomRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            board_size=row["board_size"],
            max_players=row["max_players"],
            status=row["status"],
            host_id=row["host_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"]
        )

    @classmethod
    def from_room(cls, room: Room) -> "RoomRecord":
        return cls(
            id=room.id,
            name=room.name,
            board_size=room.board_size,
            max_players=room.max_players,
            status=room.status.value,
            host_id=room.host_id,
        )

    def to_room(self) -> Room:
        return Room(
            id=self.id,
            name=self.name,
            board_size=self.board_size,
            max_players=self.max_players,
            status=RoomStatus(self.status),
            host_id=self.host_id,
        )


@dataclass
class PlayerRecord:
    """Database representation of a player."""
    id: str
    room_id: str
    name: str
    color: str = ""
    cash: int = 1500
    position: int = 0
    in_jail: bool = False
    jail_turns: int = 0
    is_ready: bool = False
    is_bankrupt: bool = False
    turn_order: int = 0
    jail_cards: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PlayerRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            room_id=row["room_id"],
            name=row["name"],
            color=row["color"],
            cash=row["cash"],
            position=row["position"],
            in_jail=bool(row["in_jail"]),
            jail_turns=row["jail_turns"],
            is_ready=bool(row["is_ready"]),
            is_bankrupt=bool(row["is_bankrupt"]),
            turn_order=row["turn_order"],
            jail_cards=row["jail_cards"],
            created_at=row["created_at"]
        )

    @classmethod
    def from_player(cls, player: Player, room_id: str) -> "PlayerRecord":
        return cls(id=player.id, room_id=room_id, **player.to_fields())

    def to_player(self) -> Player:
        return Player(
            id=self.id,
            name=self.name,
            color=self.color,
            cash=self.cash,
            position=self.position,
            turn_order=self.turn_order,
            is_ready=self.is_ready,
            is_bankrupt=self.is_bankrupt,
            in_jail=self.in_jail,
            jail_turns=self.jail_turns,
            jail_cards=self.jail_cards,
        )


@dataclass
class PropertyRecord:
    """Database representation of one board tile."""
    id: str
    room_id: str
    name: str
    type: str
    position: int
    price: int | None = None
    rent: int | None = None
    rent_with_house: int | None = None
    rent_with_hotel: int | None = None
    color_group: str | None = None
    owner_id: str | None = None
    houses: int = 0
    has_hotel: bool = False
    is_mortgaged: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PropertyRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            room_id=row["room_id"],
            name=row["name"],
            type=row["type"],
            position=row["position"],
            price=row["price"],
            rent=row["rent"],
            rent_with_house=row["rent_with_house"],
            rent_with_hotel=row["rent_with_hotel"],
            color_group=row["color_group"],
            owner_id=row["owner_id"],
            houses=row["houses"],
            has_hotel=bool(row["has_hotel"]),
            is_mortgaged=bool(row["is_mortgaged"])
        )

    @classmethod
    def from_property(cls, prop: Property, room_id: str) -> "PropertyRecord":
        return cls(
            id=prop.id,
            room_id=room_id,
            name=prop.name,
            type=prop.tile_type.value,
            position=prop.position,
            price=prop.price,
            rent=prop.rent,
            rent_with_house=prop.rent_with_house,
            rent_with_hotel=prop.rent_with_hotel,
            color_group=prop.color_group,
            **prop.to_fields()
        )

    def to_property(self) -> Property:
        return Property(
            id=self.id,
            name=self.name,
            tile_type=TileType(self.type),
            position=self.position,
            price=self.price,
            rent=self.rent,
            rent_with_house=self.rent_with_house,
            rent_with_hotel=self.rent_with_hotel,
            color_group=self.color_group,
            owner_id=self.owner_id,
            houses=self.houses,
            has_hotel=self.has_hotel,
            is_mortgaged=self.is_mortgaged,
        )


@dataclass
class TransactionRecord:
    """Database representation of one transaction log entry."""
    id: str
    room_id: str
    type: str
    amount: int
    description: str
    player_id: str | None = None
    from_player_id: str | None = None
    to_player_id: str | None = None
    created_at: datetime | str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TransactionRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            room_id=row["room_id"],
            type=row["type"],
            amount=row["amount"],
            description=row["description"],
            player_id=row["player_id"],
            from_player_id=row["from_player_id"],
            to_player_id=row["to_player_id"],
            created_at=row["created_at"]
        )

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionRecord":
        return cls(
            id=tx.id,
            room_id=tx.room_id,
            type=tx.type.value,
            amount=tx.amount,
            description=tx.description,
            player_id=tx.player_id,
            from_player_id=tx.from_player_id,
            to_player_id=tx.to_player_id,
            created_at=tx.created_at,
        )

    def to_dict(self) -> dict:
        created = self.created_at
        if isinstance(created, datetime):
            created = created.isoformat()
        return {
            "id": self.id,
            "roomId": self.room_id,
            "type": TransactionType(self.type).value,
            "amount": self.amount,
            "description": self.description,
            "playerId": self.player_id,
            "fromPlayerId": self.from_player_id,
            "toPlayerId": self.to_player_id,
            "createdAt": created,
        }
