"""
Room creation rules and loading rooms back from storage.
"""
import logging
import uuid

from monopoly_shared.constants import MAX_PLAYERS, MIN_PLAYERS, SUPPORTED_BOARD_SIZES
from monopoly_shared.errors import RuleViolation, ValidationError
from monopoly_server.game_engine.game import GameState, Room
from monopoly_server.game_engine.player import Player
from monopoly_server.persistence.models import PlayerRecord

from .interfaces import RoomStore


logger = logging.getLogger(__name__)


def new_room(name: str, board_size: int, max_players: int, host_id: str) -> Room:
    """
    Build a new waiting room.

    Raises:
        ValidationError: blank name, unsupported board size or player limit
    """
    name = name.strip()
    if not name:
        raise ValidationError("Room name is required")
    if board_size not in SUPPORTED_BOARD_SIZES:
        sizes = ", ".join(str(s) for s in SUPPORTED_BOARD_SIZES)
        raise ValidationError(f"Board size must be one of {sizes}")
    if not MIN_PLAYERS <= max_players <= MAX_PLAYERS:
        raise ValidationError(
            f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
        )
    return Room(
        id=str(uuid.uuid4()),
        name=name,
        board_size=board_size,
        max_players=max_players,
        host_id=host_id,
    )


def new_player(store: RoomStore, player_id: str, name: str, color: str) -> Player:
    """
    A fresh player for a lobby seat.

    Player ids identify one seat, so an id already stored for another room
    is refused.
    """
    if store.get_player(player_id) is not None:
        raise RuleViolation("Player already in another room!", "DUPLICATE_PLAYER")
    return Player(id=player_id, name=name.strip(), color=color)


def load_state(store: RoomStore, room_id: str, seed: int | None = None) -> GameState | None:
    """Rebuild a room from storage, or None if it does not exist."""
    record = store.get_room(room_id)
    if record is None:
        return None

    players = [p.to_player() for p in store.list_players(room_id)]
    properties = [p.to_property() for p in store.list_properties(room_id)]
    logger.info(
        f"Loaded room {room_id} from storage "
        f"({len(players)} players, {len(properties)} tiles, {record.status})"
    )
    return GameState.restore(record.to_room(), players, properties, seed=seed)


def load_player(store: RoomStore, room_id: str, player_id: str) -> Player | None:
    """A stored player of the given room, or None."""
    record: PlayerRecord | None = store.get_player(player_id)
    if record is None or record.room_id != room_id:
        return None
    return record.to_player()
