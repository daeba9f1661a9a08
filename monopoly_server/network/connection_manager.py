"""
Connection manager for WebSocket clients.

Tracks connected clients, their player IDs, and room memberships.
Delivers events to individual players or to every member of a room.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from websockets.asyncio.server import ServerConnection

from monopoly_shared.enums import EventType
from monopoly_shared.protocol import EventMessage, Message


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PlayerConnection:
    """Tracks a connected player's state."""
    player_id: str
    player_name: str
    websocket: ServerConnection
    connected_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)

    def update_activity(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = _utcnow()


class ConnectionManager:
    """
    Manages WebSocket connections and player-to-room mappings.

    Room membership is keyed by player id and survives a disconnect, so a
    player who reconnects keeps receiving the events of their rooms.
    """

    def __init__(self):
        # websocket -> PlayerConnection
        self._connections: dict[ServerConnection, PlayerConnection] = {}

        # player_id -> websocket (for quick lookup)
        self._player_to_socket: dict[str, ServerConnection] = {}

        # room_id -> set of player_ids
        self._room_members: dict[str, set[str]] = {}

        self._lock = asyncio.Lock()

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    async def connect(
        self,
        websocket: ServerConnection,
        player_id: str,
        player_name: str
    ) -> PlayerConnection:
        """
        Register a player connection, replacing any older socket of the
        same player.
        """
        async with self._lock:
            previous = self._player_to_socket.get(player_id)
            if previous is not None and previous is not websocket:
                self._connections.pop(previous, None)
                logger.info(f"Player {player_name} ({player_id}) replaced an older connection")

            connection = PlayerConnection(
                player_id=player_id,
                player_name=player_name,
                websocket=websocket,
            )
            self._connections[websocket] = connection
            self._player_to_socket[player_id] = websocket

            logger.info(f"Player {player_name} ({player_id}) connected")
            return connection

    async def disconnect(self, websocket: ServerConnection) -> PlayerConnection | None:
        """
        Forget a websocket. Room memberships are kept for reconnection.

        Returns:
            The PlayerConnection if found, None otherwise
        """
        async with self._lock:
            connection = self._connections.pop(websocket, None)

            if connection:
                if self._player_to_socket.get(connection.player_id) is websocket:
                    del self._player_to_socket[connection.player_id]
                logger.info(
                    f"Player {connection.player_name} ({connection.player_id}) disconnected"
                )

            return connection

    # =========================================================================
    # Room Membership
    # =========================================================================

    async def subscribe(self, player_id: str, room_id: str) -> None:
        """Add a player to the recipients of a room's events."""
        async with self._lock:
            members = self._room_members.setdefault(room_id, set())
            if player_id not in members:
                members.add(player_id)
                logger.info(f"Player {player_id} joined room {room_id}")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_connection(self, websocket: ServerConnection) -> PlayerConnection | None:
        """Get connection info for a websocket."""
        return self._connections.get(websocket)

    def get_player_id(self, websocket: ServerConnection) -> str | None:
        connection = self._connections.get(websocket)
        return connection.player_id if connection else None

    def get_rooms(self, player_id: str) -> list[str]:
        """Rooms a player receives events for."""
        return sorted(room_id for room_id, members in self._room_members.items() if player_id in members)

    def get_room_members(self, room_id: str) -> set[str]:
        return self._room_members.get(room_id, set()).copy()

    def is_player_connected(self, player_id: str) -> bool:
        return player_id in self._player_to_socket

    # =========================================================================
    # Messaging
    # =========================================================================

    async def emit_to_player(self, player_id: str, event: EventType, payload: dict) -> None:
        await self.send_to_player(player_id, EventMessage.create(event, payload))

    async def emit_to_room(self, room_id: str, event: EventType, payload: dict) -> None:
        await self.broadcast_to_room(room_id, EventMessage.create(event, payload))

    async def send_to_player(self, player_id: str, message: Message) -> bool:
        """
        Send a message to a specific player.

        Returns:
            True if sent successfully, False if player not connected
        """
        websocket = self._player_to_socket.get(player_id)
        if not websocket:
            return False

        return await self.send_to_connection(websocket, message)

    async def broadcast_to_room(self, room_id: str, message: Message) -> int:
        """
        Send a message to every connected member of a room.

        Returns:
            Number of players the message was sent to
        """
        data = message.to_json()
        sent_count = 0

        for player_id in self.get_room_members(room_id):
            websocket = self._player_to_socket.get(player_id)
            if websocket and await self._send_raw(websocket, data):
                sent_count += 1

        return sent_count

    async def send_to_connection(self, websocket: ServerConnection, message: Message) -> bool:
        return await self._send_raw(websocket, message.to_json())

    async def _send_raw(self, websocket: ServerConnection, data: str) -> bool:
        try:
            await websocket.send(data)
        except Exception as e:
            logger.error(f"Failed to send message: {e}")
            return False

        connection = self._connections.get(websocket)
        if connection:
            connection.update_activity()
        return True

