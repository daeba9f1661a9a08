"""
Message handler for routing client frames to the match coordinator.

Parses incoming frames into actions, rejects malformed ones, and hands the
rest to the coordinator.
"""

import logging

from monopoly_shared.enums import ActionType, EventType
from monopoly_shared.errors import ValidationError
from monopoly_shared.protocol import Action, Message, parse_action
from monopoly_server.coordinator import MatchCoordinator
from monopoly_server.network.connection_manager import ConnectionManager


logger = logging.getLogger(__name__)


class MessageHandler:
    """
    Turns raw frames from one authenticated player into coordinator calls.

    The playerId of every action is taken from the connection, never from
    the payload.
    """

    def __init__(self, coordinator: MatchCoordinator, connection_manager: ConnectionManager):
        self._coordinator = coordinator
        self._connections = connection_manager

    async def handle_message(self, player_id: str, raw_message: str | bytes) -> Action | None:
        """
        Handle an incoming frame from a player.

        Returns:
            The action that was dispatched, or None if the frame was rejected
        """
        try:
            message = Message.from_json(raw_message)
            if message.type == ActionType.CONNECT:
                raise ValidationError("Already connected", "ALREADY_CONNECTED")
            action = parse_action(message, player_id)
        except ValidationError as e:
            logger.debug(f"Rejected frame from {player_id}: {e.message}")
            await self._connections.emit_to_player(player_id, EventType.ERROR, e.to_dict())
            return None

        await self._coordinator.handle(action)
        return action
