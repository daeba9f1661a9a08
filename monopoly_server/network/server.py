"""
WebSocket server for the Monopoly match server.

Main entry point that ties together connection management,
the match coordinator, and persistence.
"""

import asyncio
import logging
import signal

import websockets
from websockets.asyncio.server import ServerConnection, serve

from monopoly_server.config import settings
from monopoly_server.coordinator import MatchCoordinator
from monopoly_server.network.connection_manager import ConnectionManager
from monopoly_server.network.message_handler import MessageHandler
from monopoly_server.persistence import RoomRepository, init_database
from monopoly_shared.enums import ActionType, EventType
from monopoly_shared.errors import ValidationError
from monopoly_shared.protocol import ErrorMessage, EventMessage, Message


logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 30.0


class MonopolyServer:
    """
    WebSocket server hosting any number of rooms.

    Handles client connections, routes messages, and shuts down the room
    actors when stopped.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        db_path: str | None = None
    ):
        self.host = host or settings.HOST
        self.port = port or settings.PORT

        db = init_database(db_path)
        self._repository = RoomRepository(db)

        self._connections = ConnectionManager()
        self._coordinator = MatchCoordinator(self._repository, self._connections)
        self._handler = MessageHandler(self._coordinator, self._connections)

        self._server = None
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start the WebSocket server and wait until it is stopped."""
        self._running = True
        self._shutdown_event.clear()

        self._server = await serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=settings.PING_INTERVAL,
            ping_timeout=10,
        )

        logger.info(f"Monopoly server started on ws://{self.host}:{self.port}")

        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop the server gracefully."""
        logger.info("Shutting down server...")
        self._running = False

        if self._server:
            self._server.close()
            await self._server.wait_closed()

        await self._coordinator.shutdown()

        self._shutdown_event.set()
        logger.info("Server stopped")

    def request_shutdown(self) -> None:
        """Request server shutdown (can be called from signal handler)."""
        asyncio.create_task(self.stop())

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """
        Handle a client connection.

        The first frame must be a connect frame with playerId and playerName.
        After that, frames are routed through the message handler.
        """
        player_id = None

        try:
            player_id = await self._handle_connect(websocket)

            if not player_id:
                return

            async for raw_message in websocket:
                if not self._running:
                    break

                await self._handler.handle_message(player_id, raw_message)

        except websockets.ConnectionClosed:
            logger.debug(f"Connection closed for player {player_id}")
        except Exception as e:
            logger.exception(f"Error handling client {player_id}: {e}")
        finally:
            if player_id:
                await self._connections.disconnect(websocket)

    async def _handle_connect(self, websocket: ServerConnection) -> str | None:
        """
        Handle the connect handshake.

        Returns player_id if successful, None otherwise.
        """
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=CONNECT_TIMEOUT_SECONDS)
            message = Message.from_json(raw)

            if message.type != ActionType.CONNECT:
                raise ValidationError("First message must be connect", "CONNECT_REQUIRED")

            player_id = message.data.get("playerId")
            player_name = message.data.get("playerName") or "Player"
            if not isinstance(player_id, str) or not player_id:
                raise ValidationError("playerId is required", "MISSING_PLAYER_ID")

            await self._connections.connect(websocket, player_id, str(player_name))
            await self._connections.send_to_connection(
                websocket,
                EventMessage.create(EventType.CONNECTED, {
                    "playerId": player_id,
                    "playerName": player_name,
                    "rooms": self._connections.get_rooms(player_id),
                }),
            )
            return player_id

        except ValidationError as e:
            await self._send_error(websocket, e.message, e.code)
            return None
        except asyncio.TimeoutError:
            await self._send_error(websocket, "Connection timeout", "TIMEOUT")
            return None

    async def _send_error(self, websocket: ServerConnection, message: str, code: str) -> None:
        """Send an error frame to a websocket that may already be closing."""
        try:
            await websocket.send(ErrorMessage.create(message, code).to_json())
        except websockets.ConnectionClosed:
            logger.debug("Could not deliver error, connection already closed")


async def run_server(host: str | None = None, port: int | None = None, db_path: str | None = None) -> None:
    """
    Run the Monopoly server.

    Sets up signal handlers for graceful shutdown.
    """
    server = MonopolyServer(host, port, db_path)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.request_shutdown)

    try:
        await server.start()
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)


def main():
    """Entry point for running the server."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print(f"Starting Monopoly server on ws://{settings.HOST}:{settings.PORT}")
    print("Press Ctrl+C to stop")

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nServer stopped")


if __name__ == "__main__":
    main()
