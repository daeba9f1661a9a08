"""
Network layer for the match server.

Provides WebSocket server, connection management, and message handling.
"""

from monopoly_server.network.connection_manager import ConnectionManager, PlayerConnection
from monopoly_server.network.message_handler import MessageHandler
from monopoly_server.network.server import MonopolyServer, run_server, main


__all__ = [
    "ConnectionManager",
    "PlayerConnection",
    "MessageHandler",
    "MonopolyServer",
    "run_server",
    "main",
]
