"""
Match coordination: per-room actors, live sessions and action routing.
"""

from monopoly_server.coordinator.actor import RoomActor
from monopoly_server.coordinator.coordinator import MatchCoordinator
from monopoly_server.coordinator.interfaces import Broadcaster, RoomStore
from monopoly_server.coordinator.registry import ChatEntry, RoomSession, SessionRegistry
from monopoly_server.coordinator.retry import RetryPolicy


__all__ = [
    "RoomActor",
    "MatchCoordinator",
    "Broadcaster",
    "RoomStore",
    "ChatEntry",
    "RoomSession",
    "SessionRegistry",
    "RetryPolicy",
]
