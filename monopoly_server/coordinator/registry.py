"""
Live room sessions.
"""
import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, Iterator, Set

from monopoly_server.config import settings
from monopoly_server.game_engine.auction import AuctionBook
from monopoly_server.game_engine.game import GameState
from monopoly_server.game_engine.trade import TradeDesk

from .actor import RoomActor


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatEntry:
    """One chat line of a room."""
    player_id: str
    player_name: str
    text: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "playerName": self.player_name,
            "message": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RoomSession:
    """Everything the server holds in memory for one active room."""

    state: GameState
    auctions: AuctionBook
    trades: TradeDesk = field(default_factory=TradeDesk)
    chat: Deque[ChatEntry] = field(
        default_factory=lambda: deque(maxlen=settings.CHAT_HISTORY_LIMIT)
    )
    actor: RoomActor | None = None
    timers: Set[asyncio.Task] = field(default_factory=set)

    def __post_init__(self):
        if self.actor is None:
            self.actor = RoomActor(self.room_id)

    @property
    def room_id(self) -> str:
        return self.state.room.id

    def track(self, task: asyncio.Task) -> asyncio.Task:
        """Keep a timer task alive until it finishes."""
        self.timers.add(task)
        task.add_done_callback(self.timers.discard)
        return task

    def pending_timers(self) -> list[asyncio.Task]:
        """Unfinished timers, not counting the task asking."""
        current = asyncio.current_task()
        return [t for t in self.timers if t is not current and not t.done()]


class SessionRegistry:
    """Room id to live session."""

    def __init__(self):
        self._sessions: Dict[str, RoomSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._sessions

    def __iter__(self) -> Iterator[RoomSession]:
        return iter(list(self._sessions.values()))

    def get(self, room_id: str) -> RoomSession | None:
        return self._sessions.get(room_id)

    def add(self, session: RoomSession) -> RoomSession:
        self._sessions[session.room_id] = session
        session.actor.start()
        return session

    def remove(self, room_id: str) -> RoomSession | None:
        """Drop a session and stop its actor once the queue drains."""
        session = self._sessions.pop(room_id, None)
        if session is not None:
            session.actor.stop()
            logger.info(f"Room {room_id} evicted from memory")
        return session

    async def close_all(self) -> None:
        """Cancel every timer and wait for all actors to finish."""
        for session in list(self._sessions.values()):
            for task in list(session.timers):
                task.cancel()
            self.remove(session.room_id)
            await session.actor.join()
