"""
Match coordinator: routes validated actions to the room they address.

Each action runs on its room's actor. A handler applies the action to the
in-memory GameState, writes the changed records, then broadcasts. Rejected
actions raise a GameError and leave the room untouched; the acting player
gets a single error event.
"""
import asyncio
import logging
from typing import Awaitable, Callable

from monopoly_shared.enums import ActionType, EventType, RoomStatus
from monopoly_shared.errors import ConcurrencyStale, GameError, NotFoundError
from monopoly_shared.protocol import (
    Action,
    BuildHotelAction,
    BuildHouseAction,
    BuyPropertyAction,
    CancelAuctionAction,
    CancelTradeAction,
    CreateRoomAction,
    MortgagePropertyAction,
    PlaceBidAction,
    PlayerReadyAction,
    ProposeTradeAction,
    RegisterPlayerAction,
    RespondToTradeAction,
    RoomAction,
    SellHouseAction,
    SendChatMessageAction,
    StartAuctionAction,
    UnmortgagePropertyAction,
    VoteGameEndAction,
)
from monopoly_server.config import settings
from monopoly_server.game_engine.auction import Auction, AuctionBook
from monopoly_server.game_engine.game import GameState
from monopoly_server.game_engine.player import Player
from monopoly_server.game_engine.trade import TradeProposal
from monopoly_server.persistence.models import (
    PlayerRecord, PropertyRecord, RoomRecord, TransactionRecord,
)

from . import lobby
from .interfaces import Broadcaster, RoomStore
from .registry import ChatEntry, RoomSession, SessionRegistry
from .retry import RetryPolicy


logger = logging.getLogger(__name__)

Handler = Callable[[RoomSession, Action], Awaitable[None]]

JOIN_FAILED_MESSAGE = "Player not found in room. Please rejoin from the lobby."


class MatchCoordinator:
    """
    Owns the live rooms and applies every inbound action to them.
    """

    def __init__(
        self,
        store: RoomStore,
        broadcaster: Broadcaster,
        registry: SessionRegistry | None = None,
        retry: RetryPolicy | None = None,
        auction_duration: float = settings.AUCTION_DURATION_SECONDS,
        retention: float = settings.RESOLVED_RETENTION_SECONDS,
        seed: int | None = None
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.registry = registry or SessionRegistry()
        self.retry = retry or RetryPolicy()
        self.auction_duration = auction_duration
        self.retention = retention
        self.seed = seed

        self._handlers: dict[ActionType, Handler] = {
            ActionType.REGISTER_PLAYER: self._on_register_player,
            ActionType.JOIN_ROOM: self._on_join_room,
            ActionType.PLAYER_READY: self._on_player_ready,
            ActionType.START_GAME: self._on_start_game,
            ActionType.ROLL_DICE: self._on_roll_dice,
            ActionType.BUY_PROPERTY: self._on_buy_property,
            ActionType.END_TURN: self._on_end_turn,
            ActionType.BUILD_HOUSE: self._on_build_house,
            ActionType.BUILD_HOTEL: self._on_build_hotel,
            ActionType.SELL_HOUSE: self._on_sell_house,
            ActionType.MORTGAGE_PROPERTY: self._on_mortgage_property,
            ActionType.UNMORTGAGE_PROPERTY: self._on_unmortgage_property,
            ActionType.PAY_BAIL: self._on_pay_bail,
            ActionType.USE_JAIL_CARD: self._on_use_jail_card,
            ActionType.PROPOSE_TRADE: self._on_propose_trade,
            ActionType.RESPOND_TO_TRADE: self._on_respond_to_trade,
            ActionType.CANCEL_TRADE: self._on_cancel_trade,
            ActionType.START_AUCTION: self._on_start_auction,
            ActionType.PLACE_BID: self._on_place_bid,
            ActionType.CANCEL_AUCTION: self._on_cancel_auction,
            ActionType.PROPOSE_GAME_END: self._on_propose_game_end,
            ActionType.VOTE_GAME_END: self._on_vote_game_end,
            ActionType.SEND_CHAT_MESSAGE: self._on_send_chat_message,
            ActionType.GET_CHAT_HISTORY: self._on_get_chat_history,
            ActionType.GET_TRANSACTIONS: self._on_get_transactions,
        }

    # =========================================================================
    # Entry point
    # =========================================================================

    async def handle(self, action: Action) -> None:
        """
        Apply one action. Never raises for rejected actions; the acting
        player receives an error event instead.
        """
        try:
            if isinstance(action, CreateRoomAction):
                await self._on_create_room(action)
                return

            handler = self._handlers.get(action.name)
            if handler is None or not isinstance(action, RoomAction):
                raise NotFoundError(f"Unknown action: {action.name.value}", "UNKNOWN_MESSAGE_TYPE")

            if action.name == ActionType.JOIN_ROOM:
                session, newcomer = await self._resolve_join(action)
                await session.actor.call(lambda: self._on_join_room(session, action, newcomer))
            else:
                session = self._get_session(action.room_id)
                await session.actor.call(lambda: handler(session, action))

        except GameError as e:
            logger.debug(f"Rejected {action.name.value} from {action.player_id}: {e.message}")
            await self._emit_error(action.player_id, e.to_dict())
        except Exception:
            logger.exception(f"Error handling {action.name.value} from {action.player_id}")
            await self._emit_error(
                action.player_id, {"message": "Internal error", "code": "INTERNAL_ERROR"}
            )

    async def shutdown(self) -> None:
        """Stop every room actor and cancel pending timers."""
        await self.registry.close_all()

    # =========================================================================
    # Sessions
    # =========================================================================

    def _get_session(self, room_id: str) -> RoomSession:
        session = self._load_session(room_id)
        if session is None:
            raise NotFoundError("Game room not found")
        return session

    def _load_session(self, room_id: str) -> RoomSession | None:
        """Registry hit, or rebuild the room from storage."""
        session = self.registry.get(room_id)
        if session is not None:
            return session

        state = lobby.load_state(self.store, room_id, seed=self.seed)
        if state is None:
            return None
        return self.registry.add(self._new_session(state))

    def _new_session(self, state: GameState) -> RoomSession:
        return RoomSession(state=state, auctions=AuctionBook(self.auction_duration))

    async def _resolve_join(self, action: RoomAction) -> tuple[RoomSession, Player | None]:
        """
        Find the room and the joining player, waiting for a registration
        that may not be readable yet.

        Returns:
            The session, and the stored player record when the player is not
            seated in memory yet. Seating happens on the room actor.
        """
        def attempt() -> tuple[RoomSession, Player | None] | None:
            session = self._load_session(action.room_id)
            if session is None:
                return None
            if action.player_id in session.state.players:
                return session, None

            player = lobby.load_player(self.store, action.room_id, action.player_id)
            if player is None:
                return None
            return session, player

        found = await self.retry.run(
            attempt, f"Join of {action.player_id} to room {action.room_id}"
        )
        if found is None:
            raise NotFoundError(JOIN_FAILED_MESSAGE)
        return found

    # =========================================================================
    # Persistence and broadcasting
    # =========================================================================

    def _store_write(self, description: str, write: Callable[[], object]) -> None:
        """Run one storage write. Failures are logged; memory is authoritative."""
        try:
            write()
        except Exception as e:
            logger.error(f"Failed to {description}: {e}")

    def _persist(self, session: RoomSession) -> RoomStatus | None:
        """
        Write everything the last action touched.

        Returns:
            The new room status if the action changed it
        """
        room_id = session.room_id
        changes = session.state.collect_changes()

        if changes.created_properties:
            records = [PropertyRecord.from_property(p, room_id) for p in changes.created_properties]
            self._store_write(
                f"create board of room {room_id}",
                lambda: self.store.create_properties(records)
            )
        if changes.room_status is not None:
            self._store_write(
                f"update status of room {room_id}",
                lambda: self.store.update_room_status(room_id, changes.room_status)
            )
        for player in changes.players:
            fields = player.to_fields()
            self._store_write(
                f"update player {player.id}",
                lambda: self.store.update_player(player.id, fields)
            )
        for prop in changes.properties:
            fields = prop.to_fields()
            self._store_write(
                f"update property {prop.id}",
                lambda: self.store.update_property(prop.id, fields)
            )
        for tx in changes.transactions:
            record = TransactionRecord.from_transaction(tx)
            self._store_write(
                f"append {tx.type.value} transaction",
                lambda: self.store.append_transaction(record)
            )

        return changes.room_status

    async def _broadcast_state(self, session: RoomSession) -> None:
        await self.broadcaster.emit_to_room(
            session.room_id, EventType.ROOM_UPDATED, session.state.to_dict()
        )

    async def _commit(self, session: RoomSession) -> None:
        """Persist, broadcast, and wind the room down if it just finished."""
        status = self._persist(session)
        await self._broadcast_state(session)
        if status == RoomStatus.FINISHED:
            await self._announce_game_end(session)
        self._maybe_evict(session)

    async def _announce_game_end(self, session: RoomSession) -> None:
        state = session.state
        scores = state.scores()
        winner = state.players.get(state.winner_id) if state.winner_id else None
        logger.info(
            f"Room {session.room_id} finished, winner: {winner.name if winner else 'none'}"
        )
        await self.broadcaster.emit_to_room(
            session.room_id,
            EventType.GAME_ENDED,
            {
                "winner": winner.name if winner else None,
                "scores": [s.to_dict() for s in scores],
            },
        )

    async def _emit_error(self, player_id: str, payload: dict) -> None:
        try:
            await self.broadcaster.emit_to_player(player_id, EventType.ERROR, payload)
        except Exception as e:
            logger.error(f"Failed to deliver error to {player_id}: {e}")

    def _maybe_evict(self, session: RoomSession) -> None:
        if session.state.status != RoomStatus.FINISHED:
            return
        if session.pending_timers():
            return
        if self.registry.get(session.room_id) is session:
            self.registry.remove(session.room_id)

    # =========================================================================
    # Timers
    # =========================================================================

    def _schedule(self, session: RoomSession, delay: float, name: str,
                  callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Run `callback` on the room actor after `delay` seconds."""
        async def fire() -> None:
            await asyncio.sleep(delay)
            if self.registry.get(session.room_id) is not session:
                logger.debug(f"Timer {name} fired after room {session.room_id} closed")
                return
            try:
                await session.actor.call(callback)
            except Exception:
                logger.exception(f"Timer {name} failed in room {session.room_id}")
            self._maybe_evict(session)

        return session.track(asyncio.create_task(fire(), name=name))

    def _schedule_auction_end(self, session: RoomSession, auction: Auction) -> None:
        async def end() -> None:
            await self._finish_auction(session, auction.id)

        self._schedule(session, auction.remaining_seconds(), f"auction-end-{auction.id}", end)

    def _schedule_discard_auction(self, session: RoomSession, auction_id: str) -> None:
        async def discard() -> None:
            session.auctions.discard(auction_id)

        self._schedule(session, self.retention, f"auction-discard-{auction_id}", discard)

    def _schedule_discard_trade(self, session: RoomSession, trade_id: str) -> None:
        async def discard() -> None:
            session.trades.discard(trade_id)

        self._schedule(session, self.retention, f"trade-discard-{trade_id}", discard)

    # =========================================================================
    # Lobby
    # =========================================================================

    async def _on_create_room(self, action: CreateRoomAction) -> None:
        room = lobby.new_room(
            action.room_name, action.board_size, action.max_players, action.player_id
        )
        host = lobby.new_player(self.store, action.player_id, action.player_name, action.color)
        host.is_ready = True

        state = GameState(room, seed=self.seed)
        state.add_player(host)
        self._store_write(
            f"create room {room.id}",
            lambda: self.store.create_room(RoomRecord.from_room(room))
        )
        self._store_write(
            f"add player {host.id}",
            lambda: self.store.add_player(PlayerRecord.from_player(host, room.id))
        )
        state.collect_changes()

        session = self.registry.add(self._new_session(state))
        logger.info(f"Room '{room.name}' ({room.id}) created by {host.name}")

        await self.broadcaster.subscribe(host.id, room.id)
        await self.broadcaster.emit_to_player(
            host.id,
            EventType.ROOM_CREATED,
            {"roomId": room.id, "gameRoom": state.to_dict()["gameRoom"]},
        )
        await self._broadcast_state(session)

    async def _on_register_player(self, session: RoomSession, action: RegisterPlayerAction) -> None:
        player = lobby.new_player(self.store, action.player_id, action.player_name, action.color)
        session.state.add_player(player)
        self._store_write(
            f"add player {player.id}",
            lambda: self.store.add_player(PlayerRecord.from_player(player, session.room_id))
        )
        logger.info(f"Player {player.name} ({player.id}) registered in room {session.room_id}")

        await self.broadcaster.subscribe(player.id, session.room_id)
        await self._commit(session)

    async def _on_join_room(self, session: RoomSession, action: RoomAction,
                            newcomer: Player | None = None) -> None:
        if newcomer is not None and newcomer.id not in session.state.players:
            session.state.add_player(newcomer)
            logger.info(f"Player {newcomer.name} ({newcomer.id}) seated in room {session.room_id}")

        await self.broadcaster.subscribe(action.player_id, session.room_id)
        await self._broadcast_state(session)

        active = session.auctions.active
        if active is not None:
            await self.broadcaster.emit_to_player(
                action.player_id, EventType.AUCTION_STARTED, {"auction": active.to_dict()}
            )

    async def _on_player_ready(self, session: RoomSession, action: PlayerReadyAction) -> None:
        session.state.set_ready(action.player_id, action.is_ready)
        await self._commit(session)

    async def _on_start_game(self, session: RoomSession, action: RoomAction) -> None:
        first = session.state.start_game(action.player_id)
        logger.info(f"Room {session.room_id} started, {first.name} goes first")
        await self._commit(session)

    # =========================================================================
    # Turn, property and jail actions
    # =========================================================================

    async def _on_roll_dice(self, session: RoomSession, action: RoomAction) -> None:
        session.state.roll_dice(action.player_id)
        await self._commit(session)

    async def _on_buy_property(self, session: RoomSession, action: BuyPropertyAction) -> None:
        session.state.buy_property(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_end_turn(self, session: RoomSession, action: RoomAction) -> None:
        session.state.end_turn(action.player_id)
        await self._commit(session)

    async def _on_build_house(self, session: RoomSession, action: BuildHouseAction) -> None:
        session.state.build_house(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_build_hotel(self, session: RoomSession, action: BuildHotelAction) -> None:
        session.state.build_hotel(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_sell_house(self, session: RoomSession, action: SellHouseAction) -> None:
        session.state.sell_house(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_mortgage_property(self, session: RoomSession, action: MortgagePropertyAction) -> None:
        session.state.mortgage_property(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_unmortgage_property(self, session: RoomSession, action: UnmortgagePropertyAction) -> None:
        session.state.unmortgage_property(action.player_id, action.property_id)
        await self._commit(session)

    async def _on_pay_bail(self, session: RoomSession, action: RoomAction) -> None:
        session.state.pay_bail(action.player_id)
        await self._commit(session)

    async def _on_use_jail_card(self, session: RoomSession, action: RoomAction) -> None:
        session.state.use_jail_card(action.player_id)
        await self._commit(session)

    # =========================================================================
    # Trading
    # =========================================================================

    async def _emit_to_traders(self, trade: TradeProposal, event: EventType, payload: dict) -> None:
        for player_id in trade.participants:
            await self.broadcaster.emit_to_player(player_id, event, payload)

    async def _on_propose_trade(self, session: RoomSession, action: ProposeTradeAction) -> None:
        state = session.state
        trade = state.propose_trade(
            action.player_id,
            action.to_player_id,
            action.offered_properties,
            action.offered_cash,
            action.requested_properties,
            action.requested_cash,
        )
        session.trades.add(trade)

        await self._emit_to_traders(trade, EventType.TRADE_PROPOSED, {
            "tradeProposal": trade.to_dict(),
            "fromPlayer": state.players[trade.from_player_id].name,
            "toPlayer": state.players[trade.to_player_id].name,
        })
        await self._commit(session)

    async def _on_respond_to_trade(self, session: RoomSession, action: RespondToTradeAction) -> None:
        trade = session.trades.for_response(action.trade_id, action.player_id)

        if action.accept:
            try:
                session.state.accept_trade(trade)
            except ConcurrencyStale:
                self._schedule_discard_trade(session, trade.id)
                await self._emit_to_traders(
                    trade, EventType.TRADE_CANCELLED, {"tradeProposal": trade.to_dict()}
                )
                raise
        else:
            session.state.reject_trade(trade)

        self._schedule_discard_trade(session, trade.id)
        await self._emit_to_traders(trade, EventType.TRADE_RESOLVED, {
            "tradeProposal": trade.to_dict(),
            "accepted": action.accept,
        })
        await self._commit(session)

    async def _on_cancel_trade(self, session: RoomSession, action: CancelTradeAction) -> None:
        trade = session.trades.for_cancel(action.trade_id, action.player_id)
        session.state.cancel_trade(trade)

        self._schedule_discard_trade(session, trade.id)
        await self._emit_to_traders(
            trade, EventType.TRADE_CANCELLED, {"tradeProposal": trade.to_dict()}
        )
        await self._commit(session)

    # =========================================================================
    # Auctions
    # =========================================================================

    async def _on_start_auction(self, session: RoomSession, action: StartAuctionAction) -> None:
        auction = session.state.start_auction(action.player_id, action.property_id, session.auctions)
        self._schedule_auction_end(session, auction)
        logger.info(f"Auction {auction.id} for {auction.property_name} started in room {session.room_id}")

        await self.broadcaster.emit_to_room(
            session.room_id, EventType.AUCTION_STARTED, {"auction": auction.to_dict()}
        )
        await self._commit(session)

    async def _on_place_bid(self, session: RoomSession, action: PlaceBidAction) -> None:
        state = session.state
        auction = state.place_bid(action.player_id, action.auction_id, action.bid_amount, session.auctions)

        await self.broadcaster.emit_to_room(session.room_id, EventType.BID_PLACED, {
            "auction": auction.to_dict(),
            "playerName": state.players[action.player_id].name,
            "bidAmount": action.bid_amount,
        })
        await self._commit(session)

    async def _on_cancel_auction(self, session: RoomSession, action: CancelAuctionAction) -> None:
        auction = session.state.cancel_auction(action.player_id, action.auction_id, session.auctions)
        self._schedule_discard_auction(session, auction.id)

        await self.broadcaster.emit_to_room(
            session.room_id, EventType.AUCTION_CANCELLED, {"auction": auction.to_dict()}
        )
        await self._commit(session)

    async def _finish_auction(self, session: RoomSession, auction_id: str) -> None:
        """Runs on the actor when an auction window closes."""
        auction = session.state.finish_auction(auction_id, session.auctions)
        if auction is None:
            return

        logger.info(
            f"Auction {auction.id} for {auction.property_name} ended "
            f"({auction.status.value}, winner: {auction.current_winner})"
        )
        self._schedule_discard_auction(session, auction.id)
        await self.broadcaster.emit_to_room(
            session.room_id, EventType.AUCTION_ENDED, {"auction": auction.to_dict()}
        )
        await self._commit(session)

    # =========================================================================
    # Game end
    # =========================================================================

    async def _on_propose_game_end(self, session: RoomSession, action: RoomAction) -> None:
        player = session.state.propose_game_end(action.player_id)
        await self.broadcaster.emit_to_room(session.room_id, EventType.GAME_END_PROPOSED, {
            "proposedBy": player.id,
            "playerName": player.name,
        })
        await self._commit(session)

    async def _on_vote_game_end(self, session: RoomSession, action: VoteGameEndAction) -> None:
        session.state.vote_game_end(action.player_id, action.agree)
        await self._commit(session)

    # =========================================================================
    # Chat and history
    # =========================================================================

    def _member(self, session: RoomSession, player_id: str):
        player = session.state.players.get(player_id)
        if player is None:
            raise NotFoundError("Player not found in game!")
        return player

    async def _on_send_chat_message(self, session: RoomSession, action: SendChatMessageAction) -> None:
        player = self._member(session, action.player_id)
        entry = ChatEntry(player_id=player.id, player_name=player.name, text=action.message)
        session.chat.append(entry)
        await self.broadcaster.emit_to_room(session.room_id, EventType.CHAT_MESSAGE, entry.to_dict())

    async def _on_get_chat_history(self, session: RoomSession, action: RoomAction) -> None:
        self._member(session, action.player_id)
        await self.broadcaster.emit_to_player(
            action.player_id,
            EventType.CHAT_HISTORY,
            {"messages": [entry.to_dict() for entry in session.chat]},
        )

    async def _on_get_transactions(self, session: RoomSession, action: RoomAction) -> None:
        self._member(session, action.player_id)
        records = self.store.list_transactions(session.room_id)
        await self.broadcaster.emit_to_player(
            action.player_id,
            EventType.TRANSACTION_HISTORY,
            {"transactions": [r.to_dict() for r in records]},
        )
