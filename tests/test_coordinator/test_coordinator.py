"""
Tests for the match coordinator, driven with an in-memory store and a
recording broadcaster.

Run with: python -m pytest tests/test_coordinator -v
"""

import asyncio
import unittest
from unittest.mock import Mock

from monopoly_shared.enums import EventType, RoomStatus
from monopoly_shared.protocol import (
    BuyPropertyAction,
    CreateRoomAction,
    GetChatHistoryAction,
    GetTransactionsAction,
    JoinRoomAction,
    PlaceBidAction,
    PlayerReadyAction,
    ProposeGameEndAction,
    ProposeTradeAction,
    RegisterPlayerAction,
    RespondToTradeAction,
    RollDiceAction,
    SendChatMessageAction,
    StartAuctionAction,
    StartGameAction,
    VoteGameEndAction,
)
from monopoly_server.coordinator import MatchCoordinator, RetryPolicy
from monopoly_server.coordinator.coordinator import JOIN_FAILED_MESSAGE
from monopoly_server.game_engine import LoadedDice
from monopoly_server.persistence.models import PlayerRecord


PLAYERS = [("p1", "Alice", "red"), ("p2", "Bob", "blue"), ("p3", "Carol", "green")]


class MemoryStore:
    """RoomStore kept in dictionaries."""

    def __init__(self):
        self.rooms = {}
        self.players = {}
        self.properties = {}
        self.transactions = []
        self.fail_updates = False

    def create_room(self, record):
        self.rooms[record.id] = record
        return record

    def get_room(self, room_id):
        return self.rooms.get(room_id)

    def update_room_status(self, room_id, status):
        self.rooms[room_id].status = status.value

    def add_player(self, record):
        self.players[record.id] = record
        return record

    def get_player(self, player_id):
        return self.players.get(player_id)

    def list_players(self, room_id):
        return [p for p in self.players.values() if p.room_id == room_id]

    def update_player(self, player_id, fields):
        if self.fail_updates:
            raise OSError("disk full")
        record = self.players[player_id]
        for key, value in fields.items():
            setattr(record, key, value)

    def create_properties(self, records):
        for record in records:
            self.properties[record.id] = record

    def list_properties(self, room_id):
        return sorted(
            (p for p in self.properties.values() if p.room_id == room_id),
            key=lambda p: p.position,
        )

    def update_property(self, property_id, fields):
        record = self.properties[property_id]
        for key, value in fields.items():
            setattr(record, key, value)

    def append_transaction(self, record):
        self.transactions.append(record)
        return record

    def list_transactions(self, room_id, limit=100):
        return [t for t in reversed(self.transactions) if t.room_id == room_id][:limit]


class RecordingBroadcaster:
    """Broadcaster that remembers every event."""

    def __init__(self):
        self.room_events = []
        self.player_events = []
        self.subscriptions = []

    async def emit_to_room(self, room_id, event, payload):
        self.room_events.append((room_id, event, payload))

    async def emit_to_player(self, player_id, event, payload):
        self.player_events.append((player_id, event, payload))

    async def subscribe(self, player_id, room_id):
        self.subscriptions.append((player_id, room_id))

    def to_room(self, event):
        return [payload for _, e, payload in self.room_events if e == event]

    def to_player(self, player_id, event):
        return [payload for p, e, payload in self.player_events if p == player_id and e == event]

    def errors(self, player_id):
        return self.to_player(player_id, EventType.ERROR)


class CoordinatorTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = MemoryStore()
        self.broadcaster = RecordingBroadcaster()
        self.sleeps = []
        self.on_sleep = None
        self.coordinator = self.make_coordinator(self.broadcaster)

    async def asyncTearDown(self):
        await self.coordinator.shutdown()

    def make_coordinator(self, broadcaster):
        async def fake_sleep(delay):
            self.sleeps.append(delay)
            if self.on_sleep is not None:
                self.on_sleep()

        return MatchCoordinator(
            self.store,
            broadcaster,
            retry=RetryPolicy(sleep=fake_sleep),
            auction_duration=0.05,
            retention=0.05,
            seed=1,
        )

    async def create_room(self):
        await self.coordinator.handle(CreateRoomAction(
            player_id="p1", room_name="Test Room", player_name="Alice", color="red"
        ))
        return self.broadcaster.to_player("p1", EventType.ROOM_CREATED)[-1]["roomId"]

    async def start_game(self, num_players=2):
        room_id = await self.create_room()
        for player_id, name, color in PLAYERS[1:num_players]:
            await self.coordinator.handle(RegisterPlayerAction(
                player_id=player_id, room_id=room_id, player_name=name, color=color
            ))
            await self.coordinator.handle(PlayerReadyAction(
                player_id=player_id, room_id=room_id, is_ready=True
            ))
        await self.coordinator.handle(StartGameAction(player_id="p1", room_id=room_id))

        session = self.coordinator.registry.get(room_id)
        for index, player_id in enumerate(sorted(session.state.players)):
            session.state.players[player_id].turn_order = index
        session.state.current_player_turn = "p1"
        session.state.dice = LoadedDice()
        return room_id, session


class TestLobby(CoordinatorTestCase):

    async def test_create_room(self):
        room_id = await self.create_room()

        self.assertIn(room_id, self.store.rooms)
        self.assertEqual(self.store.rooms[room_id].host_id, "p1")
        self.assertEqual(self.store.players["p1"].room_id, room_id)
        self.assertIn(room_id, self.coordinator.registry)
        self.assertIn(("p1", room_id), self.broadcaster.subscriptions)

        created = self.broadcaster.to_player("p1", EventType.ROOM_CREATED)[0]
        self.assertEqual(created["gameRoom"]["name"], "Test Room")
        self.assertTrue(created["gameRoom"]["players"][0]["isReady"])

    async def test_create_room_with_bad_board_size(self):
        await self.coordinator.handle(CreateRoomAction(
            player_id="p1", room_name="Test Room", player_name="Alice",
            color="red", board_size=50,
        ))
        self.assertEqual(self.broadcaster.errors("p1")[0]["code"], "VALIDATION_ERROR")
        self.assertEqual(len(self.coordinator.registry), 0)
        self.assertEqual(self.store.rooms, {})

    async def test_register_and_start(self):
        room_id, session = await self.start_game()

        self.assertEqual(self.store.rooms[room_id].status, "PLAYING")
        self.assertEqual(len(self.store.list_properties(room_id)), 40)
        self.assertTrue(self.store.players["p2"].is_ready)
        self.assertIn(("p2", room_id), self.broadcaster.subscriptions)

        latest = self.broadcaster.to_room(EventType.ROOM_UPDATED)[-1]
        self.assertEqual(latest["gameRoom"]["status"], "PLAYING")
        self.assertEqual(len(latest["properties"]), 40)

    async def test_player_in_another_room_is_refused(self):
        room_id = await self.create_room()
        await self.coordinator.handle(RegisterPlayerAction(
            player_id="p1", room_id=room_id, player_name="Alice", color="blue"
        ))
        self.assertEqual(self.broadcaster.errors("p1")[0]["code"], "DUPLICATE_PLAYER")

    async def test_unknown_room(self):
        await self.coordinator.handle(RollDiceAction(player_id="p1", room_id="nowhere"))
        error = self.broadcaster.errors("p1")[0]
        self.assertEqual(error["code"], "NOT_FOUND")
        self.assertEqual(error["message"], "Game room not found")


class TestGameplay(CoordinatorTestCase):

    async def test_roll_and_buy_are_persisted(self):
        room_id, session = await self.start_game()
        session.state.dice.queue(2, 3)

        await self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id))
        await self.coordinator.handle(BuyPropertyAction(
            player_id="p1", room_id=room_id, property_id=f"{room_id}-5"
        ))

        self.assertEqual(self.store.players["p1"].cash, 1300)
        self.assertEqual(self.store.players["p1"].position, 5)
        self.assertEqual(self.store.properties[f"{room_id}-5"].owner_id, "p1")
        self.assertEqual([t.type for t in self.store.transactions], ["BUY_PROPERTY"])

        latest = self.broadcaster.to_room(EventType.ROOM_UPDATED)[-1]
        self.assertEqual(latest["version"], session.state.version)

    async def test_rejected_action_goes_to_actor_only(self):
        room_id, session = await self.start_game()
        updates = len(self.broadcaster.to_room(EventType.ROOM_UPDATED))

        await self.coordinator.handle(RollDiceAction(player_id="p2", room_id=room_id))

        self.assertEqual(self.broadcaster.errors("p2")[0]["code"], "NOT_YOUR_TURN")
        self.assertEqual(self.broadcaster.errors("p1"), [])
        self.assertEqual(len(self.broadcaster.to_room(EventType.ROOM_UPDATED)), updates)

    async def test_actions_on_one_room_are_serialized(self):
        room_id, session = await self.start_game()
        session.state.dice.queue(2, 3)

        await asyncio.gather(
            self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id)),
            self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id)),
        )

        self.assertEqual(session.state.players["p1"].position, 5)
        self.assertEqual(
            [e["code"] for e in self.broadcaster.errors("p1")], ["ALREADY_ROLLED"]
        )

    async def test_storage_failure_does_not_block_the_game(self):
        room_id, session = await self.start_game()
        session.state.dice.queue(2, 3)
        self.store.fail_updates = True

        with self.assertLogs("monopoly_server.coordinator.coordinator", level="ERROR"):
            await self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id))

        self.assertEqual(session.state.players["p1"].position, 5)
        self.assertEqual(self.store.players["p1"].position, 0)
        self.assertEqual(self.broadcaster.errors("p1"), [])
        latest = self.broadcaster.to_room(EventType.ROOM_UPDATED)[-1]
        self.assertTrue(latest["diceRolled"])

    async def test_unexpected_error_becomes_internal_error(self):
        room_id, session = await self.start_game()
        session.state.roll_dice = Mock(side_effect=RuntimeError("boom"))

        with self.assertLogs("monopoly_server.coordinator.coordinator", level="ERROR"):
            await self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id))

        self.assertEqual(
            self.broadcaster.errors("p1"),
            [{"message": "Internal error", "code": "INTERNAL_ERROR"}],
        )

    async def test_transaction_history(self):
        room_id, session = await self.start_game()
        session.state.dice.queue(2, 3)
        await self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id))
        await self.coordinator.handle(BuyPropertyAction(
            player_id="p1", room_id=room_id, property_id=f"{room_id}-5"
        ))

        await self.coordinator.handle(GetTransactionsAction(player_id="p2", room_id=room_id))

        history = self.broadcaster.to_player("p2", EventType.TRANSACTION_HISTORY)[0]
        self.assertEqual(history["transactions"][0]["type"], "BUY_PROPERTY")
        self.assertEqual(history["transactions"][0]["amount"], 200)


class TestJoin(CoordinatorTestCase):

    async def test_join_reloads_room_after_restart(self):
        room_id, session = await self.start_game()
        session.state.dice.queue(2, 3)
        await self.coordinator.handle(RollDiceAction(player_id="p1", room_id=room_id))
        await self.coordinator.handle(BuyPropertyAction(
            player_id="p1", room_id=room_id, property_id=f"{room_id}-5"
        ))

        broadcaster = RecordingBroadcaster()
        restarted = self.make_coordinator(broadcaster)
        try:
            await restarted.handle(JoinRoomAction(player_id="p2", room_id=room_id))

            reloaded = restarted.registry.get(room_id)
            self.assertIsNotNone(reloaded)
            self.assertEqual(reloaded.state.status, RoomStatus.PLAYING)
            self.assertEqual(reloaded.state.players["p1"].cash, 1300)
            self.assertEqual(
                reloaded.state.board.get_property(f"{room_id}-5").owner_id, "p1"
            )
            self.assertIsNotNone(reloaded.state.current_player_turn)
            self.assertIn(("p2", room_id), broadcaster.subscriptions)
            self.assertEqual(len(broadcaster.to_room(EventType.ROOM_UPDATED)), 1)
            self.assertEqual(self.sleeps, [])
        finally:
            await restarted.shutdown()

    async def test_join_waits_for_late_registration(self):
        room_id = await self.create_room()

        def register_late():
            self.store.add_player(PlayerRecord(id="p2", room_id=room_id, name="Bob", color="blue"))

        self.on_sleep = register_late
        await self.coordinator.handle(JoinRoomAction(player_id="p2", room_id=room_id))

        session = self.coordinator.registry.get(room_id)
        self.assertIn("p2", session.state.players)
        self.assertEqual(self.sleeps, [0.15])
        self.assertEqual(self.broadcaster.errors("p2"), [])
        self.assertIn(("p2", room_id), self.broadcaster.subscriptions)

    async def test_join_seats_stored_player_on_the_room_actor(self):
        room_id = await self.create_room()
        session = self.coordinator.registry.get(room_id)
        self.store.add_player(PlayerRecord(id="p2", room_id=room_id, name="Bob", color="blue"))

        gate = asyncio.Event()

        async def busy():
            await gate.wait()

        running = session.actor.submit(busy)
        join = asyncio.create_task(
            self.coordinator.handle(JoinRoomAction(player_id="p2", room_id=room_id))
        )
        for _ in range(3):
            await asyncio.sleep(0)
        self.assertNotIn("p2", session.state.players)

        gate.set()
        await running
        await join
        self.assertIn("p2", session.state.players)
        self.assertEqual(self.broadcaster.errors("p2"), [])

    async def test_join_does_not_seat_stored_player_in_started_room(self):
        room_id, session = await self.start_game()
        self.store.add_player(PlayerRecord(id="p3", room_id=room_id, name="Carol", color="green"))

        await self.coordinator.handle(JoinRoomAction(player_id="p3", room_id=room_id))

        self.assertEqual(self.broadcaster.errors("p3")[0]["code"], "GAME_ALREADY_STARTED")
        self.assertNotIn("p3", session.state.players)
        self.assertNotIn(("p3", room_id), self.broadcaster.subscriptions)

    async def test_join_gives_up_after_bounded_retries(self):
        room_id = await self.create_room()

        await self.coordinator.handle(JoinRoomAction(player_id="ghost", room_id=room_id))

        self.assertEqual(len(self.sleeps), 6)
        self.assertAlmostEqual(self.sleeps[0], 0.15)
        self.assertAlmostEqual(self.sleeps[1], 0.225)
        self.assertTrue(all(d <= 3.0 for d in self.sleeps))
        self.assertEqual(self.broadcaster.errors("ghost")[0]["message"], JOIN_FAILED_MESSAGE)

    async def test_join_sends_running_auction(self):
        room_id, session = await self.start_game()
        session.auctions.duration_seconds = 10
        await self.coordinator.handle(StartAuctionAction(
            player_id="p1", room_id=room_id, property_id=f"{room_id}-5"
        ))

        await self.coordinator.handle(JoinRoomAction(player_id="p2", room_id=room_id))

        sent = self.broadcaster.to_player("p2", EventType.AUCTION_STARTED)
        self.assertEqual(sent[0]["auction"]["propertyId"], f"{room_id}-5")


class TestTrades(CoordinatorTestCase):

    async def propose(self, room_id, session):
        session.state.board.get_property(f"{room_id}-1").owner_id = "p1"
        await self.coordinator.handle(ProposeTradeAction(
            player_id="p1", room_id=room_id, to_player_id="p2",
            offered_properties=[f"{room_id}-1"], requested_cash=100,
        ))
        return self.broadcaster.to_player("p2", EventType.TRADE_PROPOSED)[0]["tradeProposal"]["id"]

    async def test_accepted_trade(self):
        room_id, session = await self.start_game()
        trade_id = await self.propose(room_id, session)

        proposed = self.broadcaster.to_player("p1", EventType.TRADE_PROPOSED)[0]
        self.assertEqual(proposed["fromPlayer"], "Alice")
        self.assertEqual(proposed["toPlayer"], "Bob")

        await self.coordinator.handle(RespondToTradeAction(
            player_id="p2", room_id=room_id, trade_id=trade_id, accept=True
        ))

        for player_id in ("p1", "p2"):
            resolved = self.broadcaster.to_player(player_id, EventType.TRADE_RESOLVED)[0]
            self.assertTrue(resolved["accepted"])
            self.assertEqual(resolved["tradeProposal"]["status"], "ACCEPTED")
        self.assertEqual(self.store.properties[f"{room_id}-1"].owner_id, "p2")
        self.assertEqual(self.store.players["p1"].cash, 1600)
        self.assertEqual(self.store.players["p2"].cash, 1400)

        await asyncio.sleep(0.2)
        self.assertNotIn(trade_id, session.trades)

    async def test_only_recipient_may_answer(self):
        room_id, session = await self.start_game()
        trade_id = await self.propose(room_id, session)

        await self.coordinator.handle(RespondToTradeAction(
            player_id="p1", room_id=room_id, trade_id=trade_id, accept=True
        ))

        self.assertEqual(self.broadcaster.errors("p1")[0]["code"], "NOT_RECIPIENT")
        self.assertIn(trade_id, session.trades)

    async def test_stale_trade_is_cancelled(self):
        room_id, session = await self.start_game()
        trade_id = await self.propose(room_id, session)
        session.state.board.get_property(f"{room_id}-1").owner_id = None

        await self.coordinator.handle(RespondToTradeAction(
            player_id="p2", room_id=room_id, trade_id=trade_id, accept=True
        ))

        self.assertEqual(self.broadcaster.errors("p2")[0]["code"], "STALE")
        for player_id in ("p1", "p2"):
            cancelled = self.broadcaster.to_player(player_id, EventType.TRADE_CANCELLED)[0]
            self.assertEqual(cancelled["tradeProposal"]["status"], "CANCELLED")
        self.assertEqual(self.store.players["p2"].cash, 1500)


class TestAuctions(CoordinatorTestCase):

    async def test_auction_closes_on_timer(self):
        room_id, session = await self.start_game(3)
        property_id = f"{room_id}-5"
        await self.coordinator.handle(StartAuctionAction(
            player_id="p1", room_id=room_id, property_id=property_id
        ))
        auction_id = self.broadcaster.to_room(EventType.AUCTION_STARTED)[0]["auction"]["id"]

        await self.coordinator.handle(PlaceBidAction(
            player_id="p2", room_id=room_id, auction_id=auction_id, bid_amount=150
        ))
        await self.coordinator.handle(PlaceBidAction(
            player_id="p3", room_id=room_id, auction_id=auction_id, bid_amount=120
        ))

        bid = self.broadcaster.to_room(EventType.BID_PLACED)[0]
        self.assertEqual(bid["playerName"], "Bob")
        self.assertEqual(self.broadcaster.errors("p3")[0]["code"], "BID_TOO_LOW")

        await asyncio.sleep(0.3)

        ended = self.broadcaster.to_room(EventType.AUCTION_ENDED)
        self.assertEqual(len(ended), 1)
        self.assertEqual(ended[0]["auction"]["currentWinner"], "p2")
        self.assertEqual(self.store.properties[property_id].owner_id, "p2")
        self.assertEqual(self.store.players["p2"].cash, 1350)
        self.assertNotIn(auction_id, session.auctions)

    async def test_only_host_starts_auction(self):
        room_id, session = await self.start_game()
        await self.coordinator.handle(StartAuctionAction(
            player_id="p2", room_id=room_id, property_id=f"{room_id}-5"
        ))
        self.assertEqual(self.broadcaster.errors("p2")[0]["code"], "NOT_HOST")
        self.assertEqual(session.timers, set())


class TestGameEnd(CoordinatorTestCase):

    async def test_host_vote_ends_and_evicts_room(self):
        room_id, session = await self.start_game()

        await self.coordinator.handle(ProposeGameEndAction(player_id="p1", room_id=room_id))
        proposed = self.broadcaster.to_room(EventType.GAME_END_PROPOSED)[0]
        self.assertEqual(proposed["playerName"], "Alice")

        await self.coordinator.handle(VoteGameEndAction(player_id="p2", room_id=room_id, agree=True))
        self.assertEqual(self.broadcaster.to_room(EventType.GAME_ENDED), [])

        await self.coordinator.handle(VoteGameEndAction(player_id="p1", room_id=room_id, agree=True))

        ended = self.broadcaster.to_room(EventType.GAME_ENDED)
        self.assertEqual(len(ended), 1)
        self.assertEqual(ended[0]["winner"], "Alice")
        self.assertEqual(len(ended[0]["scores"]), 2)
        self.assertEqual(self.store.rooms[room_id].status, "FINISHED")
        self.assertNotIn(room_id, self.coordinator.registry)


class TestChat(CoordinatorTestCase):

    async def test_chat_and_history(self):
        room_id, session = await self.start_game()

        await self.coordinator.handle(SendChatMessageAction(
            player_id="p2", room_id=room_id, message="hello"
        ))
        message = self.broadcaster.to_room(EventType.CHAT_MESSAGE)[0]
        self.assertEqual(message["playerName"], "Bob")
        self.assertEqual(message["message"], "hello")

        await self.coordinator.handle(GetChatHistoryAction(player_id="p1", room_id=room_id))
        history = self.broadcaster.to_player("p1", EventType.CHAT_HISTORY)[0]
        self.assertEqual([m["message"] for m in history["messages"]], ["hello"])

    async def test_outsiders_cannot_chat(self):
        room_id, session = await self.start_game()
        await self.coordinator.handle(SendChatMessageAction(
            player_id="ghost", room_id=room_id, message="hi"
        ))
        self.assertEqual(self.broadcaster.errors("ghost")[0]["message"], "Player not found in game!")
        self.assertEqual(self.broadcaster.to_room(EventType.CHAT_MESSAGE), [])


if __name__ == "__main__":
    unittest.main()
