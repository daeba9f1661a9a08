"""
Tests for property auctions and player-to-player trades.
"""

import unittest
from datetime import timedelta

from monopoly_shared.enums import AuctionStatus, TradeStatus, TransactionType
from monopoly_shared.errors import ConcurrencyStale, NotFoundError, RuleViolation
from monopoly_server.game_engine import (
    AuctionBook, GameState, LoadedDice, Player, Room, TradeDesk,
)


def make_state(num_players=4):
    room = Room(id="room", name="Test Room", host_id="p1")
    state = GameState(room, dice=LoadedDice(), seed=5)
    names = ["Alice", "Bob", "Carol", "Dave"]
    colors = ["red", "blue", "green", "yellow"]
    for i in range(num_players):
        state.add_player(Player(id=f"p{i + 1}", name=names[i], color=colors[i], is_ready=True))
    state.start_game("p1")
    state.collect_changes()
    return state


class TestAuctionBook(unittest.TestCase):

    def setUp(self):
        self.state = make_state()
        self.book = AuctionBook(duration_seconds=30)

    def test_starting_bid_is_half_price(self):
        auction = self.state.start_auction("p1", "room-5", self.book)

        self.assertEqual(auction.starting_bid, 100)
        self.assertEqual(auction.current_bid, 100)
        self.assertIsNone(auction.current_winner)
        self.assertEqual(auction.status, AuctionStatus.ACTIVE)
        self.assertEqual(auction.end_time - auction.start_time, timedelta(seconds=30))
        self.assertIs(self.book.active, auction)

    def test_only_host_starts(self):
        with self.assertRaises(RuleViolation) as ctx:
            self.state.start_auction("p2", "room-5", self.book)
        self.assertEqual(ctx.exception.code, "NOT_HOST")

    def test_owned_property_cannot_be_auctioned(self):
        self.state.board.get_property("room-5").owner_id = "p2"
        with self.assertRaises(RuleViolation) as ctx:
            self.state.start_auction("p1", "room-5", self.book)
        self.assertEqual(ctx.exception.code, "INVALID_PROPERTY")

    def test_one_auction_at_a_time(self):
        self.state.start_auction("p1", "room-5", self.book)
        with self.assertRaises(RuleViolation) as ctx:
            self.state.start_auction("p1", "room-15", self.book)
        self.assertEqual(ctx.exception.code, "AUCTION_IN_PROGRESS")

    def test_bids_must_rise(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.place_bid("p3", auction.id, 120, self.book)

        with self.assertRaises(RuleViolation) as ctx:
            self.state.place_bid("p4", auction.id, 120, self.book)
        self.assertEqual(ctx.exception.code, "BID_TOO_LOW")
        with self.assertRaises(RuleViolation):
            self.state.place_bid("p4", auction.id, 100, self.book)

        self.state.place_bid("p4", auction.id, 150, self.book)
        self.assertEqual(auction.current_winner, "p4")
        self.assertEqual(auction.participants, ["p3", "p4"])

    def test_bid_beyond_cash(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        with self.assertRaises(RuleViolation) as ctx:
            self.state.place_bid("p2", auction.id, 5000, self.book)
        self.assertEqual(ctx.exception.code, "INSUFFICIENT_FUNDS")

    def test_highest_bidder_buys(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.place_bid("p3", auction.id, 120, self.book)
        self.state.place_bid("p4", auction.id, 150, self.book)
        self.state.collect_changes()

        finished = self.state.finish_auction(auction.id, self.book)

        self.assertIs(finished, auction)
        self.assertEqual(auction.status, AuctionStatus.ENDED)
        self.assertEqual(self.state.board.get_property("room-5").owner_id, "p4")
        self.assertEqual(self.state.players["p4"].cash, 1350)
        self.assertEqual(self.state.players["p3"].cash, 1500)
        changes = self.state.collect_changes()
        self.assertEqual([tx.type for tx in changes.transactions], [TransactionType.BUY_PROPERTY])
        self.assertIsNone(self.book.active)

    def test_no_bids_leaves_property_unowned(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.finish_auction(auction.id, self.book)

        self.assertEqual(auction.status, AuctionStatus.ENDED)
        self.assertIsNone(self.state.board.get_property("room-5").owner_id)
        self.assertIn("ended with no bids", self.state.game_message)

    def test_finishing_twice_is_a_no_op(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.place_bid("p3", auction.id, 120, self.book)
        self.state.finish_auction(auction.id, self.book)
        self.assertIsNone(self.state.finish_auction(auction.id, self.book))
        self.assertEqual(self.state.players["p3"].cash, 1380)

    def test_winner_who_cannot_pay_cancels_the_sale(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.place_bid("p3", auction.id, 300, self.book)
        self.state.players["p3"].cash = 200

        self.state.finish_auction(auction.id, self.book)

        self.assertEqual(auction.status, AuctionStatus.CANCELLED)
        self.assertIsNone(self.state.board.get_property("room-5").owner_id)
        self.assertEqual(self.state.players["p3"].cash, 200)

    def test_host_cancels(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.state.place_bid("p3", auction.id, 120, self.book)

        with self.assertRaises(RuleViolation):
            self.state.cancel_auction("p2", auction.id, self.book)
        self.state.cancel_auction("p1", auction.id, self.book)

        self.assertEqual(auction.status, AuctionStatus.CANCELLED)
        self.assertEqual(self.state.players["p3"].cash, 1500)
        with self.assertRaises(NotFoundError):
            self.state.place_bid("p4", auction.id, 200, self.book)

    def test_discard_only_finished(self):
        auction = self.state.start_auction("p1", "room-5", self.book)
        self.book.discard(auction.id)
        self.assertIn(auction.id, self.book)
        self.state.finish_auction(auction.id, self.book)
        self.book.discard(auction.id)
        self.assertNotIn(auction.id, self.book)


class TestTrades(unittest.TestCase):
    """Alice owns Mediterranean, Bob owns Baltic."""

    def setUp(self):
        self.state = make_state()
        self.desk = TradeDesk()
        self.alice = self.state.players["p1"]
        self.bob = self.state.players["p2"]
        self.mediterranean = self.state.board.get_property("room-1")
        self.baltic = self.state.board.get_property("room-3")
        self.mediterranean.owner_id = "p1"
        self.baltic.owner_id = "p2"

    def propose(self, **kwargs):
        terms = dict(
            offered_properties=["room-1"], offered_cash=100,
            requested_properties=["room-3"], requested_cash=0,
        )
        terms.update(kwargs)
        trade = self.state.propose_trade("p1", "p2", **terms)
        return self.desk.add(trade)

    def test_proposal_moves_nothing(self):
        trade = self.propose()

        self.assertEqual(trade.status, TradeStatus.PENDING)
        self.assertEqual(self.mediterranean.owner_id, "p1")
        self.assertEqual(self.alice.cash, 1500)
        self.assertEqual(self.desk.pending(), [trade])

    def test_accept_swaps_holdings(self):
        trade = self.propose()
        self.state.accept_trade(self.desk.for_response(trade.id, "p2"))

        self.assertEqual(trade.status, TradeStatus.ACCEPTED)
        self.assertIsNotNone(trade.resolved_at)
        self.assertEqual(self.mediterranean.owner_id, "p2")
        self.assertEqual(self.baltic.owner_id, "p1")
        self.assertEqual(self.alice.cash, 1400)
        self.assertEqual(self.bob.cash, 1600)
        changes = self.state.collect_changes()
        self.assertEqual([tx.type for tx in changes.transactions], [TransactionType.TRADE])

    def test_property_only_trade_is_logged(self):
        trade = self.propose(offered_cash=0)
        self.state.accept_trade(trade)
        changes = self.state.collect_changes()
        self.assertEqual(changes.transactions[0].amount, 0)

    def test_cannot_offer_what_you_do_not_own(self):
        with self.assertRaises(RuleViolation) as ctx:
            self.propose(offered_properties=["room-3"])
        self.assertEqual(ctx.exception.code, "NOT_OWNER")

    def test_cannot_trade_with_self(self):
        with self.assertRaises(RuleViolation) as ctx:
            self.state.propose_trade("p1", "p1", ["room-1"], 0, [], 0)
        self.assertEqual(ctx.exception.code, "INVALID_TRADE")

    def test_empty_trade(self):
        with self.assertRaises(RuleViolation) as ctx:
            self.propose(offered_properties=[], offered_cash=0, requested_properties=[])
        self.assertEqual(ctx.exception.code, "INVALID_TRADE")

    def test_offer_beyond_cash(self):
        with self.assertRaises(RuleViolation) as ctx:
            self.propose(offered_cash=5000)
        self.assertEqual(ctx.exception.code, "INSUFFICIENT_FUNDS")

    def test_only_recipient_responds(self):
        trade = self.propose()
        with self.assertRaises(RuleViolation) as ctx:
            self.desk.for_response(trade.id, "p1")
        self.assertEqual(ctx.exception.code, "NOT_RECIPIENT")

    def test_only_proposer_cancels(self):
        trade = self.propose()
        with self.assertRaises(RuleViolation) as ctx:
            self.desk.for_cancel(trade.id, "p2")
        self.assertEqual(ctx.exception.code, "NOT_PROPOSER")

        self.state.cancel_trade(self.desk.for_cancel(trade.id, "p1"))
        self.assertEqual(trade.status, TradeStatus.CANCELLED)
        with self.assertRaises(NotFoundError):
            self.desk.get_pending(trade.id)

    def test_reject(self):
        trade = self.propose()
        self.state.reject_trade(trade)
        self.assertEqual(trade.status, TradeStatus.REJECTED)
        self.assertEqual(self.alice.cash, 1500)
        self.assertEqual(self.mediterranean.owner_id, "p1")

    def test_stale_trade_is_cancelled(self):
        trade = self.propose()
        self.mediterranean.owner_id = "p3"

        with self.assertRaises(ConcurrencyStale) as ctx:
            self.state.accept_trade(trade)

        self.assertEqual(ctx.exception.code, "STALE")
        self.assertEqual(trade.status, TradeStatus.CANCELLED)
        self.assertEqual(self.baltic.owner_id, "p2")
        self.assertEqual(self.alice.cash, 1500)
        self.assertEqual(self.bob.cash, 1500)
        self.assertTrue(self.state.collect_changes().is_empty)

    def test_discard_resolved_trade(self):
        trade = self.propose()
        self.desk.discard(trade.id)
        self.assertIn(trade.id, self.desk)
        self.state.reject_trade(trade)
        self.desk.discard(trade.id)
        self.assertNotIn(trade.id, self.desk)


if __name__ == "__main__":
    unittest.main()
