"""
Property auctions.

An auction runs for a fixed window from its creation. Bids must strictly
raise the current bid; when the window closes the highest bidder buys the
property at their bid. Settling the purchase is done by the game state,
this module only keeps the auction records and their bidding rules.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from monopoly_shared.constants import (
    AUCTION_DEFAULT_PRICE, AUCTION_DURATION_SECONDS, AUCTION_STARTING_BID_RATIO,
)
from monopoly_shared.enums import AuctionStatus
from monopoly_shared.errors import NotFoundError, RuleViolation

from .board import Property
from .player import Player


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Auction:
    """One auction of an unowned property."""

    property_id: str
    property_name: str
    starting_bid: int
    current_bid: int
    start_time: datetime
    end_time: datetime
    current_winner: str | None = None
    participants: List[str] = field(default_factory=list)
    status: AuctionStatus = AuctionStatus.ACTIVE
    id: str = field(default_factory=lambda: f"auction_{uuid.uuid4().hex[:12]}")

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE

    @property
    def has_bids(self) -> bool:
        return self.current_winner is not None

    def remaining_seconds(self, now: datetime | None = None) -> float:
        """Seconds until the bidding window closes, never negative."""
        now = now or _now()
        return max(0.0, (self.end_time - now).total_seconds())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "propertyId": self.property_id,
            "propertyName": self.property_name,
            "startingBid": self.starting_bid,
            "currentBid": self.current_bid,
            "currentWinner": self.current_winner,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "participants": list(self.participants),
            "status": self.status.value,
        }


class AuctionBook:
    """
    The auctions of one room.

    At most one auction is active at a time. Finished auctions stay in the
    book until discarded so clients can still look them up.
    """

    def __init__(self, duration_seconds: float = AUCTION_DURATION_SECONDS):
        self.duration_seconds = duration_seconds
        self._auctions: Dict[str, Auction] = {}

    def __len__(self) -> int:
        return len(self._auctions)

    def __contains__(self, auction_id: str) -> bool:
        return auction_id in self._auctions

    @property
    def active(self) -> Auction | None:
        """The auction currently taking bids, if any."""
        for auction in self._auctions.values():
            if auction.is_active:
                return auction
        return None

    def get(self, auction_id: str) -> Auction:
        auction = self._auctions.get(auction_id)
        if auction is None:
            raise NotFoundError("Auction not found or already ended!")
        return auction

    def get_active(self, auction_id: str) -> Auction:
        auction = self._auctions.get(auction_id)
        if auction is None or not auction.is_active:
            raise NotFoundError("Auction not found or already ended!")
        return auction

    def open(self, prop: Property | None, requested_by: str, host_id: str | None) -> Auction:
        """
        Start an auction for an unowned property.

        Raises:
            RuleViolation: not the host, property unavailable, or another
                auction is still running
        """
        if prop is None or prop.is_owned or not prop.is_purchasable:
            raise RuleViolation("Property not available for auction!", "INVALID_PROPERTY")

        if requested_by != host_id:
            raise RuleViolation("Only host can start auctions!", "NOT_HOST")

        if self.active is not None:
            raise RuleViolation("An auction is already in progress!", "AUCTION_IN_PROGRESS")

        starting_bid = int((prop.price or AUCTION_DEFAULT_PRICE) * AUCTION_STARTING_BID_RATIO)
        start = _now()
        auction = Auction(
            property_id=prop.id,
            property_name=prop.name,
            starting_bid=starting_bid,
            current_bid=starting_bid,
            start_time=start,
            end_time=start + timedelta(seconds=self.duration_seconds),
        )
        self._auctions[auction.id] = auction
        return auction

    def place_bid(self, auction_id: str, player: Player, amount: int) -> Auction:
        """
        Record a bid that beats the current one.

        Raises:
            NotFoundError: unknown or finished auction
            RuleViolation: bankrupt bidder, unaffordable or too low bid
        """
        auction = self.get_active(auction_id)

        if player.is_bankrupt:
            raise RuleViolation("Player not found or bankrupt!", "PLAYER_BANKRUPT")

        if not player.can_afford(amount):
            raise RuleViolation("Not enough money to place this bid!", "INSUFFICIENT_FUNDS")

        if amount <= auction.current_bid:
            raise RuleViolation("Bid must be higher than current bid!", "BID_TOO_LOW")

        auction.current_bid = amount
        auction.current_winner = player.id
        if player.id not in auction.participants:
            auction.participants.append(player.id)
        return auction

    def close(self, auction_id: str) -> Auction | None:
        """
        End an auction whose window has run out.

        Returns None when the auction is gone or no longer active, so a
        late timer is a no-op.
        """
        auction = self._auctions.get(auction_id)
        if auction is None or not auction.is_active:
            return None
        auction.status = AuctionStatus.ENDED
        return auction

    def cancel(self, auction_id: str) -> Auction:
        """Cancel an active auction. Nobody pays and nothing is transferred."""
        auction = self.get_active(auction_id)
        auction.status = AuctionStatus.CANCELLED
        return auction

    def discard(self, auction_id: str) -> None:
        """Forget a finished auction."""
        auction = self._auctions.get(auction_id)
        if auction is not None and not auction.is_active:
            del self._auctions[auction_id]
