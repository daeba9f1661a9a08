"""
Money movement, the transaction log and bankruptcy.

Every change of cash in a room goes through the Ledger so that each one is
paired with exactly one Transaction record. Player-to-player transfers
conserve the total cash in play; only bank payments and receipts change it.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List

from monopoly_shared.enums import TransactionType

from .board import Board, Property
from .player import Player


@dataclass(frozen=True)
class Transaction:
    """One immutable entry of the transaction log."""

    room_id: str
    type: TransactionType
    amount: int
    description: str
    player_id: str | None = None
    from_player_id: str | None = None
    to_player_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "roomId": self.room_id,
            "type": self.type.value,
            "amount": self.amount,
            "description": self.description,
            "playerId": self.player_id,
            "fromPlayerId": self.from_player_id,
            "toPlayerId": self.to_player_id,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class PlayerScore:
    """Final valuation of one player."""
    player_id: str
    name: str
    cash: int
    property_values: int

    @property
    def total_assets(self) -> int:
        return self.cash + self.property_values

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "name": self.name,
            "totalAssets": self.total_assets,
            "cash": self.cash,
            "propertyValues": self.property_values,
        }


@dataclass
class BankruptcyOutcome:
    """What a bankruptcy check changed."""
    bankrupt: List[Player] = field(default_factory=list)
    released: List[Property] = field(default_factory=list)
    winner: Player | None = None


class Ledger:
    """
    Applies cash changes and collects the transactions they produce.

    Transactions accumulate until drained; the caller persists them once
    the whole action has been applied.
    """

    def __init__(self, room_id: str):
        self.room_id = room_id
        self._pending: List[Transaction] = []

    def record(
        self,
        tx_type: TransactionType,
        amount: int,
        description: str,
        player_id: str | None = None,
        from_player_id: str | None = None,
        to_player_id: str | None = None
    ) -> Transaction:
        """Append a transaction without moving any cash."""
        tx = Transaction(
            room_id=self.room_id,
            type=tx_type,
            amount=amount,
            description=description,
            player_id=player_id,
            from_player_id=from_player_id,
            to_player_id=to_player_id,
        )
        self._pending.append(tx)
        return tx

    def transfer(
        self,
        payer: Player,
        payee: Player,
        amount: int,
        tx_type: TransactionType,
        description: str
    ) -> Transaction:
        """Move cash between two players. The payer may go negative."""
        payer.charge(amount)
        payee.add_cash(amount)
        return self.record(
            tx_type, amount, description,
            player_id=payer.id,
            from_player_id=payer.id,
            to_player_id=payee.id,
        )

    def pay_bank(
        self,
        player: Player,
        amount: int,
        tx_type: TransactionType,
        description: str
    ) -> Transaction:
        """Charge a player in favour of the bank. The player may go negative."""
        player.charge(amount)
        return self.record(
            tx_type, amount, description,
            player_id=player.id,
            from_player_id=player.id,
        )

    def collect_from_bank(
        self,
        player: Player,
        amount: int,
        tx_type: TransactionType,
        description: str
    ) -> Transaction:
        """Credit a player from the bank."""
        player.add_cash(amount)
        return self.record(
            tx_type, amount, description,
            player_id=player.id,
            to_player_id=player.id,
        )

    def pay_each(
        self,
        payer: Player,
        payees: Iterable[Player],
        amount: int,
        tx_type: TransactionType,
        description: str
    ) -> Transaction:
        """Pay a fixed amount to each of several players, as one entry."""
        total = 0
        for payee in payees:
            payer.charge(amount)
            payee.add_cash(amount)
            total += amount
        return self.record(
            tx_type, total, description,
            player_id=payer.id,
            from_player_id=payer.id,
        )

    def collect_each(
        self,
        payee: Player,
        payers: Iterable[Player],
        amount: int,
        tx_type: TransactionType,
        description: str
    ) -> Transaction:
        """Collect a fixed amount from each of several players, as one entry."""
        total = 0
        for payer in payers:
            payer.charge(amount)
            payee.add_cash(amount)
            total += amount
        return self.record(
            tx_type, total, description,
            player_id=payee.id,
            to_player_id=payee.id,
        )

    def drain(self) -> List[Transaction]:
        """Hand over and forget the transactions recorded so far."""
        pending, self._pending = self._pending, []
        return pending

    @property
    def pending(self) -> List[Transaction]:
        return list(self._pending)

    def check_bankruptcy(self, players: Iterable[Player], board: Board) -> BankruptcyOutcome:
        """
        Mark every non-bankrupt player with negative cash as bankrupt.

        Their properties go back to the bank with no buildings and no
        mortgage. When this leaves exactly one player standing, that player
        is reported as the winner.
        """
        players = list(players)
        outcome = BankruptcyOutcome()

        for player in players:
            if player.is_bankrupt or player.cash >= 0:
                continue

            player.declare_bankruptcy()
            for prop in board.get_player_properties(player.id):
                prop.clear_ownership()
                outcome.released.append(prop)

            self.record(
                TransactionType.BANKRUPTCY, 0,
                f"{player.name} declared bankruptcy",
                player_id=player.id,
            )
            outcome.bankrupt.append(player)

        if outcome.bankrupt:
            survivors = [p for p in players if not p.is_bankrupt]
            if len(survivors) == 1:
                outcome.winner = survivors[0]

        return outcome


def score_player(player: Player, board: Board) -> PlayerScore:
    """Cash plus price and buildings of every owned property."""
    return PlayerScore(
        player_id=player.id,
        name=player.name,
        cash=player.cash,
        property_values=board.property_value(player.id),
    )


def compute_scores(players: Iterable[Player], board: Board) -> List[PlayerScore]:
    """Scores of all non-bankrupt players, richest first."""
    scores = [score_player(p, board) for p in players if not p.is_bankrupt]
    scores.sort(key=lambda s: s.total_assets, reverse=True)
    return scores
