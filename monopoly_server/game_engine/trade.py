"""
Trade proposals between two players.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

from monopoly_shared.enums import TradeStatus
from monopoly_shared.errors import NotFoundError, RuleViolation


@dataclass
class TradeProposal:
    """A pending or resolved offer from one player to another."""

    from_player_id: str
    to_player_id: str
    offered_properties: List[str] = field(default_factory=list)
    offered_cash: int = 0
    requested_properties: List[str] = field(default_factory=list)
    requested_cash: int = 0
    status: TradeStatus = TradeStatus.PENDING
    id: str = field(default_factory=lambda: f"trade_{uuid.uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == TradeStatus.PENDING

    @property
    def participants(self) -> tuple[str, str]:
        return self.from_player_id, self.to_player_id

    def resolve(self, status: TradeStatus) -> None:
        self.status = status
        self.resolved_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fromPlayerId": self.from_player_id,
            "toPlayerId": self.to_player_id,
            "offeredProperties": list(self.offered_properties),
            "offeredCash": self.offered_cash,
            "requestedProperties": list(self.requested_properties),
            "requestedCash": self.requested_cash,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "resolvedAt": self.resolved_at.isoformat() if self.resolved_at else None,
        }


class TradeDesk:
    """
    The trade proposals of one room.

    Only the recipient may accept or reject a proposal and only the proposer
    may cancel it. Resolved proposals stay until discarded.
    """

    def __init__(self):
        self._trades: Dict[str, TradeProposal] = {}

    def __len__(self) -> int:
        return len(self._trades)

    def __contains__(self, trade_id: str) -> bool:
        return trade_id in self._trades

    def add(self, proposal: TradeProposal) -> TradeProposal:
        self._trades[proposal.id] = proposal
        return proposal

    def get_pending(self, trade_id: str) -> TradeProposal:
        trade = self._trades.get(trade_id)
        if trade is None or not trade.is_pending:
            raise NotFoundError("Trade proposal not found or already resolved!")
        return trade

    def for_response(self, trade_id: str, player_id: str) -> TradeProposal:
        """A pending proposal the given player is allowed to answer."""
        trade = self.get_pending(trade_id)
        if trade.to_player_id != player_id:
            raise RuleViolation("You are not the recipient of this trade!", "NOT_RECIPIENT")
        return trade

    def for_cancel(self, trade_id: str, player_id: str) -> TradeProposal:
        """A pending proposal the given player is allowed to withdraw."""
        trade = self.get_pending(trade_id)
        if trade.from_player_id != player_id:
            raise RuleViolation("You did not propose this trade!", "NOT_PROPOSER")
        return trade

    def pending(self) -> List[TradeProposal]:
        return [t for t in self._trades.values() if t.is_pending]

    def discard(self, trade_id: str) -> None:
        """Forget a resolved proposal."""
        trade = self._trades.get(trade_id)
        if trade is not None and not trade.is_pending:
            del self._trades[trade_id]
