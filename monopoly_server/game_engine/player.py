"""
Player state management.
"""
from dataclasses import dataclass

from monopoly_shared.constants import STARTING_CASH


@dataclass
class Player:
    """Represents a player in a room."""

    id: str
    name: str
    color: str = ""
    cash: int = STARTING_CASH
    position: int = 0
    turn_order: int = 0
    is_ready: bool = False
    is_bankrupt: bool = False

    # Jail tracking
    in_jail: bool = False
    jail_turns: int = 0
    jail_cards: int = 0  # Get Out of Jail Free cards

    def add_cash(self, amount: int) -> int:
        """
        Add cash to the player's balance.

        Returns:
            New balance
        """
        self.cash += amount
        return self.cash

    def charge(self, amount: int) -> int:
        """
        Remove cash unconditionally.

        The balance may go negative; the bankruptcy check that follows every
        cash-reducing action decides what happens next.

        Returns:
            New balance
        """
        self.cash -= amount
        return self.cash

    def can_afford(self, amount: int) -> bool:
        """Check if player can afford a given amount."""
        return self.cash >= amount

    def advance(self, spaces: int, board_size: int) -> int:
        """
        Move forward around the board.

        Returns:
            Number of times GO was crossed or landed on
        """
        total = self.position + spaces
        self.position = total % board_size
        return total // board_size

    def move_to(self, position: int) -> bool:
        """
        Move directly to a position going forward.

        Returns:
            True if the move wrapped past GO
        """
        # Also true when the target is GO itself
        passed_go = position < self.position
        self.position = position
        return passed_go

    def send_to_jail(self, jail_position: int) -> None:
        """Send player directly to jail."""
        self.position = jail_position
        self.in_jail = True
        self.jail_turns = 0

    def release_from_jail(self) -> None:
        """Release player from jail."""
        self.in_jail = False
        self.jail_turns = 0

    def declare_bankruptcy(self) -> None:
        """Mark player as bankrupt. This is terminal."""
        self.is_bankrupt = True
        self.in_jail = False
        self.jail_turns = 0

    def to_dict(self) -> dict:
        """Convert player to the wire representation."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "cash": self.cash,
            "position": self.position,
            "inJail": self.in_jail,
            "jailTurns": self.jail_turns,
            "isReady": self.is_ready,
            "isBankrupt": self.is_bankrupt,
            "turnOrder": self.turn_order,
            "getOutOfJailFreeCards": self.jail_cards,
        }

    def to_fields(self) -> dict:
        """Persistable columns of this player."""
        return {
            "name": self.name,
            "color": self.color,
            "cash": self.cash,
            "position": self.position,
            "in_jail": self.in_jail,
            "jail_turns": self.jail_turns,
            "is_ready": self.is_ready,
            "is_bankrupt": self.is_bankrupt,
            "turn_order": self.turn_order,
            "jail_cards": self.jail_cards,
        }
