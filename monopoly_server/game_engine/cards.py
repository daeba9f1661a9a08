"""
Chance and Community Chest card management.
"""
import random
from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from monopoly_shared.enums import CardType


class CardAction(Enum):
    """Types of actions a card can trigger."""
    COLLECT_MONEY = auto()          # Collect from bank
    PAY_MONEY = auto()              # Pay to bank
    COLLECT_FROM_PLAYERS = auto()   # Collect from each other player
    PAY_TO_PLAYERS = auto()         # Pay each other player
    MOVE_TO = auto()                # Move to a classic-board position
    NEAREST_RAILROAD = auto()
    NEAREST_UTILITY = auto()
    MOVE_BACK = auto()              # Move backward X spaces, no GO bonus
    GO_TO_JAIL = auto()
    GET_OUT_OF_JAIL = auto()        # Kept by the player
    REPAIRS = auto()                # Pay per house/hotel


@dataclass(frozen=True)
class Card:
    """Represents a Chance or Community Chest card."""

    id: str
    card_type: CardType
    title: str
    text: str
    action: CardAction
    value: int = 0  # Money amount, position or spaces
    per_house: int = 0
    per_hotel: int = 0

    def to_dict(self) -> dict:
        """Convert card to dictionary."""
        return {
            "id": self.id,
            "type": self.card_type.value,
            "title": self.title,
            "description": self.text,
            "action": self.action.name,
            "value": self.value,
            "perHouse": self.per_house,
            "perHotel": self.per_hotel,
        }


def _chance(n: int, title: str, text: str, action: CardAction, **kwargs) -> Card:
    return Card(f"chance_{n}", CardType.CHANCE, title, text, action, **kwargs)


def _chest(n: int, title: str, text: str, action: CardAction, **kwargs) -> Card:
    return Card(f"community_{n}", CardType.COMMUNITY_CHEST, title, text, action, **kwargs)


CHANCE_CARDS: List[Card] = [
    _chance(1, "Advance to GO", "Advance to GO (Collect $200)",
            CardAction.MOVE_TO, value=0),
    _chance(2, "Advance to Illinois Avenue",
            "Advance to Illinois Avenue. If you pass GO, collect $200",
            CardAction.MOVE_TO, value=24),
    _chance(3, "Advance to St. Charles Place",
            "Advance to St. Charles Place. If you pass GO, collect $200",
            CardAction.MOVE_TO, value=11),
    _chance(4, "Advance to Nearest Railroad",
            "Advance to the nearest Railroad. If unowned, you may buy it from the Bank",
            CardAction.NEAREST_RAILROAD),
    _chance(5, "Advance to Nearest Utility",
            "Advance to nearest Utility. If unowned, you may buy it from the Bank",
            CardAction.NEAREST_UTILITY),
    _chance(6, "Bank Dividend", "Bank pays you dividend of $50",
            CardAction.COLLECT_MONEY, value=50),
    _chance(7, "Get Out of Jail Free", "Get Out of Jail Free",
            CardAction.GET_OUT_OF_JAIL),
    _chance(8, "Go Back 3 Spaces", "Go Back 3 Spaces",
            CardAction.MOVE_BACK, value=3),
    _chance(9, "Go to Jail",
            "Go to Jail. Go directly to Jail, do not pass GO, do not collect $200",
            CardAction.GO_TO_JAIL),
    _chance(10, "Property Repairs",
            "Make general repairs on all your property. For each house pay $25. For each hotel pay $100",
            CardAction.REPAIRS, per_house=25, per_hotel=100),
    _chance(11, "Speeding Fine", "Speeding fine $15",
            CardAction.PAY_MONEY, value=15),
    _chance(12, "Advance to Reading Railroad",
            "Take a trip to Reading Railroad. If you pass GO, collect $200",
            CardAction.MOVE_TO, value=5),
    _chance(13, "Advance to Boardwalk", "Advance to Boardwalk",
            CardAction.MOVE_TO, value=39),
    _chance(14, "Chairman of the Board",
            "You have been elected Chairman of the Board. Pay each player $50",
            CardAction.PAY_TO_PLAYERS, value=50),
    _chance(15, "Building Loan Matures", "Your building loan matures. Collect $150",
            CardAction.COLLECT_MONEY, value=150),
    _chance(16, "Crossword Competition",
            "You have won a crossword competition. Collect $100",
            CardAction.COLLECT_MONEY, value=100),
]

COMMUNITY_CHEST_CARDS: List[Card] = [
    _chest(1, "Advance to GO", "Advance to GO (Collect $200)",
           CardAction.MOVE_TO, value=0),
    _chest(2, "Bank Error", "Bank error in your favor. Collect $200",
           CardAction.COLLECT_MONEY, value=200),
    _chest(3, "Doctor Fee", "Doctor fee. Pay $50",
           CardAction.PAY_MONEY, value=50),
    _chest(4, "Stock Sale", "From sale of stock you get $50",
           CardAction.COLLECT_MONEY, value=50),
    _chest(5, "Get Out of Jail Free", "Get Out of Jail Free",
           CardAction.GET_OUT_OF_JAIL),
    _chest(6, "Go to Jail",
           "Go to Jail. Go directly to jail, do not pass GO, do not collect $200",
           CardAction.GO_TO_JAIL),
    _chest(7, "Holiday Fund", "Holiday fund matures. Receive $100",
           CardAction.COLLECT_MONEY, value=100),
    _chest(8, "Income Tax Refund", "Income tax refund. Collect $20",
           CardAction.COLLECT_MONEY, value=20),
    _chest(9, "Birthday Money", "It is your birthday. Collect $10 from every player",
           CardAction.COLLECT_FROM_PLAYERS, value=10),
    _chest(10, "Life Insurance", "Life insurance matures. Collect $100",
           CardAction.COLLECT_MONEY, value=100),
    _chest(11, "Hospital Bills", "Pay hospital fees of $100",
           CardAction.PAY_MONEY, value=100),
    _chest(12, "School Fees", "Pay school fees of $50",
           CardAction.PAY_MONEY, value=50),
    _chest(13, "Consultancy Fee", "Receive $25 consultancy fee",
           CardAction.COLLECT_MONEY, value=25),
    _chest(14, "Street Repairs",
           "You are assessed for street repair. $40 per house. $115 per hotel",
           CardAction.REPAIRS, per_house=40, per_hotel=115),
    _chest(15, "Beauty Contest",
           "You have won second prize in a beauty contest. Collect $10",
           CardAction.COLLECT_MONEY, value=10),
    _chest(16, "Inheritance", "You inherit $100",
           CardAction.COLLECT_MONEY, value=100),
]


class CardDeck:
    """
    One shuffled deck.

    Draws pop from the front. An empty deck is refilled with a freshly
    shuffled copy of the full definition set, so kept jail cards are never
    returned to the pile.
    """

    def __init__(self, card_type: CardType, rng: random.Random | None = None):
        self.card_type = card_type
        self._random = rng or random.Random()
        self.cards: List[Card] = []
        self.reset()

    @property
    def definitions(self) -> List[Card]:
        if self.card_type == CardType.CHANCE:
            return CHANCE_CARDS
        return COMMUNITY_CHEST_CARDS

    def reset(self) -> None:
        """Reset deck to a fresh shuffled copy."""
        self.cards = list(self.definitions)
        self._random.shuffle(self.cards)

    def draw(self) -> Card:
        """Draw the top card, refilling the deck when it is empty."""
        if not self.cards:
            self.reset()
        return self.cards.pop(0)

    def stack(self, *card_ids: str) -> None:
        """Put specific cards on top of the deck, in order."""
        by_id = {card.id: card for card in self.definitions}
        self.cards = [by_id[card_id] for card_id in card_ids] + self.cards

    def to_dict(self) -> dict:
        return {
            "cardType": self.card_type.value,
            "cardsRemaining": len(self.cards),
        }


class CardManager:
    """Manages both card decks of one room."""

    def __init__(self, seed: int | None = None):
        rng = random.Random(seed)
        self.chance = CardDeck(CardType.CHANCE, rng)
        self.community_chest = CardDeck(CardType.COMMUNITY_CHEST, rng)

    def deck(self, card_type: CardType) -> CardDeck:
        if card_type == CardType.CHANCE:
            return self.chance
        return self.community_chest

    def draw(self, card_type: CardType) -> Card:
        """Draw from the deck of the given type."""
        return self.deck(card_type).draw()

    def reset(self) -> None:
        """Reset both decks."""
        self.chance.reset()
        self.community_chest.reset()
