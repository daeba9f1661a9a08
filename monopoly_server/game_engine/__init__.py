"""
Game engine package.
"""
from .dice import Dice, DiceResult, LoadedDice
from .player import Player
from .board import Board, Property
from .cards import Card, CardAction, CardDeck, CardManager
from .rules import RuleEngine, ValidationResult, ActionResult
from .ledger import Ledger, PlayerScore, Transaction
from .auction import Auction, AuctionBook
from .trade import TradeDesk, TradeProposal
from .game import GameState, Room, StateChanges

__all__ = [
    "Dice",
    "DiceResult",
    "LoadedDice",
    "Player",
    "Board",
    "Property",
    "Card",
    "CardAction",
    "CardDeck",
    "CardManager",
    "RuleEngine",
    "ValidationResult",
    "ActionResult",
    "Ledger",
    "PlayerScore",
    "Transaction",
    "Auction",
    "AuctionBook",
    "TradeDesk",
    "TradeProposal",
    "GameState",
    "Room",
    "StateChanges",
]
