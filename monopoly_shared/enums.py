"""
Enumerations used throughout the match server.
"""
from enum import Enum


class TileType(str, Enum):
    """Types of tiles on the board."""
    GO = "GO"
    JAIL = "JAIL"
    FREE_PARKING = "FREE_PARKING"
    GO_TO_JAIL = "GO_TO_JAIL"
    TAX = "TAX"
    CHANCE = "CHANCE"
    COMMUNITY_CHEST = "COMMUNITY_CHEST"
    RAILROAD = "RAILROAD"
    UTILITY = "UTILITY"
    PROPERTY = "PROPERTY"

    @property
    def is_purchasable(self) -> bool:
        return self in (TileType.PROPERTY, TileType.RAILROAD, TileType.UTILITY)


class RoomStatus(str, Enum):
    """Lifecycle of a game room."""
    WAITING = "WAITING"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class TurnPhase(str, Enum):
    """Where the turn-holder is within their turn."""
    AWAITING_ROLL = "AWAITING_ROLL"
    MOVED = "MOVED"              # Landed on a tile that can still be bought
    AWAITING_END = "AWAITING_END"


class CardType(str, Enum):
    """Types of cards in the game."""
    CHANCE = "CHANCE"
    COMMUNITY_CHEST = "COMMUNITY_CHEST"


class AuctionStatus(str, Enum):
    """Status of a property auction."""
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class TradeStatus(str, Enum):
    """Status of a trade offer."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TransactionType(str, Enum):
    """Kinds of entries written to the transaction log."""
    BUY_PROPERTY = "BUY_PROPERTY"
    PAY_RENT = "PAY_RENT"
    COLLECT_GO = "COLLECT_GO"
    PAY_TAX = "PAY_TAX"
    GO_TO_JAIL = "GO_TO_JAIL"
    CHANCE_CARD = "CHANCE_CARD"
    COMMUNITY_CHEST_CARD = "COMMUNITY_CHEST_CARD"
    BUILD_HOUSE = "BUILD_HOUSE"
    BUILD_HOTEL = "BUILD_HOTEL"
    SELL_BUILDING = "SELL_BUILDING"
    MORTGAGE = "MORTGAGE"
    UNMORTGAGE = "UNMORTGAGE"
    JAIL_FINE = "JAIL_FINE"
    JAIL_CARD = "JAIL_CARD"
    TRADE = "TRADE"
    BANKRUPTCY = "BANKRUPTCY"


class ActionType(str, Enum):
    """Inbound actions a client may send."""
    # Connection
    CONNECT = "connect"

    # Lobby
    CREATE_ROOM = "create-room"
    REGISTER_PLAYER = "register-player"
    JOIN_ROOM = "join-room"
    PLAYER_READY = "player-ready"
    START_GAME = "start-game"

    # Turn actions
    ROLL_DICE = "roll-dice"
    BUY_PROPERTY = "buy-property"
    END_TURN = "end-turn"

    # Building and mortgage
    BUILD_HOUSE = "build-house"
    BUILD_HOTEL = "build-hotel"
    SELL_HOUSE = "sell-house"
    MORTGAGE_PROPERTY = "mortgage-property"
    UNMORTGAGE_PROPERTY = "unmortgage-property"

    # Jail
    PAY_BAIL = "pay-bail"
    USE_JAIL_CARD = "use-get-out-of-jail-card"

    # Trading
    PROPOSE_TRADE = "propose-trade"
    RESPOND_TO_TRADE = "respond-to-trade"
    CANCEL_TRADE = "cancel-trade"

    # Auctions
    START_AUCTION = "start-auction"
    PLACE_BID = "place-bid"
    CANCEL_AUCTION = "cancel-auction"

    # Game end
    PROPOSE_GAME_END = "propose-game-end"
    VOTE_GAME_END = "vote-game-end"

    # Chat and history
    SEND_CHAT_MESSAGE = "send-chat-message"
    GET_CHAT_HISTORY = "get-chat-history"
    GET_TRANSACTIONS = "get-transactions"


class EventType(str, Enum):
    """Outbound events the server emits."""
    CONNECTED = "connected"
    ROOM_CREATED = "room-created"
    ROOM_UPDATED = "room-updated"
    ERROR = "error"

    AUCTION_STARTED = "auction-started"
    BID_PLACED = "bid-placed"
    AUCTION_ENDED = "auction-ended"
    AUCTION_CANCELLED = "auction-cancelled"

    TRADE_PROPOSED = "trade-proposed"
    TRADE_RESOLVED = "trade-resolved"
    TRADE_CANCELLED = "trade-cancelled"

    GAME_END_PROPOSED = "game-end-proposed"
    GAME_ENDED = "game-ended"

    CHAT_MESSAGE = "chat-message"
    CHAT_HISTORY = "chat-history"
    TRANSACTION_HISTORY = "transaction-history"
