"""
Message protocol for client-server communication.

All frames are JSON objects with a "type" field and optional "data" field.
Inbound frames are parsed into one Action variant per action name and
validated here, before anything reaches the game engine.
"""

from dataclasses import dataclass, field, fields, MISSING
from typing import Any, ClassVar
import json

from monopoly_shared.enums import ActionType, EventType
from monopoly_shared.errors import ValidationError


@dataclass
class Message:
    """Base frame structure for all client-server communication."""
    type: ActionType | EventType
    data: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None  # Optional, for matching requests to responses

    def to_json(self) -> str:
        """Serialize message to JSON string."""
        return json.dumps(self.to_dict())

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "data": self.data,
            "request_id": self.request_id,
        }

    @classmethod
    def from_json(cls, json_str: str | bytes) -> "Message":
        """Deserialize an inbound message from a text or binary frame."""
        try:
            raw = json.loads(json_str)
        except ValueError as e:
            # JSONDecodeError, or UnicodeDecodeError for binary frames
            raise ValidationError(f"Invalid JSON: {e}", "PARSE_ERROR")
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Any) -> "Message":
        """Create an inbound message from dictionary."""
        if not isinstance(raw, dict):
            raise ValidationError("Message must be a JSON object", "PARSE_ERROR")
        try:
            message_type = ActionType(raw.get("type"))
        except ValueError:
            raise ValidationError(
                f"Unknown message type: {raw.get('type')}",
                "UNKNOWN_MESSAGE_TYPE"
            )
        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise ValidationError("Message data must be an object", "PARSE_ERROR")
        return cls(
            type=message_type,
            data=data,
            request_id=raw.get("request_id"),
        )


@dataclass
class ErrorMessage(Message):
    """Error response message."""
    type: EventType = EventType.ERROR

    @classmethod
    def create(cls, message: str, code: str = "ERROR", request_id: str | None = None) -> "ErrorMessage":
        """Create an error message."""
        return cls(
            data={"message": message, "code": code},
            request_id=request_id,
        )


@dataclass
class EventMessage(Message):
    """A server event with its payload."""

    @classmethod
    def create(cls, event: EventType, payload: dict | None = None) -> "EventMessage":
        return cls(type=event, data=payload or {})


# =============================================================================
# Actions (Client -> Server)
# =============================================================================

def _wire(key: str, kind: type, default: Any = MISSING) -> Any:
    """Declare an action field read from wire key `key` and checked as `kind`."""
    metadata = {"wire": key, "kind": kind}
    if default is MISSING:
        return field(metadata=metadata)
    if isinstance(default, list):
        return field(default_factory=list, metadata=metadata)
    return field(default=default, metadata=metadata)


def _coerce(key: str, kind: type, value: Any) -> Any:
    if kind is str:
        if not isinstance(value, str) or not value:
            raise ValidationError(f"{key} must be a non-empty string")
        return value
    if kind is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be true or false")
        return value
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{key} must be an integer")
        if value < 0:
            raise ValidationError(f"{key} must not be negative")
        return value
    if kind is list:
        if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
            raise ValidationError(f"{key} must be a list of ids")
        if len(set(value)) != len(value):
            raise ValidationError(f"{key} must not repeat ids")
        return list(value)
    raise TypeError(f"Unsupported field kind {kind!r}")


@dataclass(kw_only=True)
class Action:
    """Base for every inbound action variant."""
    name: ClassVar[ActionType]

    player_id: str = _wire("playerId", str)

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "Action":
        """Validate a raw payload and build the action."""
        values = {}
        for f in fields(cls):
            key = f.metadata["wire"]
            if key not in data or data[key] is None:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise ValidationError(f"{key} is required for {cls.name.value}")
                continue
            values[f.name] = _coerce(key, f.metadata["kind"], data[key])
        return cls(**values)


@dataclass(kw_only=True)
class RoomAction(Action):
    """An action addressed to one room."""
    room_id: str = _wire("roomId", str)


@dataclass(kw_only=True)
class CreateRoomAction(Action):
    name: ClassVar[ActionType] = ActionType.CREATE_ROOM
    room_name: str = _wire("name", str)
    board_size: int = _wire("boardSize", int, 40)
    max_players: int = _wire("maxPlayers", int, 4)
    player_name: str = _wire("playerName", str)
    color: str = _wire("color", str)


@dataclass(kw_only=True)
class RegisterPlayerAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.REGISTER_PLAYER
    player_name: str = _wire("playerName", str)
    color: str = _wire("color", str)


@dataclass(kw_only=True)
class JoinRoomAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.JOIN_ROOM


@dataclass(kw_only=True)
class PlayerReadyAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.PLAYER_READY
    is_ready: bool = _wire("isReady", bool)


@dataclass(kw_only=True)
class StartGameAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.START_GAME


@dataclass(kw_only=True)
class RollDiceAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.ROLL_DICE


@dataclass(kw_only=True)
class BuyPropertyAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.BUY_PROPERTY
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class EndTurnAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.END_TURN


@dataclass(kw_only=True)
class BuildHouseAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.BUILD_HOUSE
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class BuildHotelAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.BUILD_HOTEL
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class SellHouseAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.SELL_HOUSE
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class MortgagePropertyAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.MORTGAGE_PROPERTY
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class UnmortgagePropertyAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.UNMORTGAGE_PROPERTY
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class PayBailAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.PAY_BAIL


@dataclass(kw_only=True)
class UseJailCardAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.USE_JAIL_CARD


@dataclass(kw_only=True)
class ProposeTradeAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.PROPOSE_TRADE
    to_player_id: str = _wire("toPlayerId", str)
    offered_properties: list[str] = _wire("offeredProperties", list, [])
    offered_cash: int = _wire("offeredCash", int, 0)
    requested_properties: list[str] = _wire("requestedProperties", list, [])
    requested_cash: int = _wire("requestedCash", int, 0)


@dataclass(kw_only=True)
class RespondToTradeAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.RESPOND_TO_TRADE
    trade_id: str = _wire("tradeId", str)
    accept: bool = _wire("accept", bool)


@dataclass(kw_only=True)
class CancelTradeAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.CANCEL_TRADE
    trade_id: str = _wire("tradeId", str)


@dataclass(kw_only=True)
class StartAuctionAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.START_AUCTION
    property_id: str = _wire("propertyId", str)


@dataclass(kw_only=True)
class PlaceBidAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.PLACE_BID
    auction_id: str = _wire("auctionId", str)
    bid_amount: int = _wire("bidAmount", int)


@dataclass(kw_only=True)
class CancelAuctionAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.CANCEL_AUCTION
    auction_id: str = _wire("auctionId", str)


@dataclass(kw_only=True)
class ProposeGameEndAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.PROPOSE_GAME_END


@dataclass(kw_only=True)
class VoteGameEndAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.VOTE_GAME_END
    agree: bool = _wire("agree", bool)


@dataclass(kw_only=True)
class SendChatMessageAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.SEND_CHAT_MESSAGE
    message: str = _wire("message", str)


@dataclass(kw_only=True)
class GetChatHistoryAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.GET_CHAT_HISTORY


@dataclass(kw_only=True)
class GetTransactionsAction(RoomAction):
    name: ClassVar[ActionType] = ActionType.GET_TRANSACTIONS


ACTION_CLASSES: dict[ActionType, type[Action]] = {
    cls.name: cls
    for cls in (
        CreateRoomAction,
        RegisterPlayerAction,
        JoinRoomAction,
        PlayerReadyAction,
        StartGameAction,
        RollDiceAction,
        BuyPropertyAction,
        EndTurnAction,
        BuildHouseAction,
        BuildHotelAction,
        SellHouseAction,
        MortgagePropertyAction,
        UnmortgagePropertyAction,
        PayBailAction,
        UseJailCardAction,
        ProposeTradeAction,
        RespondToTradeAction,
        CancelTradeAction,
        StartAuctionAction,
        PlaceBidAction,
        CancelAuctionAction,
        ProposeGameEndAction,
        VoteGameEndAction,
        SendChatMessageAction,
        GetChatHistoryAction,
        GetTransactionsAction,
    )
}


def parse_action(message: Message, player_id: str | None = None) -> Action:
    """
    Turn an inbound message into its Action variant.

    Args:
        message: Parsed inbound message
        player_id: Authenticated player id of the connection; when given it
            overrides any playerId in the payload.

    Raises:
        ValidationError: unknown action or malformed fields
    """
    cls = ACTION_CLASSES.get(message.type)
    if cls is None:
        raise ValidationError(
            f"Unknown message type: {message.type.value}",
            "UNKNOWN_MESSAGE_TYPE"
        )
    data = dict(message.data)
    if player_id is not None:
        data["playerId"] = player_id
    return cls.from_data(data)


def parse_message(json_str: str, player_id: str | None = None) -> Action:
    """Parse a raw JSON frame straight into an Action."""
    return parse_action(Message.from_json(json_str), player_id)
