"""
Rule enforcement and validation for Monopoly.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from monopoly_shared.constants import (
    HOTEL_COST, HOUSE_COST, JAIL_BAIL, MAX_HOUSES_PER_PROPERTY,
)
from monopoly_shared.enums import RoomStatus, TileType

from .board import Board, Property
from .player import Player


class ActionResult(Enum):
    """Result of attempting an action."""
    SUCCESS = auto()
    INSUFFICIENT_FUNDS = auto()
    NOT_YOUR_TURN = auto()
    INVALID_PROPERTY = auto()
    PROPERTY_OWNED = auto()
    NOT_OWNER = auto()
    NO_MONOPOLY = auto()
    UNEVEN_BUILDING = auto()
    MAX_DEVELOPMENT = auto()
    PROPERTY_MORTGAGED = auto()
    HAS_BUILDINGS = auto()
    NO_BUILDINGS = auto()
    NOT_IN_JAIL = auto()
    NO_JAIL_CARD = auto()
    ALREADY_ROLLED = auto()
    MUST_ROLL = auto()
    INVALID_TRADE = auto()
    GAME_NOT_STARTED = auto()
    GAME_ALREADY_STARTED = auto()
    GAME_FINISHED = auto()
    PLAYER_BANKRUPT = auto()


@dataclass
class ValidationResult:
    """Result of validating an action."""
    valid: bool
    result: ActionResult
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "ValidationResult":
        return cls(valid=True, result=ActionResult.SUCCESS, message=message)

    @classmethod
    def failure(cls, result: ActionResult, message: str = "") -> "ValidationResult":
        return cls(valid=False, result=result, message=message)


class RuleEngine:
    """
    Enforces the board rules and validates actions against the current state.

    Validators never mutate anything; the game state applies an action only
    after its validator succeeded.
    """

    def __init__(self, board: Board):
        self.board = board

    # =========== Turn ===========

    def validate_playing(self, status: RoomStatus) -> ValidationResult:
        if status == RoomStatus.WAITING:
            return ValidationResult.failure(
                ActionResult.GAME_NOT_STARTED,
                "Game has not started yet!"
            )
        if status == RoomStatus.FINISHED:
            return ValidationResult.failure(
                ActionResult.GAME_FINISHED,
                "Game is already finished!"
            )
        return ValidationResult.success()

    def validate_active(self, player: Player) -> ValidationResult:
        """Bankrupt players are out of the game."""
        if player.is_bankrupt:
            return ValidationResult.failure(
                ActionResult.PLAYER_BANKRUPT,
                "You are bankrupt and out of the game!"
            )
        return ValidationResult.success()

    def validate_turn(self, player: Player, current_player_id: str | None) -> ValidationResult:
        if player.id != current_player_id:
            return ValidationResult.failure(
                ActionResult.NOT_YOUR_TURN,
                "Not your turn!"
            )
        return self.validate_active(player)

    def validate_roll_dice(
        self,
        player: Player,
        current_player_id: str | None,
        dice_rolled: bool
    ) -> ValidationResult:
        """Validate if player can roll dice."""
        turn = self.validate_turn(player, current_player_id)
        if not turn.valid:
            return turn

        if dice_rolled:
            return ValidationResult.failure(
                ActionResult.ALREADY_ROLLED,
                "You already rolled the dice!"
            )

        return ValidationResult.success()

    def validate_end_turn(
        self,
        player: Player,
        current_player_id: str | None,
        dice_rolled: bool
    ) -> ValidationResult:
        """Validate if player can end their turn."""
        turn = self.validate_turn(player, current_player_id)
        if not turn.valid:
            return turn

        if not dice_rolled:
            return ValidationResult.failure(
                ActionResult.MUST_ROLL,
                "Roll dice first!"
            )

        return ValidationResult.success()

    # =========== Buying ===========

    def validate_buy_property(
        self,
        player: Player,
        prop: Property | None,
        current_player_id: str | None,
        dice_rolled: bool
    ) -> ValidationResult:
        """Validate if player can buy a property."""
        turn = self.validate_turn(player, current_player_id)
        if not turn.valid:
            return turn

        if not dice_rolled:
            return ValidationResult.failure(
                ActionResult.MUST_ROLL,
                "Roll dice first!"
            )

        if prop is None or prop.is_owned or not prop.is_purchasable:
            return ValidationResult.failure(
                ActionResult.INVALID_PROPERTY,
                "Property not available for purchase!"
            )

        if prop.position != player.position:
            return ValidationResult.failure(
                ActionResult.INVALID_PROPERTY,
                "You can only buy the property you landed on!"
            )

        if not player.can_afford(prop.price):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "Not enough money to buy this property!"
            )

        return ValidationResult.success()

    # =========== Building ===========

    def _validate_own_street(self, player: Player, prop: Property | None) -> ValidationResult:
        if prop is None or prop.owner_id != player.id or prop.tile_type != TileType.PROPERTY:
            return ValidationResult.failure(
                ActionResult.NOT_OWNER,
                "You do not own this property!"
            )

        if not self.board.player_has_monopoly(player.id, prop.color_group):
            return ValidationResult.failure(
                ActionResult.NO_MONOPOLY,
                "You must own all properties in this color group!"
            )

        group_props = self.board.get_group_properties(prop.color_group)
        if any(p.is_mortgaged for p in group_props):
            return ValidationResult.failure(
                ActionResult.PROPERTY_MORTGAGED,
                "Cannot build while any property in the color group is mortgaged!"
            )

        return ValidationResult.success()

    def validate_build_house(self, player: Player, prop: Property | None) -> ValidationResult:
        """Validate if player can build a house on property."""
        owned = self._validate_own_street(player, prop)
        if not owned.valid:
            return owned

        if prop.has_hotel:
            return ValidationResult.failure(
                ActionResult.MAX_DEVELOPMENT,
                "This property already has a hotel!"
            )

        if prop.houses >= MAX_HOUSES_PER_PROPERTY:
            return ValidationResult.failure(
                ActionResult.MAX_DEVELOPMENT,
                "Maximum houses reached. Build a hotel instead!"
            )

        # Even building rule
        group_props = self.board.get_group_properties(prop.color_group)
        if prop.houses > min(p.development_level for p in group_props):
            return ValidationResult.failure(
                ActionResult.UNEVEN_BUILDING,
                "Build houses evenly across all properties in the color group!"
            )

        if not player.can_afford(HOUSE_COST):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "Not enough money to build a house!"
            )

        return ValidationResult.success()

    def validate_build_hotel(self, player: Player, prop: Property | None) -> ValidationResult:
        """Validate if player can build a hotel on property."""
        owned = self._validate_own_street(player, prop)
        if not owned.valid:
            return owned

        if prop.has_hotel:
            return ValidationResult.failure(
                ActionResult.MAX_DEVELOPMENT,
                "This property already has a hotel!"
            )

        if prop.houses != MAX_HOUSES_PER_PROPERTY:
            return ValidationResult.failure(
                ActionResult.UNEVEN_BUILDING,
                "You need 4 houses before building a hotel!"
            )

        if not player.can_afford(HOTEL_COST):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "Not enough money to build a hotel!"
            )

        return ValidationResult.success()

    def validate_sell_house(self, player: Player, prop: Property | None) -> ValidationResult:
        """Validate if player can sell a house or hotel from property."""
        if prop is None or prop.owner_id != player.id:
            return ValidationResult.failure(
                ActionResult.NOT_OWNER,
                "You do not own this property!"
            )

        if prop.houses <= 0 and not prop.has_hotel:
            return ValidationResult.failure(
                ActionResult.NO_BUILDINGS,
                "There are no buildings to sell on this property!"
            )

        # Even selling rule
        group_props = self.board.get_group_properties(prop.color_group)
        if prop.development_level < max(p.development_level for p in group_props):
            return ValidationResult.failure(
                ActionResult.UNEVEN_BUILDING,
                "Sell houses evenly across all properties in the color group!"
            )

        return ValidationResult.success()

    # =========== Mortgage ===========

    def validate_mortgage(self, player: Player, prop: Property | None) -> ValidationResult:
        """Validate if player can mortgage property."""
        if prop is None or prop.owner_id != player.id:
            return ValidationResult.failure(
                ActionResult.NOT_OWNER,
                "You do not own this property!"
            )

        if prop.is_mortgaged:
            return ValidationResult.failure(
                ActionResult.PROPERTY_MORTGAGED,
                "This property is already mortgaged!"
            )

        group = self.board.get_group_properties(prop.color_group) if prop.is_street else [prop]
        if any(p.houses > 0 or p.has_hotel for p in group):
            return ValidationResult.failure(
                ActionResult.HAS_BUILDINGS,
                "Sell all buildings in the color group before mortgaging!"
            )

        return ValidationResult.success()

    def validate_unmortgage(self, player: Player, prop: Property | None) -> ValidationResult:
        """Validate if player can unmortgage property."""
        if prop is None or prop.owner_id != player.id:
            return ValidationResult.failure(
                ActionResult.NOT_OWNER,
                "You do not own this property!"
            )

        if not prop.is_mortgaged:
            return ValidationResult.failure(
                ActionResult.PROPERTY_MORTGAGED,
                "This property is not mortgaged!"
            )

        if not player.can_afford(prop.unmortgage_cost):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                f"You need ${prop.unmortgage_cost} to unmortgage this property!"
            )

        return ValidationResult.success()

    # =========== Jail ===========

    def validate_pay_bail(self, player: Player, current_player_id: str | None) -> ValidationResult:
        """Validate if player can pay bail."""
        turn = self.validate_turn(player, current_player_id)
        if not turn.valid:
            return turn

        if not player.in_jail:
            return ValidationResult.failure(
                ActionResult.NOT_IN_JAIL,
                "You are not in jail!"
            )

        if not player.can_afford(JAIL_BAIL):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "Not enough money to pay bail!"
            )

        return ValidationResult.success()

    def validate_use_jail_card(self, player: Player, current_player_id: str | None) -> ValidationResult:
        """Validate if player can use Get Out of Jail Free card."""
        turn = self.validate_turn(player, current_player_id)
        if not turn.valid:
            return turn

        if not player.in_jail:
            return ValidationResult.failure(
                ActionResult.NOT_IN_JAIL,
                "You are not in jail!"
            )

        if player.jail_cards <= 0:
            return ValidationResult.failure(
                ActionResult.NO_JAIL_CARD,
                "You do not have any Get Out of Jail Free cards!"
            )

        return ValidationResult.success()

    # =========== Trading ===========

    def validate_trade(
        self,
        from_player: Player,
        to_player: Player,
        offered_cash: int,
        requested_cash: int,
        offered_properties: List[str],
        requested_properties: List[str]
    ) -> ValidationResult:
        """Validate a trade proposal against the current holdings."""
        if from_player.id == to_player.id:
            return ValidationResult.failure(
                ActionResult.INVALID_TRADE,
                "You cannot trade with yourself!"
            )

        if from_player.is_bankrupt or to_player.is_bankrupt:
            return ValidationResult.failure(
                ActionResult.PLAYER_BANKRUPT,
                "Cannot trade with bankrupt players!"
            )

        if offered_cash > 0 and not from_player.can_afford(offered_cash):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "You do not have enough cash for this trade!"
            )

        if requested_cash > 0 and not to_player.can_afford(requested_cash):
            return ValidationResult.failure(
                ActionResult.INSUFFICIENT_FUNDS,
                "Other player does not have enough cash for this trade!"
            )

        for property_id in offered_properties:
            prop = self.board.get_property(property_id)
            if prop is None or prop.owner_id != from_player.id:
                return ValidationResult.failure(
                    ActionResult.NOT_OWNER,
                    "You do not own all offered properties!"
                )
            if prop.houses > 0 or prop.has_hotel:
                return ValidationResult.failure(
                    ActionResult.HAS_BUILDINGS,
                    "Cannot trade properties with buildings!"
                )

        for property_id in requested_properties:
            prop = self.board.get_property(property_id)
            if prop is None or prop.owner_id != to_player.id:
                return ValidationResult.failure(
                    ActionResult.NOT_OWNER,
                    "Other player does not own all requested properties!"
                )
            if prop.houses > 0 or prop.has_hotel:
                return ValidationResult.failure(
                    ActionResult.HAS_BUILDINGS,
                    "Cannot trade properties with buildings!"
                )

        # Trade must involve something
        if (offered_cash == 0 and requested_cash == 0 and
                not offered_properties and not requested_properties):
            return ValidationResult.failure(
                ActionResult.INVALID_TRADE,
                "Trade must involve at least one item!"
            )

        return ValidationResult.success()
