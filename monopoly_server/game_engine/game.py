"""
Main game orchestration - ties all components together.

GameState is the aggregate root of one room. Every public method either
applies one whole action or raises a GameError and leaves the state exactly
as it was: all validation happens before the first mutation.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from monopoly_shared.constants import (
    DEFAULT_BOARD_SIZE, GO_BONUS, HOTEL_COST, HOUSE_COST, JAIL_BAIL,
    MAX_HOUSES_PER_PROPERTY, MAX_JAIL_TURNS, MIN_PLAYERS, TAX_AMOUNT,
)
from monopoly_shared.enums import (
    AuctionStatus, CardType, RoomStatus, TileType, TradeStatus, TransactionType,
    TurnPhase,
)
from monopoly_shared.errors import ConcurrencyStale, NotFoundError, RuleViolation

from .auction import Auction, AuctionBook
from .board import Board, Property
from .cards import Card, CardAction, CardManager
from .dice import Dice, DiceResult
from .ledger import Ledger, PlayerScore, Transaction, compute_scores, score_player
from .player import Player
from .rules import RuleEngine, ValidationResult
from .trade import TradeProposal


@dataclass
class Room:
    """Lobby-level record of a room."""
    id: str
    name: str
    board_size: int = DEFAULT_BOARD_SIZE
    max_players: int = 4
    status: RoomStatus = RoomStatus.WAITING
    host_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class StateChanges:
    """Records touched by the last action, waiting to be persisted."""
    players: List[Player] = field(default_factory=list)
    properties: List[Property] = field(default_factory=list)
    created_properties: List[Property] = field(default_factory=list)
    room_status: RoomStatus | None = None
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.players or self.properties or self.created_properties
            or self.room_status or self.transactions
        )


class GameState:
    """
    The authoritative state of one room.
    """

    def __init__(
        self,
        room: Room,
        players: Iterable[Player] = (),
        board: Board | None = None,
        dice: Dice | None = None,
        cards: CardManager | None = None,
        seed: int | None = None
    ):
        self.room = room
        self.players: Dict[str, Player] = {p.id: p for p in players}
        self.board = board or Board([], room.board_size)
        self.rules = RuleEngine(self.board)
        self.dice = dice or Dice(seed)
        self.cards = cards or CardManager(seed)
        self.ledger = Ledger(room.id)
        self._random = random.Random(seed)

        self.current_player_turn: str | None = None
        self.dice_rolled = False
        self.last_dice_roll: DiceResult | None = None
        self.last_card: Card | None = None
        self.sent_to_jail_this_turn = False
        self.winner_id: str | None = None
        self.game_message = ""
        self.version = 0

        self._notes: List[str] = []
        self._dirty_players: Dict[str, Player] = {}
        self._dirty_properties: Dict[str, Property] = {}
        self._created_properties: List[Property] = []
        self._status_changed = False

    @classmethod
    def restore(
        cls,
        room: Room,
        players: Iterable[Player],
        properties: Iterable[Property],
        seed: int | None = None
    ) -> "GameState":
        """
        Rebuild a room from stored records.

        The turn is not stored; a running game resumes with the first
        solvent player in turn order.
        """
        properties = list(properties)
        board = Board(properties, room.board_size) if properties else None
        state = cls(room, players, board=board, seed=seed)
        if room.status == RoomStatus.PLAYING:
            for player in state.turn_sequence:
                if not player.is_bankrupt:
                    state.current_player_turn = player.id
                    break
        return state

    # =========== Queries ===========

    @property
    def status(self) -> RoomStatus:
        return self.room.status

    @property
    def current_player(self) -> Player | None:
        if self.current_player_turn is None:
            return None
        return self.players.get(self.current_player_turn)

    @property
    def turn_sequence(self) -> List[Player]:
        """Players ordered by turn order, bankrupt ones included."""
        return sorted(self.players.values(), key=lambda p: p.turn_order)

    @property
    def active_players(self) -> List[Player]:
        """Get all non-bankrupt players."""
        return [p for p in self.players.values() if not p.is_bankrupt]

    @property
    def turn_phase(self) -> TurnPhase:
        if not self.dice_rolled:
            return TurnPhase.AWAITING_ROLL
        player = self.current_player
        if player is not None:
            tile = self.board.get_tile(player.position)
            if tile is not None and tile.is_purchasable and not tile.is_owned:
                return TurnPhase.MOVED
        return TurnPhase.AWAITING_END

    def get_player(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise NotFoundError("Player not found!")
        return player

    def get_property(self, property_id: str) -> Property:
        prop = self.board.get_property(property_id)
        if prop is None:
            raise NotFoundError("Property not found!")
        return prop

    def scores(self) -> List[PlayerScore]:
        return compute_scores(self.players.values(), self.board)

    # =========== Bookkeeping ===========

    def _require(self, validation: ValidationResult) -> None:
        if not validation.valid:
            raise RuleViolation(validation.message, validation.result.name)

    def _require_member(self, player_id: str) -> Player:
        """A non-bankrupt player of a running game."""
        player = self.get_player(player_id)
        self._require(self.rules.validate_playing(self.room.status))
        self._require(self.rules.validate_active(player))
        return player

    def _touch_player(self, *players: Player) -> None:
        for player in players:
            self._dirty_players[player.id] = player

    def _touch_property(self, *properties: Property) -> None:
        for prop in properties:
            self._dirty_properties[prop.id] = prop

    def _set_status(self, status: RoomStatus) -> None:
        self.room.status = status
        self._status_changed = True

    def _note(self, text: str) -> None:
        self._notes.append(text)

    def _commit(self, message: str | None = None) -> None:
        """Finish an action: publish its message and bump the version."""
        if message is not None:
            self._notes.append(message)
        if self._notes:
            self.game_message = " ".join(self._notes)
            self._notes = []
        self.version += 1

    def collect_changes(self) -> StateChanges:
        """Hand over everything touched since the last call."""
        changes = StateChanges(
            players=list(self._dirty_players.values()),
            properties=list(self._dirty_properties.values()),
            created_properties=self._created_properties,
            room_status=self.room.status if self._status_changed else None,
            transactions=self.ledger.drain(),
        )
        self._dirty_players = {}
        self._dirty_properties = {}
        self._created_properties = []
        self._status_changed = False
        return changes

    # =========== Lobby ===========

    def add_player(self, player: Player) -> Player:
        """Seat a new player in a waiting room."""
        if self.room.status != RoomStatus.WAITING:
            raise RuleViolation("Game has already started", "GAME_ALREADY_STARTED")
        if player.id in self.players:
            raise RuleViolation("Player already in this room", "DUPLICATE_PLAYER")
        if len(self.players) >= self.room.max_players:
            raise RuleViolation("Game room is full", "ROOM_FULL")
        if player.color and any(p.color == player.color for p in self.players.values()):
            raise RuleViolation("Player color already taken", "COLOR_TAKEN")

        self.players[player.id] = player
        self._commit(f"{player.name} joined the room.")
        return player

    def set_ready(self, player_id: str, is_ready: bool) -> Player:
        player = self.get_player(player_id)
        if self.room.status == RoomStatus.FINISHED:
            raise RuleViolation("Game is already finished!", "GAME_FINISHED")
        player.is_ready = is_ready
        self._touch_player(player)
        state = "is ready" if is_ready else "is not ready"
        self._commit(f"{player.name} {state}.")
        return player

    def start_game(self, player_id: str) -> Player:
        """
        Start the game: random turn order, fresh board, first turn.

        Returns:
            The player who moves first
        """
        if self.room.status != RoomStatus.WAITING:
            raise RuleViolation("Game has already started", "GAME_ALREADY_STARTED")
        self.get_player(player_id)
        if player_id != self.room.host_id:
            raise RuleViolation("Only the host can start the game!", "NOT_HOST")
        if len(self.players) < MIN_PLAYERS:
            raise RuleViolation(f"Need at least {MIN_PLAYERS} players to start", "NOT_ENOUGH_PLAYERS")
        if not all(p.is_ready for p in self.players.values()):
            raise RuleViolation("All players must be ready", "PLAYERS_NOT_READY")

        order = list(self.players.values())
        self._random.shuffle(order)
        for index, player in enumerate(order):
            player.turn_order = index
        self._touch_player(*order)

        self.board = Board.generate(self.room.id, self.room.board_size)
        self.rules = RuleEngine(self.board)
        self._created_properties = self.board.properties
        self._set_status(RoomStatus.PLAYING)

        self.current_player_turn = order[0].id
        self.dice_rolled = False
        self.sent_to_jail_this_turn = False
        self._commit(f"Game started! {order[0].name} goes first.")
        return order[0]

    # =========== Dice Rolling ===========

    def roll_dice(self, player_id: str) -> DiceResult:
        """Roll for the turn-holder and resolve the move."""
        player = self._require_member(player_id)
        self._require(self.rules.validate_roll_dice(
            player, self.current_player_turn, self.dice_rolled
        ))

        result = self.dice.roll()
        self.last_dice_roll = result
        self.last_card = None
        self.dice_rolled = True
        self._touch_player(player)

        if player.in_jail:
            self._roll_in_jail(player, result)
        else:
            self._note(
                f"{player.name} rolled {result.die1} + {result.die2} = {result.total}."
            )
            self._advance(player, result.total)
            self._resolve_landing(player, result.total)

        self._settle_bankruptcies()
        self._commit()
        return result

    def _roll_in_jail(self, player: Player, result: DiceResult) -> None:
        if result.is_double:
            player.release_from_jail()
            self._note(
                f"{player.name} rolled doubles ({result.die1} + {result.die2}) "
                f"and got out of jail!"
            )
            self._advance(player, result.total)
            self._resolve_landing(player, result.total)
            return

        player.jail_turns += 1
        if player.jail_turns >= MAX_JAIL_TURNS:
            self.ledger.pay_bank(
                player, JAIL_BAIL, TransactionType.JAIL_FINE,
                f"{player.name} paid bail after {MAX_JAIL_TURNS} failed attempts"
            )
            player.release_from_jail()
            self._note(
                f"{player.name} failed to roll doubles for the 3rd time and "
                f"paid ${JAIL_BAIL} bail to get out of jail!"
            )
        else:
            self._note(
                f"{player.name} rolled {result.die1} + {result.die2} and failed to "
                f"roll doubles. Still in jail ({player.jail_turns}/{MAX_JAIL_TURNS} attempts)."
            )

    def _advance(self, player: Player, spaces: int) -> None:
        crossings = player.advance(spaces, self.board.board_size)
        tile = self.board.get_tile(player.position)
        name = f" ({tile.name})" if tile else ""
        self._note(f"Moved to position {player.position}{name}.")
        for _ in range(crossings):
            self._collect_go(player)

    def _collect_go(self, player: Player) -> None:
        self.ledger.collect_from_bank(
            player, GO_BONUS, TransactionType.COLLECT_GO, f"{player.name} passed GO"
        )
        self._note(f"{player.name} passed GO and collected ${GO_BONUS}!")

    def _send_to_jail(self, player: Player) -> None:
        player.send_to_jail(self.board.jail_position)
        if player.id == self.current_player_turn:
            self.sent_to_jail_this_turn = True
        self.ledger.record(
            TransactionType.GO_TO_JAIL, 0,
            f"{player.name} was sent to jail",
            player_id=player.id,
        )
        self._note(f"{player.name} was sent to jail!")

    def _resolve_landing(self, player: Player, dice_total: int) -> None:
        """Apply the effect of the tile the player stands on."""
        tile = self.board.get_tile(player.position)
        if tile is None:
            return

        if tile.tile_type == TileType.GO_TO_JAIL:
            self._send_to_jail(player)

        elif tile.is_purchasable:
            if not tile.is_owned:
                self._note(f"{tile.name} is available for purchase for ${tile.price}!")
            elif tile.owner_id != player.id:
                self._charge_rent(player, tile, dice_total)

        elif tile.tile_type == TileType.TAX:
            self.ledger.pay_bank(
                player, TAX_AMOUNT, TransactionType.PAY_TAX,
                f"{player.name} paid tax"
            )
            self._note(f"{player.name} paid ${TAX_AMOUNT} in taxes!")

        elif tile.tile_type in (TileType.CHANCE, TileType.COMMUNITY_CHEST):
            self._draw_card(player, CardType(tile.tile_type.value), dice_total)

    def _charge_rent(self, player: Player, tile: Property, dice_total: int) -> None:
        owner = self.players.get(tile.owner_id)
        if owner is None or owner.is_bankrupt:
            return

        if tile.is_mortgaged:
            self._note(f"{tile.name} is mortgaged, no rent is due.")
            return

        rent = self.board.calculate_rent(tile, dice_total)
        if rent <= 0:
            return

        self.ledger.transfer(
            player, owner, rent, TransactionType.PAY_RENT,
            f"Rent for {tile.name}"
        )
        self._touch_player(player, owner)
        if player.cash < 0:
            self._note(f"{player.name} cannot afford ${rent} rent to {owner.name}!")
        else:
            self._note(f"{player.name} paid ${rent} rent to {owner.name}!")

    # =========== Cards ===========

    def _draw_card(self, player: Player, card_type: CardType, dice_total: int) -> None:
        card = self.cards.draw(card_type)
        self.last_card = card
        self._note(f'{player.name} drew a card: "{card.text}".')
        self._apply_card(player, card, dice_total)

    def _apply_card(self, player: Player, card: Card, dice_total: int) -> None:
        """Apply a card. Writes exactly one card transaction."""
        if card.card_type == CardType.CHANCE:
            tx_type = TransactionType.CHANCE_CARD
        else:
            tx_type = TransactionType.COMMUNITY_CHEST_CARD
        description = f"{card.title}: {card.text}"

        if card.action == CardAction.COLLECT_MONEY:
            self.ledger.collect_from_bank(player, card.value, tx_type, description)
            self._note(f"{player.name} collected ${card.value}.")

        elif card.action == CardAction.PAY_MONEY:
            self.ledger.pay_bank(player, card.value, tx_type, description)
            self._note(f"{player.name} paid ${card.value}.")

        elif card.action == CardAction.REPAIRS:
            cost = sum(
                prop.houses * card.per_house + (card.per_hotel if prop.has_hotel else 0)
                for prop in self.board.get_player_properties(player.id)
            )
            self.ledger.pay_bank(player, cost, tx_type, description)
            self._note(f"{player.name} paid ${cost} for repairs.")

        elif card.action == CardAction.PAY_TO_PLAYERS:
            others = [p for p in self.active_players if p.id != player.id]
            self.ledger.pay_each(player, others, card.value, tx_type, description)
            self._touch_player(*others)
            self._note(f"{player.name} paid ${card.value} to each player.")

        elif card.action == CardAction.COLLECT_FROM_PLAYERS:
            others = [p for p in self.active_players if p.id != player.id]
            self.ledger.collect_each(player, others, card.value, tx_type, description)
            self._touch_player(*others)
            self._note(f"{player.name} collected ${card.value} from each player.")

        else:
            self.ledger.record(tx_type, 0, description, player_id=player.id)
            self._apply_card_move(player, card, dice_total)

    def _apply_card_move(self, player: Player, card: Card, dice_total: int) -> None:
        if card.action == CardAction.GET_OUT_OF_JAIL:
            player.jail_cards += 1
            self._note(f"{player.name} received a Get Out of Jail Free card!")
            return

        if card.action == CardAction.GO_TO_JAIL:
            self._send_to_jail(player)
            return

        if card.action == CardAction.MOVE_BACK:
            player.position = (player.position - card.value) % self.board.board_size
        else:
            if card.action == CardAction.NEAREST_RAILROAD:
                target = self.board.nearest(player.position, TileType.RAILROAD)
            elif card.action == CardAction.NEAREST_UTILITY:
                target = self.board.nearest(player.position, TileType.UTILITY)
            else:
                target = self.board.card_destination(card.value)
            if target is None:
                return
            if player.move_to(target):
                self._collect_go(player)

        tile = self.board.get_tile(player.position)
        self._note(f"{player.name} moved to {tile.name if tile else player.position}.")
        self._resolve_landing(player, dice_total)

    # =========== Bankruptcy ===========

    def _settle_bankruptcies(self) -> None:
        """Run after every action that can reduce cash."""
        outcome = self.ledger.check_bankruptcy(self.players.values(), self.board)
        if not outcome.bankrupt:
            return

        self._touch_player(*outcome.bankrupt)
        self._touch_property(*outcome.released)
        for player in outcome.bankrupt:
            self._note(f"{player.name} has gone bankrupt and is out of the game!")

        if outcome.winner is not None:
            winner = outcome.winner
            score = score_player(winner, self.board)
            self.winner_id = winner.id
            self._set_status(RoomStatus.FINISHED)
            self._note(
                f"{winner.name} wins the game! All other players have gone bankrupt. "
                f"Final assets: ${score.total_assets:,} (Cash: ${score.cash:,}, "
                f"Properties: ${score.property_values:,})"
            )
            return

        current = self.current_player
        if current is not None and current.is_bankrupt:
            following = self._advance_turn()
            if following is not None:
                self._note(f"{following.name}'s turn now!")

    # =========== Turn ===========

    def _advance_turn(self) -> Player | None:
        """Pass the turn to the next solvent player in turn order."""
        order = self.turn_sequence
        if not order:
            return None

        ids = [p.id for p in order]
        start = ids.index(self.current_player_turn) if self.current_player_turn in ids else -1
        for step in range(1, len(order) + 1):
            candidate = order[(start + step) % len(order)]
            if not candidate.is_bankrupt:
                self.current_player_turn = candidate.id
                break

        self.dice_rolled = False
        self.sent_to_jail_this_turn = False
        return self.current_player

    def end_turn(self, player_id: str) -> Player:
        """
        End the turn. Doubles keep the turn unless the player went to jail.

        Returns:
            The player holding the turn afterwards
        """
        player = self._require_member(player_id)
        self._require(self.rules.validate_end_turn(
            player, self.current_player_turn, self.dice_rolled
        ))

        roll = self.last_dice_roll
        if (roll is not None and roll.is_double
                and not player.in_jail and not self.sent_to_jail_this_turn):
            self.dice_rolled = False
            self._commit(f"{player.name} rolled doubles! Take another turn!")
            return player

        following = self._advance_turn()
        self._commit(f"{player.name}'s turn ended. {following.name}'s turn now!")
        return following

    # =========== Property Actions ===========

    def buy_property(self, player_id: str, property_id: str) -> Property:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_buy_property(
            player, prop, self.current_player_turn, self.dice_rolled
        ))

        self.ledger.pay_bank(
            player, prop.price, TransactionType.BUY_PROPERTY,
            f"Bought {prop.name}"
        )
        prop.owner_id = player.id
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} bought {prop.name} for ${prop.price}!")
        return prop

    def build_house(self, player_id: str, property_id: str) -> Property:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_build_house(player, prop))

        self.ledger.pay_bank(
            player, HOUSE_COST, TransactionType.BUILD_HOUSE,
            f"Built a house on {prop.name}"
        )
        prop.houses += 1
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} built a house on {prop.name}!")
        return prop

    def build_hotel(self, player_id: str, property_id: str) -> Property:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_build_hotel(player, prop))

        self.ledger.pay_bank(
            player, HOTEL_COST, TransactionType.BUILD_HOTEL,
            f"Built a hotel on {prop.name}"
        )
        prop.houses = 0
        prop.has_hotel = True
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} built a hotel on {prop.name}!")
        return prop

    def sell_house(self, player_id: str, property_id: str) -> Property:
        """Sell one building back to the bank for half its price."""
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_sell_house(player, prop))

        if prop.has_hotel:
            refund = HOTEL_COST // 2
            prop.has_hotel = False
            prop.houses = MAX_HOUSES_PER_PROPERTY
            building = "hotel"
        else:
            refund = HOUSE_COST // 2
            prop.houses -= 1
            building = "house"

        self.ledger.collect_from_bank(
            player, refund, TransactionType.SELL_BUILDING,
            f"Sold a {building} on {prop.name}"
        )
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} sold a {building} on {prop.name} for ${refund}.")
        return prop

    def mortgage_property(self, player_id: str, property_id: str) -> Property:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_mortgage(player, prop))

        prop.is_mortgaged = True
        self.ledger.collect_from_bank(
            player, prop.mortgage_value, TransactionType.MORTGAGE,
            f"Mortgaged {prop.name}"
        )
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} mortgaged {prop.name} for ${prop.mortgage_value}.")
        return prop

    def unmortgage_property(self, player_id: str, property_id: str) -> Property:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        self._require(self.rules.validate_unmortgage(player, prop))

        cost = prop.unmortgage_cost
        self.ledger.pay_bank(
            player, cost, TransactionType.UNMORTGAGE,
            f"Unmortgaged {prop.name}"
        )
        prop.is_mortgaged = False
        self._touch_player(player)
        self._touch_property(prop)
        self._commit(f"{player.name} paid ${cost} to unmortgage {prop.name}.")
        return prop

    # =========== Jail ===========

    def pay_bail(self, player_id: str) -> Player:
        player = self._require_member(player_id)
        self._require(self.rules.validate_pay_bail(player, self.current_player_turn))

        self.ledger.pay_bank(
            player, JAIL_BAIL, TransactionType.JAIL_FINE,
            f"{player.name} paid bail"
        )
        player.release_from_jail()
        self.dice_rolled = False
        self._touch_player(player)
        self._commit(f"{player.name} paid ${JAIL_BAIL} bail and got out of jail!")
        return player

    def use_jail_card(self, player_id: str) -> Player:
        player = self._require_member(player_id)
        self._require(self.rules.validate_use_jail_card(player, self.current_player_turn))

        player.jail_cards -= 1
        player.release_from_jail()
        self.dice_rolled = False
        self.ledger.record(
            TransactionType.JAIL_CARD, 0,
            f"{player.name} used a Get Out of Jail Free card",
            player_id=player.id,
        )
        self._touch_player(player)
        self._commit(f"{player.name} used a Get Out of Jail Free card!")
        return player

    # =========== Trading ===========

    def _check_trade(self, trade: TradeProposal) -> ValidationResult:
        return self.rules.validate_trade(
            self.get_player(trade.from_player_id),
            self.get_player(trade.to_player_id),
            trade.offered_cash,
            trade.requested_cash,
            trade.offered_properties,
            trade.requested_properties,
        )

    def propose_trade(
        self,
        from_player_id: str,
        to_player_id: str,
        offered_properties: List[str],
        offered_cash: int,
        requested_properties: List[str],
        requested_cash: int
    ) -> TradeProposal:
        """Validate a new proposal. Nothing changes hands until acceptance."""
        from_player = self._require_member(from_player_id)
        to_player = self.get_player(to_player_id)

        trade = TradeProposal(
            from_player_id=from_player.id,
            to_player_id=to_player.id,
            offered_properties=list(offered_properties),
            offered_cash=offered_cash,
            requested_properties=list(requested_properties),
            requested_cash=requested_cash,
        )
        self._require(self._check_trade(trade))
        self._commit(f"{from_player.name} proposed a trade to {to_player.name}!")
        return trade

    def accept_trade(self, trade: TradeProposal) -> TradeProposal:
        """
        Execute an accepted trade as one step.

        Raises:
            ConcurrencyStale: the holdings changed since the proposal; the
                trade is cancelled and nothing moves
        """
        self._require(self.rules.validate_playing(self.room.status))
        validation = self._check_trade(trade)
        if not validation.valid:
            trade.resolve(TradeStatus.CANCELLED)
            raise ConcurrencyStale(f"Trade is no longer valid: {validation.message}")

        from_player = self.get_player(trade.from_player_id)
        to_player = self.get_player(trade.to_player_id)
        description = f"Trade: {from_player.name} to {to_player.name}"

        if trade.offered_cash:
            self.ledger.transfer(
                from_player, to_player, trade.offered_cash,
                TransactionType.TRADE, description
            )
        if trade.requested_cash:
            self.ledger.transfer(
                to_player, from_player, trade.requested_cash,
                TransactionType.TRADE, description
            )
        if not trade.offered_cash and not trade.requested_cash:
            self.ledger.record(
                TransactionType.TRADE, 0, description,
                player_id=from_player.id,
                from_player_id=from_player.id,
                to_player_id=to_player.id,
            )

        for property_id in trade.offered_properties:
            prop = self.get_property(property_id)
            prop.owner_id = to_player.id
            self._touch_property(prop)
        for property_id in trade.requested_properties:
            prop = self.get_property(property_id)
            prop.owner_id = from_player.id
            self._touch_property(prop)

        trade.resolve(TradeStatus.ACCEPTED)
        self._touch_player(from_player, to_player)
        self._commit(f"{to_player.name} accepted the trade from {from_player.name}!")
        return trade

    def reject_trade(self, trade: TradeProposal) -> TradeProposal:
        trade.resolve(TradeStatus.REJECTED)
        from_player = self.get_player(trade.from_player_id)
        to_player = self.get_player(trade.to_player_id)
        self._commit(f"{to_player.name} rejected the trade from {from_player.name}!")
        return trade

    def cancel_trade(self, trade: TradeProposal) -> TradeProposal:
        trade.resolve(TradeStatus.CANCELLED)
        from_player = self.get_player(trade.from_player_id)
        to_player = self.get_player(trade.to_player_id)
        self._commit(f"{from_player.name} cancelled the trade with {to_player.name}!")
        return trade

    # =========== Auctions ===========

    def start_auction(self, player_id: str, property_id: str, book: AuctionBook) -> Auction:
        player = self._require_member(player_id)
        prop = self.get_property(property_id)
        auction = book.open(prop, player.id, self.room.host_id)
        self._commit(
            f"Auction started for {prop.name}! Starting bid: ${auction.starting_bid}"
        )
        return auction

    def place_bid(self, player_id: str, auction_id: str, amount: int, book: AuctionBook) -> Auction:
        player = self.get_player(player_id)
        self._require(self.rules.validate_playing(self.room.status))
        auction = book.place_bid(auction_id, player, amount)
        self._commit(f"{player.name} bid ${amount} for {auction.property_name}!")
        return auction

    def cancel_auction(self, player_id: str, auction_id: str, book: AuctionBook) -> Auction:
        player = self.get_player(player_id)
        if player.id != self.room.host_id:
            raise RuleViolation("Only host can cancel auctions!", "NOT_HOST")
        auction = book.cancel(auction_id)
        self._commit(f"{player.name} cancelled the auction for {auction.property_name}.")
        return auction

    def finish_auction(self, auction_id: str, book: AuctionBook) -> Auction | None:
        """
        Close an auction whose window ran out and sell to the highest bidder.

        Returns None if the auction was already finished. When the property
        or the winner changed in the meantime the auction is cancelled
        instead and nobody pays.
        """
        auction = book.close(auction_id)
        if auction is None:
            return None

        if not auction.has_bids:
            self._commit(f"Auction for {auction.property_name} ended with no bids.")
            return auction

        winner = self.players.get(auction.current_winner)
        prop = self.board.get_property(auction.property_id)
        if (winner is None or winner.is_bankrupt or prop is None or prop.is_owned
                or not winner.can_afford(auction.current_bid)
                or self.room.status != RoomStatus.PLAYING):
            auction.status = AuctionStatus.CANCELLED
            self._commit(
                f"Auction for {auction.property_name} was cancelled because it "
                f"can no longer be completed."
            )
            return auction

        self.ledger.pay_bank(
            winner, auction.current_bid, TransactionType.BUY_PROPERTY,
            f"Won auction for {prop.name}"
        )
        prop.owner_id = winner.id
        self._touch_player(winner)
        self._touch_property(prop)
        self._commit(
            f"{winner.name} won the auction for {prop.name} with a bid of "
            f"${auction.current_bid}!"
        )
        return auction

    # =========== Game End ===========

    def propose_game_end(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player.id != self.room.host_id:
            raise RuleViolation("Only the host can propose to end the game!", "NOT_HOST")
        if self.room.status == RoomStatus.FINISHED:
            raise RuleViolation("Game is already finished!", "GAME_FINISHED")
        self._commit(
            f"{player.name} proposed to end the game. Waiting for player responses..."
        )
        return player

    def vote_game_end(self, player_id: str, agree: bool) -> List[PlayerScore] | None:
        """
        Record a vote. The host agreeing ends the game.

        Returns:
            Final scores, richest first, when the game ended
        """
        player = self.get_player(player_id)
        if self.room.status == RoomStatus.FINISHED:
            raise RuleViolation("Game is already finished!", "GAME_FINISHED")

        if not (agree and player.id == self.room.host_id):
            vote = "agreed" if agree else "declined"
            self._commit(f"{player.name} {vote} to end the game.")
            return None

        scores = self.scores()
        self._set_status(RoomStatus.FINISHED)
        if scores:
            self.winner_id = scores[0].player_id
            self._commit(
                f"Game ended by host. {scores[0].name} wins with "
                f"${scores[0].total_assets:,} total assets!"
            )
        else:
            self._commit("Game ended by host.")
        return scores

    # =========== Serialization ===========

    def to_dict(self) -> dict:
        """The full state broadcast to every member of the room."""
        return {
            "gameRoom": {
                "id": self.room.id,
                "name": self.room.name,
                "boardSize": self.room.board_size,
                "maxPlayers": self.room.max_players,
                "status": self.room.status.value,
                "hostId": self.room.host_id,
                "players": [p.to_dict() for p in self.players.values()],
            },
            "properties": self.board.to_list(),
            "currentPlayerTurn": self.current_player_turn,
            "diceRolled": self.dice_rolled,
            "lastDiceRoll": self.last_dice_roll.to_list() if self.last_dice_roll else [0, 0],
            "lastCard": self.last_card.to_dict() if self.last_card else None,
            "turnPhase": self.turn_phase.value,
            "gameMessage": self.game_message,
            "winnerId": self.winner_id,
            "version": self.version,
        }
